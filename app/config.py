"""
Application configuration management.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # GitHub App identity, used to mint installation tokens
    app_id: Optional[str] = None
    private_key: Optional[str] = None
    private_key_path: Optional[str] = None

    # GitHub API; a static token overrides app authentication
    github_token: Optional[str] = None
    github_api_url: str = "https://api.github.com"

    # Webhook
    webhook_secret: Optional[str] = None
    # Informational only: logged at startup, no relay client is started.
    # Run a smee client separately to forward deliveries from this URL.
    webhook_proxy_url: Optional[str] = None

    # Compliance file template (bundled copy is used when unset)
    template_path: Optional[str] = None

    # Application
    port: int = 3000
    host: str = "0.0.0.0"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False
