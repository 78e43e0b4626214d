"""
Application configuration using Pydantic Settings.
All environment variables are loaded here with sensible defaults.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment
    environment: str = "dev"
    log_level: str = "INFO"

    # Origins allowed to call the API from a browser
    cors_origins: List[str] = ["*"]

    # Cloudflare R2 / S3-compatible storage
    r2_endpoint: Optional[str] = None  # e.g., https://<account_id>.r2.cloudflarestorage.com
    r2_bucket: str = "file-manager"  # Bucket name
    r2_access_key: Optional[str] = None  # R2 access key ID
    r2_secret_key: Optional[str] = None  # R2 secret access key
    r2_region: str = "auto"  # R2 uses "auto" for region
    r2_public_url: Optional[str] = None  # Public base URL for browsable links
    r2_presign_expiration: int = 60  # Presigned upload URL expiration in seconds

    # Total delete attempts for the second step of a rename
    rename_delete_attempts: int = 3

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
