"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables (prefixed with S3_)
or a .env file. Using Pydantic's BaseSettings means we get:
- Type validation at startup
- Documentation of what's required vs optional
- Easy testing with different configurations

The storage fields may be left empty: the app still starts, the
readiness check reports what is missing, and uploads fail with a
configuration error until they are set.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..infrastructure.storage.client import StorageConfig


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every field maps to S3_<FIELD NAME>, e.g. S3_BUCKET or S3_ASSET_HOST.
    """

    # API Configuration
    api_title: str = "S3 Media Storage"
    api_version: str = "v1"

    # Storage Configuration
    access_key_id: str = Field(
        default="",
        description="AWS access key ID"
    )
    secret_access_key: str = Field(
        default="",
        description="AWS secret access key"
    )
    bucket: str = Field(
        default="",
        description="Bucket that uploads are written to"
    )
    region: str = Field(
        default="",
        description="AWS region of the bucket, e.g. us-east-1"
    )
    asset_host: Optional[str] = Field(
        default=None,
        description="Public URL base (CDN or custom domain) used instead of the S3 endpoint"
    )
    path_prefix: str = Field(
        default="",
        description="String prepended verbatim to every object key"
    )

    # Application Behavior
    media_route: str = Field(
        default="/content/images",
        description="URL path under which stored media is served back"
    )
    max_upload_size_mb: int = Field(
        default=20,
        description="Maximum size of a single upload in MB"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:2368",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_prefix="S3_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @field_validator("media_route")
    @classmethod
    def media_route_must_be_a_sub_path(cls, value: str) -> str:
        """
        Reject an empty or root media route.

        The media handler claims every GET under this path, so "/" would
        send every page through S3 first.
        """
        if not value.strip("/"):
            raise ValueError("media_route must be a non-root path such as /content/images")
        return value

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def storage_config(self) -> StorageConfig:
        """Build the storage adapter's configuration."""
        return StorageConfig(
            access_key_id=self.access_key_id,
            secret_access_key=self.secret_access_key,
            bucket=self.bucket,
            region=self.region,
            asset_host=self.asset_host or None,
            path_prefix=self.path_prefix,
        )

    def validate_required_fields(self) -> list[str]:
        """
        Return the environment variables that still need to be set.

        This is separate from Pydantic validation because a missing
        bucket should disable uploads, not stop the process.
        """
        return [
            f"S3_{name.upper()}"
            for name in self.storage_config().missing_fields()
        ]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings don't change during runtime, so they are loaded once per
    process. For tests, call get_settings.cache_clear() to reset.
    """
    return Settings()
