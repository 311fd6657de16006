"""
Application configuration using Pydantic settings.

Configuration comes from S3_* environment variables with sensible defaults.
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
