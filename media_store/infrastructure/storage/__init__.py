"""
Object storage integration for uploaded media.

Stores files in an S3 bucket with public-read ACLs and proxies them back
through a streaming request handler.
"""

from .client import CACHE_CONTROL, S3Storage, StorageConfig, create_storage_adapter
from .errors import ConfigurationError, FilesystemError, StorageError
from .handler import MediaRequestHandler

__all__ = [
    "CACHE_CONTROL",
    "ConfigurationError",
    "FilesystemError",
    "MediaRequestHandler",
    "S3Storage",
    "StorageConfig",
    "StorageError",
    "create_storage_adapter",
]
