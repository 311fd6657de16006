"""
Core storage logic.

This module is framework-agnostic - it doesn't import FastAPI or boto3.
It defines the storage contract the host platform relies on and the pure
helpers that turn upload names into object keys.
"""

from .storage import (
    StorageAdapter,
    UploadRequest,
    build_object_key,
    key_from_path,
    sanitize_name,
    target_dir,
    unique_file_name,
)

__all__ = [
    "StorageAdapter",
    "UploadRequest",
    "build_object_key",
    "key_from_path",
    "sanitize_name",
    "target_dir",
    "unique_file_name",
]
