"""
Storage error types.

Errors raised by S3 itself (botocore ClientError / BotoCoreError) are not
wrapped; callers get them unchanged and can inspect the S3 error code.
"""

from botocore.exceptions import ClientError

NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class StorageError(Exception):
    """Base class for adapter errors that are not raised by the backend."""
    pass


class ConfigurationError(StorageError):
    """Raised when required storage settings are missing."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(
            f"S3 storage is not configured (missing: {', '.join(missing)})"
        )


class FilesystemError(StorageError):
    """Raised when the uploaded temp file can't be read."""
    pass


def is_not_found(error: ClientError) -> bool:
    code = error.response.get("Error", {}).get("Code", "")
    return code in NOT_FOUND_CODES
