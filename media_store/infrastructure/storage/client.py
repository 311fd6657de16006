"""
S3 storage adapter for uploaded media.

Uploads go to a single bucket with a public-read ACL, so the URL returned
from save() can be embedded directly in published content. The same
objects can also be proxied back through serve() for hosts that prefer
not to expose the bucket.

boto3 is synchronous. Every backend call is pushed to a worker thread with
asyncio.to_thread so concurrent uploads don't block the event loop; the
boto3 client itself is safe to share between threads.
"""

import asyncio
import logging
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ...core.storage import UploadRequest, build_object_key, target_dir
from .errors import ConfigurationError, FilesystemError, is_not_found
from .handler import MediaRequestHandler

logger = logging.getLogger(__name__)

# Uploaded names carry a timestamp, so an object never changes once written.
CACHE_CONTROL = "max-age=31536000"


@dataclass(frozen=True)
class StorageConfig:
    """
    Settings for one S3 storage adapter.

    The four required fields are allowed to be empty here; the adapter
    checks them on every backend call so that a half-configured host
    still starts and only uploads fail.
    """
    access_key_id: str = ""
    secret_access_key: str = ""
    bucket: str = ""
    region: str = ""
    asset_host: Optional[str] = None
    path_prefix: str = ""

    # Host platforms pass options with camelCase keys
    _OPTION_NAMES = {
        "accessKeyId": "access_key_id",
        "secretAccessKey": "secret_access_key",
        "bucket": "bucket",
        "region": "region",
        "assetHost": "asset_host",
        "pathPrefix": "path_prefix",
    }

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "StorageConfig":
        """Build a config from the host's option mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in options.items():
            name = cls._OPTION_NAMES.get(key, key)
            if name in known and value is not None:
                values[name] = value
        return cls(**values)

    def missing_fields(self) -> list[str]:
        """Names of required settings that are empty."""
        required = ("access_key_id", "secret_access_key", "bucket", "region")
        return [name for name in required if not getattr(self, name)]

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()

    @property
    def base_url(self) -> str:
        """
        URL that object keys are appended to.

        us-east-1 is served from the bare "s3" endpoint; every other region
        uses "s3-<region>". An asset host (CDN or custom domain) replaces
        the whole endpoint and bucket part.
        """
        if self.asset_host:
            return self.asset_host.rstrip("/") + "/"
        endpoint = "s3" if self.region == "us-east-1" else f"s3-{self.region}"
        return f"https://{endpoint}.amazonaws.com/{self.bucket}/"

    def public_url(self, key: str) -> str:
        return self.base_url + key


class S3Storage:
    """
    Storage adapter backed by a single S3 bucket.

    Implements the StorageAdapter protocol from core.storage. The config
    belongs to this instance only, so several adapters (for example in
    tests) can live side by side.
    """

    def __init__(self, config: StorageConfig, client: Any = None) -> None:
        self._config = config
        self._client = client

    @property
    def config(self) -> StorageConfig:
        return self._config

    @property
    def client(self) -> Any:
        """
        boto3 S3 client, created on first backend call.

        Construction of the adapter does no I/O, and an incomplete config
        never gets this far.
        """
        if self._client is None:
            self._client = boto3.client(
                "s3",
                aws_access_key_id=self._config.access_key_id,
                aws_secret_access_key=self._config.secret_access_key,
                region_name=self._config.region,
                config=Config(signature_version="s3v4"),
            )
            logger.info(
                "Initialized S3 storage client",
                extra={
                    "bucket": self._config.bucket,
                    "region": self._config.region,
                }
            )
        return self._client

    def _require_config(self) -> None:
        missing = self._config.missing_fields()
        if missing:
            logger.error(
                "S3 storage is not configured",
                extra={"missing_fields": missing}
            )
            raise ConfigurationError(missing)

    async def save(self, upload: UploadRequest) -> str:
        """
        Upload a local file and return its public URL.

        Path structure: {path_prefix}{YYYY}/{MM}/{sanitized name}-{epoch ms}{ext}

        Backend errors are logged and re-raised as-is so the caller can
        inspect the S3 error code. Nothing is retried.
        """
        self._require_config()

        key = build_object_key(
            upload.name,
            target_dir(),
            path_prefix=self._config.path_prefix,
        )

        try:
            body = await asyncio.to_thread(_read_file, upload.path)
        except OSError as e:
            logger.error(
                "Failed to read upload",
                extra={"path": upload.path, "error": str(e)}
            )
            raise FilesystemError(f"Cannot read {upload.path}: {e}") from e

        try:
            await asyncio.to_thread(
                self.client.put_object,
                ACL="public-read",
                Bucket=self._config.bucket,
                Key=key,
                Body=body,
                ContentType=upload.type,
                CacheControl=CACHE_CONTROL,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "Failed to upload object",
                extra={"key": key, "error": str(e)}
            )
            raise

        logger.info(
            "Uploaded object",
            extra={
                "key": key,
                "size_bytes": len(body),
                "temp_path": upload.path,
            }
        )

        return self._config.public_url(key)

    def serve(self, mount_path: str = "") -> MediaRequestHandler:
        """
        Return the request handler for the media route.

        The same handler instance is meant to be reused for every request;
        mount_path is removed from the request path before the object key
        is derived.
        """
        return MediaRequestHandler(self, mount_path=mount_path)

    async def get_object(self, key: str) -> dict[str, Any]:
        """
        Fetch an object's metadata and an open body stream.

        The caller owns the returned "Body" and must close it.
        """
        self._require_config()
        return await asyncio.to_thread(
            self.client.get_object,
            Bucket=self._config.bucket,
            Key=key,
        )

    async def exists(self, key: str) -> bool:
        """Check for an object with a HEAD request (no body transfer)."""
        self._require_config()
        try:
            await asyncio.to_thread(
                self.client.head_object,
                Bucket=self._config.bucket,
                Key=key,
            )
        except ClientError as e:
            if is_not_found(e):
                return False
            logger.error(
                "Failed to check object",
                extra={"key": key, "error": str(e)}
            )
            raise
        except BotoCoreError as e:
            logger.error(
                "Failed to check object",
                extra={"key": key, "error": str(e)}
            )
            raise
        return True

    async def delete(self, key: str) -> None:
        """Delete an object. S3 acknowledges deletes of missing keys too."""
        self._require_config()
        try:
            await asyncio.to_thread(
                self.client.delete_object,
                Bucket=self._config.bucket,
                Key=key,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "Failed to delete object",
                extra={"key": key, "error": str(e)}
            )
            raise

        logger.info("Deleted object", extra={"key": key})


def _read_file(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_adapter(
    config: Optional[StorageConfig] = None,
    options: Optional[Mapping[str, Any]] = None,
) -> S3Storage:
    """
    Create the storage adapter from a config or a host option mapping.

    Args:
        config: Ready-made storage configuration
        options: Host options with camelCase keys (accessKeyId, bucket, ...)

    Returns:
        S3Storage instance (no network I/O happens here)
    """
    if config is None:
        if options is None:
            raise ValueError("config or options is required")
        config = StorageConfig.from_options(options)

    return S3Storage(config)
