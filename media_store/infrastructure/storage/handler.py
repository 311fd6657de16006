"""
Request handler that proxies stored media from S3.

The handler follows the host's middleware convention: it is called with
the request and the next handler in the chain, and returns a response.
Serving happens in two phases:

1. GetObject resolves status and metadata. Headers for the outbound
   response are built from it before any body byte is sent.
2. The object body is piped chunk by chunk into a StreamingResponse.
   Nothing is buffered beyond one chunk.

Any backend failure in phase 1 (missing key included) turns into a 404
handled by the next handler, so the host's own not-found page is shown.
"""

import logging
from datetime import timezone
from email.utils import format_datetime
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterator

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import Request, Response
from fastapi.responses import StreamingResponse

from ...core.storage import key_from_path
from .errors import ConfigurationError, is_not_found

if TYPE_CHECKING:
    from .client import S3Storage

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]

# GetObject field -> response header
_HEADER_FIELDS = (
    ("ContentType", "content-type"),
    ("ContentLength", "content-length"),
    ("CacheControl", "cache-control"),
    ("ContentEncoding", "content-encoding"),
    ("ContentDisposition", "content-disposition"),
    ("ContentLanguage", "content-language"),
    ("ETag", "etag"),
    ("LastModified", "last-modified"),
    ("AcceptRanges", "accept-ranges"),
)


def object_headers(result: dict[str, Any]) -> dict[str, str]:
    """Translate GetObject metadata into HTTP response headers."""
    headers: dict[str, str] = {}
    for field, header in _HEADER_FIELDS:
        value = result.get(field)
        if value is None:
            continue
        if field == "LastModified":
            value = format_datetime(value.astimezone(timezone.utc), usegmt=True)
        headers[header] = str(value)
    return headers


class MediaRequestHandler:
    """
    Streams objects from an S3Storage adapter.

    One instance serves every request on the media route; it holds no
    per-request state, so concurrent responses don't interfere.
    """

    CHUNK_SIZE = 64 * 1024  # 64KB

    def __init__(self, storage: "S3Storage", mount_path: str = "") -> None:
        self._storage = storage
        self.mount_path = mount_path.rstrip("/")

    def matches(self, path: str) -> bool:
        """True if path falls under the mount path."""
        if not self.mount_path:
            return True
        return path == self.mount_path or path.startswith(self.mount_path + "/")

    def object_key(self, path: str) -> str:
        if self.mount_path and self.matches(path):
            path = path[len(self.mount_path):]
        return key_from_path(path)

    async def __call__(self, request: Request, call_next: CallNext) -> Response:
        key = self.object_key(request.url.path)

        try:
            result = await self._storage.get_object(key)
        except ConfigurationError:
            # already logged by the adapter
            return await self._not_found(request, call_next)
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "Failed to read object",
                extra={
                    "key": key,
                    "not_found": isinstance(e, ClientError) and is_not_found(e),
                    "error": str(e),
                }
            )
            return await self._not_found(request, call_next)

        return StreamingResponse(
            self._stream(key, result["Body"]),
            headers=object_headers(result),
        )

    async def _not_found(self, request: Request, call_next: CallNext) -> Response:
        """Hand the request to the next handler with a 404 status."""
        response = await call_next(request)
        if response.status_code < 400:
            response.status_code = 404
        return response

    def _stream(self, key: str, body: Any) -> Iterator[bytes]:
        try:
            for chunk in body.iter_chunks(self.CHUNK_SIZE):
                yield chunk
        except BotoCoreError as e:
            # Headers are already sent; ending the body early is the only signal left.
            logger.error(
                "Object stream failed",
                extra={"key": key, "error": str(e)}
            )
        finally:
            body.close()
