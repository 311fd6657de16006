"""
Unit tests for the media streaming handler returned by serve().

The handler is called directly with a bare request and a fake next
handler, so these tests exercise key derivation, header copying, the
not-found fallback and body streaming without an application around it.
"""

import asyncio
import io
from datetime import datetime, timezone
from unittest.mock import Mock

from botocore.exceptions import EndpointConnectionError, ReadTimeoutError
from botocore.response import StreamingBody
from fastapi import Request, Response
from fastapi.responses import PlainTextResponse, StreamingResponse

from media_store.infrastructure.storage.client import S3Storage, StorageConfig
from media_store.infrastructure.storage.handler import MediaRequestHandler, object_headers

IMAGE = b"\x89PNG\r\n\x1a\n" + b"x" * 200_000


def _request(path: str) -> Request:
    return Request({
        "type": "http",
        "method": "GET",
        "path": path,
        "headers": [],
        "query_string": b"",
    })


def _get_object_response(body: bytes = IMAGE) -> dict:
    return {
        "Body": StreamingBody(io.BytesIO(body), len(body)),
        "ContentType": "image/png",
        "ContentLength": len(body),
        "CacheControl": "max-age=31536000",
        "ETag": '"abc123"',
    }


class NextHandler:
    """Records whether the chain continued."""

    def __init__(self, response: Response | None = None) -> None:
        self.calls = 0
        self.response = response or PlainTextResponse("host page")

    async def __call__(self, request: Request) -> Response:
        self.calls += 1
        return self.response


class FailingStream(io.BytesIO):
    """Raw stream that times out after its first read."""

    def __init__(self, data: bytes) -> None:
        super().__init__(data)
        self.reads = 0

    def read(self, size=-1):
        self.reads += 1
        if self.reads > 1:
            raise ReadTimeoutError(endpoint_url="https://s3.amazonaws.com/test-bucket")
        return super().read(size)


async def _collect(response: StreamingResponse) -> bytes:
    chunks = []
    async for chunk in response.body_iterator:
        chunks.append(chunk)
    return b"".join(chunks)


# ---------------------------------------------------------------------------
# Key Derivation and Headers
# ---------------------------------------------------------------------------

class TestObjectKey:
    """Tests for mapping request paths to keys."""

    def test_serve_returns_reusable_handler(self, storage):
        """serve() hands back a handler object, not a one-shot call."""
        handler = storage.serve()
        assert isinstance(handler, MediaRequestHandler)

    def test_strips_slashes_without_mount_path(self, storage):
        """One leading and one trailing slash are removed."""
        handler = storage.serve()
        assert handler.object_key("/2024/03/photo-123.png/") == "2024/03/photo-123.png"

    def test_strips_mount_path(self, storage):
        """The media route itself is not part of the key."""
        handler = storage.serve(mount_path="/content/images/")
        assert handler.object_key("/content/images/2024/03/a.png") == "2024/03/a.png"

    def test_matches_only_paths_under_mount(self, storage):
        """Sibling paths sharing a prefix are not claimed."""
        handler = storage.serve(mount_path="/content/images")
        assert handler.matches("/content/images/a.png")
        assert not handler.matches("/content/imagesX/a.png")
        assert not handler.matches("/api/v1/images/upload")


class TestObjectHeaders:
    """Tests for translating GetObject metadata to HTTP headers."""

    def test_copies_present_fields_only(self):
        """Absent metadata fields produce no header."""
        headers = object_headers({
            "ContentType": "image/png",
            "ContentLength": 42,
            "CacheControl": "max-age=31536000",
        })

        assert headers == {
            "content-type": "image/png",
            "content-length": "42",
            "cache-control": "max-age=31536000",
        }

    def test_formats_last_modified_as_http_date(self):
        """LastModified datetimes become RFC 7231 dates in GMT."""
        headers = object_headers({
            "LastModified": datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc),
        })
        assert headers["last-modified"] == "Fri, 01 Mar 2024 12:30:00 GMT"


# ---------------------------------------------------------------------------
# Serving
# ---------------------------------------------------------------------------

class TestServe:
    """Tests for streaming objects and the not-found fallback."""

    def test_requests_key_from_path_and_streams_body(self, storage, stubber):
        """The stripped path is the GetObject key and the body is piped through."""
        stubber.add_response(
            "get_object",
            _get_object_response(),
            {"Bucket": "test-bucket", "Key": "2024/03/photo-123.png"},
        )
        next_handler = NextHandler()
        handler = storage.serve()

        async def run():
            response = await handler(_request("/2024/03/photo-123.png"), next_handler)
            return response, await _collect(response)

        response, body = asyncio.run(run())

        assert isinstance(response, StreamingResponse)
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.headers["content-length"] == str(len(IMAGE))
        assert response.headers["etag"] == '"abc123"'
        assert body == IMAGE
        assert next_handler.calls == 0

    def test_not_found_sets_404_and_calls_next(self, storage, stubber):
        """A missing key falls through to the host with a 404."""
        stubber.add_client_error(
            "get_object",
            service_error_code="NoSuchKey",
            service_message="The specified key does not exist.",
            http_status_code=404,
            expected_params={"Bucket": "test-bucket", "Key": "missing.png"},
        )
        next_handler = NextHandler()
        handler = storage.serve()

        response = asyncio.run(handler(_request("/missing.png"), next_handler))

        assert next_handler.calls == 1
        assert response is next_handler.response
        assert response.status_code == 404

    def test_transport_error_sets_404_and_calls_next(self, storage_config):
        """Connection failures are handled like any other read failure."""
        client = Mock()
        client.get_object.side_effect = EndpointConnectionError(
            endpoint_url="https://s3.amazonaws.com/test-bucket"
        )
        next_handler = NextHandler()
        handler = S3Storage(storage_config, client=client).serve()

        response = asyncio.run(handler(_request("/2024/03/a.png"), next_handler))

        client.get_object.assert_called_once_with(Bucket="test-bucket", Key="2024/03/a.png")
        assert next_handler.calls == 1
        assert response.status_code == 404

    def test_downstream_error_status_is_kept(self, storage, stubber):
        """An error status from the next handler is not downgraded to 404."""
        stubber.add_client_error(
            "get_object",
            service_error_code="AccessDenied",
            http_status_code=403,
            expected_params={"Bucket": "test-bucket", "Key": "a.png"},
        )
        next_handler = NextHandler(PlainTextResponse("boom", status_code=500))

        response = asyncio.run(storage.serve()(_request("/a.png"), next_handler))

        assert response.status_code == 500

    def test_missing_config_falls_through_to_404(self):
        """An unconfigured adapter serves nothing and never builds a client."""
        next_handler = NextHandler()
        storage = S3Storage(StorageConfig())

        response = asyncio.run(storage.serve()(_request("/a.png"), next_handler))

        assert next_handler.calls == 1
        assert response.status_code == 404
        assert storage._client is None


class TestStreaming:
    """Tests for the body pipe once headers are resolved."""

    def test_body_is_closed_after_full_read(self, storage, stubber):
        """The backend stream is released once every chunk is sent."""
        raw = io.BytesIO(IMAGE)
        response_data = _get_object_response()
        response_data["Body"] = StreamingBody(raw, len(IMAGE))
        stubber.add_response(
            "get_object",
            response_data,
            {"Bucket": "test-bucket", "Key": "a.png"},
        )
        handler = storage.serve()

        async def run():
            response = await handler(_request("/a.png"), NextHandler())
            return await _collect(response)

        body = asyncio.run(run())

        assert body == IMAGE
        assert raw.closed

    def test_mid_stream_error_ends_response_and_closes_body(self, storage, stubber):
        """A read timeout after the first chunk truncates only this response."""
        raw = FailingStream(b"0123456789")
        response_data = _get_object_response()
        response_data["Body"] = StreamingBody(raw, 1000)
        response_data["ContentLength"] = 1000
        stubber.add_response(
            "get_object",
            response_data,
            {"Bucket": "test-bucket", "Key": "a.png"},
        )
        handler = storage.serve()

        async def run():
            response = await handler(_request("/a.png"), NextHandler())
            return await _collect(response)

        body = asyncio.run(run())

        assert body == b"0123456789"
        assert raw.closed

    def test_body_is_closed_when_client_disconnects(self, storage):
        """Abandoning the stream after one chunk still releases the body."""
        raw = io.BytesIO(IMAGE)
        handler = storage.serve()
        stream = handler._stream("a.png", StreamingBody(raw, len(IMAGE)))

        first = next(stream)
        stream.close()

        assert len(first) == MediaRequestHandler.CHUNK_SIZE
        assert raw.closed
