"""
Image upload endpoint.

Plays the host platform's part of the storage contract: the multipart
file is spooled to a local temp file, handed to the storage adapter, and
the temp file is removed afterwards whatever the outcome. The response
carries the public URL the platform stores in its content.
"""

import logging
import os
import tempfile
from typing import Annotated

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, File, HTTPException, UploadFile, status
from pydantic import BaseModel, Field

from ...core.storage import UploadRequest
from ...infrastructure.storage.errors import ConfigurationError, FilesystemError
from ..dependencies import SettingsDep, StorageDep

logger = logging.getLogger(__name__)

router = APIRouter()


class ImageUploadResponse(BaseModel):
    """Response after storing an image."""
    url: str = Field(description="Public URL of the stored image")


@router.post(
    "/upload",
    response_model=ImageUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload an image",
)
async def upload_image(
    file: Annotated[UploadFile, File(description="Image file (JPEG/PNG/GIF/SVG/WebP)")],
    storage: StorageDep,
    settings: SettingsDep,
) -> ImageUploadResponse:
    """
    Store an uploaded image and return its public URL.

    Status codes:
    - 400: the part is not an image
    - 413: larger than S3_MAX_UPLOAD_SIZE_MB
    - 503: storage is not configured
    - 502: S3 or the temp file failed
    """
    if not file.content_type or not file.content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File is not an image (got {file.content_type})"
        )

    data = await file.read()
    max_size_bytes = settings.max_upload_size_mb * 1024 * 1024
    if len(data) > max_size_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Upload exceeds {settings.max_upload_size_mb}MB"
        )

    name = file.filename or "upload"
    _, ext = os.path.splitext(name)
    fd, temp_path = tempfile.mkstemp(suffix=ext)

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)

        url = await storage.save(
            UploadRequest(path=temp_path, name=name, type=file.content_type)
        )

    except ConfigurationError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )
    except (FilesystemError, ClientError, BotoCoreError) as e:
        # the adapter has logged the details
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Upload failed: {e}",
        )
    finally:
        os.unlink(temp_path)

    logger.info(
        "Stored image",
        extra={"filename": name, "size_bytes": len(data), "url": url}
    )

    return ImageUploadResponse(url=url)
