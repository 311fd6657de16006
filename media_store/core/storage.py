"""
Storage contract and object key helpers.

The host platform talks to every storage backend through the same four
operations. Keeping the contract as a Protocol (instead of a base class)
means a backend only has to provide the methods; there is no shared state
to inherit.

Key helpers live here because they are pure string/time logic with no
dependency on boto3 or the web framework.
"""

import os
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

_NON_WORD = re.compile(r"\W", re.ASCII)


@dataclass(frozen=True)
class UploadRequest:
    """
    A file the host platform wants stored.

    Attributes:
        path: Local temp file holding the uploaded bytes
        name: Original file name as sent by the client
        type: Declared MIME type
    """
    path: str
    name: str
    type: str


class StorageAdapter(Protocol):
    """
    Operations the host platform calls on a storage backend.

    save returns the public URL of the stored file, serve returns a request
    handler for the media route.
    """

    async def save(self, upload: UploadRequest) -> str:
        """Store the upload and return its public URL."""
        ...

    def serve(self, mount_path: str = "") -> Any:
        """Return a reusable handler that streams stored objects."""
        ...

    async def exists(self, key: str) -> bool:
        """Report whether an object is stored under key."""
        ...

    async def delete(self, key: str) -> None:
        """Remove the object stored under key."""
        ...


def target_dir(now: Optional[datetime] = None) -> str:
    """Directory for new uploads, grouped by year and month (YYYY/MM)."""
    now = now or datetime.now(timezone.utc)
    return f"{now.year:04d}/{now.month:02d}"


def sanitize_name(name: str) -> str:
    """Replace every non-word character with an underscore, one for one."""
    return _NON_WORD.sub("_", name)


def unique_file_name(name: str, now_ms: Optional[int] = None) -> str:
    """
    Build a file name that is unique per millisecond.

    The base name is sanitized and the upload time in epoch milliseconds is
    inserted before the original extension:

        "My Photo!!.png" -> "My_Photo__-1709251200000.png"

    Two uploads of the same name within one millisecond get the same
    result; nothing here guards against that.
    """
    base, ext = os.path.splitext(os.path.basename(name))
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{sanitize_name(base)}-{now_ms}{ext}"


def build_object_key(
    name: str,
    directory: str,
    path_prefix: str = "",
    now_ms: Optional[int] = None,
) -> str:
    """Full object key: prefix (verbatim) + directory + unique file name."""
    return f"{path_prefix}{directory}/{unique_file_name(name, now_ms)}"


def key_from_path(path: str) -> str:
    """Strip a single leading and a single trailing slash from a request path."""
    if path.startswith("/"):
        path = path[1:]
    if path.endswith("/"):
        path = path[:-1]
    return path
