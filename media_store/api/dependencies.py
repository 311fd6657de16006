"""
FastAPI dependency injection.

Dependencies provide the storage adapter and configuration to route
handlers, so routes never build their own clients and tests can swap
either one out.
"""

from typing import Annotated

from fastapi import Depends, Request

from ..config.settings import Settings, get_settings
from ..core.storage import StorageAdapter


def get_storage_adapter(request: Request) -> StorageAdapter:
    """
    Provide the storage adapter for uploads.

    The adapter is created once in create_app() and kept on app.state:
    the media middleware needs the same instance outside of routing,
    and the boto3 client inside it is reused across requests.
    """
    return request.app.state.storage


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

StorageDep = Annotated[StorageAdapter, Depends(get_storage_adapter)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
