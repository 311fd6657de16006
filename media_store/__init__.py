"""
S3 media storage - persists uploaded images to S3 and serves them back.

This package contains:
- core: Storage contract and object key helpers (framework-agnostic)
- infrastructure: S3 adapter and the streaming media handler
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
