"""
Infrastructure layer - external service integrations.

- storage: S3 object storage and the media streaming handler
"""
