"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Custom storage backend (S3/MinIO)
- Per-user listing cache (Redis or local memory)
- Metadata helpers (storage keys, share tokens, MIME types)

Keep infrastructure concerns separate from business logic.
"""
