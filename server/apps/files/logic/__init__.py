"""Business logic layer for files app.

This package contains all business logic of the file share:
- Uploads coordinated as blob write + metadata write
- Listing, search and deletion of a user's files
- Share links and anonymous access by token
- Background sweep of expired files

All business logic should be implemented here, separate from
models (data layer), views (HTTP) and infrastructure (external systems).
"""
