"""Business logic layer for files app.

This package contains all business logic for the file manager:
- Path resolution and ownership checks
- Folder creation, file upload, download and delete
- Combined folder and file listing
- Batch delete and batch download (zip archives)
- Offline reconciliation between metadata and content stores

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
