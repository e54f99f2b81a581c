"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Filesystem content store backend
- Name sanitization and upload metadata checks

Keep infrastructure concerns separate from business logic.
"""
