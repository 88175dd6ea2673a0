"""
HTTP layer.

Routers live in `app.api.routers.*` and are mounted by `app.main`.
"""

__all__ = []
