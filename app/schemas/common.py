from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from app.db.base import MAX_INT  # noqa: F401  (re-exported for request schemas)


class _Base(BaseModel):
    """
    - from_attributes: build straight from ORM rows
    - extra = ignore
    """

    model_config = ConfigDict(from_attributes=True, extra="ignore")


class _In(BaseModel):
    """Request bodies: unknown fields are rejected at the boundary."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)
