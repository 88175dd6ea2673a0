"""
Schemas package.

No aggregate exports: import from the concrete module, e.g.
    from app.schemas.orders import OrderCreateIn, OrderOut
"""

__all__: list[str] = []
