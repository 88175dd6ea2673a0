# app/db/base.py
from __future__ import annotations

import importlib
import logging
from typing import Iterable, List, Set

from sqlalchemy.orm import DeclarativeBase, configure_mappers

log = logging.getLogger("stockdesk.models")

# ids, quantities and levels are stored in 32-bit INTEGER columns
MAX_INT = 2**31 - 1


class Base(DeclarativeBase):
    """Single ORM Base for the whole application."""

    pass


_INITIALIZED: bool = False

MODEL_MODULES = [
    "app.models.customer",
    "app.models.inventory_item",
    "app.models.inventory_adjustment",
    "app.models.order",
    "app.models.order_item",
    "app.models.payment",
    "app.models.order_status_event",
    "app.models.notification",
]


def init_models(
    *,
    extra_modules: Iterable[str] | None = None,
    force: bool = False,
) -> None:
    """
    Import every model module so string relationship targets resolve,
    then configure mappers once.
    """
    global _INITIALIZED
    if _INITIALIZED and not force:
        log.debug("init_models() called again; already initialized, skipping.")
        return

    loaded: List[str] = []
    seen: Set[str] = set()
    for mod in [*MODEL_MODULES, *(extra_modules or [])]:
        if mod in seen:
            continue
        seen.add(mod)
        importlib.import_module(mod)
        loaded.append(mod)

    configure_mappers()
    _INITIALIZED = True
    log.info("ORM models initialized & mappers configured (loaded %d modules)", len(loaded))
