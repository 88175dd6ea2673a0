# app/api/errors.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from app.api.problem import make_problem
from app.services.errors import OrderFlowError, StorageFailure

logger = logging.getLogger("stockdesk.api")


def problem_from_error(exc: OrderFlowError, *, context: Optional[Dict[str, Any]] = None, trace_id: Optional[str] = None) -> Dict[str, Any]:
    """
    OrderFlowError -> Problem body.

    StorageFailure never exposes its reason (driver internals stay in the log).
    """
    message = "storage failure, please retry later" if isinstance(exc, StorageFailure) else exc.message
    return make_problem(
        status_code=exc.http_status,
        error_code=exc.code,
        message=message,
        context=context,
        details=exc.details(),
        trace_id=trace_id,
    )


def order_flow_error_handler(req: Request, exc: OrderFlowError, *, trace_id: str) -> JSONResponse:
    ctx = {"path": getattr(req.url, "path", ""), "method": req.method}
    if exc.http_status >= 500:
        logger.error("%s[%s] %s %s", exc.code, trace_id, req.method, ctx["path"])
    else:
        logger.info("%s %s %s: %s", exc.code, req.method, ctx["path"], exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content=problem_from_error(exc, context=ctx, trace_id=trace_id),
    )
