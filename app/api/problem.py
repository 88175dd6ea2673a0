# app/api/problem.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, TypedDict

# One entry of Problem.details. `type` is always present:
#   validation  path, reason
#   not_found   entity, id
#   shortage    item_id, required_qty, available_qty, short_qty
#   state       from, to (or reason)
# functional form: "from" is a keyword
ProblemDetail = TypedDict(
    "ProblemDetail",
    {
        "type": str,
        "path": str,
        "reason": str,
        "entity": str,
        "id": Any,
        "item_id": int,
        "required_qty": int,
        "available_qty": int,
        "short_qty": int,
        "from": str,
        "to": str,
    },
    total=False,
)


@dataclass(frozen=True)
class Problem:
    """Flat error body shared by every non-2xx answer."""

    error_code: str
    message: str
    http_status: int
    context: Optional[Dict[str, Any]] = None
    details: Optional[List[ProblemDetail]] = None
    trace_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "error_code": self.error_code,
            "message": self.message,
            "http_status": int(self.http_status),
        }
        for key in ("context", "details", "trace_id"):
            value = getattr(self, key)
            if value:
                out[key] = value
        return out


def make_problem(
    *,
    status_code: int,
    error_code: str,
    message: str,
    context: Optional[Dict[str, Any]] = None,
    details: Optional[Sequence[ProblemDetail]] = None,
    trace_id: Optional[str] = None,
) -> Dict[str, Any]:
    return Problem(
        error_code=str(error_code),
        message=str(message),
        http_status=int(status_code),
        context=context,
        details=list(details) if details else None,
        trace_id=trace_id,
    ).to_dict()
