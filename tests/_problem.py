# tests/_problem.py
from __future__ import annotations

from typing import Any, Dict


def assert_problem(payload: Dict[str, Any], *, status: int, error_code: str) -> Dict[str, Any]:
    """Error bodies are flat Problem objects."""
    assert payload.get("error_code") == error_code, payload
    assert payload.get("http_status") == status, payload
    assert isinstance(payload.get("message"), str) and payload["message"], payload
    assert payload.get("trace_id"), payload
    return payload
