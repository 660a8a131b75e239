"""
Shared API router utilities.

- ``_dc()`` converts an ops-layer dataclass (or dict) to a plain dict
- ``_handle_error()`` converts a failed OperationResult to a ``problem_response``
- ``_page()`` builds :class:`PageMeta` from a :class:`PagedResult`

Tags:
    fleet-core, api, utils, dataclass-conversion
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi.responses import JSONResponse

from fleet.api.middleware.errors import problem_response, status_for_error_code
from fleet.api.schemas.common import PageMeta
from fleet.ops.result import OperationResult, PagedResult


def _dc(obj: Any) -> dict[str, Any]:
    """Convert a dataclass (or dict) to a plain dict.

    Returns an empty dict for objects that are neither dataclasses nor dicts.
    """
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    return obj if isinstance(obj, dict) else {}


def _handle_error(result: OperationResult, *, instance: str = "") -> JSONResponse:
    """Convert a failed ``OperationResult`` into a Problem Details response.

    The error code selects the HTTP status and is echoed as the problem
    ``detail``; the error message becomes the title.  Retryable failures
    carry a ``Retry-After`` header.
    """
    code = result.error.code if result.error else "INTERNAL"
    response = problem_response(
        status=status_for_error_code(code),
        title=result.error.message if result.error else "Operation failed",
        detail=code,
        instance=instance,
    )
    if result.error is not None and result.error.retryable:
        response.headers["Retry-After"] = "1"
    return response


def _page(result: PagedResult) -> PageMeta:
    return PageMeta.from_result(result.total, result.limit, result.offset)
