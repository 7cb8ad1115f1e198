"""Boundary for mutating endpoints.

Every mutation runs through ``run_action``: the service result is wrapped in
an ``ActionResult`` envelope, and any ``DomainError`` becomes
``{"success": false, "error": {...}}`` with the matching HTTP status rather
than escaping as an exception.
"""
import logging
from typing import Any, Callable, Optional

from fastapi import HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from eventdash.errors import ConfirmationRequired, DomainError
from eventdash.services.response_cache import ResponseCache

logger = logging.getLogger(__name__)


def failure_response(exc: DomainError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "data": None, "error": exc.to_dict()},
    )


def run_action(
    action: Callable[[], Any],
    *,
    cache: Optional[ResponseCache] = None,
    success_status: int = status.HTTP_200_OK,
    name: str = "action",
) -> JSONResponse:
    """Execute ``action`` and fold its outcome into an ActionResult response.

    On success the listing cache is invalidated, since any event or reminder
    mutation can change page-1 results.
    """
    try:
        data = action()
    except DomainError as exc:
        logger.warning("%s rejected: %s (%s)", name, exc.message, exc.kind.value)
        return failure_response(exc)

    if cache is not None:
        cache.invalidate()
    return JSONResponse(
        status_code=success_status,
        content={"success": True, "data": jsonable_encoder(data, by_alias=True), "error": None},
    )


def require_confirmation(confirm: bool) -> None:
    """Destructive actions are two-step: the caller must resend with confirm=true."""
    if not confirm:
        raise ConfirmationRequired()


def raise_for_read(exc: DomainError) -> None:
    """Read-path errors propagate to the caller as HTTP errors."""
    raise HTTPException(status_code=exc.status_code, detail=exc.message)
