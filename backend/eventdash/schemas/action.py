"""Envelope returned by every mutating endpoint."""
from typing import Any, Optional
from pydantic import BaseModel


class ActionError(BaseModel):
    kind: str
    message: str


class ActionResult(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[ActionError] = None
