"""
Shared schema primitives used across the API.

Every mutating endpoint answers with ActionResult:
    success  -> {"success": true,  "data": {...}}
    failure  -> {"success": false, "error": {"code", "message", "details"?}}
"""
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class ErrorBody(BaseModel):
    """Machine-readable error carried by a failed ActionResult."""
    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class ActionResult(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    error: Optional[ErrorBody] = None
