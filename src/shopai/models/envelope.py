"""The uniform response envelope wrapping every backend payload.

Wire shape (exact)::

    {"success": bool, "data": <T or null>, "error": {"code": str, "message": str} | null}

``APIResponse`` is generic over the payload so the client can decode
``APIResponse[list[Category]]`` or ``APIResponse[UserStatus]`` in one step.
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class APIErrorBody(BaseModel):
    """Error object carried by a failed envelope."""

    code: str
    message: str


class APIResponse(BaseModel, Generic[T]):
    """Envelope around a payload of type ``T``."""

    success: bool
    data: Optional[T] = None
    error: Optional[APIErrorBody] = None
