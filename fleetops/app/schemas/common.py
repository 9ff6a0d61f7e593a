"""
Response envelope shared by every endpoint.
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """{"success": true, "message": ..., "data": ...}"""
    success: bool = True
    message: str = "OK"
    data: Optional[T] = None


class DeletedResponse(BaseModel):
    """Payload returned by hard deletes."""
    id: int


def ok(data=None, message: str = "OK") -> dict:
    """Build a success envelope."""
    return {"success": True, "message": message, "data": data}
