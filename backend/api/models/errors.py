"""
Error response models.

Standardized error responses for the API.
"""

from pydantic import BaseModel
from typing import Any, Optional

from shared.exceptions import KeystoneError


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    detail: Optional[str] = None
    code: Optional[str] = None
    details: dict[str, Any] = {}

    @classmethod
    def from_error(cls, error: KeystoneError, expose_details: bool = False) -> "ErrorResponse":
        return cls(
            error=error.message,
            code=error.code,
            details=error.details if expose_details else {},
        )
