# app/core/exceptions.py
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError


class AppError(Exception):
    """Base class for errors surfaced to the user"""

    status_code = 500

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(AppError):
    """Bad input shape or range, reported per field"""

    status_code = 400

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError, message: str = "Invalid input") -> "ValidationError":
        errors = []
        for error in exc.errors():
            field = ".".join(str(part) for part in error.get("loc", ()))
            errors.append({"field": field, "message": error.get("msg", "Invalid value")})
        return cls(message, errors)

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, [{"field": field, "message": message}])


class ConflictError(AppError):
    """Booking slot already taken"""

    status_code = 409


class NotFoundError(AppError):
    """Stale or unknown identifier"""

    status_code = 404


class PersistenceError(AppError):
    """Store unreachable or write failed; the same action can be retried"""

    status_code = 500


class PartialFailure(AppError):
    """A secondary step failed after the primary one succeeded"""

    status_code = 500
