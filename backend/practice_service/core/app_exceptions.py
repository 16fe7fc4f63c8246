"""Base error type rendered by the global handlers in core.errors."""

from typing import Any

from fastapi import HTTPException, status


class AppError(HTTPException):
    """
    Error with a stable machine-readable code.

    Subclasses pin status_code, code and default_message as class attributes
    and are raised with at most a message override and details.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    default_message: str = "An error occurred"

    def __init__(self, message: str | None = None, details: dict[str, Any] | list[Any] | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(
            status_code=type(self).status_code,
            detail={"code": self.code, "message": self.message, "details": details},
        )

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class UnauthorizedError(AppError):
    """Caller identity missing or unusable."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    default_message = "caller identity missing"
