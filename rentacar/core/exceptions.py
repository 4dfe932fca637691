"""Custom exceptions for the application."""

from typing import Dict, Optional

from rentacar.schemas.common import ApiError

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


class ApiException(Exception):
    """Exception raised when a backend call ends in a non-success status."""

    # Marker checked by is_api_exception()
    is_api_exception = True

    def __init__(self, error: ApiError):
        super().__init__(error.message)
        self.error = error

    @property
    def status(self) -> int:
        return self.error.status

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def errors(self) -> Optional[Dict[str, str]]:
        return self.error.errors

    @property
    def timestamp(self) -> str:
        return self.error.timestamp

    @property
    def path(self) -> Optional[str]:
        return self.error.path

    def __repr__(self) -> str:
        return f"ApiException(status={self.status}, message={self.message!r})"


def is_api_exception(error: object) -> bool:
    """Return True if error is a structured backend error."""
    return isinstance(error, BaseException) and getattr(
        error, "is_api_exception", False
    ) is True


def get_error_message(error: object) -> str:
    """Best human-readable message for any error."""
    if is_api_exception(error):
        return error.message  # type: ignore[attr-defined]
    if isinstance(error, Exception):
        return str(error) or GENERIC_ERROR_MESSAGE
    return GENERIC_ERROR_MESSAGE
