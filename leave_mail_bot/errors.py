"""Exception hierarchy shared by the leave mail bot services."""

from __future__ import annotations

from typing import Any


class LeaveBotError(Exception):
    """Base class for every error raised by the bot."""


class GraphApiError(LeaveBotError):
    """Raised when a Microsoft Graph call fails."""

    def __init__(self, message: str, *, status_code: int | None = None, response: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class HRBackendError(LeaveBotError):
    """Raised when a greytHR call fails; the message is the backend's own."""

    def __init__(self, message: str, *, status_code: int | None = None, response: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class EmployeeNotFoundError(HRBackendError):
    """Raised when no employee matches the requester address."""


class ExtractionBackendError(LeaveBotError):
    """Raised when the language model call itself fails."""


class ResponseFormatError(LeaveBotError):
    """Raised when the model output holds no parseable JSON."""

    def __init__(self, raw_output: str | None = None) -> None:
        super().__init__("Invalid response format from the extraction model")
        self.raw_output = raw_output


class MissingRequiredFieldError(LeaveBotError):
    """Raised when a leave request reaches submission without required data."""

    def __init__(self, fields: list[str]) -> None:
        super().__init__(f"Missing required leave details: {', '.join(fields)}")
        self.fields = fields
