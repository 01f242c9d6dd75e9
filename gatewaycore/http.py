"""HTTP status and error responses for failed guard validation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Optional


@dataclass(frozen=True)
class GuardValidationFailed:
    """Custom status 446: a guard validation check has failed."""

    STATUS: ClassVar[int] = 446

    @classmethod
    def status_code(cls) -> int:
        """The numeric status code."""
        return cls.STATUS

    @classmethod
    def reason_phrase(cls) -> str:
        """The reason phrase sent with the status."""
        return "Guard Validation Failed"

    def __str__(self) -> str:
        return f"{self.STATUS} {self.reason_phrase()}"


def is_guard_validation_failed(status: int) -> bool:
    """True when ``status`` is the guard validation failure status."""
    return int(status) == GuardValidationFailed.STATUS


class GuardValidationError(Exception):
    """A request rejected by a guard."""

    def __init__(self, message: str, guard_id: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.guard_id = guard_id
        self.details = details

    def __str__(self) -> str:
        return f"Guard validation failed: {self.message}"

    def status_code(self) -> int:
        """The status code this error is reported with."""
        return GuardValidationFailed.status_code()

    def to_dict(self) -> dict[str, Any]:
        """The JSON body of the error; ``details`` is left out when absent."""
        body: dict[str, Any] = {"message": self.message, "guard_id": self.guard_id}
        if self.details is not None:
            body["details"] = self.details
        return body

    def error_response(self) -> tuple[int, dict[str, Any]]:
        """Status code and JSON body of the HTTP response."""
        return self.status_code(), self.to_dict()