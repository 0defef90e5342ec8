"""
Typed result of a single network attempt.

Built right at the HTTP boundary so the retry layer never has to inspect
response objects for status codes or error bodies.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union


@dataclass(frozen=True)
class CallSuccess:
    payload: Any


@dataclass(frozen=True)
class CallFailure:
    has_response: bool
    status_code: Optional[int] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        if self.has_response and self.status_code is None:
            raise ValueError("status_code is required when a response was received.")

    @classmethod
    def no_response(cls, description: Optional[str] = None) -> "CallFailure":
        return cls(has_response=False, status_code=None, description=description)

    @classmethod
    def from_status(
        cls, status_code: int, description: Optional[str] = None
    ) -> "CallFailure":
        return cls(has_response=True, status_code=status_code, description=description)

    def summary(self) -> str:
        status = self.status_code if self.has_response else "no response"
        if self.description:
            return f"{status}: {self.description}"
        return str(status)


CallOutcome = Union[CallSuccess, CallFailure]


__all__ = ["CallSuccess", "CallFailure", "CallOutcome"]
