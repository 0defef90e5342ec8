from __future__ import annotations

from typing import Any, Dict, Optional

from .outcome import CallFailure


class ProxycurlClientError(Exception):
    """Base error for client failures."""


class ProxycurlParseError(ProxycurlClientError):
    pass


class ProxycurlModelValidationError(ProxycurlClientError):
    pass


class ReportableFailure(ProxycurlClientError):
    """
    Terminal failure that callers get back as a structured report:
    {kind, status_code?, description?, attempts?}
    """

    kind = "Failure"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        description: Optional[str] = None,
        attempts: Optional[int] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.description = description
        self.attempts = attempts

    def to_dict(self) -> Dict[str, Any]:
        report: Dict[str, Any] = {"kind": self.kind}
        if self.status_code is not None:
            report["status_code"] = self.status_code
        if self.description is not None:
            report["description"] = self.description
        if self.attempts is not None:
            report["attempts"] = self.attempts
        return report


class NoResumableSearch(ReportableFailure):
    """Continuation requested but the session holds no next-page cursor."""

    kind = "NoResumableSearch"

    def __init__(self, session_id: str):
        super().__init__(
            f"{self.kind}: no next page available. Run a new search first "
            "(call without 'get_next_page: true').",
            description="no stored next-page cursor for this session",
        )
        self.session_id = session_id


class _OutcomeFailure(ReportableFailure):
    def __init__(self, outcome: CallFailure, attempts: int, *, reason: str):
        super().__init__(
            f"{self.kind} after {attempts} attempt(s): {reason} "
            f"(last outcome: {outcome.summary()})",
            status_code=outcome.status_code,
            description=outcome.description,
            attempts=attempts,
        )
        self.outcome = outcome


class NonRetryableFailure(_OutcomeFailure):
    kind = "NonRetryableFailure"

    def __init__(self, outcome: CallFailure, attempts: int):
        super().__init__(outcome, attempts, reason="request rejected permanently")


class ExhaustedRetries(_OutcomeFailure):
    kind = "ExhaustedRetries"

    def __init__(self, outcome: CallFailure, attempts: int):
        super().__init__(outcome, attempts, reason="gave up on transient failure")


__all__ = [
    "ProxycurlClientError",
    "ProxycurlParseError",
    "ProxycurlModelValidationError",
    "ReportableFailure",
    "NoResumableSearch",
    "NonRetryableFailure",
    "ExhaustedRetries",
]
