from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from .client import DEFAULT_BASE_URL, ProxycurlClient
from .retry import DEFAULT_TRANSIENT_FORBIDDEN_PATTERNS, ErrorClassifier, RetryPolicy


@dataclass(frozen=True)
class ProxycurlConfig:
    """Settings read from PROXYCURL_* environment variables."""

    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    transient_forbidden_patterns: Tuple[str, ...] = (
        DEFAULT_TRANSIENT_FORBIDDEN_PATTERNS
    )
    log_level: str = "INFO"

    def classifier(self) -> ErrorClassifier:
        return ErrorClassifier(
            transient_forbidden_patterns=self.transient_forbidden_patterns
        )


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _split_csv_env(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return [part.strip() for part in raw.split(",") if part.strip()]


def load_env_config(*, use_dotenv: bool = True) -> ProxycurlConfig:
    """Load Proxycurl settings from environment (optional .env)."""
    if use_dotenv:
        load_dotenv()

    defaults = RetryPolicy()
    retry = RetryPolicy(
        max_retries=_get_int_env("PROXYCURL_MAX_RETRIES", defaults.max_retries),
        base_delay_ms=_get_float_env("PROXYCURL_BASE_DELAY_MS", defaults.base_delay_ms),
        max_delay_ms=_get_float_env("PROXYCURL_MAX_DELAY_MS", defaults.max_delay_ms),
    )
    patterns = tuple(_split_csv_env("PROXYCURL_RETRY_403_PATTERNS")) or (
        DEFAULT_TRANSIENT_FORBIDDEN_PATTERNS
    )

    return ProxycurlConfig(
        api_key=os.getenv("PROXYCURL_API_KEY", "").strip(),
        base_url=os.getenv("PROXYCURL_BASE_URL", "").strip() or DEFAULT_BASE_URL,
        timeout_seconds=_get_float_env("PROXYCURL_TIMEOUT_SECONDS", 30.0),
        retry=retry,
        transient_forbidden_patterns=patterns,
        log_level=os.getenv("PROXYCURL_LOG_LEVEL", "").strip() or "INFO",
    )


def create_client_from_env(
    *, api_key: Optional[str] = None, **kwargs
) -> ProxycurlClient:
    """Create a ProxycurlClient from environment variables.

    An explicit api_key (e.g. from --api-key) takes precedence over the env.
    """
    cfg = load_env_config()
    key = (api_key or "").strip() or cfg.api_key
    if not key:
        raise ValueError("Missing PROXYCURL_API_KEY in environment.")
    return ProxycurlClient(
        api_key=key,
        base_url=cfg.base_url,
        timeout_seconds=cfg.timeout_seconds,
        retry=cfg.retry,
        classifier=cfg.classifier(),
        **kwargs,
    )


__all__ = ["ProxycurlConfig", "load_env_config", "create_client_from_env"]
