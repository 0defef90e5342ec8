"""Request context and DI contract using ContextVars."""

from __future__ import annotations

import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from typing import Iterable, Optional

from .client import ProxycurlClient
from .config import load_env_config

# Context variables
_api_key_var: ContextVar[str | None] = ContextVar("api_key", default=None)
_base_url_var: ContextVar[str | None] = ContextVar("base_url", default=None)
_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
_session_id_var: ContextVar[str | None] = ContextVar("session_id", default=None)


class MissingApiKeyError(ValueError):
    """Raised when API key is required but missing."""


@dataclass(frozen=True)
class RequestContext:
    api_key: str
    base_url: str
    request_id: str
    session_id: Optional[str] = None


def ensure_request_id(candidate: Optional[str] = None) -> str:
    return candidate or uuid.uuid4().hex


def seed_from_env(
    *, use_dotenv: bool = False, api_key: Optional[str] = None
) -> RequestContext:
    cfg = load_env_config(use_dotenv=use_dotenv)
    key = (api_key or "").strip() or cfg.api_key
    if not key:
        raise MissingApiKeyError("PROXYCURL_API_KEY not set")
    return RequestContext(
        api_key=key,
        base_url=cfg.base_url,
        request_id=ensure_request_id(None),
        # stdio serves one connection per process: one pagination session.
        session_id=uuid.uuid4().hex,
    )


def apply_request_context(
    api_key: str,
    base_url: str,
    request_id: Optional[str] = None,
    session_id: Optional[str] = None,
) -> Iterable[Token]:
    """Set ContextVars for the duration of a request; returns tokens for reset()."""
    tokens = []
    tokens.append(_api_key_var.set(api_key))
    tokens.append(_base_url_var.set(base_url))
    tokens.append(_request_id_var.set(ensure_request_id(request_id)))
    tokens.append(_session_id_var.set(session_id))
    return tokens


def reset_context(tokens: Iterable[Token]) -> None:
    for token in tokens:
        token.var.reset(token)


def get_context(*, require_api_key: bool = True) -> RequestContext:
    api_key = _api_key_var.get()
    base_url = _base_url_var.get()
    request_id = ensure_request_id(_request_id_var.get())

    if require_api_key and not api_key:
        raise MissingApiKeyError("API key is required and missing.")

    return RequestContext(
        api_key=api_key or "",
        base_url=base_url or "",
        request_id=request_id,
        session_id=_session_id_var.get(),
    )


def current_session_id(client: ProxycurlClient) -> str:
    """Session from the request context, else the client's own session."""
    return _session_id_var.get() or client.session_id


def client_from_context() -> ProxycurlClient:
    ctx = get_context(require_api_key=True)
    cfg = load_env_config(use_dotenv=False)
    return ProxycurlClient(
        api_key=ctx.api_key,
        base_url=ctx.base_url or cfg.base_url,
        timeout_seconds=cfg.timeout_seconds,
        retry=cfg.retry,
        classifier=cfg.classifier(),
        request_id=ctx.request_id,
        session_id=ctx.session_id,
    )


__all__ = [
    "RequestContext",
    "MissingApiKeyError",
    "seed_from_env",
    "get_context",
    "apply_request_context",
    "reset_context",
    "ensure_request_id",
    "current_session_id",
    "client_from_context",
]
