import logging
import time
import uuid
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .errors import (
    ExhaustedRetries,
    NonRetryableFailure,
    ProxycurlClientError,
    ProxycurlModelValidationError,
    ProxycurlParseError,
)
from .observability import log_event
from .outcome import CallFailure, CallOutcome, CallSuccess
from .pagination import PaginationCursorStore
from .retry import ErrorClassifier, RetryExecutor, RetryPolicy

T = TypeVar("T", bound=BaseModel)

DEFAULT_BASE_URL = "https://nubela.co/proxycurl/api"

# Keys checked, in order, for a human-readable error in failure bodies.
_DESCRIPTION_KEYS = ("description", "detail", "message", "error")


class ProxycurlClient:
    """
    Shared HTTP client for the Proxycurl REST API.
    - Handles bearer auth, base URL, per-attempt timeouts and retries
    - dispatch() turns one HTTP exchange into a CallOutcome
    - get() runs dispatch() through RetryExecutor and returns the JSON object
    - Owns the pagination cursor store used by paged search tools
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 30.0,
        retry: Optional[RetryPolicy] = None,
        classifier: Optional[ErrorClassifier] = None,
        cursors: Optional[PaginationCursorStore] = None,
        session_id: Optional[str] = None,
        request_id: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        http: Optional[httpx.AsyncClient] = None,
    ):
        base_url = (base_url or "").rstrip("/")
        api_key = (api_key or "").strip()

        if not base_url:
            raise ValueError("base_url must be provided.")
        if not api_key:
            raise ValueError("api_key must be provided.")

        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.retry = retry if retry is not None else RetryPolicy()
        self.classifier = classifier if classifier is not None else ErrorClassifier()
        self.cursors = cursors if cursors is not None else PaginationCursorStore()
        self.session_id = session_id or uuid.uuid4().hex
        self.request_id = request_id
        self.log = logger or logging.getLogger("proxycurl_mcp.client")

        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {api_key}",
        }
        if request_id:
            headers["X-Request-Id"] = request_id

        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout_seconds,
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> "ProxycurlClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def executor(self) -> RetryExecutor:
        return RetryExecutor(self.retry, self.classifier)

    async def dispatch(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        tool: Optional[str] = None,
    ) -> CallOutcome:
        """
        Perform exactly one GET and describe what happened.
        - 2xx -> CallSuccess with the parsed JSON object
        - non-2xx -> CallFailure with status and the body's description
        - any httpx.TransportError -> CallFailure without a response
        - other httpx errors (redirect loops, decoding) raise ProxycurlClientError
        """
        # url can be relative ("/v2/search/person") or an absolute next_page link.
        query = _clean_params(params)
        start = time.perf_counter()

        try:
            resp = await self.http.get(url, params=query)
        except httpx.TransportError as exc:
            # Timeouts, connect/read failures, disconnects, proxy errors: no response.
            self._log_call(tool, url, "exception", start, error_type=type(exc).__name__)
            return CallFailure.no_response(f"{type(exc).__name__}: {exc}")
        except httpx.HTTPError as exc:
            self._log_call(tool, url, "exception", start, error_type=type(exc).__name__)
            raise ProxycurlClientError(f"HTTPX error calling GET {url}: {exc}") from exc

        self._log_call(tool, url, resp.status_code, start)

        if resp.status_code < 200 or resp.status_code >= 300:
            return CallFailure.from_status(resp.status_code, _describe_failure(resp))

        return CallSuccess(self._safe_json(resp))

    async def get(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        tool: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        GET with retries.
        - Raises NonRetryableFailure for 4xx the remote won't accept on retry
        - Raises ExhaustedRetries when transient failures outlast the policy
        - Raises ProxycurlParseError if a success body isn't a JSON object
        """

        async def attempt() -> CallOutcome:
            return await self.dispatch(url, params, tool=tool)

        try:
            return await self.executor().execute(attempt, operation=tool)
        except (NonRetryableFailure, ExhaustedRetries) as exc:
            self.log.warning("GET %s failed: %s", url, exc)
            raise

    async def get_model(self, model: Type[T], url: str, **kwargs: Any) -> T:
        payload = await self.get(url, **kwargs)
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise ProxycurlModelValidationError(
                f"Response did not match model {model.__name__}: {exc}"
            ) from exc

    def _safe_json(self, resp: httpx.Response) -> Dict[str, Any]:
        if not resp.content:
            return {}

        try:
            data = resp.json()
        except ValueError as exc:
            snippet = (resp.text or "")[:500]
            raise ProxycurlParseError(
                f"Expected JSON from {resp.request.method} "
                f"{resp.request.url}, got non-JSON body snippet: "
                f"{snippet!r}"
            ) from exc

        if not isinstance(data, dict):
            raise ProxycurlParseError(
                f"Expected top-level JSON object from "
                f"{resp.request.method} {resp.request.url}, "
                f"got {type(data).__name__}"
            )
        return data

    def _log_call(
        self,
        tool: Optional[str],
        url: str,
        status: Any,
        start: float,
        *,
        error_type: Optional[str] = None,
    ) -> None:
        log_event(
            "op_call",
            request_id=self.request_id,
            session_id=self.session_id,
            tool=tool,
            method="GET",
            endpoint=_endpoint(url, self.base_url),
            status=status,
            duration_ms=int((time.perf_counter() - start) * 1000),
            error_type=error_type,
        )


def _clean_params(params: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not params:
        return None
    cleaned: Dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned


def _describe_failure(resp: httpx.Response) -> Optional[str]:
    # Try JSON first; fall back to a text snippet.
    try:
        parsed = resp.json()
    except ValueError:
        text = (resp.text or "").strip()
        return text[:500] or None

    if isinstance(parsed, dict):
        for key in _DESCRIPTION_KEYS:
            value = parsed.get(key)
            if isinstance(value, str) and value:
                return value
    return None


def _endpoint(url: str, base_url: str) -> str:
    """Log-friendly path: absolute next-page links lose base URL and query."""
    path = url.split("?", 1)[0]
    if path.startswith(base_url):
        path = path[len(base_url) :] or "/"
    return path
