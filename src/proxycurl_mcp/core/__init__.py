"""Core domain surface for proxycurl-mcp (transport-agnostic)."""

from .client import DEFAULT_BASE_URL, ProxycurlClient
from .config import ProxycurlConfig, create_client_from_env, load_env_config
from .context import (
    MissingApiKeyError,
    RequestContext,
    apply_request_context,
    client_from_context,
    current_session_id,
    ensure_request_id,
    get_context,
    reset_context,
    seed_from_env,
)
from .errors import (
    ExhaustedRetries,
    NonRetryableFailure,
    NoResumableSearch,
    ProxycurlClientError,
    ProxycurlModelValidationError,
    ProxycurlParseError,
    ReportableFailure,
)
from .outcome import CallFailure, CallOutcome, CallSuccess
from .pagination import PaginationCursor, PaginationCursorStore
from .registry import (
    discover_tool_modules,
    iter_tool_functions,
    register_discovered_tools,
)
from .retry import (
    ErrorClassifier,
    RetryClass,
    RetryExecutor,
    RetryPolicy,
    RetryState,
    classify_outcome,
    compute_delay_ms,
)
from .search import SearchOperation

__all__ = [
    # Client
    "ProxycurlClient",
    "DEFAULT_BASE_URL",
    # Outcomes and retry
    "CallOutcome",
    "CallSuccess",
    "CallFailure",
    "RetryClass",
    "RetryState",
    "RetryPolicy",
    "ErrorClassifier",
    "RetryExecutor",
    "classify_outcome",
    "compute_delay_ms",
    # Pagination
    "PaginationCursor",
    "PaginationCursorStore",
    "SearchOperation",
    # Exceptions
    "ProxycurlClientError",
    "ProxycurlParseError",
    "ProxycurlModelValidationError",
    "ReportableFailure",
    "NoResumableSearch",
    "NonRetryableFailure",
    "ExhaustedRetries",
    # Config helpers
    "ProxycurlConfig",
    "create_client_from_env",
    "load_env_config",
    # Registry helpers
    "discover_tool_modules",
    "iter_tool_functions",
    "register_discovered_tools",
    # Context
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
