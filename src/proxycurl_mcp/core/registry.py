from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
import time
from types import ModuleType
from typing import Callable, Iterable, List, Set, get_type_hints

from .client import ProxycurlClient
from .context import current_session_id
from .errors import ReportableFailure
from .observability import log_event

log = logging.getLogger("proxycurl_mcp.core.registry")

ClientProvider = Callable[[], ProxycurlClient]


# --- Discovery helpers ----------------------------------------------------- #


def discover_tool_modules(
    package_name: str = "proxycurl_mcp.core.tools",
) -> List[ModuleType]:
    """Import all public modules under the tools package, skipping failures."""
    modules: List[ModuleType] = []
    base_pkg = importlib.import_module(package_name)

    for finder in pkgutil.iter_modules(base_pkg.__path__, base_pkg.__name__ + "."):
        if finder.name.rsplit(".", 1)[-1].startswith("_"):
            continue
        try:
            modules.append(importlib.import_module(finder.name))
        except Exception as exc:  # pragma: no cover - logged, not fatal
            log.error("Failed importing tool module %s: %s", finder.name, exc)

    return modules


def iter_tool_functions(module: ModuleType) -> Iterable[Callable]:
    """Public coroutine functions defined in `module` whose first arg is `client`."""
    for _, func in inspect.getmembers(module, inspect.iscoroutinefunction):
        if func.__name__.startswith("_") or func.__module__ != module.__name__:
            continue

        params = list(inspect.signature(func).parameters)
        if not params or params[0] != "client":
            log.debug(
                "Skipping %s.%s: first parameter must be 'client'",
                module.__name__,
                func.__name__,
            )
            continue

        yield func


# --- Wrapping / registration ---------------------------------------------- #


def _wrap_tool(func: Callable, client_provider: ClientProvider) -> Callable:
    """Inject the client, hide it from the signature, and log each call."""
    original_sig = inspect.signature(func)
    type_hints = get_type_hints(func)

    params = [
        param.replace(annotation=type_hints.get(name, param.annotation))
        for name, param in list(original_sig.parameters.items())[1:]
    ]
    return_ann = type_hints.get("return", original_sig.return_annotation)

    async def wrapped(*args, **kwargs):
        client = client_provider()
        start = time.perf_counter()
        status = "ok"
        try:
            return await func(client, *args, **kwargs)
        except ReportableFailure as exc:
            status = exc.kind
            raise
        except Exception as exc:
            status = type(exc).__name__
            raise
        finally:
            log_event(
                "tool_call",
                tool=func.__name__,
                session_id=current_session_id(client),
                request_id=client.request_id,
                status=status,
                duration_ms=int((time.perf_counter() - start) * 1000),
            )

    wrapped.__name__ = func.__name__
    wrapped.__doc__ = func.__doc__
    wrapped.__module__ = func.__module__
    wrapped.__signature__ = inspect.Signature(  # type: ignore[attr-defined]
        parameters=params, return_annotation=return_ann
    )
    return wrapped


def register_discovered_tools(
    app,
    client_provider: ClientProvider | ProxycurlClient,
    modules: List[ModuleType] | None = None,
) -> List[str]:
    """Register discovered tools on an app exposing a .tool decorator.

    Returns the registered tool names in registration order.
    """
    if isinstance(client_provider, ProxycurlClient):
        _client = client_provider

        def client_provider():
            return _client

    if not hasattr(app, "tool"):
        raise TypeError("app must expose a 'tool' decorator")

    modules = modules or discover_tool_modules()
    seen_names: Set[str] = set()
    registered: List[str] = []

    for module in modules:
        for func in iter_tool_functions(module):
            name = func.__name__
            if name in seen_names:
                raise ValueError(f"Duplicate tool name detected: {name}")

            app.tool(name=name)(_wrap_tool(func, client_provider))
            seen_names.add(name)
            registered.append(name)
            log.info("Registered tool: %s (%s)", name, module.__name__)

    return registered
