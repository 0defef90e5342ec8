"""
Paged search on top of the retrying client.

A call is either a fresh search (filters forwarded as query parameters) or a
continuation that follows the session's stored next_page link. The session
lock is held from the cursor read/reset until the cursor is written back.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from .client import ProxycurlClient
from .errors import NoResumableSearch, ProxycurlClientError, ProxycurlParseError
from .models import SearchPage
from .observability import log_event
from .pagination import PaginationCursorStore

CONTINUATION_FIELD = "get_next_page"

log = logging.getLogger("proxycurl_mcp.core.search")


class SearchOperation:
    def __init__(
        self,
        client: ProxycurlClient,
        store: Optional[PaginationCursorStore] = None,
        *,
        path: str,
        tool: Optional[str] = None,
        continuation_field: str = CONTINUATION_FIELD,
    ):
        self.client = client
        self.store = store if store is not None else client.cursors
        self.path = path
        self.tool = tool
        self.continuation_field = continuation_field

    async def run(self, session_id: str, params: Mapping[str, Any]) -> Dict[str, Any]:
        filters = dict(params)
        continuation = filters.pop(self.continuation_field, False) is True

        async with self.store.locked(session_id):
            if continuation:
                return await self._continue(session_id)
            return await self._fresh(session_id, filters)

    async def _fresh(self, session_id: str, filters: Dict[str, Any]) -> Dict[str, Any]:
        # Reset before the network call so a failed search leaves nothing to resume.
        self.store.reset(session_id)
        log_event(
            "search_started",
            session_id=session_id,
            tool=self.tool,
            endpoint=self.path,
        )
        payload = await self.client.get(self.path, params=filters, tool=self.tool)
        page = _parse_page(payload)
        self.store.set(session_id, page.next_page)
        return payload

    async def _continue(self, session_id: str) -> Dict[str, Any]:
        next_url = self.store.get(session_id)
        if not next_url:
            log.warning(
                "No next page cursor for session %s; run a fresh search first.",
                session_id,
            )
            raise NoResumableSearch(session_id)

        log_event(
            "search_continued",
            session_id=session_id,
            tool=self.tool,
            endpoint=self.path,
        )
        try:
            payload = await self.client.get(next_url, tool=self.tool)
            page = _parse_page(payload)
        except ProxycurlClientError:
            # The remote may have invalidated the link; never hand it out again.
            self.store.clear_on_failure(session_id)
            raise
        self.store.set(session_id, page.next_page)
        return payload


def _parse_page(payload: Dict[str, Any]) -> SearchPage:
    try:
        return SearchPage.model_validate(payload)
    except ValidationError as exc:
        raise ProxycurlParseError(f"Unexpected search response shape: {exc}") from exc


__all__ = ["SearchOperation", "CONTINUATION_FIELD"]
