import logging

import httpx
import pytest
import respx
from proxycurl_mcp.core.client import ProxycurlClient
from proxycurl_mcp.core.errors import ExhaustedRetries
from proxycurl_mcp.core.logging import LogfmtFormatter
from proxycurl_mcp.core.observability import log_event
from proxycurl_mcp.core.retry import RetryPolicy

BASE = "https://example.com/api"


@pytest.mark.asyncio
@respx.mock
async def test_client_logs_success(caplog):
    caplog.set_level(logging.INFO, logger="proxycurl_mcp.observability")
    route = respx.get(f"{BASE}/v2/linkedin").mock(
        return_value=httpx.Response(200, json={"ok": True})
    )
    client = ProxycurlClient(
        base_url=BASE, api_key="key", request_id="rid-success", session_id="s1"
    )
    try:
        await client.get("/v2/linkedin", tool="get_person_profile")
    finally:
        await client.aclose()

    assert route.called
    record = next(r for r in caplog.records if r.getMessage() == "op_call")
    assert record.request_id == "rid-success"
    assert record.session_id == "s1"
    assert record.tool == "get_person_profile"
    assert record.status == 200
    assert record.method == "GET"
    assert record.endpoint == "/v2/linkedin"
    assert record.duration_ms >= 0


@pytest.mark.asyncio
@respx.mock
async def test_client_logs_exception(caplog):
    caplog.set_level(logging.INFO, logger="proxycurl_mcp.observability")
    respx.get(f"{BASE}/credit-balance").mock(side_effect=httpx.ConnectTimeout("boom"))
    client = ProxycurlClient(
        base_url=BASE,
        api_key="key",
        request_id="rid-fail",
        retry=RetryPolicy(max_retries=0),
    )
    with pytest.raises(ExhaustedRetries):
        await client.get("/credit-balance", tool="get_credit_balance")
    await client.aclose()

    record = next(r for r in caplog.records if r.getMessage() == "op_call")
    assert record.request_id == "rid-fail"
    assert record.status == "exception"
    assert record.error_type == "ConnectTimeout"

    terminal = next(r for r in caplog.records if r.getMessage() == "retry_transition")
    assert terminal.state == "failed_exhausted"
    assert terminal.levelno == logging.ERROR


@pytest.mark.asyncio
@respx.mock
async def test_next_page_endpoint_is_logged_without_query(caplog):
    caplog.set_level(logging.INFO, logger="proxycurl_mcp.observability")
    respx.get(f"{BASE}/v2/search/person").mock(
        return_value=httpx.Response(200, json={"results": []})
    )
    async with ProxycurlClient(base_url=BASE, api_key="key") as client:
        await client.get(f"{BASE}/v2/search/person?page=2&token=secret")

    record = next(r for r in caplog.records if r.getMessage() == "op_call")
    assert record.endpoint == "/v2/search/person"


def test_log_event_drops_secrets_and_reserved_keys(caplog):
    caplog.set_level(logging.INFO, logger="proxycurl_mcp.observability")
    log_event("thing", api_key="k", Authorization="Bearer k", module="m", tool="t")

    record = caplog.records[-1]
    assert record.event == "thing"
    assert record.tool == "t"
    assert not hasattr(record, "api_key")
    assert not hasattr(record, "Authorization")
    assert record.module != "m"


def test_logfmt_formatter_renders_extras():
    record = logging.LogRecord(
        "proxycurl_mcp.observability", logging.WARNING, __file__, 1, "retry_transition",
        None, None,
    )
    record.tool = "search_people"
    record.retry_class = "retryable_rate_limit"
    record.delay_ms = 5000
    record.status = "needs quoting here"

    line = LogfmtFormatter().format(record)

    assert line.startswith("level=warning logger=proxycurl_mcp.observability")
    assert "event=retry_transition" in line
    assert "tool=search_people" in line
    assert "retry_class=retryable_rate_limit" in line
    assert "delay_ms=5000" in line
    assert 'status="needs quoting here"' in line
    assert "request_id" not in line
