import pytest
import respx
from httpx import Response
from proxycurl_mcp.core.client import ProxycurlClient
from proxycurl_mcp.core.errors import ExhaustedRetries
from proxycurl_mcp.core.retry import RetryPolicy
from proxycurl_mcp.core.tools.system import get_credit_balance

BASE = "https://mock-pc.com/api"


@pytest.fixture
def client():
    return ProxycurlClient(
        base_url=BASE, api_key="mock-key", retry=RetryPolicy(base_delay_ms=0)
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "credits, status",
    [(0, "insufficient"), (2, "insufficient"), (3, "low"), (9, "low"), (10, "ok")],
)
async def test_get_credit_balance_status(client, credits, status):
    async with respx.mock:
        respx.get(f"{BASE}/credit-balance").mock(
            return_value=Response(200, json={"credit_balance": credits})
        )

        async with client:
            result = await get_credit_balance(client)

    assert result["credit_balance"] == credits
    assert result["status"] == status
    assert (result["hint"] is None) == (status == "ok")


@pytest.mark.asyncio
@respx.mock
async def test_get_credit_balance_gives_up_on_outage(client):
    route = respx.get(f"{BASE}/credit-balance").mock(
        return_value=Response(503, text="Service Unavailable")
    )

    async with client:
        with pytest.raises(ExhaustedRetries) as exc:
            await get_credit_balance(client)

    assert route.call_count == 4
    assert exc.value.status_code == 503
