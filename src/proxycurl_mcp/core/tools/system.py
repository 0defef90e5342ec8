from typing import Any, Dict

from proxycurl_mcp.core.client import ProxycurlClient
from proxycurl_mcp.core.models import CreditBalance

# Searches cost 3 credits per returned result.
SEARCH_RESULT_COST = 3
LOW_BALANCE_THRESHOLD = 10


async def get_credit_balance(client: ProxycurlClient) -> Dict[str, Any]:
    """
    Return the remaining Proxycurl credit balance for the configured API key.
    `status` is "ok", "low" (< 10 credits) or "insufficient" (not enough for a
    single search result).
    """
    balance = await client.get_model(
        CreditBalance, "/credit-balance", tool="get_credit_balance"
    )
    credits = balance.credit_balance

    if credits < SEARCH_RESULT_COST:
        status = "insufficient"
        hint = "Fewer than 3 credits left; search operations will fail with 403."
    elif credits < LOW_BALANCE_THRESHOLD:
        status = "low"
        hint = "Limited credits remaining; consider topping up."
    else:
        status = "ok"
        hint = None

    return {"credit_balance": credits, "status": status, "hint": hint}
