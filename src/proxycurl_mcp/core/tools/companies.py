from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional

from proxycurl_mcp.core.client import ProxycurlClient
from proxycurl_mcp.core.models import EmployeePage
from proxycurl_mcp.core.tools._params import compact, merge_extra

COMPANY_PROFILE_PATH = "/linkedin/company"
COMPANY_EMPLOYEES_PATH = "/linkedin/company/employees"
COMPANY_SEARCH_PATH = "/v2/search/company"

# Small pages by default: every returned row costs credits.
DEFAULT_PAGE_SIZE = 5

COMPANY_SEARCH_FIELDS = frozenset(
    {
        "country",
        "region",
        "city",
        "type",
        "follower_count_min",
        "follower_count_max",
        "name",
        "industry",
        "employee_count_min",
        "employee_count_max",
        "description",
        "founded_after_year",
        "founded_before_year",
        "funding_amount_min",
        "funding_amount_max",
        "funding_raised_after",
        "funding_raised_before",
        "public_identifier_in_list",
        "public_identifier_not_in_list",
        "page_size",
        "enrich_profiles",
        "use_cache",
    }
)

_ESCAPED_QUOTE_RE = re.compile(r'\\+"')

log = logging.getLogger("proxycurl_mcp.core.tools.companies")


async def get_company_profile(
    client: ProxycurlClient,
    url: str,
    *,
    categories: Optional[str] = None,
    funding_data: Optional[str] = None,
    exit_data: Optional[str] = None,
    acquisitions: Optional[str] = None,
    extra: Optional[str] = None,
    use_cache: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Fetch a company profile from its LinkedIn URL
    (https://www.linkedin.com/company/<identifier>). Cost: 1 credit, plus 1 per
    optional enrichment set to "include".
    """
    if not (url or "").strip():
        raise ValueError("url is required.")
    params = compact(
        url=url.strip(),
        categories=categories,
        funding_data=funding_data,
        exit_data=exit_data,
        acquisitions=acquisitions,
        extra=extra,
        use_cache=use_cache,
    )
    return await client.get(COMPANY_PROFILE_PATH, params=params, tool="get_company_profile")


async def search_employees(
    client: ProxycurlClient,
    url: str,
    *,
    role_search: Optional[str] = None,
    keyword: Optional[str] = None,
    country: Optional[str] = None,
    coy_name_match: Optional[str] = None,
    employment_status: Optional[str] = None,
    sort_by: Optional[str] = None,
    resolve_numeric_id: Optional[bool] = None,
    enrich_profiles: Optional[str] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    use_cache: Optional[str] = None,
) -> Dict[str, Any]:
    """
    List employees of a company given its LinkedIn URL. `role_search` accepts a
    regular expression matched against job titles. Cost: 3 credits per employee.
    """
    if not (url or "").strip():
        raise ValueError("url is required.")
    if page_size < 1:
        raise ValueError("page_size must be >= 1")

    if role_search:
        # Agents tend to send JSON-escaped quotes; the API wants plain ones.
        role_search = _ESCAPED_QUOTE_RE.sub('"', role_search)

    params = compact(
        url=url.strip(),
        role_search=role_search or None,
        keyword=keyword or None,
        country=country,
        coy_name_match=coy_name_match,
        employment_status=employment_status,
        sort_by=sort_by,
        resolve_numeric_id=resolve_numeric_id,
        enrich_profiles=enrich_profiles,
        page_size=page_size,
        use_cache=use_cache,
    )
    page = await client.get_model(
        EmployeePage, COMPANY_EMPLOYEES_PATH, params=params, tool="search_employees"
    )
    log.debug("Employee search for %s returned %d rows", url, len(page.employees))
    return page.model_dump()


async def advanced_search_companies(
    client: ProxycurlClient,
    *,
    country: Optional[str] = None,
    region: Optional[str] = None,
    city: Optional[str] = None,
    type: Optional[str] = None,
    name: Optional[str] = None,
    industry: Optional[str] = None,
    description: Optional[str] = None,
    employee_count_min: Optional[int] = None,
    employee_count_max: Optional[int] = None,
    founded_after_year: Optional[int] = None,
    founded_before_year: Optional[int] = None,
    page_size: Optional[int] = None,
    limit: Optional[int] = None,
    enrich_profiles: Optional[str] = None,
    extra_filters: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Search companies matching the given criteria.
    COST: 3 credits per company returned. `limit` is accepted as an alias of
    `page_size`; default page size is 5.
    """
    if page_size is None:
        page_size = limit if limit is not None else DEFAULT_PAGE_SIZE

    params = merge_extra(
        compact(
            country=country,
            region=region,
            city=city,
            type=type,
            name=name,
            industry=industry,
            description=description,
            employee_count_min=employee_count_min,
            employee_count_max=employee_count_max,
            founded_after_year=founded_after_year,
            founded_before_year=founded_before_year,
            page_size=page_size,
            enrich_profiles=enrich_profiles,
        ),
        extra_filters,
    )

    unknown = sorted(set(params) - COMPANY_SEARCH_FIELDS)
    if unknown:
        # Forwarded anyway; the API decides whether it accepts them.
        log.warning("Unrecognized company search filters: %s", ", ".join(unknown))

    return await client.get(
        COMPANY_SEARCH_PATH, params=params, tool="advanced_search_companies"
    )
