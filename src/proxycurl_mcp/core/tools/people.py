from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from proxycurl_mcp.core.client import ProxycurlClient
from proxycurl_mcp.core.context import current_session_id
from proxycurl_mcp.core.search import CONTINUATION_FIELD, SearchOperation
from proxycurl_mcp.core.tools._params import compact, merge_extra

PERSON_PROFILE_PATH = "/v2/linkedin"
PERSON_RESOLVE_PATH = "/linkedin/profile/resolve"
PERSON_SEARCH_PATH = "/v2/search/person"

_PROFILE_URL_FIELDS = (
    "linkedin_profile_url",
    "twitter_profile_url",
    "facebook_profile_url",
)

log = logging.getLogger("proxycurl_mcp.core.tools.people")


def _person_search(client: ProxycurlClient) -> SearchOperation:
    return SearchOperation(
        client, client.cursors, path=PERSON_SEARCH_PATH, tool="search_people"
    )


async def get_person_profile(
    client: ProxycurlClient,
    *,
    linkedin_profile_url: Optional[str] = None,
    twitter_profile_url: Optional[str] = None,
    facebook_profile_url: Optional[str] = None,
    extra: Optional[str] = None,
    skills: Optional[str] = None,
    inferred_salary: Optional[str] = None,
    personal_email: Optional[str] = None,
    personal_contact_number: Optional[str] = None,
    use_cache: Optional[str] = None,
    fallback_to_cache: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Fetch a person profile by exactly one of its LinkedIn, Twitter/X or
    Facebook URLs. Cost: 1 credit, plus 1 per optional enrichment set to
    "include".
    """
    urls = compact(
        linkedin_profile_url=linkedin_profile_url,
        twitter_profile_url=twitter_profile_url,
        facebook_profile_url=facebook_profile_url,
    )
    if len(urls) != 1:
        raise ValueError(
            "Provide exactly one of: " + ", ".join(_PROFILE_URL_FIELDS) + "."
        )

    params = compact(
        extra=extra,
        skills=skills,
        inferred_salary=inferred_salary,
        personal_email=personal_email,
        personal_contact_number=personal_contact_number,
        use_cache=use_cache,
        fallback_to_cache=fallback_to_cache,
    )
    params.update(urls)
    return await client.get(PERSON_PROFILE_PATH, params=params, tool="get_person_profile")


async def lookup_profile_by_person_name(
    client: ProxycurlClient,
    first_name: str,
    company_domain: str,
    *,
    last_name: Optional[str] = None,
    location: Optional[str] = None,
    title: Optional[str] = None,
    similarity_checks: str = "include",
    enrich_profile: str = "enrich",
) -> Dict[str, Any]:
    """
    Resolve a person's LinkedIn profile from name and employer domain.
    Cost: 2 credits (charged even when nothing matches).
    """
    first_name = (first_name or "").strip()
    company_domain = (company_domain or "").strip()
    if not first_name or not company_domain:
        raise ValueError("first_name and company_domain are required parameters.")

    params = compact(
        first_name=first_name,
        last_name=last_name,
        company_domain=company_domain,
        location=location,
        title=title,
        similarity_checks=similarity_checks,
        enrich_profile=enrich_profile,
    )
    return await client.get(
        PERSON_RESOLVE_PATH, params=params, tool="lookup_profile_by_person_name"
    )


async def search_people(
    client: ProxycurlClient,
    *,
    get_next_page: bool = False,
    headline: Optional[str] = None,
    summary: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    country: Optional[str] = None,
    region: Optional[str] = None,
    city: Optional[str] = None,
    current_role_title: Optional[str] = None,
    current_company_name: Optional[str] = None,
    current_company_linkedin_profile_url: Optional[str] = None,
    past_company_name: Optional[str] = None,
    education_school_name: Optional[str] = None,
    skills: Optional[str] = None,
    industries: Optional[str] = None,
    page_size: Optional[int] = None,
    enrich_profiles: Optional[str] = None,
    extra_filters: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Search people matching a set of criteria. COST: 3 credits per result.

    - Fresh search: pass filters (Boolean search syntax is supported in text
      fields). Any other Proxycurl filter goes in `extra_filters`.
    - Next page: pass `get_next_page=true` alone; filters are ignored and the
      previous search of this session continues where it stopped.
    """
    if get_next_page:
        params: Dict[str, Any] = {CONTINUATION_FIELD: True}
        log.debug("search_people continuation; supplied filters are ignored")
    else:
        params = merge_extra(
            compact(
                headline=headline,
                summary=summary,
                first_name=first_name,
                last_name=last_name,
                country=country,
                region=region,
                city=city,
                current_role_title=current_role_title,
                current_company_name=current_company_name,
                current_company_linkedin_profile_url=current_company_linkedin_profile_url,
                past_company_name=past_company_name,
                education_school_name=education_school_name,
                skills=skills,
                industries=industries,
                page_size=page_size,
                enrich_profiles=enrich_profiles,
            ),
            extra_filters,
        )
        # A stray flag inside extra_filters must not turn this into a continuation.
        params.pop(CONTINUATION_FIELD, None)

    return await _person_search(client).run(current_session_id(client), params)


async def reset_search_state(client: ProxycurlClient) -> Dict[str, Any]:
    """Forget the stored next-page link of this session's people search."""
    session_id = current_session_id(client)
    async with client.cursors.locked(session_id):
        client.cursors.reset(session_id)
    return {"success": True, "message": "Search state reset."}
