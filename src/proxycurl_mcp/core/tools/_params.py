"""
Shared helpers for building Proxycurl query parameters.
"""

from typing import Any, Dict, Mapping, Optional


def compact(**values: Any) -> Dict[str, Any]:
    """Drop unset (None) arguments so they never reach the query string."""
    return {k: v for k, v in values.items() if v is not None}


def merge_extra(
    params: Dict[str, Any], extra: Optional[Mapping[str, Any]]
) -> Dict[str, Any]:
    """
    Add caller-supplied filters that have no named argument.
    Named arguments win over duplicates in `extra`.
    """
    if not extra:
        return params
    if not isinstance(extra, Mapping):
        raise ValueError("extra_filters must be an object of field -> value.")
    merged = {k: v for k, v in extra.items() if v is not None}
    merged.update(params)
    return merged
