from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SearchPage(BaseModel):
    """
    One page of a Proxycurl search response.
    Only the paging fields are typed; result rows stay raw dicts because their
    shape depends on enrichment options.
    """

    results: List[Dict[str, Any]] = Field(default_factory=list)
    next_page: Optional[str] = None
    total_result_count: Optional[int] = None

    model_config = ConfigDict(extra="allow")


class EmployeePage(BaseModel):
    employees: List[Dict[str, Any]] = Field(default_factory=list)
    next_page: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class CreditBalance(BaseModel):
    credit_balance: int

    model_config = ConfigDict(extra="ignore")


__all__ = ["SearchPage", "EmployeePage", "CreditBalance"]
