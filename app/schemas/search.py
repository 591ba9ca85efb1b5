# app/schemas/search.py
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

MAX_PAGE_SIZE = 100


class SearchRequest(BaseModel):
    """
    Body of POST /api/search. camelCase from the frontend, snake_case accepted too.
    `query` is checked in the router so a missing/blank query is a 400, not a 422.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {"query": "software engineers in mumbai with 5 years experience", "page": 1, "pageSize": 20}
            ]
        },
    )

    query: Optional[Any] = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, alias="pageSize", ge=1, le=MAX_PAGE_SIZE)


class Employee(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    name: Optional[str] = None
    role: Optional[str] = None
    location: Optional[str] = None
    experience: Optional[int] = None
    skills: List[str] = Field(default_factory=list)


class SearchResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    results: List[Employee]
    total_count: int = Field(alias="totalCount")
    used_fallback: bool = Field(alias="usedFallback")
    page: int
    page_size: int = Field(alias="pageSize")
