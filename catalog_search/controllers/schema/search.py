"""Request/response schemas for POST /search/query."""

from typing import Any

from pydantic import BaseModel, Field

from catalog_search.services.search.request import SearchInput


class QueryRequest(BaseModel):
    """POST /search/query request body."""

    input: SearchInput = Field(default_factory=SearchInput, description="Normalized search input")
    channel_id: str | int = Field(..., description="Channel the search is scoped to")
    enabled_only: bool = Field(default=True, description="Restrict to enabled variants")


class QueryResponse(BaseModel):
    """POST /search/query response body: the engine request that would be sent."""

    index: str = Field(..., description="Target index name")
    body: Any = Field(..., description="Search request body after the map_query hook")
