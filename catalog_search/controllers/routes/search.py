"""POST /search/query: build the search engine request body for a search input."""

from fastapi import APIRouter, Depends, Request

from catalog_search.config.search.models import RuntimeOptions
from catalog_search.controllers.schema.search import QueryRequest, QueryResponse
from catalog_search.services.search.pipeline import build_query

router = APIRouter(prefix="/search", tags=["search"])


def get_runtime_options(request: Request) -> RuntimeOptions:
    """Options resolved once at app creation."""
    return request.app.state.options


@router.post("/query", response_model=QueryResponse)
def build_search_query(
    body: QueryRequest,
    options: RuntimeOptions = Depends(get_runtime_options),
) -> QueryResponse:
    """
    Run the query pipeline for the input and return the resulting body with its target index.
    Errors raised by the configured hooks are not handled here; they surface as 500.
    """
    query = build_query(
        body.input,
        options.search_config,
        channel_id=body.channel_id,
        enabled_only=body.enabled_only,
    )
    return QueryResponse(index=options.index_name(), body=query)
