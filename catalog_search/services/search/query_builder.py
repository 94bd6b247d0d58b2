"""
Base query construction: turns a SearchInput into a bool query over the variant index.
Boosts, match strategy, aggregations and hooks are applied afterwards by services.search.pipeline.
"""

from typing import Any

from catalog_search.services.search.request import LogicalOperator, SearchInput

# Searchable text fields, unweighted; the pipeline applies configured boosts
SEARCHABLE_FIELDS = ("productName", "productVariantName", "description", "sku")

GROUP_KEY_FIELD = "productId"


def _term(field: str, value: Any) -> dict[str, Any]:
    return {"term": {field: value}}


def _price_range_filter(field: str, low: int, high: int) -> dict[str, Any]:
    return {"range": {field: {"gte": low, "lte": high}}}


def _facet_filters(request: SearchInput) -> list[dict[str, Any]]:
    filters: list[dict[str, Any]] = []
    if request.facet_value_ids:
        if request.facet_value_operator is LogicalOperator.AND:
            filters.extend(_term("facetValueIds", fid) for fid in request.facet_value_ids)
        else:
            filters.append({"terms": {"facetValueIds": list(request.facet_value_ids)}})
    for group in request.facet_value_filters:
        if group.and_ is not None:
            filters.append(_term("facetValueIds", group.and_))
        else:
            filters.append({"terms": {"facetValueIds": list(group.or_)}})
    return filters


def build_base_query(request: SearchInput, channel_id: Any, enabled_only: bool) -> dict[str, Any]:
    """Return a fresh bool query for the request, scoped to the channel."""
    filters: list[dict[str, Any]] = [_term("channelId", channel_id)]
    if request.language_code:
        filters.append(_term("languageCode", request.language_code))
    if enabled_only:
        filters.append(_term("enabled", True))

    filters.extend(_facet_filters(request))

    if request.collection_id:
        filters.append(_term("collectionIds", request.collection_id))
    if request.collection_slug:
        filters.append(_term("collectionSlugs", request.collection_slug))
    if request.in_stock is not None:
        field = "productInStock" if request.group_by_product else "inStock"
        filters.append(_term(field, request.in_stock))
    if request.price_range is not None:
        filters.append(_price_range_filter("price", request.price_range.min, request.price_range.max))
    if request.price_range_with_tax is not None:
        filters.append(
            _price_range_filter(
                "priceWithTax", request.price_range_with_tax.min, request.price_range_with_tax.max
            )
        )

    query: dict[str, Any] = {"bool": {"filter": filters}}
    term = (request.term or "").strip()
    if term:
        query["bool"]["must"] = [
            {
                "multi_match": {
                    "query": term,
                    "fuzziness": "AUTO",
                    "fields": list(SEARCHABLE_FIELDS),
                }
            }
        ]
    return query


def build_sort(request: SearchInput) -> list[dict[str, Any]]:
    """Sort clauses for the request; empty means relevance order."""
    sort: list[dict[str, Any]] = []
    if request.sort is None:
        return sort
    if request.sort.name is not None:
        sort.append({"productName.keyword": {"order": request.sort.name.value.lower()}})
    if request.sort.price is not None:
        sort.append({"price": {"order": request.sort.price.value.lower()}})
    return sort
