"""
Aggregation clauses for the query body, and the numeric semantics of their results:
facet/collection caps, total item tracking and price range buckets.

bucket_prices, price_range_buckets and resolve_total_items are consumed by the result formatter
that reads engine responses; query building only uses the aggregation clauses.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, Field

from catalog_search.config.search.errors import BucketingError
from catalog_search.config.search.models import SearchConfig, TotalItemsPolicy
from catalog_search.services.search.query_builder import GROUP_KEY_FIELD
from catalog_search.services.search.request import SearchInput

FACET_VALUES_AGG = "facetValue"
COLLECTIONS_AGG = "collection"
TOTAL_AGG = "total"
PRICES_AGG = "prices"
PRICES_WITH_TAX_AGG = "pricesWithTax"


class PriceRangeBucket(BaseModel):
    """Items priced in [to - interval, to)."""

    to: int = Field(..., description="Exclusive upper bound in currency minor units")
    count: int = Field(..., ge=0)


def _check_interval(interval: int) -> None:
    if interval <= 0:
        raise BucketingError(
            f"Price range bucket interval must be positive, got {interval}",
            paths=["search_config.price_range_bucket_interval"],
        )


def price_histogram(field: str, interval: int) -> dict[str, Any]:
    """Histogram aggregation whose buckets start at zero and step by interval."""
    _check_interval(interval)
    return {
        "histogram": {
            "field": field,
            "interval": interval,
            "min_doc_count": 0,
            "extended_bounds": {"min": 0},
        }
    }


def build_aggregations(request: SearchInput, config: SearchConfig) -> dict[str, Any]:
    """Aggregations requested by the input, sized by the configured caps."""
    aggs: dict[str, Any] = {}
    if request.include_facet_values:
        aggs[FACET_VALUES_AGG] = {"terms": {"field": "facetValueIds", "size": config.facet_value_max_size}}
    if request.include_collections:
        aggs[COLLECTIONS_AGG] = {"terms": {"field": "collectionIds", "size": config.collection_max_size}}
    if request.include_price_range:
        interval = config.price_range_bucket_interval
        aggs[PRICES_AGG] = price_histogram("price", interval)
        aggs[PRICES_WITH_TAX_AGG] = price_histogram("priceWithTax", interval)
    if request.group_by_product:
        aggs[TOTAL_AGG] = {"cardinality": {"field": GROUP_KEY_FIELD}}
    return aggs


def bucket_prices(prices: Iterable[int], interval: int) -> list[PriceRangeBucket]:
    """
    Count prices into consecutive buckets [k*interval, (k+1)*interval) starting at zero,
    up to the bucket holding the highest price. Empty input gives no buckets. Raises ValueError
    for a negative price.
    """
    _check_interval(interval)
    counts: dict[int, int] = {}
    for price in prices:
        if price < 0:
            raise ValueError(f"Price must not be negative, got {price}")
        index = int(price // interval)
        counts[index] = counts.get(index, 0) + 1
    if not counts:
        return []
    return [
        PriceRangeBucket(to=(index + 1) * interval, count=counts.get(index, 0))
        for index in range(max(counts) + 1)
    ]


def price_range_buckets(aggregation: Mapping[str, Any], interval: int) -> list[PriceRangeBucket]:
    """Map an engine histogram aggregation result to price range buckets."""
    _check_interval(interval)
    return [
        PriceRangeBucket(to=int(bucket["key"]) + interval, count=int(bucket.get("doc_count", 0)))
        for bucket in aggregation.get("buckets", [])
    ]


def _hits_total(response: Mapping[str, Any]) -> int:
    total = (response.get("hits") or {}).get("total", 0)
    if isinstance(total, Mapping):
        return int(total.get("value", 0))
    return int(total or 0)


def resolve_total_items(
    policy: TotalItemsPolicy,
    response: Mapping[str, Any],
    group_by_product: bool = False,
) -> int:
    """Total to report for an engine response under the configured policy."""
    if group_by_product:
        total_agg = (response.get("aggregations") or {}).get(TOTAL_AGG) or {}
        actual = int(total_agg.get("value", 0))
    else:
        actual = _hits_total(response)
    return policy.report(actual)
