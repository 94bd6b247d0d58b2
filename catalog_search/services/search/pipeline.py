"""
Query augmentation pipeline: SearchInput + SearchConfig -> search engine request body.

Stages run in a fixed order:
1. base bool query, paging, sort (and product collapse when grouping);
2. field boosts on every multi_match / query_string field list;
3. multi-match type on every multi_match clause;
4. total hit tracking and capped facet / collection aggregations;
5. price range histograms;
6. script fields;
7. the user's map_query hook, whose return value is the final body.

Configuration is never mutated; each call returns a freshly built body.
Exceptions from user functions (val_fn, map_query) propagate to the caller.
"""

from typing import Any

from catalog_search.config.logging import get_logger
from catalog_search.config.search.models import BoostFieldsConfig, MultiMatchType, SearchConfig
from catalog_search.services.search.aggregations import build_aggregations
from catalog_search.services.search.query_builder import GROUP_KEY_FIELD, build_base_query, build_sort
from catalog_search.services.search.registries import build_script_fields
from catalog_search.services.search.request import SearchInput

logger = get_logger(__name__)

__all__ = ["apply_boosts", "apply_multi_match_type", "build_query", "format_field_weight"]

# Clauses whose "fields" list carries per-field boosts
FIELD_LIST_CLAUSES = ("multi_match", "query_string")

# The engine rejects "fuzziness" on multi_match clauses of these types
NON_FUZZY_MULTI_MATCH_TYPES = frozenset(
    {MultiMatchType.CROSS_FIELDS, MultiMatchType.PHRASE, MultiMatchType.PHRASE_PREFIX}
)


def _map_clauses(node: Any, clause: str, fn) -> Any:
    """Rebuild node, replacing the body of every `clause` found at any depth with fn(body)."""
    if isinstance(node, dict):
        rebuilt = {}
        for key, value in node.items():
            if key == clause and isinstance(value, dict):
                rebuilt[key] = fn(_map_clauses(value, clause, fn))
            else:
                rebuilt[key] = _map_clauses(value, clause, fn)
        return rebuilt
    if isinstance(node, list):
        return [_map_clauses(item, clause, fn) for item in node]
    return node


def format_field_weight(field: str, weight: float) -> str:
    """Engine field syntax: 'name^weight', or bare 'name' for a weight of 1."""
    if weight == 1:
        return field
    if float(weight).is_integer():
        return f"{field}^{int(weight)}"
    return f"{field}^{weight}"


def _boost_field(entry: str, boosts: BoostFieldsConfig) -> str:
    name, sep, raw_weight = entry.partition("^")
    boost = boosts.boost_for(name)
    if boost == 1:
        return entry
    weight = float(raw_weight) if sep else 1.0
    return format_field_weight(name, weight * boost)


def apply_boosts(query: dict[str, Any], boosts: BoostFieldsConfig) -> dict[str, Any]:
    """Multiply the configured boosts into every field list of the query. Boost 1 is a no-op."""

    def boost_clause(body: dict[str, Any]) -> dict[str, Any]:
        fields = body.get("fields")
        if not isinstance(fields, list):
            return body
        return {**body, "fields": [_boost_field(f, boosts) if isinstance(f, str) else f for f in fields]}

    for clause in FIELD_LIST_CLAUSES:
        query = _map_clauses(query, clause, boost_clause)
    return query


def apply_multi_match_type(query: dict[str, Any], match_type: MultiMatchType) -> dict[str, Any]:
    """Set the configured type on every multi_match clause."""

    def set_type(body: dict[str, Any]) -> dict[str, Any]:
        updated = {**body, "type": match_type.value}
        if match_type in NON_FUZZY_MULTI_MATCH_TYPES:
            updated.pop("fuzziness", None)
        return updated

    return _map_clauses(query, "multi_match", set_type)


def build_query(
    request: SearchInput,
    config: SearchConfig,
    channel_id: Any,
    enabled_only: bool = False,
) -> Any:
    """Build the request body for one search. The result of config.map_query is returned as is."""
    query = build_base_query(request, channel_id, enabled_only)
    query = apply_boosts(query, config.boost_fields)
    query = apply_multi_match_type(query, config.multi_match_type)

    body: dict[str, Any] = {
        "query": query,
        "from": request.skip,
        "size": request.take,
        "track_total_hits": config.total_items_max_size.track_total_hits,
    }
    sort = build_sort(request)
    if sort:
        body["sort"] = sort
    if request.group_by_product:
        body["collapse"] = {"field": GROUP_KEY_FIELD}

    aggs = build_aggregations(request, config)
    if aggs:
        body["aggs"] = aggs

    if config.script_fields:
        body["script_fields"] = build_script_fields(config.script_fields, request)

    logger.debug(
        "Search query built",
        extra={
            "channel_id": channel_id,
            "enabled_only": enabled_only,
            "has_term": bool(request.term),
            "aggregations": sorted(aggs),
            "script_fields": sorted(config.script_fields),
        },
    )
    return config.map_query(body, request, config, channel_id, enabled_only)
