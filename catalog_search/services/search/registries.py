"""
Custom mapping and script field registries: invoking user functions for result rows and requests.
Each registered function is called exactly once per row (or request) per field.
Errors raised by user functions propagate unchanged.

build_script_fields is used by query building; the mapping and read_script_fields helpers are
for the indexer and result formatter that consume these registries.
"""

from collections.abc import Mapping
from typing import Any

from catalog_search.config.search.models import (
    BUILT_IN_RESULT_FIELDS,
    CustomMapping,
    CustomScriptMapping,
    RuntimeOptions,
)
from catalog_search.services.search.request import SearchInput

__all__ = [
    "BUILT_IN_RESULT_FIELDS",
    "build_script_fields",
    "compute_custom_mappings",
    "graphql_type_nullable",
    "product_custom_mappings",
    "read_script_fields",
    "variant_custom_mappings",
]


def graphql_type_nullable(graphql_type: str) -> bool:
    """False for non-null tags such as 'Int!'."""
    return not graphql_type.endswith("!")


def compute_custom_mappings(registry: Mapping[str, CustomMapping], *args: Any) -> dict[str, Any]:
    """Call every value_fn with the given domain arguments; return field name -> value."""
    return {name: mapping.value_fn(*args) for name, mapping in registry.items()}


def product_custom_mappings(
    options: RuntimeOptions,
    product: Any,
    variants: list[Any],
    language_code: str,
) -> dict[str, Any]:
    """Custom fields for a result grouped by product."""
    return compute_custom_mappings(options.custom_product_mappings, product, variants, language_code)


def variant_custom_mappings(options: RuntimeOptions, variant: Any, language_code: str) -> dict[str, Any]:
    """Custom fields for an ungrouped (variant) result."""
    return compute_custom_mappings(options.custom_product_variant_mappings, variant, language_code)


def build_script_fields(
    script_fields: Mapping[str, CustomScriptMapping],
    request: SearchInput,
) -> dict[str, dict[str, Any]]:
    """Engine script_fields section for the request: field name -> {"script": ...}."""
    return {name: mapping.val_fn(request) for name, mapping in script_fields.items()}


def read_script_fields(hit: Mapping[str, Any], script_fields: Mapping[str, CustomScriptMapping]) -> dict[str, Any]:
    """Per-hit script values from a search hit. Missing fields read as None."""
    fields = hit.get("fields") or {}
    values: dict[str, Any] = {}
    for name in script_fields:
        raw = fields.get(name)
        if isinstance(raw, list):
            values[name] = raw[0] if raw else None
        else:
            values[name] = raw
    return values
