"""Search configuration models. Immutable once built; merged from user options by config.search.merge."""

import re
from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator, model_validator

# Result fields exposed by the search API itself. Registry keys must not shadow these.
BUILT_IN_RESULT_FIELDS = frozenset(
    {
        "sku",
        "slug",
        "productId",
        "productName",
        "productAsset",
        "productVariantId",
        "productVariantName",
        "productVariantAsset",
        "price",
        "priceWithTax",
        "currencyCode",
        "description",
        "facetIds",
        "facetValueIds",
        "collectionIds",
        "channelIds",
        "languageCode",
        "enabled",
        "inStock",
        "productInStock",
        "score",
        "customMappings",
    }
)

GRAPHQL_TYPE_PATTERN = re.compile(r"^(String|Int|Float|Boolean|ID)!?$")

VARIANT_INDEX_SUFFIX = "variants"


def read_only(value: Any) -> Any:
    """Recursive read-only copy: mappings become MappingProxyType views, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: read_only(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(read_only(item) for item in value)
    return value


def to_plain(value: Any) -> Any:
    """Inverse of read_only: a fresh mutable copy built from dicts and lists."""
    if isinstance(value, Mapping):
        return {key: to_plain(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [to_plain(item) for item in value]
    return value


class MultiMatchType(str, Enum):
    """How a term matching several fields is scored."""

    BEST_FIELDS = "best_fields"
    MOST_FIELDS = "most_fields"
    CROSS_FIELDS = "cross_fields"
    PHRASE = "phrase"
    PHRASE_PREFIX = "phrase_prefix"
    BOOL_PREFIX = "bool_prefix"


class BoostFieldsConfig(BaseModel):
    """Score multipliers for matches against the searchable text fields. 1 is neutral."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    product_name: float = Field(default=1.0, allow_inf_nan=False)
    product_variant_name: float = Field(default=1.0, allow_inf_nan=False)
    description: float = Field(default=1.0, allow_inf_nan=False)
    sku: float = Field(default=1.0, allow_inf_nan=False)

    def boost_for(self, index_field: str) -> float:
        """Return the multiplier for an index field name; 1 for fields without a configured boost."""
        attr = INDEX_FIELD_TO_BOOST.get(index_field)
        if attr is None:
            return 1.0
        return getattr(self, attr)


# Boost attribute -> field name in the search index
BOOSTED_INDEX_FIELDS = {
    "product_name": "productName",
    "product_variant_name": "productVariantName",
    "description": "description",
    "sku": "sku",
}
INDEX_FIELD_TO_BOOST = {v: k for k, v in BOOSTED_INDEX_FIELDS.items()}


class TotalItemsMode(str, Enum):
    EXACT = "exact"
    SUPPRESSED = "suppressed"
    CAPPED = "capped"


class TotalItemsPolicy(BaseModel):
    """
    How the total hit count is tracked and reported.
    Accepts the raw option forms: True (exact count), False (no count, reported as 0)
    or a positive integer (accurate count up to that cap).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    mode: TotalItemsMode
    cap: PositiveInt | None = None

    @model_validator(mode="before")
    @classmethod
    def _from_raw_option(cls, data: Any) -> Any:
        if isinstance(data, bool):
            return {"mode": TotalItemsMode.EXACT if data else TotalItemsMode.SUPPRESSED, "cap": None}
        if isinstance(data, int):
            return {"mode": TotalItemsMode.CAPPED, "cap": data}
        return data

    @model_validator(mode="after")
    def _check_cap(self) -> "TotalItemsPolicy":
        if self.mode is TotalItemsMode.CAPPED and self.cap is None:
            raise ValueError("capped total items policy requires a cap")
        if self.mode is not TotalItemsMode.CAPPED and self.cap is not None:
            raise ValueError(f"cap is only valid for the capped policy, not {self.mode.value!r}")
        return self

    @classmethod
    def exact(cls) -> "TotalItemsPolicy":
        return cls(mode=TotalItemsMode.EXACT, cap=None)

    @classmethod
    def suppressed(cls) -> "TotalItemsPolicy":
        return cls(mode=TotalItemsMode.SUPPRESSED, cap=None)

    @classmethod
    def capped(cls, cap: int) -> "TotalItemsPolicy":
        return cls(mode=TotalItemsMode.CAPPED, cap=cap)

    @property
    def track_total_hits(self) -> bool | int:
        """Value for the engine's track_total_hits body property."""
        if self.mode is TotalItemsMode.EXACT:
            return True
        if self.mode is TotalItemsMode.SUPPRESSED:
            return False
        return self.cap

    def report(self, actual_count: int) -> int:
        """Total to report to clients for the given engine hit count."""
        if self.mode is TotalItemsMode.SUPPRESSED:
            return 0
        if self.mode is TotalItemsMode.CAPPED:
            return min(actual_count, self.cap)
        return actual_count


def _check_graphql_type(value: str) -> str:
    if not GRAPHQL_TYPE_PATTERN.match(value):
        raise ValueError(
            f"Unsupported graphql_type {value!r}. Use String, Int, Float, Boolean or ID, optionally suffixed with '!'"
        )
    return value


class CustomMapping(BaseModel):
    """Derived result field computed from domain entities (product/variants/language) per result row."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    graphql_type: str = Field(..., description="String|Int|Float|Boolean|ID, '!' suffix for non-null")
    value_fn: Callable[..., Any]

    @field_validator("graphql_type")
    @classmethod
    def _validate_graphql_type(cls, v: str) -> str:
        return _check_graphql_type(v)


class CustomScriptMapping(BaseModel):
    """Per-hit script field; val_fn receives the search input and returns {"script": ...}."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    graphql_type: str = Field(..., description="String|Int|Float|Boolean|ID, '!' suffix for non-null")
    val_fn: Callable[..., dict[str, Any]]

    @field_validator("graphql_type")
    @classmethod
    def _validate_graphql_type(cls, v: str) -> str:
        return _check_graphql_type(v)


def identity_query(query: dict[str, Any], *_args: Any) -> dict[str, Any]:
    """Default map_query hook: returns the built query unchanged."""
    return query


def _check_registry_keys(name: str, registry: dict[str, Any]) -> None:
    clashes = sorted(set(registry) & BUILT_IN_RESULT_FIELDS)
    if clashes:
        raise ValueError(f"{name} keys collide with built-in result fields: {', '.join(clashes)}")


class SearchConfig(BaseModel):
    """Parameters of the query generated for each search request."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    facet_value_max_size: PositiveInt = 50
    collection_max_size: PositiveInt = 50
    total_items_max_size: TotalItemsPolicy = Field(default_factory=lambda: TotalItemsPolicy.capped(10000))
    multi_match_type: MultiMatchType = MultiMatchType.BEST_FIELDS
    boost_fields: BoostFieldsConfig = Field(default_factory=BoostFieldsConfig)
    price_range_bucket_interval: PositiveInt = 1000
    map_query: Callable[..., Any] = identity_query
    script_fields: dict[str, CustomScriptMapping] = Field(default_factory=dict)

    @field_validator("script_fields", mode="after")
    @classmethod
    def _freeze_script_fields(cls, v: dict[str, CustomScriptMapping]) -> Mapping[str, CustomScriptMapping]:
        return read_only(v)

    @model_validator(mode="after")
    def _check_script_field_names(self) -> "SearchConfig":
        _check_registry_keys("script_fields", self.script_fields)
        return self


class RuntimeOptions(BaseModel):
    """Fully merged options. Built once at startup; read-only afterwards."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str = "http://localhost"
    port: int = Field(default=9200, ge=1, le=65535)
    connection_attempts: PositiveInt = 10
    connection_attempt_interval: int = Field(default=5000, ge=0, description="Milliseconds between attempts")
    index_prefix: str = "vendure-"
    index_settings: dict[str, Any] = Field(default_factory=dict)
    index_mapping_properties: dict[str, Any] = Field(default_factory=dict)
    batch_size: PositiveInt = 2000
    search_config: SearchConfig = Field(default_factory=SearchConfig)
    custom_product_mappings: dict[str, CustomMapping] = Field(default_factory=dict)
    custom_product_variant_mappings: dict[str, CustomMapping] = Field(default_factory=dict)
    # Passed verbatim to the search client; never merged.
    client_options: dict[str, Any] | None = None

    @field_validator(
        "index_settings",
        "index_mapping_properties",
        "custom_product_mappings",
        "custom_product_variant_mappings",
        mode="after",
    )
    @classmethod
    def _freeze(cls, v: dict[str, Any]) -> Mapping[str, Any]:
        return read_only(v)

    @model_validator(mode="after")
    def _check_custom_mapping_names(self) -> "RuntimeOptions":
        _check_registry_keys("custom_product_mappings", self.custom_product_mappings)
        _check_registry_keys("custom_product_variant_mappings", self.custom_product_variant_mappings)
        return self

    @property
    def node_url(self) -> str:
        return f"{self.host}:{self.port}"

    def index_name(self, suffix: str = VARIANT_INDEX_SUFFIX) -> str:
        return f"{self.index_prefix}{suffix}"
