"""Normalized search request consumed by the query pipeline."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LogicalOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class PriceRange(BaseModel):
    """Inclusive price bounds in currency minor units."""

    min: int = Field(..., ge=0)
    max: int = Field(..., ge=0)

    @model_validator(mode="after")
    def check_bounds(self):
        if self.min > self.max:
            raise ValueError("price range min must not exceed max")
        return self


class FacetValueFilter(BaseModel):
    """One filter group: a single facet value that must match, or a set of which any must match."""

    model_config = ConfigDict(populate_by_name=True)

    and_: str | None = Field(default=None, alias="and")
    or_: list[str] | None = Field(default=None, alias="or")

    @model_validator(mode="after")
    def check_one_of(self):
        if (self.and_ is None) == (self.or_ is None):
            raise ValueError("facet value filter needs exactly one of 'and' or 'or'")
        if self.or_ is not None and not self.or_:
            raise ValueError("facet value filter 'or' needs at least one facet value id")
        return self


class SearchSort(BaseModel):
    name: SortOrder | None = None
    price: SortOrder | None = None


class SearchInput(BaseModel):
    """
    Search request after normalization. Extra fields are kept so hosts can extend the input
    (e.g. latitude/longitude read by a script field).
    """

    model_config = ConfigDict(extra="allow")

    term: str | None = Field(default=None, description="Free-text search term")
    facet_value_ids: list[str] = Field(default_factory=list)
    facet_value_operator: LogicalOperator = LogicalOperator.AND
    facet_value_filters: list[FacetValueFilter] = Field(default_factory=list)
    collection_id: str | None = None
    collection_slug: str | None = None
    group_by_product: bool = False
    language_code: str | None = None
    in_stock: bool | None = None
    price_range: PriceRange | None = None
    price_range_with_tax: PriceRange | None = None
    sort: SearchSort | None = None
    take: int = Field(default=10, ge=0)
    skip: int = Field(default=0, ge=0)

    include_facet_values: bool = Field(default=False, description="Aggregate matching facet values")
    include_collections: bool = Field(default=False, description="Aggregate matching collections")
    include_price_range: bool = Field(default=False, description="Aggregate price range buckets")
