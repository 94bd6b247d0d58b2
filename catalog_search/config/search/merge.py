"""
Merge user-supplied search options over the defaults into one RuntimeOptions value.

Merge rules are resolved from the model field types:
- nested model fields recurse key by key;
- registry fields (dict of models) are replaced entry by entry, entries are atomic;
- plain dict fields (index settings, mapping properties) are deep-merged;
- everything else, callables included, is replaced.
Container fields of the result are read-only views, so merged values never share mutable state.
client_options is never merged: it is taken verbatim from the user options.
"""

import copy
from collections.abc import Mapping
from enum import Enum
from typing import Any, TypeVar, get_args, get_origin

from pydantic import BaseModel, ValidationError
from pydantic.fields import FieldInfo

from catalog_search.config.logging import get_logger
from catalog_search.config.search.errors import ConfigurationError, translate_validation_error
from catalog_search.config.search.models import RuntimeOptions, TotalItemsPolicy, to_plain

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_OPTIONS = RuntimeOptions()

CLIENT_OPTIONS_FIELD = "client_options"

# Tagged variants: replaced as a whole, never merged field by field
ATOMIC_MODELS: tuple[type[BaseModel], ...] = (TotalItemsPolicy,)


class MergeRule(str, Enum):
    REPLACE = "replace"
    NESTED = "nested"
    ENTRIES = "entries"
    DEEP = "deep"


def _is_model_type(annotation: Any) -> bool:
    return isinstance(annotation, type) and issubclass(annotation, BaseModel)


def merge_rule(field: FieldInfo) -> MergeRule:
    """Return how an override for this field combines with its current value."""
    annotation = field.annotation
    if _is_model_type(annotation):
        if issubclass(annotation, ATOMIC_MODELS):
            return MergeRule.REPLACE
        return MergeRule.NESTED
    if get_origin(annotation) is dict:
        args = get_args(annotation)
        if len(args) == 2 and _is_model_type(args[1]):
            return MergeRule.ENTRIES
        return MergeRule.DEEP
    return MergeRule.REPLACE


def deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge plain mappings. Returns a new dict; neither input is modified."""
    result = copy.deepcopy(to_plain(base))
    for key, value in overrides.items():
        current = result.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            result[key] = deep_merge(current, value)
        else:
            result[key] = copy.deepcopy(to_plain(value))
    return result


def _override_items(overrides: Mapping[str, Any] | BaseModel) -> dict[str, Any]:
    # A model override only counts the fields that were explicitly set on it
    if isinstance(overrides, BaseModel):
        return {name: getattr(overrides, name) for name in overrides.model_fields_set}
    return dict(overrides)


def _join(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name


def _merge_value(current: Any, value: Any, rule: MergeRule, path: str) -> Any:
    if rule is MergeRule.NESTED and isinstance(current, BaseModel) and isinstance(value, (Mapping, BaseModel)):
        return _merge_model(current, value, path)
    if rule is MergeRule.ENTRIES and isinstance(value, Mapping):
        return {**current, **value}
    if rule is MergeRule.DEEP and isinstance(value, Mapping):
        return deep_merge(current, value)
    return value


def _merge_model(default: ModelT, overrides: Mapping[str, Any] | BaseModel, path: str = "") -> ModelT:
    model_cls = type(default)
    items = _override_items(overrides)
    unknown = sorted(set(items) - set(model_cls.model_fields))
    if unknown:
        paths = [_join(path, name) for name in unknown]
        raise ConfigurationError(f"Unknown search option(s): {', '.join(paths)}", paths=paths)

    values: dict[str, Any] = {}
    for name, field in model_cls.model_fields.items():
        current = getattr(default, name)
        if name in items:
            values[name] = _merge_value(current, items[name], merge_rule(field), _join(path, name))
        else:
            values[name] = current
    try:
        return model_cls.model_validate(values)
    except ValidationError as e:
        raise translate_validation_error(e, path) from e


def merge_options(
    base: RuntimeOptions,
    overrides: Mapping[str, Any] | BaseModel | None = None,
) -> RuntimeOptions:
    """
    Merge overrides over base and return a new RuntimeOptions. Pure: base and overrides are not modified.
    Raises ConfigurationError (or BucketingError) if the result is invalid or contains unknown keys.
    """
    items = _override_items(overrides) if overrides is not None else {}
    client_options = items.pop(CLIENT_OPTIONS_FIELD, base.client_options)
    merged = _merge_model(base, items)
    return merged.model_copy(update={CLIENT_OPTIONS_FIELD: client_options})


def merge_with_defaults(user_options: Mapping[str, Any] | BaseModel | None = None) -> RuntimeOptions:
    """Merge user options over DEFAULT_OPTIONS. Every field of the result has a concrete value."""
    options = merge_options(DEFAULT_OPTIONS, user_options)
    logger.info(
        "Search options merged",
        extra={
            "node_url": options.node_url,
            "index_prefix": options.index_prefix,
            "custom_product_mappings": sorted(options.custom_product_mappings),
            "custom_product_variant_mappings": sorted(options.custom_product_variant_mappings),
            "script_fields": sorted(options.search_config.script_fields),
        },
    )
    return options
