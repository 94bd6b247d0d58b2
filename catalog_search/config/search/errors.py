"""Configuration errors raised while merging or validating search options."""

from pydantic import ValidationError

from catalog_search.config.logging import get_logger

logger = get_logger(__name__)

BUCKET_INTERVAL_FIELD = "price_range_bucket_interval"


class ConfigurationError(ValueError):
    """Raised when user options cannot produce valid runtime options. Prevents startup."""

    def __init__(self, message: str, paths: list[str] | None = None, cause: Exception | None = None):
        super().__init__(message)
        self.paths = paths or []
        self.cause = cause


class BucketingError(ConfigurationError):
    """Raised for a non-positive price range bucket interval."""


def _join_path(prefix: str, loc: tuple) -> str:
    parts = [prefix] if prefix else []
    parts.extend(str(p) for p in loc)
    return ".".join(parts)


def translate_validation_error(e: ValidationError, path: str = "") -> ConfigurationError:
    """Wrap a pydantic ValidationError into a ConfigurationError naming the failing option paths."""
    paths: list[str] = []
    details: list[str] = []
    for err in e.errors():
        loc = _join_path(path, tuple(err.get("loc", ())))
        paths.append(loc or "<root>")
        details.append(f"{loc or '<root>'}: {err.get('msg')}")
    logger.warning(
        "Search options failed validation",
        extra={"paths": paths, "error_count": len(paths)},
    )
    message = "Invalid search options: " + "; ".join(details)
    error_cls = BucketingError if any(p.endswith(BUCKET_INTERVAL_FIELD) for p in paths) else ConfigurationError
    return error_cls(message, paths=paths, cause=e)
