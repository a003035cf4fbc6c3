"""
Exception types for the GEP data service.

Routes map these to HTTP responses:
  - FilterValidationError -> 400, detail echoed back to the client
  - NotFoundError         -> 404
  - StoreUnavailable      -> 500, generic message only
"""

from __future__ import annotations
from typing import Any, Iterable, Optional


class GepError(Exception):
    """Base class for every error raised by the service."""


# ---------------------------------------------------------------------------
# Client input
# ---------------------------------------------------------------------------

class FilterValidationError(GepError, ValueError):
    """Malformed or semantically invalid filter request."""


class InvalidYear(FilterValidationError):
    def __init__(self, year: Any, allowed: Iterable[int]):
        self.year = year
        self.allowed = list(allowed)
        super().__init__(
            f'The "year" parameter [{year}] is invalid for this scenario. '
            f"Must be one of [{', '.join(str(y) for y in self.allowed)}]"
        )


class MalformedFilters(FilterValidationError):
    pass


class UnknownFilterKey(FilterValidationError):
    def __init__(self, key: Any):
        self.key = key
        super().__init__(f"Filter key [{key}] is not defined for this model.")


class MissingFilterValue(FilterValidationError):
    def __init__(self, key: Any):
        self.key = key
        super().__init__(
            f'Filter [{key}] must include a valid value parameter name: "min", "max" or "options".'
        )


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

class NotFoundError(GepError, LookupError):
    pass


class ModelNotFound(NotFoundError):
    def __init__(self, model_id: str):
        self.model_id = model_id
        super().__init__("Model not found.")


class FeatureNotFound(NotFoundError):
    def __init__(self, scenario_id: str, feature_id: Any):
        self.scenario_id = scenario_id
        self.feature_id = feature_id
        super().__init__("Feature not found.")


class CountryNotFound(NotFoundError):
    def __init__(self, country_id: str):
        self.country_id = country_id
        super().__init__("Country code not found.")


# ---------------------------------------------------------------------------
# Store / ingestion
# ---------------------------------------------------------------------------

class StoreUnavailable(GepError):
    """The record store failed or timed out. Never carries query text."""

    def __init__(self, message: str = "Record store unavailable.", *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.__cause__ = cause


class IngestionError(GepError):
    """Model or scenario input could not be read."""
