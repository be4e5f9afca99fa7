"""In-process validation cache."""

from permit_trust.services.cache.sweeper import run_cache_sweeper
from permit_trust.services.cache.validation_cache import CacheStats, ValidationCache

__all__ = ["CacheStats", "ValidationCache", "run_cache_sweeper"]
