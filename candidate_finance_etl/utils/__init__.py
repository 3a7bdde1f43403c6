"""Utility functions and classes."""

from candidate_finance_etl.utils.rate_limiter import FECRateLimiter
from candidate_finance_etl.utils.text import clean_candidate_name, normalize_text, normalize_zip

__all__ = [
    "FECRateLimiter",
    "clean_candidate_name",
    "normalize_text",
    "normalize_zip",
]
