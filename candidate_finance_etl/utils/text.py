"""Text normalization helpers shared by identity matching and donor keys."""

import re

_HONORIFIC_RE = re.compile(r"^(rep\.|sen\.|hon\.|dr\.|mr\.|mrs\.|ms\.)\s*", re.IGNORECASE)
_NON_ALNUM_RE = re.compile(r"[^A-Z0-9 ]+")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(value: object) -> str:
    """Uppercase, drop punctuation and collapse whitespace. None/NaN become ''."""
    if value is None or value != value:  # NaN check without importing pandas
        return ""
    text = str(value).upper()
    text = _NON_ALNUM_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_zip(value: object, length: int = 5) -> str:
    """Digits only, truncated to the ZIP prefix."""
    if value is None or value != value:
        return ""
    return re.sub(r"[^\d]", "", str(value))[:length]


def clean_candidate_name(name: str) -> str:
    """Strip leading honorifics such as 'Rep.' or 'Sen.' from a display name."""
    return _HONORIFIC_RE.sub("", name or "").strip()
