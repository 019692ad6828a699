"""Text normalisation helpers shared by the parsing and grounding stages."""

from __future__ import annotations

import re
import unicodedata

_WHITESPACE = re.compile(r"\s+")
_TOKEN = re.compile(r"[a-z0-9]+")

STOPWORDS = frozenset(
    {
        "a",
        "al",
        "con",
        "de",
        "del",
        "el",
        "en",
        "la",
        "las",
        "lo",
        "los",
        "para",
        "por",
        "sin",
        "un",
        "una",
        "y",
    }
)


def normalize_text(value: str) -> str:
    """Lowercase, strip accents and collapse whitespace."""

    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE.sub(" ", stripped.lower()).strip()


def _stem(token: str) -> str:
    # Plural "s" only; good enough for product names such as "quesos veganos".
    if len(token) > 3 and token.endswith("s"):
        return token[:-1]
    return token


def name_key(value: str) -> str:
    """Return a comparison key: normalised, punctuation-free, singularised."""

    return " ".join(_stem(token) for token in _TOKEN.findall(normalize_text(value)))


def significant_tokens(value: str) -> frozenset[str]:
    """Return the singularised tokens of ``value`` that carry meaning."""

    return frozenset(
        _stem(token)
        for token in _TOKEN.findall(normalize_text(value))
        if token not in STOPWORDS and not token.isdigit()
    )


def truncate(value: str, max_length: int = 500) -> str:
    if len(value) <= max_length:
        return value
    return value[: max_length - 3] + "..."


__all__ = [
    "STOPWORDS",
    "name_key",
    "normalize_text",
    "significant_tokens",
    "truncate",
]
