"""Utility helpers for the VHouse conversation service."""

from .text import STOPWORDS, name_key, normalize_text, significant_tokens, truncate

__all__ = [
    "STOPWORDS",
    "name_key",
    "normalize_text",
    "significant_tokens",
    "truncate",
]
