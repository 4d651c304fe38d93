"""Text normalization for skill names, locations and free text.

Skill and location comparisons across the platform are case-insensitive;
everything that compares names goes through ``skill_key`` / ``location_key``
so that "  Guitar " and "guitar" are the same skill.
"""
from __future__ import annotations

import re
import unicodedata


def normalize_whitespace(text: str) -> str:
    """Normalize whitespace: collapse multiple spaces, remove leading/trailing."""
    text = re.sub(r'\s+', ' ', text)
    return text.strip()


def normalize_unicode(text: str) -> str:
    """Normalize Unicode to composed form so accented names compare equal."""
    return unicodedata.normalize('NFC', text)


def clean_display_name(text: str | None) -> str:
    """Tidy a user-entered name for storage, keeping its casing."""
    if not text:
        return ""
    return normalize_whitespace(normalize_unicode(text))


def skill_key(name: str | None) -> str:
    """Comparison key for a skill name."""
    if not name:
        return ""
    return clean_display_name(name).casefold()


def location_key(location: str | None) -> str:
    """Comparison key for a location."""
    return skill_key(location)


def skill_names(skills: list[dict] | None) -> list[str]:
    """Comparison keys for an embedded skill list, in list order."""
    return [skill_key(s.get("name")) for s in skills or [] if skill_key(s.get("name"))]


def normalize_review(text: str | None) -> str:
    """Normalize free text (reviews, messages) without changing its case."""
    if not text:
        return ""
    return normalize_unicode(text).strip()
