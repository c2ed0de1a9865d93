"""
Anonymous public identity rendering.

Users are shown only as "Nagrik_<n>" / "नागरिक_<n>", never by name or email.
Everything here is pure so it can be used from any layer.
"""

from enum import Enum
from typing import Optional


class Language(str, Enum):
    """Display language for user-facing labels."""

    ENGLISH = "en"
    HINDI = "hi"


DEFAULT_LANGUAGE = Language.HINDI

NAGRIK_PREFIX = {
    Language.ENGLISH: "Nagrik_",
    Language.HINDI: "नागरिक_",
}

# Shown when a profile has no nagrik number yet
FALLBACK_LABEL = {
    Language.ENGLISH: "User",
    Language.HINDI: "उपयोगकर्ता",
}

_LANGUAGE_ALIASES = {
    "en": Language.ENGLISH,
    "english": Language.ENGLISH,
    "hi": Language.HINDI,
    "hindi": Language.HINDI,
}


def parse_language(value: Optional[str]) -> Language:
    """Map a request value ("en", "English", "hi", ...) to a Language; unknown -> Hindi."""
    if not value:
        return DEFAULT_LANGUAGE
    return _LANGUAGE_ALIASES.get(value.strip().lower(), DEFAULT_LANGUAGE)


def format_nagrik_display(nagrik_number: int, language: Language = DEFAULT_LANGUAGE) -> str:
    """
    Render a nagrik number as a language-appropriate anonymous label.

    >>> format_nagrik_display(1001, Language.ENGLISH)
    'Nagrik_1001'
    >>> format_nagrik_display(1001)
    'नागरिक_1001'
    """
    return f"{NAGRIK_PREFIX[Language(language)]}{nagrik_number}"


def format_nagrik_name(nagrik_number: int) -> str:
    """Bilingual label, e.g. "Nagrik_1001 (नागरिक_1001)"."""
    return (
        f"{format_nagrik_display(nagrik_number, Language.ENGLISH)} "
        f"({format_nagrik_display(nagrik_number, Language.HINDI)})"
    )


def author_label(nagrik_number: Optional[int], language: Language = DEFAULT_LANGUAGE) -> str:
    """Label for a post/comment/reply author, falling back to a generic name."""
    if nagrik_number is None:
        return FALLBACK_LABEL[Language(language)]
    return format_nagrik_display(nagrik_number, language)
