"""
Tests for nagrik label rendering.
"""

import pytest

from core.nagrik import (
    Language,
    author_label,
    format_nagrik_display,
    format_nagrik_name,
    parse_language,
)


@pytest.mark.unit
class TestFormatNagrikDisplay:
    def test_english(self) -> None:
        assert format_nagrik_display(1001, Language.ENGLISH) == "Nagrik_1001"

    def test_hindi(self) -> None:
        assert format_nagrik_display(1001, Language.HINDI) == "नागरिक_1001"

    def test_defaults_to_hindi(self) -> None:
        assert format_nagrik_display(42) == "नागरिक_42"

    def test_accepts_language_code(self) -> None:
        assert format_nagrik_display(7, "en") == "Nagrik_7"

    def test_bilingual_name(self) -> None:
        assert format_nagrik_name(1005) == "Nagrik_1005 (नागरिक_1005)"


@pytest.mark.unit
class TestAuthorLabel:
    def test_numbered_author(self) -> None:
        assert author_label(2001, Language.ENGLISH) == "Nagrik_2001"

    def test_unnumbered_author(self) -> None:
        assert author_label(None, Language.ENGLISH) == "User"
        assert author_label(None, Language.HINDI) == "उपयोगकर्ता"


@pytest.mark.unit
class TestParseLanguage:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("en", Language.ENGLISH),
            ("English", Language.ENGLISH),
            (" EN ", Language.ENGLISH),
            ("hi", Language.HINDI),
            ("hindi", Language.HINDI),
            ("fr", Language.HINDI),
            ("", Language.HINDI),
            (None, Language.HINDI),
        ],
    )
    def test_parse(self, value, expected) -> None:
        assert parse_language(value) == expected
