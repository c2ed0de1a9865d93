"""
Static constituency reference data.

Candidate records ship as two JSON arrays with the same order, one per
language (`candidates.json` in Hindi, `candidates_en.json` in English).
A constituency's id is its 1-based position in the array.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import structlog

from core.config import settings
from core.nagrik import DEFAULT_LANGUAGE, Language

logger = structlog.get_logger(__name__)

DATA_FILES = {
    Language.HINDI: "candidates.json",
    Language.ENGLISH: "candidates_en.json",
}


class ConstituencyDataset:
    """Read-only access to the candidate files in one directory."""

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)
        self._records: dict[Language, list[dict[str, Any]]] = {}

    def _load(self, language: Language) -> list[dict[str, Any]]:
        language = Language(language)
        if language not in self._records:
            path = self.data_dir / DATA_FILES[language]
            with path.open(encoding="utf-8") as f:
                records = json.load(f)
            self._records[language] = records
            logger.info("candidate_data_loaded", language=language.value, count=len(records))
        return self._records[language]

    def get_candidate(
        self,
        constituency_id: int,
        language: Language = DEFAULT_LANGUAGE,
    ) -> Optional[dict[str, Any]]:
        """The candidate record for a constituency, or None if the id is out of range."""
        records = self._load(language)
        if not 1 <= constituency_id <= len(records):
            return None
        return records[constituency_id - 1]

    def department_names(
        self,
        constituency_id: int,
        language: Language = DEFAULT_LANGUAGE,
    ) -> list[str]:
        """Departments users rate for this constituency."""
        record = self.get_candidate(constituency_id, language)
        if record is None:
            return []
        return [dept["dept_name"] for dept in record.get("dept_info", []) if dept.get("dept_name")]

    def list_constituencies(self, language: Language = DEFAULT_LANGUAGE) -> list[dict[str, Any]]:
        """(id, area name) pairs in dataset order."""
        return [
            {"constituency_id": index, "area_name": record.get("area_name")}
            for index, record in enumerate(self._load(language), start=1)
        ]

    def count(self) -> int:
        return len(self._load(Language.HINDI))


@lru_cache
def get_constituency_dataset() -> ConstituencyDataset:
    """Dataset rooted at CANDIDATES_DATA_DIR, shared across requests."""
    return ConstituencyDataset(settings.CANDIDATES_DATA_DIR)
