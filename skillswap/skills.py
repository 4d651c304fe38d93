"""Skill catalog: category inference and fuzzy name lookup via rapidfuzz.

Builds embedded skill records for user profiles. When a skill arrives
without a category, the catalog resolves one from the taxonomy (exact
synonym first, then fuzzy) and falls back to Other.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache

from rapidfuzz import fuzz, process

from .config import settings
from .models import SkillCategory, SkillLevel, new_id
from .pipelines.normalization import clean_display_name, skill_key
from .skill_taxonomy import SKILL_TAXONOMY

logger = logging.getLogger(__name__)


@dataclass
class SkillTaxonomy:
    """Skill taxonomy entry with synonyms."""
    canonical_skill: str
    synonyms: list[str] = field(default_factory=list)
    category: str = SkillCategory.OTHER.value


@dataclass
class CategoryMatch:
    """Resolved category for a skill name."""
    category: SkillCategory
    canonical_skill: str | None
    confidence: float
    method: str  # exact, fuzzy, default


class SkillCatalog:
    """Skill catalog over a taxonomy.

    Supports:
    - Exact synonym lookup
    - Fuzzy lookup via rapidfuzz
    - Fuzzy name comparison for user search
    """

    def __init__(self, taxonomy: list[SkillTaxonomy] | None = None) -> None:
        self.taxonomy = taxonomy or self._load_default_taxonomy()

        self._synonym_map: dict[str, SkillTaxonomy] = {}  # synonym -> entry
        self._build_indices()

        logger.debug(f"Loaded {len(self.taxonomy)} skills with {len(self._synonym_map)} synonyms")

    @staticmethod
    def _load_default_taxonomy() -> list[SkillTaxonomy]:
        return [
            SkillTaxonomy(
                canonical_skill=entry["canonical_skill"],
                synonyms=list(entry.get("synonyms", [])),
                category=entry.get("category", SkillCategory.OTHER.value),
            )
            for entry in SKILL_TAXONOMY
        ]

    def _build_indices(self) -> None:
        """Build internal lookup structures."""
        for tax in self.taxonomy:
            self._synonym_map[skill_key(tax.canonical_skill)] = tax
            for syn in tax.synonyms:
                self._synonym_map[skill_key(syn)] = tax

    def infer_category(self, name: str) -> CategoryMatch:
        """Resolve the category of a skill name."""
        key = skill_key(name)
        if not key:
            return CategoryMatch(SkillCategory.OTHER, None, 0.0, "default")

        entry = self._synonym_map.get(key)
        if entry:
            return CategoryMatch(SkillCategory(entry.category), entry.canonical_skill, 1.0, "exact")

        best = process.extractOne(
            key,
            list(self._synonym_map.keys()),
            scorer=fuzz.WRatio,
            score_cutoff=settings.skills.fuzzy_threshold,
        )
        if best:
            synonym, score, _ = best
            entry = self._synonym_map[synonym]
            return CategoryMatch(
                SkillCategory(entry.category), entry.canonical_skill, score / 100.0, "fuzzy"
            )

        return CategoryMatch(SkillCategory.OTHER, None, 0.0, "default")

    @staticmethod
    def names_match(query: str, name: str, *, fuzzy: bool | None = None) -> bool:
        """Whether a search query hits a skill name.

        Substring containment always matches; with fuzzy search enabled a
        whole-name similarity above the threshold also matches (typos).
        """
        q, n = skill_key(query), skill_key(name)
        if not q or not n:
            return False
        if q in n:
            return True
        use_fuzzy = settings.skills.fuzzy_search if fuzzy is None else fuzzy
        return use_fuzzy and fuzz.ratio(q, n) >= settings.skills.fuzzy_threshold

    def build_skill(
        self,
        name: str,
        *,
        level: SkillLevel | str,
        category: SkillCategory | str | None = None,
        years_of_experience: int | None = None,
        description: str | None = None,
    ) -> dict:
        """Build an embedded skill record with a fresh id."""
        display = clean_display_name(name)
        if category:
            resolved = SkillCategory(category)
        else:
            resolved = self.infer_category(display).category

        return {
            "id": new_id(),
            "name": display,
            "category": resolved.value,
            "level": SkillLevel(level).value,
            "years_of_experience": years_of_experience,
            "description": description or "",
            "added_at": datetime.utcnow().isoformat(),
        }


@lru_cache(maxsize=1)
def get_catalog() -> SkillCatalog:
    """Shared catalog instance."""
    return SkillCatalog()
