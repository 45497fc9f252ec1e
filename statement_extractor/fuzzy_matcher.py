"""
Fuzzy Matching Layer.

When neither exact equality nor the synonym dictionary produces a hit, this
layer uses ``rapidfuzz`` to find the closest canonical field of the
statement.  The target pool holds every canonical field *and* every synonym
variant, each pointing back at its canonical field.  Results are
confidence-gated:

* Matches **below** ``fuzzy_threshold`` are rejected outright.
* If the runner-up for a *different* canonical field is within
  ``fuzzy_ambiguity_delta`` of the best, the result is flagged as ambiguous
  and the caller attaches a warning instead of silently picking one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from rapidfuzz import fuzz, process

from statement_extractor.config import MatchingConfig
from statement_extractor.logging_setup import get_logger
from statement_extractor.normalizer import LabelNormalizer
from statement_extractor.schema import STATEMENT_FIELDS, StatementType
from statement_extractor.synonym_mapper import SynonymMapper

logger = get_logger("fuzzy_matcher")


@dataclass
class FuzzyCandidate:
    """A single candidate returned by the fuzzy matcher."""

    canonical_name: str
    score: float  # 0–100
    matched_text: str = ""
    is_ambiguous: bool = False
    runner_up: Optional[str] = None


class FuzzyMatcher:
    """Fuzzy-match a normalised label against one statement's fields.

    Targets are pre-normalised with the same ``LabelNormalizer`` used for
    the query so that punctuation ("/", "-") never costs score points.

    Parameters
    ----------
    config:
        Matching thresholds.
    normalizer:
        Label normaliser shared with the synonym layer.
    synonyms:
        When given, synonym variants join the target pool.
    """

    # How many raw hits to inspect when searching for a distinct runner-up.
    _EXTRACT_LIMIT = 10

    def __init__(
        self,
        config: MatchingConfig,
        normalizer: LabelNormalizer,
        synonyms: Optional[SynonymMapper] = None,
    ) -> None:
        self._config = config
        self._normalizer = normalizer
        self._synonyms = synonyms
        self._targets: Dict[StatementType, Dict[str, str]] = {}
        self.refresh()

    def refresh(self) -> None:
        """Rebuild the target pools (call after adding synonyms)."""
        for statement_type in StatementType:
            pool: Dict[str, str] = {}
            for name in STATEMENT_FIELDS[statement_type]:
                pool.setdefault(self._normalizer.normalize_label(name), name)
            if self._synonyms is not None:
                for variant, canonicals in self._synonyms.all_synonyms(statement_type).items():
                    pool.setdefault(variant, canonicals[0])
            self._targets[statement_type] = pool
        logger.debug(
            "Fuzzy target pools: %s",
            {st.value: len(p) for st, p in self._targets.items()},
        )

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def match(
        self, normalised_label: str, statement_type: StatementType
    ) -> Optional[FuzzyCandidate]:
        """Find the best canonical match for *normalised_label*.

        Returns
        -------
        FuzzyCandidate | None
            Best match at or above threshold, or ``None`` if nothing
            qualifies.
        """
        if not normalised_label:
            return None

        pool = self._targets[statement_type]

        # token_sort_ratio is robust against word-order differences
        # ("profit net" vs "net profit").
        results = process.extract(
            normalised_label,
            list(pool.keys()),
            scorer=fuzz.token_sort_ratio,
            limit=self._EXTRACT_LIMIT,
        )
        if not results:
            logger.debug("No fuzzy candidates for %r", normalised_label)
            return None

        best_key, best_score, _ = results[0]
        canonical = pool[best_key]

        if best_score < self._config.fuzzy_threshold:
            logger.info(
                "Fuzzy best for %r is %r (%.1f), below threshold %.1f; rejected",
                normalised_label,
                canonical,
                best_score,
                self._config.fuzzy_threshold,
            )
            return None

        # Ambiguity: the closest hit that points at a different field.
        runner_up: Optional[str] = None
        runner_score = 0.0
        for key, score, _ in results[1:]:
            if pool[key] != canonical:
                runner_up, runner_score = pool[key], score
                break

        is_ambiguous = (
            runner_up is not None
            and best_score - runner_score <= self._config.fuzzy_ambiguity_delta
        )
        if is_ambiguous:
            logger.warning(
                "Ambiguous fuzzy match for %r: best=%r (%.1f), runner-up=%r (%.1f)",
                normalised_label,
                canonical,
                best_score,
                runner_up,
                runner_score,
            )

        logger.info(
            "Fuzzy match: %r → %r via %r (score=%.1f, ambiguous=%s)",
            normalised_label,
            canonical,
            best_key,
            best_score,
            is_ambiguous,
        )
        return FuzzyCandidate(
            canonical_name=canonical,
            score=float(best_score),
            matched_text=best_key,
            is_ambiguous=is_ambiguous,
            runner_up=runner_up if is_ambiguous else None,
        )
