"""
Category-set similarity engine.

``compare`` pairs client labels with competitor labels through three
independent probes (fuzzy, edit distance, token cosine), deduplicates the
accepted pairs and scores each one. ``classify`` turns the scored matches
into a PASS / MARGINAL / FAIL decision.

Deduplication runs before scoring. Under the default ``first_seen`` policy
the first probe that accepted a pair wins even when a later probe would have
scored it higher; ``best_confidence`` keeps the highest-scoring duplicate.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from app.config import (
    DUPLICATE_POLICY_BEST_CONFIDENCE,
    MatchingSettings,
    MatchThresholds,
)
from app.domain.category_matching import (
    Classification,
    MatchCandidate,
    MatchMethod,
    MatchResult,
    MatchStatus,
)
from app.matching.metrics import edit_similarity, fuzzy_best_match, token_cosine_similarity
from app.scraping.parsing.category_parsers import clean_category_name

METHOD_WEIGHTS: dict[str, float] = {
    MatchMethod.TOKEN_COSINE: 1.2,
    MatchMethod.EDIT_DISTANCE: 1.1,
    MatchMethod.FUZZY: 1.0,
}
HIGH_VALUE_TERMS: tuple[str, ...] = (
    "electronics",
    "clothing",
    "fashion",
    "books",
    "beauty",
    "home",
    "garden",
    "sports",
    "automotive",
    "toys",
)
HIGH_VALUE_WEIGHT = 1.2


def category_weight(client_label: str) -> float:
    label = client_label.lower()
    if any(term in label for term in HIGH_VALUE_TERMS):
        return HIGH_VALUE_WEIGHT
    return 1.0


def score_candidate(candidate: MatchCandidate) -> MatchResult:
    confidence = min(
        candidate.raw_similarity
        * METHOD_WEIGHTS.get(candidate.method, 1.0)
        * category_weight(candidate.client_label),
        1.0,
    )
    return MatchResult(
        client_label=candidate.client_label,
        competitor_label=candidate.competitor_label,
        raw_similarity=candidate.raw_similarity,
        method=candidate.method,
        confidence=max(0.0, confidence),
    )


class SimilarityEngine:
    """
    Stateless comparison of two category sets.
    """

    def __init__(self, settings: MatchingSettings | None = None) -> None:
        self.settings = settings or MatchingSettings()
        self._stoplist = frozenset(clean_category_name(item) for item in self.settings.stoplist)

    def filter_labels(self, labels: Iterable[str]) -> list[str]:
        """
        Clean labels, drop out-of-range and stoplisted ones, keep first occurrence.
        """

        filtered: list[str] = []
        seen: set[str] = set()
        for raw_label in labels:
            label = clean_category_name(raw_label)
            if not self.settings.min_label_length <= len(label) <= self.settings.max_label_length:
                continue
            if label in self._stoplist or label in seen:
                continue
            seen.add(label)
            filtered.append(label)
        return filtered

    def compare(
        self,
        client_categories: Sequence[str],
        competitor_categories: Sequence[str],
    ) -> list[MatchResult]:
        """
        Ranked matches between two category sets, highest confidence first.
        """

        if not client_categories or not competitor_categories:
            return []

        client_labels = self.filter_labels(client_categories)
        competitor_labels = self.filter_labels(competitor_categories)
        if not client_labels or not competitor_labels:
            return []

        candidates = self.find_candidates(client_labels, competitor_labels)
        results = self.score_candidates(candidates)
        # sorted() is stable: equal confidences keep discovery order.
        return sorted(results, key=lambda result: result.confidence, reverse=True)

    def find_candidates(
        self,
        client_labels: Sequence[str],
        competitor_labels: Sequence[str],
    ) -> list[MatchCandidate]:
        """
        Pool every accepted probe hit in probe order.

        For each client label the fuzzy probe runs first against the whole
        competitor set, then edit distance and token cosine run against each
        competitor label in turn.
        """

        settings = self.settings
        candidates: list[MatchCandidate] = []
        for client_label in client_labels:
            fuzzy_hit = fuzzy_best_match(client_label, competitor_labels)
            if fuzzy_hit is not None:
                competitor_label, distance = fuzzy_hit
                if distance <= settings.fuzzy_max_distance:
                    candidates.append(
                        MatchCandidate(
                            client_label=client_label,
                            competitor_label=competitor_label,
                            raw_similarity=max(0.0, 1.0 - distance),
                            method=MatchMethod.FUZZY,
                        )
                    )

            for competitor_label in competitor_labels:
                similarity, distance = edit_similarity(client_label, competitor_label)
                if similarity >= settings.edit_min_similarity and distance <= settings.edit_max_distance:
                    candidates.append(
                        MatchCandidate(
                            client_label=client_label,
                            competitor_label=competitor_label,
                            raw_similarity=similarity,
                            method=MatchMethod.EDIT_DISTANCE,
                        )
                    )

                cosine = min(1.0, token_cosine_similarity(client_label, competitor_label))
                if cosine >= settings.cosine_min_similarity:
                    candidates.append(
                        MatchCandidate(
                            client_label=client_label,
                            competitor_label=competitor_label,
                            raw_similarity=cosine,
                            method=MatchMethod.TOKEN_COSINE,
                        )
                    )
        return candidates

    def score_candidates(self, candidates: Sequence[MatchCandidate]) -> list[MatchResult]:
        """
        Deduplicate candidates by (client, competitor) pair and score the survivors.
        """

        if self.settings.duplicate_policy == DUPLICATE_POLICY_BEST_CONFIDENCE:
            best: dict[tuple[str, str], MatchResult] = {}
            for candidate in candidates:
                scored = score_candidate(candidate)
                current = best.get(candidate.pair)
                if current is None or scored.confidence > current.confidence:
                    best[candidate.pair] = scored
            return list(best.values())

        first_seen: dict[tuple[str, str], MatchCandidate] = {}
        for candidate in candidates:
            first_seen.setdefault(candidate.pair, candidate)
        return [score_candidate(candidate) for candidate in first_seen.values()]

    def classify(
        self,
        matches: Sequence[MatchResult],
        thresholds: MatchThresholds | None = None,
    ) -> Classification:
        """
        Three-tier decision over scored matches.

        - no matches: FAIL with confidence 0
        - fewer than ``min_matches`` at or above ``min_confidence``: FAIL with
          the best single confidence
        - otherwise the mean confidence over all matches decides PASS vs MARGINAL
        """

        limits = thresholds or self.settings.thresholds
        if not matches:
            return Classification(status=MatchStatus.FAIL, confidence=0.0, reason="no matches")

        high_confidence = sum(1 for match in matches if match.confidence >= limits.min_confidence)
        if high_confidence < limits.min_matches:
            return Classification(
                status=MatchStatus.FAIL,
                confidence=max(match.confidence for match in matches),
                reason=(
                    "insufficient high-confidence matches "
                    f"({high_confidence} of {limits.min_matches} required)"
                ),
            )

        mean_confidence = sum(match.confidence for match in matches) / len(matches)
        if mean_confidence >= limits.min_average_similarity:
            return Classification(
                status=MatchStatus.PASS,
                confidence=mean_confidence,
                reason=f"{len(matches)} matches, {round(mean_confidence * 100)}% average confidence",
            )
        return Classification(
            status=MatchStatus.MARGINAL,
            confidence=mean_confidence,
            reason=(
                "average below threshold "
                f"({round(mean_confidence * 100)}% < {round(limits.min_average_similarity * 100)}%)"
            ),
        )
