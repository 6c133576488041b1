"""
String similarity probes used by the similarity engine.

All scores are normalized to [0, 1] where 1 means identical.
"""

from __future__ import annotations

import math
import re
from collections import Counter
from collections.abc import Sequence

from rapidfuzz import fuzz, process
from rapidfuzz.distance import Levenshtein

_TOKEN = re.compile(r"\w+")


def tokenize(label: str) -> list[str]:
    return _TOKEN.findall(label.lower())


def fuzzy_best_match(label: str, choices: Sequence[str]) -> tuple[str, float] | None:
    """
    Best token-sorted fuzzy hit for ``label`` among ``choices``.

    Returns ``(choice, distance)`` with distance in [0, 1], 0 being exact.
    """

    if not label or not choices:
        return None
    hit = process.extractOne(label, choices, scorer=fuzz.token_sort_ratio, processor=None)
    if hit is None:
        return None
    choice, score, _index = hit
    return choice, 1.0 - (float(score) / 100.0)


def edit_similarity(left: str, right: str) -> tuple[float, int]:
    """
    Return ``(1 - distance / max_len, raw_distance)`` for two labels.
    """

    longest = max(len(left), len(right))
    if longest == 0:
        return 1.0, 0
    distance = Levenshtein.distance(left, right)
    return 1.0 - (distance / longest), distance


def token_cosine_similarity(left: str, right: str) -> float:
    """
    Cosine similarity of the word-frequency vectors of two labels.
    """

    left_counts = Counter(tokenize(left))
    right_counts = Counter(tokenize(right))
    if not left_counts or not right_counts:
        return 0.0

    dot = sum(count * right_counts[token] for token, count in left_counts.items())
    left_norm = math.sqrt(sum(count * count for count in left_counts.values()))
    right_norm = math.sqrt(sum(count * count for count in right_counts.values()))
    if left_norm == 0 or right_norm == 0:
        return 0.0
    return dot / (left_norm * right_norm)
