"""
Category-set similarity scoring and classification.
"""

from app.matching.engine import SimilarityEngine, category_weight, score_candidate

__all__ = ["SimilarityEngine", "category_weight", "score_candidate"]
