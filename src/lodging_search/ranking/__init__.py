"""Candidate filtering and scoring."""

from .evaluator import EvaluationError, Evaluator, fallback_score, parse_evaluation, rank_evaluations
from .prefilter import prefilter

__all__ = [
    "EvaluationError",
    "Evaluator",
    "fallback_score",
    "parse_evaluation",
    "prefilter",
    "rank_evaluations",
]
