"""
Scoring package: capped weighted scores and repository ranking.
"""

from .metrics import ScoringEngine, score_ledger
from .ranking import RepoRanker

__all__ = ["ScoringEngine", "RepoRanker", "score_ledger"]
