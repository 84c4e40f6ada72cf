"""
Scoring engine: raw ActivityCounters -> capped counts -> weighted category scores -> total.

Doc/typo PRs and issues only count in proportion to feature/bug PR work:
  - doc and typo PRs are each capped at doc_cap x feature/bug PRs (a lone doc PR is
    credited as if backed by one feature/bug PR),
  - issues are capped at issue_cap x the valid PR total, filled feature/bug first.
A participant whose activity is a single PR (and at most one issue), or who has only
issues, is scored on raw counts.
"""
import logging
from typing import Dict, List, Optional
from normalize.models import ActivityCounters, ParticipantScore
from .utils import DEFAULT_WEIGHTS, DEFAULT_DOC_CAP, DEFAULT_ISSUE_CAP
from .utils import compute_weighted_score, load_weights, load_caps, load_preset

logger = logging.getLogger(__name__)


def _in_capped_regime(c: ActivityCounters) -> bool:
    has_pr = c.pr_feature_bug > 0 or c.pr_doc > 0 or c.pr_typo > 0
    return has_pr and (c.total_pr > 1 or c.total_issue > 1)


class ScoringEngine:
    """
    Pure, deterministic scorer. Weights and cap multipliers are injected so tests and presets can override them.
    """
    def __init__(self, weights: Optional[Dict[str, int]] = None, doc_cap: int = DEFAULT_DOC_CAP, issue_cap: int = DEFAULT_ISSUE_CAP):
        self.weights = dict(DEFAULT_WEIGHTS)
        if weights:
            self.weights.update(weights)
        self.doc_cap = doc_cap
        self.issue_cap = issue_cap

    @classmethod
    def from_config(cls, path: Optional[str] = None, preset: Optional[str] = None) -> 'ScoringEngine':
        """Build an engine from the YAML config (and optional preset)."""
        weights = load_preset(preset, path) if preset else load_weights(path)
        doc_cap, issue_cap = load_caps(path)
        return cls(weights=weights, doc_cap=doc_cap, issue_cap=issue_cap)

    def adjusted_counts(self, counters: ActivityCounters) -> ActivityCounters:
        """Apply the diminishing-returns caps and return the counts actually scored."""
        if counters.total_pr == 0 and counters.total_issue == 0:
            return ActivityCounters()
        if not _in_capped_regime(counters):
            return counters.copy()

        pr_fb = counters.pr_feature_bug
        backing = 1 if pr_fb == 0 and counters.pr_doc > 0 else pr_fb
        pr_doc = min(counters.pr_doc, self.doc_cap * backing)
        pr_typo = min(counters.pr_typo, self.doc_cap * backing)
        valid_pr = backing + pr_doc + pr_typo

        valid_issue = min(counters.total_issue, self.issue_cap * valid_pr)
        issue_fb = min(counters.issue_feature_bug, valid_issue)
        issue_doc = valid_issue - issue_fb

        # feature/bug PRs are never capped
        return ActivityCounters(pr_fb, pr_doc, pr_typo, issue_fb, issue_doc)

    def score(self, counters: ActivityCounters, identity: str = '') -> ParticipantScore:
        adjusted = self.adjusted_counts(counters)
        counts = adjusted.as_dict()
        category = {k: counts[k] * self.weights[k] for k in counts}
        total = compute_weighted_score(counts, self.weights)
        if adjusted != counters:
            logger.debug("Capped %s: %r -> %r", identity or '<anonymous>', counters, adjusted)
        return ParticipantScore(
            identity,
            category['pr_feature_bug'],
            category['pr_doc'],
            category['pr_typo'],
            category['issue_feature_bug'],
            category['issue_doc'],
            total,
        )

    def score_repository(self, participants: Dict[str, ActivityCounters]) -> List[ParticipantScore]:
        """Score every participant of one repository, in the ledger's order."""
        return [self.score(counters, identity) for identity, counters in participants.items()]

    def score_ledger(self, ledger) -> Dict[str, List[ParticipantScore]]:
        """Score each repository key of a ParticipantLedger, including 'total' when present."""
        return {repo_key: self.score_repository(participants) for repo_key, participants in ledger.items()}


def score_ledger(ledger, engine: Optional[ScoringEngine] = None) -> Dict[str, List[ParticipantScore]]:
    return (engine or ScoringEngine()).score_ledger(ledger)
