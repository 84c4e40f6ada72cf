"""
Repository ranking: order ParticipantScores, assign tie-sharing ranks and compute participation rates.
"""
from typing import Dict, List, Iterable
from normalize.models import ParticipantScore, RankedEntry, RepoScoreboard, COUNTER_FIELDS


def percent(part: int, whole: int) -> float:
    """part / whole as a percentage rounded to 2 decimals; 0.0 when whole is 0."""
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 2)


def sort_scores(scores: Iterable[ParticipantScore]) -> List[ParticipantScore]:
    """Descending total; equal totals ordered by identity."""
    return sorted(scores, key=lambda s: (-s.total, s.identity))


def assign_ranks(sorted_scores: List[ParticipantScore]) -> List[int]:
    """Tied totals share the earlier rank; the next distinct total resumes at its position (1, 1, 3)."""
    ranks: List[int] = []
    prev_total = None
    for index, s in enumerate(sorted_scores):
        if ranks and s.total == prev_total:
            ranks.append(ranks[-1])
        else:
            ranks.append(index + 1)
        prev_total = s.total
    return ranks


class RepoRanker:
    def rank(self, scores: Iterable[ParticipantScore], repo_key: str = '') -> RepoScoreboard:
        ordered = sort_scores(scores)
        ranks = assign_ranks(ordered)
        repo_total = sum(s.total for s in ordered)

        entries = []
        for rank, s in zip(ranks, ordered):
            ratios = {f: percent(getattr(s, f), s.total) for f in COUNTER_FIELDS}
            entries.append(RankedEntry(rank, s, percent(s.total, repo_total), ratios))

        if ordered:
            totals = [s.total for s in ordered]
            average = repo_total / len(totals)
            minimum, maximum = min(totals), max(totals)
        else:
            average = minimum = maximum = None
        return RepoScoreboard(repo_key, entries, repo_total, average, minimum, maximum)

    def rank_all(self, scores_by_repo: Dict[str, List[ParticipantScore]]) -> Dict[str, RepoScoreboard]:
        return {repo_key: self.rank(scores, repo_key) for repo_key, scores in scores_by_repo.items()}
