"""
Data models for raw issue/PR events, per-participant activity counters and derived scores.
"""

from typing import List, Dict, Optional, Any, Tuple

KIND_PR = 'pr'
KIND_ISSUE = 'issue'

CATEGORY_FEATURE_BUG = 'feature_bug'
CATEGORY_DOC = 'doc'
CATEGORY_TYPO = 'typo'

# counter field names, in table/CSV column order
COUNTER_FIELDS = ('pr_feature_bug', 'pr_doc', 'pr_typo', 'issue_feature_bug', 'issue_doc')


class RawEvent:
    """
    One issue-or-PR row as returned by the fetch collaborator.
    Only the first label is kept; state_reason is None for open issues.
    """
    def __init__(self, identity: str, is_pull_request: bool, merged: bool = False, state_reason: Optional[str] = None, label: Optional[str] = None):
        self.identity = identity
        self.is_pull_request = is_pull_request
        self.merged = merged
        self.state_reason = state_reason  # completed / reopened / not_planned / None
        self.label = label

    def __repr__(self):
        kind = 'PR' if self.is_pull_request else 'Issue'
        return f"RawEvent({self.identity!r}, {kind}, merged={self.merged}, state_reason={self.state_reason!r}, label={self.label!r})"


class ClassifiedActivity:
    """
    Result of classifying a RawEvent: who did it, whether it was a PR or issue, and its category.
    """
    def __init__(self, identity: str, kind: str, category: str):
        self.identity = identity
        self.kind = kind
        self.category = category

    @property
    def field(self) -> str:
        """Name of the ActivityCounters field this activity increments."""
        return f"{self.kind}_{self.category}"

    def __eq__(self, other):
        if not isinstance(other, ClassifiedActivity):
            return NotImplemented
        return (self.identity, self.kind, self.category) == (other.identity, other.kind, other.category)

    def __repr__(self):
        return f"ClassifiedActivity({self.identity!r}, {self.kind!r}, {self.category!r})"


class ActivityCounters:
    """
    Raw activity counts for one participant in one repository.
    """
    def __init__(self, pr_feature_bug: int = 0, pr_doc: int = 0, pr_typo: int = 0, issue_feature_bug: int = 0, issue_doc: int = 0):
        self.pr_feature_bug = pr_feature_bug
        self.pr_doc = pr_doc
        self.pr_typo = pr_typo
        self.issue_feature_bug = issue_feature_bug
        self.issue_doc = issue_doc

    @property
    def total_pr(self) -> int:
        return self.pr_feature_bug + self.pr_doc + self.pr_typo

    @property
    def total_issue(self) -> int:
        return self.issue_feature_bug + self.issue_doc

    def increment(self, classified: ClassifiedActivity):
        field = classified.field
        if field not in COUNTER_FIELDS:
            raise ValueError(f"No counter for activity {classified!r}")
        setattr(self, field, getattr(self, field) + 1)

    def copy(self) -> 'ActivityCounters':
        return ActivityCounters(**self.as_dict())

    def as_dict(self) -> Dict[str, int]:
        return {f: getattr(self, f) for f in COUNTER_FIELDS}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ActivityCounters':
        return cls(**{f: int(data.get(f, 0) or 0) for f in COUNTER_FIELDS})

    def __add__(self, other: 'ActivityCounters') -> 'ActivityCounters':
        if not isinstance(other, ActivityCounters):
            return NotImplemented
        return ActivityCounters(**{f: getattr(self, f) + getattr(other, f) for f in COUNTER_FIELDS})

    def __eq__(self, other):
        if not isinstance(other, ActivityCounters):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __repr__(self):
        fields = ', '.join(f"{f}={getattr(self, f)}" for f in COUNTER_FIELDS)
        return f"ActivityCounters({fields})"


class ParticipantScore:
    """
    Weighted category scores for one participant, derived from a single ActivityCounters value.
    """
    def __init__(self, identity: str, pr_feature_bug: int, pr_doc: int, pr_typo: int, issue_feature_bug: int, issue_doc: int, total: int):
        self.identity = identity
        self.pr_feature_bug = pr_feature_bug
        self.pr_doc = pr_doc
        self.pr_typo = pr_typo
        self.issue_feature_bug = issue_feature_bug
        self.issue_doc = issue_doc
        self.total = total

    def category_scores(self) -> Dict[str, int]:
        return {f: getattr(self, f) for f in COUNTER_FIELDS}

    def as_row(self) -> Tuple[str, int, int, int, int, int, int]:
        return (self.identity, self.pr_feature_bug, self.pr_doc, self.pr_typo, self.issue_feature_bug, self.issue_doc, self.total)

    def __eq__(self, other):
        if not isinstance(other, ParticipantScore):
            return NotImplemented
        return self.as_row() == other.as_row()

    def __repr__(self):
        return f"ParticipantScore{self.as_row()!r}"


class RankedEntry:
    """
    A participant's position on a repository scoreboard.
    """
    def __init__(self, rank: int, score: ParticipantScore, participation_rate: float, ratios: Dict[str, float]):
        self.rank = rank
        self.score = score
        self.participation_rate = participation_rate  # percent of the repo's summed total, 2 dp
        self.ratios = ratios  # category score as percent of this participant's total, 2 dp

    @property
    def identity(self) -> str:
        return self.score.identity

    @property
    def total(self) -> int:
        return self.score.total


class RepoScoreboard:
    """
    Ranked participants of one repository (or the synthetic 'total' key) with summary statistics.
    average/minimum/maximum are None when the repository has no participants.
    """
    def __init__(self, repo_key: str, entries: List[RankedEntry], total_score: int, average: Optional[float], minimum: Optional[int], maximum: Optional[int]):
        self.repo_key = repo_key
        self.entries = entries
        self.total_score = total_score
        self.average = average
        self.minimum = minimum
        self.maximum = maximum

    def __iter__(self):
        return iter(self.entries)

    def __len__(self):
        return len(self.entries)

    def ranks(self) -> List[int]:
        return [e.rank for e in self.entries]
