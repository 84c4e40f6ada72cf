"""
Participant ledger: per-repository mapping of participant identity -> ActivityCounters.
The cross-repository 'total' entry is never stored; it is folded from the real repositories on read.
"""
import threading
from typing import Dict, List, Optional, Any, Iterator, Tuple
from normalize.models import ActivityCounters, ClassifiedActivity

TOTAL_KEY = 'total'


class ParticipantLedger:
    def __init__(self):
        # insertion ordered: repositories in registration order, participants in first-seen order
        self._repos: Dict[str, Dict[str, ActivityCounters]] = {}
        self._lock = threading.RLock()

    def _check_key(self, repo_key: str):
        if repo_key == TOTAL_KEY:
            raise ValueError(f"'{TOTAL_KEY}' is derived and cannot be written to")

    def register(self, repo_key: str):
        """Make repo_key known even if no participant is ever recorded for it."""
        self._check_key(repo_key)
        with self._lock:
            self._repos.setdefault(repo_key, {})

    def record(self, repo_key: str, identity: str, classified: ClassifiedActivity):
        """Increment the counter matching classified for (repo_key, identity)."""
        self._check_key(repo_key)
        with self._lock:
            participants = self._repos.setdefault(repo_key, {})
            counters = participants.get(identity)
            if counters is None:
                counters = participants[identity] = ActivityCounters()
            counters.increment(classified)

    def add_repository(self, repo_key: str, participants: Dict[str, ActivityCounters]):
        """Install a fully collected repository, replacing anything recorded under the same key."""
        self._check_key(repo_key)
        with self._lock:
            self._repos[repo_key] = {identity: c.copy() for identity, c in participants.items()}

    def discard(self, repo_key: str):
        with self._lock:
            self._repos.pop(repo_key, None)

    @property
    def is_multi_repo(self) -> bool:
        return len(self._repos) > 1

    def repo_keys(self) -> List[str]:
        """Real repositories in registration order, followed by 'total' when more than one is present."""
        with self._lock:
            keys = list(self._repos.keys())
        if len(keys) > 1:
            keys.append(TOTAL_KEY)
        return keys

    def repository(self, repo_key: str) -> Dict[str, ActivityCounters]:
        """Return a snapshot (copies) of one repository's counters, or the folded total."""
        if repo_key == TOTAL_KEY:
            return self.total()
        with self._lock:
            if repo_key not in self._repos:
                raise KeyError(repo_key)
            return {identity: c.copy() for identity, c in self._repos[repo_key].items()}

    def total(self) -> Dict[str, ActivityCounters]:
        """Element-wise sum of every participant's counters across all real repositories."""
        totals: Dict[str, ActivityCounters] = {}
        with self._lock:
            for participants in self._repos.values():
                for identity, counters in participants.items():
                    totals[identity] = totals.get(identity, ActivityCounters()) + counters
        return totals

    def get(self, repo_key: str, identity: str) -> Optional[ActivityCounters]:
        try:
            return self.repository(repo_key).get(identity)
        except KeyError:
            return None

    def items(self) -> Iterator[Tuple[str, Dict[str, ActivityCounters]]]:
        for key in self.repo_keys():
            yield key, self.repository(key)

    def __contains__(self, repo_key: str) -> bool:
        if repo_key == TOTAL_KEY:
            return self.is_multi_repo
        with self._lock:
            return repo_key in self._repos

    def as_dict(self) -> Dict[str, Dict[str, Dict[str, int]]]:
        """Serializable form of the real repositories (the total is recomputed on load)."""
        with self._lock:
            return {repo: {identity: c.as_dict() for identity, c in participants.items()} for repo, participants in self._repos.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ParticipantLedger':
        ledger = cls()
        for repo_key, participants in (data or {}).items():
            if repo_key == TOTAL_KEY:
                continue
            ledger.add_repository(repo_key, {identity: ActivityCounters.from_dict(c) for identity, c in (participants or {}).items()})
        return ledger
