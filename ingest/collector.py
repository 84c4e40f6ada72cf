"""
Contribution collector: pages through each repository's issues/PRs via a fetch collaborator,
classifies every item and builds a ParticipantLedger.

Repositories are collected concurrently, one worker per repository; pages within a repository
are fetched strictly in order until a short page is seen. A repository's counts only reach the
ledger once its collection finished, so a failed or cancelled repository leaves nothing behind.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Tuple, Iterable
from errors import CollectionError, CollectionCancelled, ConfigurationError
from normalize.classifier import ActivityClassifier
from normalize.models import ActivityCounters, COUNTER_FIELDS
from normalize.util import parse_repo_identifier
from storage.ledger import ParticipantLedger, TOTAL_KEY

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_WORKERS = 4


def plan_repositories(repo_identifiers: Iterable[str]) -> List[Tuple[str, str]]:
    """Validate 'owner/repo' arguments and return (identifier, repo_key) pairs in input order."""
    planned: List[Tuple[str, str]] = []
    seen = set()
    for ident in repo_identifiers or []:
        _, repo = parse_repo_identifier(ident)
        if repo == TOTAL_KEY:
            raise ConfigurationError(f"Repository name '{TOTAL_KEY}' is reserved for the cross-repository total")
        if repo in seen:
            raise ConfigurationError(f"Repository name '{repo}' given more than once")
        seen.add(repo)
        planned.append((ident, repo))
    if not planned:
        raise ConfigurationError("At least one repository (owner/repo) is required")
    return planned


class ContributionCollector:
    def __init__(self, fetcher, classifier: Optional[ActivityClassifier] = None, page_size: int = DEFAULT_PAGE_SIZE, max_workers: int = DEFAULT_MAX_WORKERS):
        """
        Parameters:
            fetcher: object exposing fetch_issue_page(owner, repo, page, per_page).
            classifier (ActivityClassifier): classifier carrying the exclusion list.
            page_size (int): items requested per page; a shorter page ends the repository.
            max_workers (int): repositories collected at once.
        """
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.fetcher = fetcher
        self.classifier = classifier or ActivityClassifier()
        self.page_size = page_size
        self.max_workers = max(1, max_workers)
        self._cancel_events: Dict[str, threading.Event] = {}

    def cancel(self, repo_identifier: Optional[str] = None):
        """Stop one repository (or all of them) at the next page boundary."""
        if repo_identifier is None:
            for ev in list(self._cancel_events.values()):
                ev.set()
        else:
            self._cancel_events.setdefault(repo_identifier, threading.Event()).set()

    def _is_cancelled(self, repo_identifier: str) -> bool:
        ev = self._cancel_events.get(repo_identifier)
        return ev is not None and ev.is_set()

    def collect_repository(self, repo_identifier: str) -> Dict[str, ActivityCounters]:
        """Collect one repository into a private participant -> counters map."""
        owner, repo = parse_repo_identifier(repo_identifier)
        participants: Dict[str, ActivityCounters] = {}
        tally = dict.fromkeys(COUNTER_FIELDS, 0)
        page = 1
        logger.info("Collecting PRs and issues for %s", repo_identifier)
        while True:
            if self._is_cancelled(repo_identifier):
                raise CollectionCancelled(f"Collection of {repo_identifier} was cancelled", repo=repo_identifier)
            try:
                events = self.fetcher.fetch_issue_page(owner, repo, page, self.page_size)
            except CollectionError as ex:
                if ex.repo is None:
                    ex.repo = repo_identifier
                raise
            logger.debug("%s page %d: %d items", repo_identifier, page, len(events))
            for event in events:
                classified = self.classifier.classify(event)
                if classified is None:
                    continue
                counters = participants.get(classified.identity)
                if counters is None:
                    counters = participants[classified.identity] = ActivityCounters()
                counters.increment(classified)
                tally[classified.field] += 1
            if len(events) < self.page_size:
                break
            page += 1
        logger.info(
            "%s done: %d feature/bug PRs, %d doc PRs, %d typo PRs, %d feature/bug issues, %d doc issues",
            repo_identifier, tally['pr_feature_bug'], tally['pr_doc'], tally['pr_typo'], tally['issue_feature_bug'], tally['issue_doc'],
        )
        return participants

    def collect(self, repo_identifiers: Iterable[str]) -> ParticipantLedger:
        """Collect every repository and return the ledger.

        The first failure (in input order) is re-raised after the remaining repositories are
        cancelled. Repositories cancelled by the caller are left out of the ledger.
        """
        planned = plan_repositories(repo_identifiers)
        # keep events registered by an earlier cancel(ident)
        for ident, _ in planned:
            self._cancel_events.setdefault(ident, threading.Event())
        results: Dict[str, Dict[str, ActivityCounters]] = {}
        errors: Dict[str, Exception] = {}

        try:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(planned)), thread_name_prefix='collect') as pool:
                futures = {pool.submit(self.collect_repository, ident): (ident, key) for ident, key in planned}
                for future in as_completed(futures):
                    ident, key = futures[future]
                    try:
                        results[key] = future.result()
                    except CollectionCancelled:
                        logger.warning("Collection of %s cancelled; its partial counts were discarded", ident)
                    except Exception as ex:
                        logger.error("Collection of %s failed: %s", ident, ex)
                        errors[ident] = ex
                        self.cancel()
        finally:
            # a cancellation only applies to the run it was issued for
            for ident, _ in planned:
                self._cancel_events.pop(ident, None)

        for ident, _ in planned:
            if ident in errors:
                raise errors[ident]
        if not results:
            raise CollectionCancelled("Collection was cancelled before any repository finished")

        ledger = ParticipantLedger()
        for _, key in planned:
            if key in results:
                ledger.add_repository(key, results[key])
        return ledger
