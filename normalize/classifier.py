"""
Activity classifier: map one RawEvent to a participant, activity kind and category, or discard it.
"""
import logging
from typing import Iterable, Optional
from normalize.models import (
    RawEvent,
    ClassifiedActivity,
    KIND_PR,
    KIND_ISSUE,
    CATEGORY_FEATURE_BUG,
    CATEGORY_DOC,
    CATEGORY_TYPO,
)

logger = logging.getLogger(__name__)

DOC_LABEL = 'documentation'
TYPO_LABEL = 'typo'

# None means the issue is still open, which counts
COUNTED_STATE_REASONS = ('completed', 'reopened', None)


class ActivityClassifier:
    """
    Stateless classifier. Excluded identities are supplied at construction.
    """
    def __init__(self, exclude_users: Optional[Iterable[str]] = None):
        self.exclude_users = frozenset(exclude_users or ())

    def is_excluded(self, identity: str) -> bool:
        return identity in self.exclude_users

    def classify(self, event: Optional[RawEvent]) -> Optional[ClassifiedActivity]:
        if event is None or not getattr(event, 'identity', None):
            logger.debug("Discarding malformed event: %r", event)
            return None
        if self.is_excluded(event.identity):
            return None
        if event.is_pull_request:
            return self._classify_pull_request(event)
        return self._classify_issue(event)

    def _classify_pull_request(self, event: RawEvent) -> Optional[ClassifiedActivity]:
        if not event.merged or not event.label:
            return None
        if event.label == DOC_LABEL:
            category = CATEGORY_DOC
        elif event.label == TYPO_LABEL:
            category = CATEGORY_TYPO
        else:
            category = CATEGORY_FEATURE_BUG
        return ClassifiedActivity(event.identity, KIND_PR, category)

    def _classify_issue(self, event: RawEvent) -> Optional[ClassifiedActivity]:
        if event.state_reason not in COUNTED_STATE_REASONS or not event.label:
            return None
        # issues have no typo category
        category = CATEGORY_DOC if event.label == DOC_LABEL else CATEGORY_FEATURE_BUG
        return ClassifiedActivity(event.identity, KIND_ISSUE, category)
