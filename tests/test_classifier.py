import pytest

from normalize.classifier import ActivityClassifier
from normalize.models import RawEvent, ActivityCounters, ClassifiedActivity


def _pr(identity='alice', merged=True, label='bug'):
    return RawEvent(identity, is_pull_request=True, merged=merged, label=label)


def _issue(identity='alice', state_reason='completed', label='bug'):
    return RawEvent(identity, is_pull_request=False, state_reason=state_reason, label=label)


@pytest.mark.parametrize('label, expected', [
    ('bug', 'feature_bug'),
    ('enhancement', 'feature_bug'),
    ('documentation', 'doc'),
    ('typo', 'typo'),
])
def test_merged_pr_categories(label, expected):
    result = ActivityClassifier().classify(_pr(label=label))
    assert result == ClassifiedActivity('alice', 'pr', expected)


@pytest.mark.parametrize('label, expected', [
    ('bug', 'feature_bug'),
    ('documentation', 'doc'),
    # issues have no typo category
    ('typo', 'feature_bug'),
])
def test_issue_categories(label, expected):
    assert ActivityClassifier().classify(_issue(label=label)).field == f"issue_{expected}"


@pytest.mark.parametrize('state_reason', ['completed', 'reopened', None])
def test_counted_issue_states(state_reason):
    assert ActivityClassifier().classify(_issue(state_reason=state_reason)) is not None


def test_not_planned_issue_ignored():
    assert ActivityClassifier().classify(_issue(state_reason='not_planned')) is None


def test_unmerged_or_unlabeled_pr_ignored():
    c = ActivityClassifier()
    assert c.classify(_pr(merged=False)) is None
    assert c.classify(_pr(label=None)) is None
    assert c.classify(_issue(label=None)) is None


def test_excluded_users_ignored():
    c = ActivityClassifier(exclude_users=['bot', 'staff'])
    assert c.classify(_pr(identity='bot')) is None
    assert c.classify(_issue(identity='staff')) is None
    assert c.classify(_pr(identity='alice')) is not None


def test_malformed_events_ignored():
    c = ActivityClassifier()
    assert c.classify(None) is None
    assert c.classify(RawEvent('', is_pull_request=True, merged=True, label='bug')) is None


def _tally(classifier, events):
    counters = ActivityCounters()
    for ev in events:
        classified = classifier.classify(ev)
        if classified:
            counters.increment(classified)
    return counters


def test_classifying_twice_doubles_counts():
    events = [_pr(), _pr(label='documentation'), _issue(label='documentation'), _issue(state_reason='not_planned')]
    c = ActivityClassifier()
    once = _tally(c, events)
    assert once == ActivityCounters(pr_feature_bug=1, pr_doc=1, issue_doc=1)
    assert _tally(c, events + events) == once + once
