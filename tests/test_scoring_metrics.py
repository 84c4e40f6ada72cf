import unittest

from normalize.models import ActivityCounters, ParticipantScore
from scoring.metrics import ScoringEngine, score_ledger
from storage.ledger import ParticipantLedger


class TestScoringEngine(unittest.TestCase):
    def setUp(self):
        self.engine = ScoringEngine()

    def test_no_activity_scores_zero(self):
        s = self.engine.score(ActivityCounters(), 'nobody')
        self.assertEqual(s.total, 0)
        self.assertEqual(s.category_scores(), dict.fromkeys(s.category_scores(), 0))

    def test_single_doc_pr_is_uncapped(self):
        self.assertEqual(self.engine.score(ActivityCounters(pr_doc=1)).total, 2)

    def test_single_pr_and_single_issue_uncapped(self):
        s = self.engine.score(ActivityCounters(pr_feature_bug=1, issue_doc=1), 'alice')
        self.assertEqual(s, ParticipantScore('alice', 3, 0, 0, 0, 1, 4))

    def test_doc_prs_capped_by_feature_bug_prs(self):
        s = self.engine.score(ActivityCounters(pr_feature_bug=1, pr_doc=5))
        self.assertEqual(s.pr_doc, 6)
        self.assertEqual(s.total, 9)

    def test_typo_prs_capped_separately(self):
        adjusted = self.engine.adjusted_counts(ActivityCounters(pr_feature_bug=1, pr_doc=4, pr_typo=4))
        self.assertEqual(adjusted, ActivityCounters(pr_feature_bug=1, pr_doc=3, pr_typo=3))

    def test_issues_capped_by_valid_prs(self):
        s = self.engine.score(ActivityCounters(pr_feature_bug=2, issue_feature_bug=10))
        # 2 valid PRs allow 8 issues
        self.assertEqual(s.issue_feature_bug, 16)
        self.assertEqual(s.total, 22)

    def test_issue_cap_fills_feature_bug_first(self):
        adjusted = self.engine.adjusted_counts(ActivityCounters(pr_feature_bug=1, issue_feature_bug=3, issue_doc=3))
        self.assertEqual(adjusted.issue_feature_bug, 3)
        self.assertEqual(adjusted.issue_doc, 1)

    def test_only_issues_are_uncapped(self):
        s = self.engine.score(ActivityCounters(issue_feature_bug=5, issue_doc=2))
        self.assertEqual(s.total, 12)

    def test_doc_only_participant_backed_by_one(self):
        adjusted = self.engine.adjusted_counts(ActivityCounters(pr_doc=5, issue_doc=20))
        self.assertEqual(adjusted.pr_feature_bug, 0)
        self.assertEqual(adjusted.pr_doc, 3)
        # valid PRs = 1 (backing) + 3 doc
        self.assertEqual(adjusted.issue_doc, 16)

    def test_typo_without_feature_bug_counts_nothing(self):
        s = self.engine.score(ActivityCounters(pr_typo=3, issue_feature_bug=2))
        self.assertEqual(s.total, 0)

    def test_feature_bug_prs_never_capped(self):
        self.assertEqual(self.engine.score(ActivityCounters(pr_feature_bug=50)).total, 150)

    def test_custom_weights_and_caps(self):
        engine = ScoringEngine(weights={'pr_feature_bug': 10}, doc_cap=1, issue_cap=1)
        s = engine.score(ActivityCounters(pr_feature_bug=1, pr_doc=3, issue_doc=5))
        # doc capped at 1, issues at 1 x (1 + 1)
        self.assertEqual(s.total, 10 + 2 + 2)

    def test_score_ledger_includes_total(self):
        ledger = ParticipantLedger()
        ledger.add_repository('a', {'alice': ActivityCounters(pr_feature_bug=1)})
        ledger.add_repository('b', {'alice': ActivityCounters(pr_doc=1), 'bob': ActivityCounters(issue_doc=1)})
        scores = score_ledger(ledger)
        self.assertEqual(list(scores), ['a', 'b', 'total'])
        total = {s.identity: s.total for s in scores['total']}
        # alice's combined counts (1 feature/bug + 1 doc PR) are scored, not the sum of per-repo scores
        self.assertEqual(total, {'alice': 5, 'bob': 1})


if __name__ == '__main__':
    unittest.main()
