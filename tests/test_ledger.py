import unittest

from normalize.models import ActivityCounters, ClassifiedActivity
from storage.ledger import ParticipantLedger, TOTAL_KEY


class TestParticipantLedger(unittest.TestCase):
    def _ledger(self):
        ledger = ParticipantLedger()
        ledger.add_repository('alpha', {
            'alice': ActivityCounters(pr_feature_bug=1, issue_doc=2),
            'bob': ActivityCounters(pr_doc=1),
        })
        ledger.add_repository('beta', {
            'alice': ActivityCounters(pr_feature_bug=2, pr_typo=1),
            'carol': ActivityCounters(issue_feature_bug=1),
        })
        return ledger

    def test_total_is_sum_of_repositories(self):
        ledger = self._ledger()
        self.assertEqual(ledger.repo_keys(), ['alpha', 'beta', TOTAL_KEY])
        total = ledger.repository(TOTAL_KEY)
        self.assertEqual(list(total), ['alice', 'bob', 'carol'])
        self.assertEqual(total['alice'], ActivityCounters(pr_feature_bug=3, pr_typo=1, issue_doc=2))
        for identity, counters in total.items():
            expected = ActivityCounters()
            for key in ('alpha', 'beta'):
                expected = expected + (ledger.get(key, identity) or ActivityCounters())
            self.assertEqual(counters, expected)

    def test_single_repository_has_no_total(self):
        ledger = ParticipantLedger()
        ledger.register('only')
        self.assertEqual(ledger.repo_keys(), ['only'])
        self.assertNotIn(TOTAL_KEY, ledger)
        self.assertEqual(ledger.repository('only'), {})

    def test_total_is_read_only(self):
        ledger = self._ledger()
        with self.assertRaises(ValueError):
            ledger.add_repository(TOTAL_KEY, {})
        with self.assertRaises(ValueError):
            ledger.record(TOTAL_KEY, 'alice', ClassifiedActivity('alice', 'pr', 'doc'))

    def test_record_and_snapshots_are_copies(self):
        ledger = ParticipantLedger()
        ledger.record('alpha', 'alice', ClassifiedActivity('alice', 'pr', 'doc'))
        ledger.record('alpha', 'alice', ClassifiedActivity('alice', 'pr', 'doc'))
        snapshot = ledger.repository('alpha')
        snapshot['alice'].pr_doc = 99
        self.assertEqual(ledger.get('alpha', 'alice').pr_doc, 2)

    def test_discard_updates_total(self):
        ledger = self._ledger()
        ledger.discard('beta')
        self.assertEqual(ledger.repo_keys(), ['alpha'])
        self.assertIsNone(ledger.get('beta', 'alice'))

    def test_dict_roundtrip_skips_total(self):
        ledger = self._ledger()
        data = ledger.as_dict()
        self.assertNotIn(TOTAL_KEY, data)
        data[TOTAL_KEY] = {'alice': {'pr_feature_bug': 100}}
        restored = ParticipantLedger.from_dict(data)
        self.assertEqual(restored.repository(TOTAL_KEY), ledger.repository(TOTAL_KEY))


if __name__ == '__main__':
    unittest.main()
