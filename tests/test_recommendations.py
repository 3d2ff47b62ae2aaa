"""
test_recommendations.py

Unit tests for the rule-based advice in recommendations.py.
"""

import unittest

from models import AntiPatternSummary
from recommendations import MAX_RECOMMENDATIONS, generate_recommendations


def _summary(total=10, message=80, size=80):
    return {"total_commits": total, "average_message_score": message, "average_size_score": size}


class TestRecommendations(unittest.TestCase):

    def test_healthy_history(self):
        recs = generate_recommendations(_summary(), AntiPatternSummary())
        self.assertEqual([r.id for r in recs], ["keep-up-the-good-work"])

    def test_weak_messages_and_large_commits(self):
        recs = generate_recommendations(_summary(message=59, size=69), AntiPatternSummary())
        self.assertEqual([r.id for r in recs], ["adopt-conventional-commits", "make-smaller-atomic-commits"])
        self.assertTrue(all(r.priority == "high" for r in recs))

    def test_thresholds_are_strict(self):
        recs = generate_recommendations(_summary(message=60, size=70), AntiPatternSummary(wip_commits=1, merge_commits=3))
        # 1/10 WIP and 3/10 merges are exactly at the ceilings
        self.assertEqual([r.id for r in recs], ["keep-up-the-good-work"])

    def test_capped_and_sorted_by_priority(self):
        anti = AntiPatternSummary(wip_commits=5, merge_commits=5)
        recs = generate_recommendations(_summary(message=10, size=10), anti)
        self.assertEqual(len(recs), MAX_RECOMMENDATIONS)
        self.assertEqual([r.priority for r in recs], ["high", "high", "medium"])
        self.assertNotIn("prefer-rebasing", [r.id for r in recs])

    def test_merge_heavy_history(self):
        recs = generate_recommendations(_summary(), AntiPatternSummary(merge_commits=4))
        self.assertEqual([r.id for r in recs], ["prefer-rebasing"])

    def test_empty_history(self):
        self.assertEqual(generate_recommendations(_summary(total=0), AntiPatternSummary()), ())

    def test_same_input_same_output(self):
        anti = AntiPatternSummary(wip_commits=2)
        self.assertEqual(generate_recommendations(_summary(), anti), generate_recommendations(_summary(), anti))


if __name__ == "__main__":
    unittest.main()
