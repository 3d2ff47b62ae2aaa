"""
test_scoring.py

Unit tests for the per-commit heuristic scorers in scoring.py and the
point tables in scoring_policy.py.

The band boundaries are asserted exactly: these tables are fixed constants,
so any change to them should make a test fail on purpose.
"""

import unittest

from models import Commit, CommitStats
from scoring import (
    commit_score,
    message_quality_score,
    score_commits,
    size_score,
    weighted_round,
)
from scoring_policy import DEFAULT_POLICY, tier_points


def _commit(sha="a" * 40, message="", additions=0, deletions=0, files=0, total=None):
    if total is None:
        total = additions + deletions
    return Commit(sha=sha, message=message, stats=CommitStats(additions, deletions, total, files))


class TestMessageQuality(unittest.TestCase):

    def test_end_to_end_conventional_example(self):
        """A recognized type + scope, in-band length, imperative verb -> 100."""
        mq = message_quality_score("feat(auth): add login flow")
        self.assertEqual(mq.convention, 40)
        self.assertEqual(mq.length, 30)
        self.assertEqual(mq.imperative_mood, 30)
        self.assertEqual(mq.total, 100)
        self.assertTrue(mq.is_conventional)
        self.assertEqual(mq.commit_type, "feat")

    def test_unknown_type_gets_partial_convention_credit(self):
        mq = message_quality_score("wip(core): add thing")
        self.assertEqual(mq.convention, 20)
        self.assertFalse(mq.is_conventional)
        self.assertIsNone(mq.commit_type)

    def test_prefix_alone_counts_as_conventional(self):
        for subject in ("feat:", "fix(parser):"):
            with self.subTest(subject=subject):
                mq = message_quality_score(subject)
                self.assertEqual(mq.convention, 40)
                self.assertTrue(mq.is_conventional)

    def test_no_convention(self):
        mq = message_quality_score("update readme")
        self.assertEqual(mq.convention, 0)
        self.assertEqual(mq.imperative_mood, 30)

    def test_breaking_change_marker_still_conventional(self):
        mq = message_quality_score("feat!: drop python 3.8 support")
        self.assertTrue(mq.is_conventional)
        self.assertEqual(mq.imperative_mood, 30)

    def test_length_bands(self):
        expected = {
            0: 5, 4: 5,
            5: 15, 9: 15,
            10: 30, 72: 30,
            73: 20, 100: 20,
            101: 10, 250: 10,
        }
        for n, points in expected.items():
            with self.subTest(length=n):
                self.assertEqual(tier_points(n, DEFAULT_POLICY.length_tiers), points)
                self.assertEqual(message_quality_score("x" * n).length, points)

    def test_mood_variants(self):
        cases = {
            "Adds support for tokens": 15,       # third person
            "feat: updates the docs": 15,        # prefix stripped first
            "added a new parser": 10,            # past tense
            "refactoring the loader": 10,        # gerund
            "Parser cleanup for later": 15,      # capitalized and long enough
            "Short one": 5,                      # capitalized but too short
            "lowercase words": 5,
        }
        for message, points in cases.items():
            with self.subTest(message=message):
                self.assertEqual(message_quality_score(message).imperative_mood, points)

    def test_only_subject_is_scored(self):
        long_body = "fix: handle empty input\n\n" + ("details " * 40)
        self.assertEqual(message_quality_score(long_body).length, 30)

    def test_missing_message_never_raises(self):
        mq = message_quality_score(None)
        self.assertEqual(mq.convention, 0)
        self.assertEqual(mq.length, 5)
        self.assertEqual(mq.imperative_mood, 5)
        self.assertEqual(mq.total, 10)


class TestSizeScore(unittest.TestCase):

    def test_line_bands(self):
        expected = {0: 25, 1: 50, 300: 50, 301: 40, 500: 40, 501: 25, 1000: 25, 1001: 10}
        for total, points in expected.items():
            with self.subTest(total=total):
                self.assertEqual(size_score(CommitStats(total=total, files_changed=1)).lines, points)

    def test_file_bands(self):
        expected = {0: 25, 1: 50, 10: 50, 11: 40, 20: 40, 21: 25, 50: 25, 51: 10}
        for files, points in expected.items():
            with self.subTest(files=files):
                self.assertEqual(size_score(CommitStats(total=10, files_changed=files)).files, points)

    def test_giant_and_tiny_flags(self):
        self.assertTrue(size_score(CommitStats(total=1001)).is_giant)
        self.assertFalse(size_score(CommitStats(total=1000)).is_giant)
        self.assertTrue(size_score(CommitStats(total=4)).is_tiny)
        self.assertFalse(size_score(CommitStats(total=5)).is_tiny)

    def test_empty_diff_is_neutral(self):
        sz = size_score(CommitStats())
        self.assertEqual(sz.total, 50)


class TestCommitScore(unittest.TestCase):

    def test_end_to_end_example(self):
        c = _commit(message="feat(auth): add login flow", additions=50, deletions=10, files=3)
        score = commit_score(c)
        self.assertEqual(score.message_quality.total, 100)
        self.assertEqual(score.size_score.total, 100)
        self.assertEqual(score.overall, 100)

    def test_tiny_fix_example(self):
        c = _commit(message="fix", additions=1, deletions=1, files=1)
        score = commit_score(c)
        self.assertTrue(score.size_score.is_tiny)

    def test_weighted_sum_is_exact(self):
        # message 60 (length 30 + mood 30), size 80 (40 + 40)
        c = _commit(message="update readme", total=400, files=15)
        score = commit_score(c)
        self.assertEqual(score.message_quality.total, 60)
        self.assertEqual(score.size_score.total, 80)
        self.assertEqual(score.overall, 68)

    def test_weighted_round_half_up(self):
        self.assertEqual(weighted_round([(50, 1)]), 1)     # 0.5 -> 1
        self.assertEqual(weighted_round([(50, 3)]), 2)     # 1.5 -> 2
        self.assertEqual(weighted_round([(30, 5)]), 2)     # 1.5 -> 2
        self.assertEqual(weighted_round([(60, 100), (40, 100)]), 100)

    def test_ranges_and_formula_hold_for_many_commits(self):
        messages = [
            "", "x", "fix", "WIP", "feat: add", "Merge branch 'main' into dev",
            "docs(readme): update installation steps for windows users",
            "y" * 300, "chore(deps): bump requests from 2.31 to 2.32",
        ]
        totals = [0, 1, 4, 5, 299, 301, 999, 1001, 50000]
        for m in messages:
            for t in totals:
                c = _commit(message=m, total=t, files=t // 10)
                s = commit_score(c)
                with self.subTest(message=m, total=t):
                    self.assertTrue(0 <= s.message_quality.total <= 100)
                    self.assertTrue(0 <= s.size_score.total <= 100)
                    self.assertTrue(0 <= s.overall <= 100)
                    expected = (60 * s.message_quality.total + 40 * s.size_score.total + 50) // 100
                    self.assertEqual(s.overall, expected)

    def test_rescoring_is_idempotent(self):
        c = _commit(message="refactor: split parser module", total=120, files=4)
        self.assertEqual(commit_score(c), commit_score(c))

    def test_score_commits_keyed_by_sha(self):
        commits = [_commit(sha="1" * 40, message="fix: a"), _commit(sha="2" * 40, message="docs: b")]
        scores = score_commits(commits)
        self.assertEqual(set(scores), {"1" * 40, "2" * 40})
        self.assertEqual(scores["1" * 40].sha, "1" * 40)


if __name__ == "__main__":
    unittest.main()
