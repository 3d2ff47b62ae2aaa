"""
test_semantic.py

Unit tests for the AI enhancement layer in semantic.py.

No network calls: every provider here is a small fake object, so batching,
concurrency, timeouts and partial failures can be driven directly.
"""

import threading
import time
import unittest

from models import (
    AI_DISABLED,
    AI_FULL,
    AI_PARTIAL,
    BatchResult,
    Commit,
    CommitScore,
    CommitStats,
    ContributorScore,
    ContributorStats,
    ContributorSummary,
    ParseFailure,
    SemanticAnalysis,
    SizeScore,
    TokenUsage,
)
from scoring import commit_score, score_commits
from semantic import (
    MAX_INSIGHTS,
    ai_coverage,
    ai_status,
    enhance_commits,
    enhance_contributors,
    enhanced_commit_score,
    make_batches,
    parse_semantic_analysis,
    request_insights,
    run_semantic_analysis,
)


def _commits(n):
    return [
        Commit(sha=f"{i:040d}", message=f"feat: add feature number {i}",
               stats=CommitStats(10, 0, 10, 1))
        for i in range(n)
    ]


def _entry(intent="feature", clarity=80, completeness=70, technical=60):
    return {"intent": intent, "clarity": clarity, "completeness": completeness,
            "technical_quality": technical, "summary": "ok"}


class EchoProvider:
    """Answers every item with the same entry and fixed usage per batch."""

    def __init__(self, usage=TokenUsage(10, 5, 15), entry=None):
        self.usage = usage
        self.entry = entry or _entry()
        self.calls = []
        self._lock = threading.Lock()

    def analyze_batch(self, items):
        with self._lock:
            self.calls.append([it["sha"] for it in items])
        return BatchResult({it["sha"]: dict(self.entry) for it in items}, self.usage)


class TestParsing(unittest.TestCase):

    def test_valid_entry(self):
        parsed = parse_semantic_analysis(_entry(intent="Bugfix"))
        self.assertIsInstance(parsed, SemanticAnalysis)
        self.assertEqual(parsed.intent, "bugfix")
        self.assertEqual((parsed.clarity, parsed.completeness, parsed.technical_quality), (80, 70, 60))

    def test_camel_case_keys(self):
        raw = {"intent": "docs", "clarityScore": 90, "completenessScore": "75", "technicalQualityScore": 40}
        parsed = parse_semantic_analysis(raw)
        self.assertIsInstance(parsed, SemanticAnalysis)
        self.assertEqual(parsed.completeness, 75)

    def test_scores_are_clamped_and_rounded(self):
        parsed = parse_semantic_analysis(_entry(clarity=150, completeness=-3, technical=72.5))
        self.assertEqual(parsed.clarity, 100)
        self.assertEqual(parsed.completeness, 0)
        self.assertEqual(parsed.technical_quality, 73)

    def test_bad_entries_become_parse_failures(self):
        bad = [
            None,
            "not an object",
            {"clarity": 1, "completeness": 1, "technical_quality": 1},
            _entry(intent="celebration"),
            {"intent": "test", "clarity": 1, "completeness": 1},
            _entry(clarity="high"),
            _entry(clarity=True),
            _entry(clarity=float("nan")),
        ]
        for raw in bad:
            with self.subTest(raw=raw):
                self.assertIsInstance(parse_semantic_analysis(raw), ParseFailure)

    def test_infinite_or_oversized_scores_are_parse_failures(self):
        for raw in (_entry(clarity="inf"), _entry(completeness=float("-inf")), _entry(technical=10**400)):
            with self.subTest(raw=raw):
                self.assertIsInstance(parse_semantic_analysis(raw), ParseFailure)


class TestEnhancedScore(unittest.TestCase):

    def _score(self):
        # message 100, size 100 -> heuristic 100
        c = Commit(sha="a" * 40, message="feat(auth): add login flow", stats=CommitStats(50, 10, 60, 3))
        return commit_score(c)

    def test_weighted_blend(self):
        analysis = SemanticAnalysis("feature", clarity=80, completeness=60, technical_quality=40)
        enhanced = enhanced_commit_score(self._score(), analysis)
        # 30*100 + 25*80 + 20*60 + 20*100 + 5*40 = 8400
        self.assertEqual(enhanced.overall, 84)
        self.assertTrue(enhanced.ai_applied)

    def test_blend_rounds_half_up(self):
        base = self._score()
        low = CommitScore(sha=base.sha, message_quality=base.message_quality,
                          size_score=SizeScore(0, 0, 0), overall=5)
        analysis = SemanticAnalysis("chore", 0, 0, 0)
        # 30 * 5 = 150 -> 1.5 -> 2
        self.assertEqual(enhanced_commit_score(low, analysis).overall, 2)

    def test_fallback_keeps_heuristic(self):
        score = self._score()
        enhanced = enhanced_commit_score(score)
        self.assertEqual(enhanced.overall, score.overall)
        self.assertEqual((enhanced.clarity_score, enhanced.completeness_score, enhanced.technical_score), (0, 0, 0))
        self.assertEqual(enhanced.size_score, score.size_score.total)
        self.assertFalse(enhanced.ai_applied)

    def test_enhance_commits_none_vs_empty(self):
        commits = _commits(2)
        scores = score_commits(commits)

        plain = enhance_commits(commits, scores)
        self.assertTrue(all(sc.enhanced is None for sc in plain))

        fallback = enhance_commits(commits, scores, analyses={})
        self.assertTrue(all(sc.enhanced is not None and not sc.enhanced.ai_applied for sc in fallback))
        self.assertEqual([sc.effective_score for sc in fallback], [sc.effective_score for sc in plain])


class TestBatching(unittest.TestCase):

    def test_make_batches(self):
        self.assertEqual([len(b) for b in make_batches(_commits(45))], [20, 20, 5])
        self.assertEqual(make_batches([]), [])

    def test_full_run_sums_usage(self):
        commits = _commits(45)
        provider = EchoProvider()
        run = run_semantic_analysis(commits, provider)

        self.assertEqual(len(run.analyses), 45)
        self.assertEqual(run.batches, 3)
        self.assertEqual(run.failed_batches, 0)
        self.assertEqual(run.usage, TokenUsage(30, 15, 45))
        self.assertEqual(sorted(len(c) for c in provider.calls), [5, 20, 20])

    def test_no_more_than_three_batches_in_flight(self):
        lock = threading.Lock()
        state = {"now": 0, "peak": 0}

        class SlowProvider:
            def analyze_batch(self, items):
                with lock:
                    state["now"] += 1
                    state["peak"] = max(state["peak"], state["now"])
                time.sleep(0.05)
                with lock:
                    state["now"] -= 1
                return {it["sha"]: _entry() for it in items}

        run = run_semantic_analysis(_commits(10), SlowProvider(), batch_size=1)
        self.assertEqual(len(run.analyses), 10)
        self.assertLessEqual(state["peak"], 3)

    def test_short_sha_keys_are_resolved(self):
        commits = [Commit(sha="abc1234" + "0" * 33), Commit(sha="def5678" + "0" * 33)]

        class ShortShaProvider:
            def analyze_batch(self, items):
                return {it["sha"][:7]: _entry() for it in items}

        run = run_semantic_analysis(commits, ShortShaProvider())
        self.assertEqual(set(run.analyses), {c.sha for c in commits})

    def test_ambiguous_prefix_is_dropped(self):
        commits = [Commit(sha="abc" + "1" * 37), Commit(sha="abc" + "2" * 37)]

        class PrefixProvider:
            def analyze_batch(self, items):
                return {"abc": _entry()}

        run = run_semantic_analysis(commits, PrefixProvider())
        self.assertEqual(run.analyses, {})
        self.assertEqual(run.parse_failures, 1)


class TestFailures(unittest.TestCase):

    def test_partial_failure(self):
        commits = _commits(3)

        class HalfBrokenProvider:
            def analyze_batch(self, items):
                sha = items[0]["sha"]
                if sha == commits[1].sha:
                    raise RuntimeError("boom")
                if sha == commits[2].sha:
                    return {sha: {"intent": "nonsense"}}
                return {sha: _entry()}

        run = run_semantic_analysis(commits, HalfBrokenProvider(), batch_size=1)
        self.assertEqual(set(run.analyses), {commits[0].sha})
        self.assertEqual(run.failed_batches, 1)
        self.assertEqual(run.parse_failures, 1)

    def test_one_unparsable_score_keeps_the_rest_of_the_batch(self):
        commits = _commits(2)

        class OverflowProvider:
            def analyze_batch(self, items):
                return {
                    commits[0].sha: _entry(),
                    commits[1].sha: _entry(clarity=10**400),
                }

        run = run_semantic_analysis(commits, OverflowProvider())
        self.assertEqual(set(run.analyses), {commits[0].sha})
        self.assertEqual(run.failed_batches, 0)
        self.assertEqual(run.parse_failures, 1)

    def test_plain_mapping_counts_zero_usage(self):
        class MapProvider:
            def analyze_batch(self, items):
                return {it["sha"]: _entry() for it in items}

        run = run_semantic_analysis(_commits(2), MapProvider())
        self.assertEqual(run.usage, TokenUsage())

    def test_none_answer_is_a_failed_batch(self):
        class NoneProvider:
            def analyze_batch(self, items):
                return None

        run = run_semantic_analysis(_commits(2), NoneProvider())
        self.assertEqual(run.analyses, {})
        self.assertEqual(run.failed_batches, 1)

    def test_usage_of_failed_batch_still_counts(self):
        class CostlyError(Exception):
            usage = TokenUsage(7, 0, 7)

        class FailingProvider:
            def analyze_batch(self, items):
                raise CostlyError("gave up")

        run = run_semantic_analysis(_commits(2), FailingProvider(), batch_size=1)
        self.assertEqual(run.failed_batches, 2)
        self.assertEqual(run.usage.total_tokens, 14)


class TestTimeoutAndCancel(unittest.TestCase):

    def test_timeout_abandons_running_batches(self):
        release = threading.Event()
        commits = _commits(2)

        class BlockingProvider:
            def analyze_batch(self, items):
                if items[0]["sha"] == commits[1].sha:
                    release.wait(5)
                return {it["sha"]: _entry() for it in items}

        try:
            started = time.monotonic()
            run = run_semantic_analysis(commits, BlockingProvider(), batch_size=1, timeout=0.3)
            elapsed = time.monotonic() - started
        finally:
            release.set()

        self.assertLess(elapsed, 3)
        self.assertEqual(set(run.analyses), {commits[0].sha})
        self.assertEqual(run.abandoned_batches, 1)

    def test_cancel_before_start_skips_provider(self):
        cancel = threading.Event()
        cancel.set()
        provider = EchoProvider()

        run = run_semantic_analysis(_commits(5), provider, cancel_event=cancel)
        self.assertEqual(provider.calls, [])
        self.assertEqual(run.analyses, {})
        self.assertEqual(run.abandoned_batches, 1)

    def test_cancel_mid_run(self):
        cancel = threading.Event()
        release = threading.Event()
        commits = _commits(2)

        class CancellingProvider:
            def analyze_batch(self, items):
                if items[0]["sha"] == commits[0].sha:
                    cancel.set()
                    return {items[0]["sha"]: _entry()}
                release.wait(5)
                return {it["sha"]: _entry() for it in items}

        try:
            run = run_semantic_analysis(commits, CancellingProvider(), batch_size=1, cancel_event=cancel)
        finally:
            release.set()

        self.assertNotIn(commits[1].sha, run.analyses)
        self.assertGreaterEqual(run.abandoned_batches, 1)


class TestContributorsAndStatus(unittest.TestCase):

    def _summary(self, shas):
        return ContributorSummary(
            email="a@x.com", name="A", username=None,
            stats=ContributorStats(total_commits=len(shas)),
            score=ContributorScore("a@x.com", 50, 100, "Needs Improvement"),
            commit_shas=tuple(shas),
        )

    def test_dominant_intent_tie_uses_intent_order(self):
        commits = _commits(2)
        scores = score_commits(commits)
        analyses = {
            commits[0].sha: SemanticAnalysis("docs", 80, 80, 80),
            commits[1].sha: SemanticAnalysis("bugfix", 80, 80, 80),
        }
        scored = enhance_commits(commits, scores, analyses)
        [summary] = enhance_contributors([self._summary([c.sha for c in commits])], scored)
        self.assertEqual(summary.dominant_intent, "bugfix")
        self.assertIsNotNone(summary.ai_average_score)

    def test_contributor_without_analyses(self):
        commits = _commits(1)
        scored = enhance_commits(commits, score_commits(commits), {})
        [summary] = enhance_contributors([self._summary([commits[0].sha])], scored)
        self.assertIsNone(summary.ai_average_score)
        self.assertIsNone(summary.dominant_intent)

    def test_ai_status(self):
        self.assertEqual(ai_status(False, 0, 10), AI_DISABLED)
        self.assertEqual(ai_status(True, 10, 10), AI_FULL)
        self.assertEqual(ai_status(True, 4, 10), AI_PARTIAL)
        self.assertEqual(ai_status(True, 0, 10), AI_PARTIAL)

    def test_ai_coverage(self):
        self.assertEqual(ai_coverage(0, 0), 0.0)
        self.assertEqual(ai_coverage(1, 4), 0.25)


class TestInsights(unittest.TestCase):

    def test_provider_without_insights(self):
        self.assertEqual(request_insights(object(), {}), ((), TokenUsage()))

    def test_failure_returns_empty(self):
        class Broken:
            def generate_insights(self, summary):
                raise RuntimeError("nope")

        insights, usage = request_insights(Broken(), {})
        self.assertEqual(insights, ())
        self.assertEqual(usage, TokenUsage())

    def test_insights_are_normalized_and_capped(self):
        class Chatty:
            def generate_insights(self, summary):
                raw = [{"title": f"t{i}", "severity": "LOUD"} for i in range(12)]
                raw[0] = {"title": "first", "severity": "Critical"}
                return raw, TokenUsage(1, 2, 3)

        insights, usage = request_insights(Chatty(), {})
        self.assertEqual(len(insights), MAX_INSIGHTS)
        self.assertEqual(insights[0].severity, "critical")
        self.assertEqual(insights[1].severity, "info")
        self.assertEqual(usage, TokenUsage(1, 2, 3))

    def test_slow_insights_are_abandoned_at_timeout(self):
        release = threading.Event()

        class Hanging:
            def generate_insights(self, summary):
                release.wait(5)
                return [{"title": "late"}], TokenUsage(1, 1, 2)

        try:
            start = time.monotonic()
            insights, usage = request_insights(Hanging(), {}, timeout=0.2)
            self.assertLess(time.monotonic() - start, 1.5)
        finally:
            release.set()
        self.assertEqual(insights, ())
        self.assertEqual(usage, TokenUsage())

    def test_no_time_left_skips_provider(self):
        class Counting:
            calls = 0

            def generate_insights(self, summary):
                Counting.calls += 1
                return [], TokenUsage()

        self.assertEqual(request_insights(Counting(), {}, timeout=0), ((), TokenUsage()))
        self.assertEqual(Counting.calls, 0)

    def test_cancel_abandons_insights(self):
        release = threading.Event()
        cancel = threading.Event()

        class Hanging:
            def generate_insights(self, summary):
                cancel.set()
                release.wait(5)
                return [{"title": "late"}], TokenUsage()

        try:
            start = time.monotonic()
            insights, _ = request_insights(Hanging(), {}, cancel_event=cancel)
            self.assertLess(time.monotonic() - start, 1.5)
        finally:
            release.set()
        self.assertEqual(insights, ())


if __name__ == "__main__":
    unittest.main()
