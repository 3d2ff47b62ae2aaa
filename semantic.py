# semantic.py
#
# Purpose:
# Blend language-model judgments of commit messages into the heuristic scores.
#
# The model itself lives behind a "provider" object (see llm_utils.py for the
# Groq one). This file only knows the provider's shape:
#
#   provider.analyze_batch(items) -> BatchResult | {sha: raw entry}
#   provider.generate_insights(summary) -> (list of raw insights, TokenUsage)   (optional)
#
# items is a list of {"sha", "message", "body"} dicts, at most batch_size long.
#
# How failures are handled:
# - Every batch runs on a small thread pool (at most max_concurrent in flight).
# - A batch that raises, returns garbage, or never finishes before the timeout
#   or cancel signal just contributes nothing. Its commits keep their
#   heuristic score.
# - Every raw entry goes through parse_semantic_analysis(), which returns a
#   SemanticAnalysis or a ParseFailure. A ParseFailure counts as "no analysis".
# - Results are merged only after the join, in batch order, so the final
#   sha -> analysis map is the same no matter which batch finished first.
#
# The insight request gets the same treatment: it runs on a worker thread and
# is abandoned when the timeout or cancel signal fires first.
#
# Token usage is summed into one TokenUsage per run and returned to the
# caller. Nothing here keeps state between runs.

import dataclasses
import logging
import math
import time
from collections.abc import Mapping
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass, field

from models import (
    AI_DISABLED,
    AI_FULL,
    AI_PARTIAL,
    COMMIT_INTENTS,
    INSIGHT_SEVERITIES,
    AIInsight,
    BatchResult,
    EnhancedCommitScore,
    ParseFailure,
    ScoredCommit,
    SemanticAnalysis,
    TokenUsage,
)
from scoring import clamp, round_half_up, weighted_round
from scoring_policy import DEFAULT_POLICY


logger = logging.getLogger(__name__)

BATCH_SIZE = 20
MAX_CONCURRENT_BATCHES = 3
MAX_INSIGHTS = 8

# how often the join loop wakes up to look at the cancel signal
_POLL_SECONDS = 0.05

# the model sometimes answers in camelCase
_SCORE_KEYS = {
    "clarity": ("clarity", "clarity_score", "clarityScore"),
    "completeness": ("completeness", "completeness_score", "completenessScore"),
    "technical_quality": (
        "technical_quality", "technical_quality_score", "technicalQualityScore", "technicalQuality",
    ),
}


@dataclass(frozen=True)
class SemanticRun:
    """Outcome of one run_semantic_analysis() call."""

    analyses: dict = field(default_factory=dict)   # full sha -> SemanticAnalysis
    usage: TokenUsage = field(default_factory=TokenUsage)
    batches: int = 0
    failed_batches: int = 0
    abandoned_batches: int = 0
    parse_failures: int = 0


# ----------------------------
# Parsing
# ----------------------------
def _parse_score(raw, keys):
    for k in keys:
        if k in raw:
            value = raw[k]
            break
    else:
        return None

    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    try:
        if not math.isfinite(float(value)):
            return None
    except OverflowError:  # int too large for a float
        return None
    return clamp(round_half_up(value))


def parse_semantic_analysis(raw):
    """
    Validate one raw provider entry.

    Returns SemanticAnalysis when the entry has a known intent and all three
    numeric scores; anything else becomes a ParseFailure that says why.
    Scores outside 0-100 are clamped rather than rejected.
    """
    if isinstance(raw, (SemanticAnalysis, ParseFailure)):
        return raw
    if not isinstance(raw, Mapping):
        return ParseFailure("entry is not an object", raw)

    intent = raw.get("intent")
    if not isinstance(intent, str) or intent.strip().lower() not in COMMIT_INTENTS:
        return ParseFailure(f"unknown intent: {intent!r}", raw)

    scores = {}
    for name, keys in _SCORE_KEYS.items():
        value = _parse_score(raw, keys)
        if value is None:
            return ParseFailure(f"missing or non-numeric {name}", raw)
        scores[name] = value

    summary = raw.get("summary")
    return SemanticAnalysis(
        intent=intent.strip().lower(),
        clarity=scores["clarity"],
        completeness=scores["completeness"],
        technical_quality=scores["technical_quality"],
        summary=str(summary) if summary is not None else "",
    )


def parse_insight(raw):
    """Turn one raw insight into an AIInsight, or None if it has no usable shape."""
    if isinstance(raw, AIInsight):
        return raw
    if not isinstance(raw, Mapping):
        return None
    severity = str(raw.get("severity") or "info").lower()
    if severity not in INSIGHT_SEVERITIES:
        severity = "info"
    return AIInsight(
        title=str(raw.get("title") or "Insight"),
        description=str(raw.get("description") or ""),
        impact=str(raw.get("impact") or ""),
        recommendation=str(raw.get("recommendation") or ""),
        severity=severity,
    )


# ----------------------------
# Batching
# ----------------------------
def make_batches(commits, batch_size=BATCH_SIZE):
    """Split commits into consecutive lists of at most batch_size."""
    size = max(1, int(batch_size))
    return [list(commits[i:i + size]) for i in range(0, len(commits), size)]


def _batch_items(batch):
    return [{"sha": c.sha, "message": c.subject, "body": c.body} for c in batch]


def _resolve_sha(key, batch):
    """
    Map a key from the provider back to a full sha inside this batch.

    Providers often echo a short sha. A prefix counts only when it picks out
    exactly one commit of the batch.
    """
    key = str(key or "").strip()
    if not key:
        return None
    matches = []
    for c in batch:
        if c.sha == key:
            return c.sha
        if c.sha.startswith(key):
            matches.append(c.sha)
    if len(matches) == 1:
        return matches[0]
    return None


def _analyze_batch(provider, batch):
    """
    Worker body: call the provider for one batch and validate its answer.

    Returns (analyses, usage, parse_failures). Provider exceptions propagate
    to the join, which logs them and drops the batch.
    """
    result = provider.analyze_batch(_batch_items(batch))

    if isinstance(result, BatchResult):
        raw_map, usage = result.analyses, result.usage
    elif isinstance(result, Mapping):
        raw_map, usage = result, TokenUsage()
    else:
        raise TypeError(f"provider returned {type(result).__name__}, expected BatchResult or mapping")

    analyses = {}
    failures = 0
    for key, raw in raw_map.items():
        sha = _resolve_sha(key, batch)
        if sha is None:
            logger.warning("Semantic provider returned an entry for unknown sha %r", key)
            failures += 1
            continue
        parsed = parse_semantic_analysis(raw)
        if isinstance(parsed, ParseFailure):
            logger.warning("Unparsable semantic entry for %s: %s", sha[:7], parsed.reason)
            failures += 1
            continue
        analyses[sha] = parsed
    return analyses, usage or TokenUsage(), failures


# ----------------------------
# Orchestration
# ----------------------------
def run_semantic_analysis(
    commits,
    provider,
    batch_size=BATCH_SIZE,
    max_concurrent=MAX_CONCURRENT_BATCHES,
    timeout=None,
    cancel_event=None,
):
    """
    Analyse commits with the provider and return a SemanticRun.

    Bounded concurrency: batches are queued on a pool of max_concurrent
    workers. The join waits for every batch to settle (success or failure);
    it stops early only when timeout seconds have passed or cancel_event is
    set. Unfinished batches are abandoned and their commits get no analysis.

    Never raises because of the provider.
    """
    commits = list(commits)
    batches = make_batches(commits, batch_size)
    if not batches:
        return SemanticRun()

    if cancel_event is not None and cancel_event.is_set():
        logger.warning("Semantic analysis cancelled before start; %d batches skipped", len(batches))
        return SemanticRun(batches=len(batches), abandoned_batches=len(batches))

    deadline = None if timeout is None else time.monotonic() + timeout
    settled = {}   # batch index -> (analyses or None on failure, usage, parse failures)
    executor = ThreadPoolExecutor(max_workers=max(1, int(max_concurrent)))

    try:
        futures = {executor.submit(_analyze_batch, provider, b): i for i, b in enumerate(batches)}
        pending = set(futures)

        while pending:
            if cancel_event is not None and cancel_event.is_set():
                logger.warning("Semantic analysis cancelled; abandoning %d batches", len(pending))
                break

            wait_for = _POLL_SECONDS if cancel_event is not None else None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.warning("Semantic analysis timed out; abandoning %d batches", len(pending))
                    break
                wait_for = remaining if wait_for is None else min(wait_for, remaining)

            done, pending = wait(pending, timeout=wait_for, return_when=FIRST_COMPLETED)
            for fut in done:
                index = futures[fut]
                try:
                    settled[index] = fut.result()
                except Exception as e:
                    logger.warning(
                        "Semantic batch %d (%d commits) failed: %r",
                        index, len(batches[index]), e,
                    )
                    # tokens spent on failed attempts still count
                    settled[index] = (None, getattr(e, "usage", None) or TokenUsage(), 0)
    finally:
        # running batches cannot be interrupted; their results are ignored
        executor.shutdown(wait=False, cancel_futures=True)

    analyses = {}
    usage = TokenUsage()
    failed = 0
    parse_failures = 0
    for index in sorted(settled):
        batch_analyses, batch_usage, batch_failures = settled[index]
        usage = usage + batch_usage
        if batch_analyses is None:
            failed += 1
            continue
        analyses.update(batch_analyses)
        parse_failures += batch_failures

    run = SemanticRun(
        analyses=analyses,
        usage=usage,
        batches=len(batches),
        failed_batches=failed,
        abandoned_batches=len(batches) - len(settled),
        parse_failures=parse_failures,
    )
    logger.info(
        "Semantic analysis: %d/%d commits analysed, %d tokens",
        len(analyses), len(commits), usage.total_tokens,
    )
    return run


# ----------------------------
# Merging
# ----------------------------
def enhanced_commit_score(score, analysis=None, policy=DEFAULT_POLICY):
    """
    Build an EnhancedCommitScore from a heuristic CommitScore.

    With an analysis:
      overall = round(30% heuristic + 25% clarity + 20% completeness
                      + 20% size + 5% technical)
    Without one, the AI fields are 0 and overall is the heuristic overall.
    """
    heuristic = score.overall
    size = score.size_score.total

    if analysis is None:
        return EnhancedCommitScore(
            sha=score.sha,
            heuristic_score=heuristic,
            clarity_score=0,
            completeness_score=0,
            size_score=size,
            technical_score=0,
            overall=heuristic,
            semantic_analysis=None,
        )

    overall = weighted_round([
        (policy.enhanced_heuristic_weight, heuristic),
        (policy.enhanced_clarity_weight, analysis.clarity),
        (policy.enhanced_completeness_weight, analysis.completeness),
        (policy.enhanced_size_weight, size),
        (policy.enhanced_technical_weight, analysis.technical_quality),
    ])
    return EnhancedCommitScore(
        sha=score.sha,
        heuristic_score=heuristic,
        clarity_score=analysis.clarity,
        completeness_score=analysis.completeness,
        size_score=size,
        technical_score=analysis.technical_quality,
        overall=clamp(overall),
        semantic_analysis=analysis,
    )


def enhance_commits(commits, commit_scores, analyses=None, policy=DEFAULT_POLICY):
    """
    Pair each commit with its scores, in input order.

    analyses=None means the AI layer did not run: no EnhancedCommitScore is
    attached. Otherwise every commit gets one (fallback when its sha is
    missing from analyses).
    """
    scored = []
    for c in commits:
        score = commit_scores[c.sha]
        enhanced = None
        if analyses is not None:
            enhanced = enhanced_commit_score(score, analyses.get(c.sha), policy)
        scored.append(ScoredCommit(commit=c, score=score, enhanced=enhanced))
    return scored


def _dominant_intent(intents):
    counts = {}
    for intent in intents:
        counts[intent] = counts.get(intent, 0) + 1
    if not counts:
        return None
    best = max(counts.values())
    # ties go to the first intent in COMMIT_INTENTS order
    for intent in COMMIT_INTENTS:
        if counts.get(intent) == best:
            return intent
    return None


def enhance_contributors(contributors, scored_commits):
    """
    Add ai_average_score and dominant_intent to each ContributorSummary.

    Only commits that actually received an analysis count. A contributor with
    none keeps ai_average_score=None and dominant_intent=None.
    """
    by_sha = {sc.sha: sc for sc in scored_commits}
    out = []
    for summary in contributors:
        ai_scores = []
        intents = []
        for sha in summary.commit_shas:
            sc = by_sha.get(sha)
            if sc is None or sc.enhanced is None or not sc.enhanced.ai_applied:
                continue
            ai_scores.append(sc.enhanced.overall)
            intents.append(sc.enhanced.semantic_analysis.intent)

        ai_average = round_half_up(sum(ai_scores) / len(ai_scores)) if ai_scores else None
        out.append(dataclasses.replace(
            summary,
            ai_average_score=ai_average,
            dominant_intent=_dominant_intent(intents),
        ))
    return out


def ai_status(provider_enabled, analysed, total):
    """
    "disabled" without a provider, "full" when every commit was analysed,
    "partial" otherwise (including a run where every batch failed).
    """
    if not provider_enabled:
        return AI_DISABLED
    if analysed >= total:
        return AI_FULL
    return AI_PARTIAL


def ai_coverage(analysed, total):
    """Share of commits that received an analysis, 0.0 for an empty history."""
    if total <= 0:
        return 0.0
    return round(analysed / total, 4)


# ----------------------------
# Repository insights
# ----------------------------
def insight_summary(scored_commits, contributors):
    """Compact, JSON-friendly description of a run for the insight prompt."""
    analysed = [sc.enhanced for sc in scored_commits if sc.enhanced is not None and sc.enhanced.ai_applied]

    breakdown = {}
    for e in analysed:
        intent = e.semantic_analysis.intent
        breakdown[intent] = breakdown.get(intent, 0) + 1

    def _avg(values):
        return round_half_up(sum(values) / len(values)) if values else 0

    return {
        "total_commits": len(scored_commits),
        "contributors": len(contributors),
        "intent_breakdown": breakdown,
        "avg_clarity_score": _avg([e.clarity_score for e in analysed]),
        "avg_completeness_score": _avg([e.completeness_score for e in analysed]),
        "top_contributors": [
            {
                "name": c.name,
                "commits": c.stats.total_commits,
                "avg_score": c.ai_average_score if c.ai_average_score is not None else c.score.average_score,
            }
            for c in contributors[:3]
        ],
    }


def request_insights(provider, summary, timeout=None, cancel_event=None):
    """
    Ask the provider for repository-level insights.

    Returns (tuple of AIInsight, TokenUsage). Providers without
    generate_insights, or ones that fail, yield an empty tuple. The request
    runs on a worker thread so timeout seconds and cancel_event bound the
    wait; a request still running at that point is abandoned.
    """
    generate = getattr(provider, "generate_insights", None)
    if generate is None:
        return (), TokenUsage()
    if timeout is not None and timeout <= 0:
        logger.warning("No time left for insight generation; skipped")
        return (), TokenUsage()

    deadline = None if timeout is None else time.monotonic() + timeout
    executor = ThreadPoolExecutor(max_workers=1)
    try:
        future = executor.submit(generate, summary)
        while not future.done():
            if cancel_event is not None and cancel_event.is_set():
                logger.warning("Insight generation cancelled")
                return (), TokenUsage()

            wait_for = _POLL_SECONDS if cancel_event is not None else None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.warning("Insight generation timed out")
                    return (), TokenUsage()
                wait_for = remaining if wait_for is None else min(wait_for, remaining)
            wait([future], timeout=wait_for)

        try:
            raw_insights, usage = future.result()
        except Exception as e:
            logger.warning("Insight generation failed: %r", e)
            return (), getattr(e, "usage", None) or TokenUsage()
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    insights = []
    for raw in list(raw_insights or [])[:MAX_INSIGHTS]:
        parsed = parse_insight(raw)
        if parsed is not None:
            insights.append(parsed)
    return tuple(insights), usage or TokenUsage()
