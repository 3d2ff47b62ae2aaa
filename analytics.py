# analytics.py
#
# Purpose:
# The repository aggregator. It runs every scoring stage in order and packs
# the results into one immutable AnalysisResult:
#
#   commits -> commit scores -> contributors -> anti-patterns
#           -> (optional) semantic enhancement -> temporal + collaboration
#           -> summary + recommendations -> AnalysisResult
#
# Nothing in here talks to the network except through the semantic provider
# that the caller passes in. With provider=None the run is fully offline and
# flagged ai_status="disabled".
#
# Same commits + same provider answers -> same numbers, every time.

import dataclasses
import logging
import time

import numpy as np              # NumPy for means over score arrays

from anti_patterns import detect_anti_patterns
from collaboration import analyze_collaboration
from contributors import aggregate_contributors
from models import AI_DISABLED, AnalysisResult, Commit, TokenUsage
from recommendations import generate_recommendations
from scoring import round_half_up, score_commits
from scoring_policy import DEFAULT_POLICY
from semantic import (
    BATCH_SIZE,
    MAX_CONCURRENT_BATCHES,
    ai_coverage,
    ai_status,
    enhance_commits,
    enhance_contributors,
    insight_summary,
    request_insights,
    run_semantic_analysis,
)
from temporal import analyze_temporal_patterns


logger = logging.getLogger(__name__)

MISSING_SHA_PREFIX = "missing-"


def _as_commits(commits):
    """
    Accept Commit records or raw dicts (normalized via Commit.from_dict).

    A commit without a sha is keyed as "missing-<position>".
    """
    out = []
    for i, c in enumerate(commits or []):
        c = c if isinstance(c, Commit) else Commit.from_dict(c)
        if not c.sha:
            c = dataclasses.replace(c, sha=f"{MISSING_SHA_PREFIX}{i}")
        out.append(c)
    return out


def _mean_int(values):
    """Rounded mean of integer scores; 0 for an empty list."""
    if len(values) == 0:
        return 0
    return round_half_up(float(np.mean(np.asarray(values, dtype=float))))


def repository_score(scored_commits):
    """Mean effective per-commit score (enhanced when present). 0 when empty."""
    return _mean_int([sc.effective_score for sc in scored_commits])


def compute_summary(commits, commit_scores, contributors):
    """
    Repository-level summary numbers.

    Always returns the same keys, with zeros / None for an empty history,
    so exporters never have to check for missing fields.
    """
    if not commits:
        return {
            "total_commits": 0,
            "total_contributors": 0,
            "date_range": None,
            "average_message_score": 0,
            "average_size_score": 0,
            "conventional_commit_ratio": 0.0,
            "total_additions": 0,
            "total_deletions": 0,
        }

    scores = [commit_scores[c.sha] for c in commits if c.sha in commit_scores]

    stamps = [c.timestamp for c in commits if c.timestamp is not None]
    date_range = (min(stamps), max(stamps)) if stamps else None

    conventional = sum(1 for s in scores if s.message_quality.is_conventional)

    return {
        "total_commits": len(commits),
        "total_contributors": len(contributors),
        "date_range": date_range,
        "average_message_score": _mean_int([s.message_quality.total for s in scores]),
        "average_size_score": _mean_int([s.size_score.total for s in scores]),
        "conventional_commit_ratio": round(conventional / len(commits), 2),
        "total_additions": sum(c.stats.additions for c in commits),
        "total_deletions": sum(c.stats.deletions for c in commits),
    }


def rescore_commits(commits, policy=DEFAULT_POLICY):
    """
    Score newly fetched commits on their own (sha -> CommitScore), without
    running the rest of the pipeline.
    """
    return score_commits(_as_commits(commits), policy)


def analyze_repository(
    commits,
    repository=None,
    provider=None,
    policy=DEFAULT_POLICY,
    batch_size=BATCH_SIZE,
    max_concurrent=MAX_CONCURRENT_BATCHES,
    timeout=None,
    cancel_event=None,
    with_insights=True,
):
    """
    Run the whole pipeline over one repository's commits.

    commits: Commit records or raw dicts, in the order the hosting API gave them
    repository: optional Repository metadata, carried through unchanged
    provider: semantic provider (see semantic.py) or None for heuristic-only
    timeout / cancel_event: limit the semantic stage and the insight request;
      unfinished batches fall back to heuristic scores and a late insight
      request yields no insights

    Never raises because of the provider or malformed commit data.
    """
    commits = _as_commits(commits)

    commit_scores = score_commits(commits, policy)
    contributors = aggregate_contributors(commits, commit_scores, policy)
    anti_patterns = detect_anti_patterns(commits, policy)

    deadline = None if timeout is None else time.monotonic() + timeout
    analyses = None
    usage = None
    if provider is not None:
        run = run_semantic_analysis(
            commits,
            provider,
            batch_size=batch_size,
            max_concurrent=max_concurrent,
            timeout=timeout,
            cancel_event=cancel_event,
        )
        analyses = run.analyses
        usage = run.usage

    scored = enhance_commits(commits, commit_scores, analyses, policy)
    if analyses is not None:
        contributors = enhance_contributors(contributors, scored)

    temporal = analyze_temporal_patterns(scored)
    collaboration = analyze_collaboration(commits, contributors)

    summary = compute_summary(commits, commit_scores, contributors)
    recommendations = generate_recommendations(summary, anti_patterns)

    insights = ()
    ai_scores = []
    if analyses is not None:
        ai_scores = [sc.enhanced.overall for sc in scored if sc.enhanced.ai_applied]
        cancelled = cancel_event is not None and cancel_event.is_set()
        if with_insights and commits and not cancelled:
            remaining = None if deadline is None else deadline - time.monotonic()
            insights, insight_usage = request_insights(
                provider,
                insight_summary(scored, contributors),
                timeout=remaining,
                cancel_event=cancel_event,
            )
            usage = usage + insight_usage

    status = ai_status(provider is not None, len(ai_scores), len(commits))
    coverage = ai_coverage(len(ai_scores), len(commits)) if status != AI_DISABLED else 0.0
    logger.info(
        "Analyzed %d commits from %d contributors (ai_status=%s)",
        len(commits), len(contributors), status,
    )

    return AnalysisResult(
        repository=repository,
        commits=tuple(scored),
        contributors=tuple(contributors),
        anti_patterns=anti_patterns,
        temporal=temporal,
        collaboration=collaboration,
        recommendations=tuple(recommendations),
        summary=summary,
        repository_score=repository_score(scored),
        heuristic_score=_mean_int([sc.score.overall for sc in scored]),
        ai_repository_score=_mean_int(ai_scores) if ai_scores else None,
        ai_status=status,
        ai_coverage=coverage,
        token_usage=usage or TokenUsage(),
        ai_insights=tuple(insights),
    )
