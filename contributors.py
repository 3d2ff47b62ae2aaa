# contributors.py
#
# Purpose:
# Roll per-commit scores up into one summary per contributor.
#
# A contributor is identified by the lowercased author email. Two different
# emails are two contributors, even when they belong to the same person;
# nothing here tries to merge identities after grouping.
#
# Statistics are order-independent (sums, means, min/max, population standard
# deviation), so the result does not depend on the order commits arrive in.

import numpy as np

from models import (
    CATEGORY_EXCELLENT,
    CATEGORY_GOOD,
    CATEGORY_NEEDS_IMPROVEMENT,
    ContributorScore,
    ContributorStats,
    ContributorSummary,
)
from scoring import clamp, round_half_up
from scoring_policy import DEFAULT_POLICY


def weekday_index(dt):
    """Day of week with 0 = Sunday ... 6 = Saturday."""
    return (dt.weekday() + 1) % 7


def group_by_author(commits):
    """
    Group commits by lowercased author email.

    Returns a dict email -> list of commits (input order kept inside each group).
    """
    groups = {}
    for c in commits:
        key = c.author.key
        if key not in groups:
            groups[key] = []
        groups[key].append(c)
    return groups


def classify_category(average_score, policy=DEFAULT_POLICY):
    """Fixed thresholds: >= 80 Excellent, >= 60 Good, else Needs Improvement."""
    if average_score >= policy.excellent_threshold:
        return CATEGORY_EXCELLENT
    if average_score >= policy.good_threshold:
        return CATEGORY_GOOD
    return CATEGORY_NEEDS_IMPROVEMENT


def consistency_score(scores):
    """
    100 minus the population standard deviation of the scores, clamped to 0-100.

    A single score has a standard deviation of 0, so a one-commit contributor
    is perfectly consistent (100). No scores at all also gives 100.
    """
    if len(scores) == 0:
        return 100
    stddev = float(np.std(np.asarray(scores, dtype=float)))
    return clamp(round_half_up(100 - stddev))


def contributor_score(email, scores, policy=DEFAULT_POLICY):
    """Build a ContributorScore from a list of per-commit overall scores."""
    if scores:
        average = round_half_up(sum(scores) / len(scores))
    else:
        average = 0
    average = clamp(average)
    return ContributorScore(
        email=email,
        average_score=average,
        consistency_score=consistency_score(scores),
        category=classify_category(average, policy),
    )


def _contributor_stats(commits):
    total_additions = sum(c.stats.additions for c in commits)
    total_deletions = sum(c.stats.deletions for c in commits)
    avg_size = round_half_up(sum(c.stats.total for c in commits) / len(commits))

    paths = set()
    for c in commits:
        paths.update(c.files)

    stamped = [c.timestamp for c in commits if c.timestamp is not None]
    first = min(stamped) if stamped else None
    last = max(stamped) if stamped else None

    hours = sorted(set(t.hour for t in stamped))
    days = sorted(set(weekday_index(t) for t in stamped))

    span_days = 0.0
    if first is not None and last is not None:
        span_days = (last - first).total_seconds() / 86400
    velocity = round(len(commits) / max(1.0, span_days), 2)

    return ContributorStats(
        total_commits=len(commits),
        total_additions=total_additions,
        total_deletions=total_deletions,
        average_commit_size=avg_size,
        files_changed=len(paths),
        first_commit=first,
        last_commit=last,
        working_hours=tuple(hours),
        preferred_days=tuple(days),
        velocity=velocity,
    )


def aggregate_contributors(commits, commit_scores, policy=DEFAULT_POLICY):
    """
    One ContributorSummary per distinct lowercased author email.

    commit_scores is the sha -> CommitScore map from scoring.score_commits().
    Commits missing from the map are ignored for scoring but still counted in
    the statistics.

    Sorted by average score (desc), then commit count (desc), then email.
    """
    summaries = []

    for email, group in group_by_author(commits).items():
        scores = [commit_scores[c.sha].overall for c in group if c.sha in commit_scores]
        first = group[0].author

        summaries.append(ContributorSummary(
            email=email,
            name=first.name,
            username=first.username,
            stats=_contributor_stats(group),
            score=contributor_score(email, scores, policy),
            commit_shas=tuple(c.sha for c in group),
        ))

    summaries.sort(key=lambda s: (-s.score.average_score, -s.stats.total_commits, s.email))
    return summaries
