# temporal.py
#
# Purpose:
# When do commits happen, and does quality change with the time of day?
#
# Everything here is derived from commit timestamps plus each commit's
# effective score (enhanced overall if the AI layer ran, heuristic otherwise).
# Commits without a timestamp are skipped by every histogram.
#
# Hours and weekdays are read in the timestamp's own timezone (the hosting
# API reports UTC). Weekdays are numbered 0 = Sunday ... 6 = Saturday.

import numpy as np                 # Pearson correlation, coefficient of variation
import pandas as pd                # week bucketing for the velocity series

from contributors import weekday_index
from models import (
    DayBucket,
    HourBucket,
    QualityTimeCorrelation,
    TemporalAnalysis,
    TemporalPattern,
    VelocityPoint,
)
from scoring import round_half_up


DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

NIGHT_OWL_FRACTION = 0.25      # 22:00-05:59
EARLY_BIRD_FRACTION = 0.20     # 05:00-08:59
WEEKEND_FRACTION = 0.20        # Saturday + Sunday
CORRELATION_THRESHOLD = 0.3
MIN_COMMITS_FOR_PATTERN = 3


def _stamped(scored_commits):
    return [sc for sc in scored_commits if sc.commit.timestamp is not None]


def _avg(total, count):
    return round_half_up(total / count) if count else 0


def hourly_distribution(scored_commits):
    """24 HourBuckets (0-23): commit count and average effective score."""
    counts = [0] * 24
    totals = [0] * 24
    for sc in _stamped(scored_commits):
        h = sc.commit.timestamp.hour
        counts[h] += 1
        totals[h] += sc.effective_score
    return tuple(HourBucket(h, counts[h], _avg(totals[h], counts[h])) for h in range(24))


def daily_distribution(scored_commits):
    """7 DayBuckets (0 = Sunday)."""
    counts = [0] * 7
    totals = [0] * 7
    for sc in _stamped(scored_commits):
        d = weekday_index(sc.commit.timestamp)
        counts[d] += 1
        totals[d] += sc.effective_score
    return tuple(DayBucket(d, DAY_NAMES[d], counts[d], _avg(totals[d], counts[d])) for d in range(7))


def detect_temporal_patterns(hourly, daily):
    """
    Boolean working-pattern flags from the two histograms.

    Fractions are taken over the commits that appear in the histograms, so an
    empty history gives all-False flags and a 0.0 working-hours ratio.
    """
    total = sum(b.count for b in hourly)
    if total == 0:
        return TemporalPattern()

    def share(hours):
        return sum(hourly[h].count for h in hours) / total

    night = share(list(range(22, 24)) + list(range(0, 6)))
    early = share(range(5, 9))
    working = share(range(9, 17))
    weekend = (daily[0].count + daily[6].count) / total

    # strict ">" keeps the earliest hour/day on ties
    busiest_hour = hourly[0]
    for b in hourly:
        if b.count > busiest_hour.count:
            busiest_hour = b
    busiest_day = daily[0]
    for b in daily:
        if b.count > busiest_day.count:
            busiest_day = b

    return TemporalPattern(
        is_weekend_committer=weekend > WEEKEND_FRACTION,
        is_night_owl=night > NIGHT_OWL_FRACTION,
        is_early_bird=early > EARLY_BIRD_FRACTION,
        working_hours_ratio=round(working, 2),
        most_active_hour=busiest_hour.hour,
        most_active_day=busiest_day.day_name,
    )


def week_key(dt):
    """ISO week label like '2024-W07'."""
    year, week, _ = dt.isocalendar()
    return f"{year}-W{week:02d}"


def weekly_velocity(scored_commits):
    """
    Commit count, lines changed and average score per ISO week, oldest first.
    """
    rows = [
        {
            "week": week_key(sc.commit.timestamp),
            "lines": sc.commit.stats.total,
            "score": sc.effective_score,
        }
        for sc in _stamped(scored_commits)
    ]
    if not rows:
        return ()

    df = pd.DataFrame(rows)
    grouped = df.groupby("week", sort=True).agg(
        commit_count=("score", "size"),
        lines_changed=("lines", "sum"),
        score_total=("score", "sum"),
    )

    points = []
    for week, row in grouped.iterrows():
        count = int(row["commit_count"])
        points.append(VelocityPoint(
            week=str(week),
            commit_count=count,
            lines_changed=int(row["lines_changed"]),
            average_score=_avg(int(row["score_total"]), count),
        ))
    return tuple(points)


def pearson_correlation(x, y):
    """
    Pearson r between two equal-length sequences.

    0.0 when there are fewer than 2 points or either side has no variance.
    """
    if len(x) != len(y) or len(x) < 2:
        return 0.0
    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    if np.std(xs) == 0 or np.std(ys) == 0:
        return 0.0
    return float(np.corrcoef(xs, ys)[0, 1])


def quality_time_correlation(scored_commits, hourly):
    """
    Does score move with the clock?

    Hourly: hour vs. average score over hours that have commits.
    Daily: weekday vs. score over individual commits.
    """
    active = [b for b in hourly if b.count > 0]
    hourly_r = pearson_correlation([b.hour for b in active], [b.average_score for b in active])

    stamped = _stamped(scored_commits)
    daily_r = pearson_correlation(
        [weekday_index(sc.commit.timestamp) for sc in stamped],
        [sc.effective_score for sc in stamped],
    )

    # stable sort: equal averages keep hour order
    ranked = sorted(active, key=lambda b: -b.average_score)
    best = tuple(b.hour for b in ranked[:3])
    worst = tuple(b.hour for b in reversed(ranked[-3:]))

    hourly_r = round(hourly_r, 2)
    daily_r = round(daily_r, 2)
    return QualityTimeCorrelation(
        hourly_correlation=hourly_r,
        daily_correlation=daily_r,
        best_hours=best,
        worst_hours=worst,
        quality_varies_by_time=abs(hourly_r) > CORRELATION_THRESHOLD or abs(daily_r) > CORRELATION_THRESHOLD,
    )


def heatmap(scored_commits):
    """7 x 24 commit counts, rows are weekdays (0 = Sunday)."""
    grid = [[0] * 24 for _ in range(7)]
    for sc in _stamped(scored_commits):
        ts = sc.commit.timestamp
        grid[weekday_index(ts)][ts.hour] += 1
    return tuple(tuple(row) for row in grid)


def contributor_patterns(scored_commits, min_commits=MIN_COMMITS_FOR_PATTERN):
    """Per-email TemporalPattern for contributors with at least min_commits commits."""
    groups = {}
    for sc in scored_commits:
        groups.setdefault(sc.commit.author.key, []).append(sc)

    patterns = {}
    for email, group in groups.items():
        if len(group) < min_commits:
            continue
        patterns[email] = detect_temporal_patterns(hourly_distribution(group), daily_distribution(group))
    return patterns


def flag_unusual_patterns(patterns, velocity, correlation):
    """Human-readable warnings about the repository's working rhythm."""
    flags = []

    if patterns.is_night_owl:
        flags.append(
            "High volume of late-night commits (10pm-6am) - may indicate deadline "
            "pressure or timezone differences"
        )
    if patterns.is_weekend_committer:
        flags.append("Significant weekend commit activity (>20%) - consider work-life balance")
    if patterns.working_hours_ratio < 0.3:
        flags.append("Low working hours ratio - most commits made outside 9am-5pm")

    if len(velocity) >= 4:
        counts = np.asarray([v.commit_count for v in velocity], dtype=float)
        mean = counts.mean()
        if mean > 0 and counts.std() / mean > 1:
            flags.append("Highly variable commit velocity - consider a more consistent development pace")

    if correlation.hourly_correlation < -CORRELATION_THRESHOLD:
        flags.append(
            "Commit quality decreases at certain hours - consider scheduling "
            "important work during peak quality times"
        )
    return tuple(flags)


def analyze_temporal_patterns(scored_commits):
    """Build the full TemporalAnalysis bundle for a scored commit list."""
    scored_commits = list(scored_commits)
    hourly = hourly_distribution(scored_commits)
    daily = daily_distribution(scored_commits)
    patterns = detect_temporal_patterns(hourly, daily)
    velocity = weekly_velocity(scored_commits)
    correlation = quality_time_correlation(scored_commits, hourly)

    # an empty history has nothing unusual about it
    flags = ()
    if any(b.count for b in hourly):
        flags = flag_unusual_patterns(patterns, velocity, correlation)

    return TemporalAnalysis(
        hourly=hourly,
        daily=daily,
        patterns=patterns,
        velocity=velocity,
        correlation=correlation,
        heatmap=heatmap(scored_commits),
        contributor_patterns=contributor_patterns(scored_commits),
        flags=flags,
    )
