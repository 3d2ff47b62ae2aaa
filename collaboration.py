# collaboration.py
#
# Purpose:
# Estimate how knowledge is spread across the team: who owns which area of
# the code, how many people the project depends on (bus factor), and where a
# single person is the only one who knows an area (knowledge silo).
#
# "Area" is the unit of ownership:
# - when the hosting client supplied changed file paths for a commit, each
#   path is an area (real ownership data)
# - otherwise areas are guessed from the message: the conventional-commit
#   scope plus keywords from a fixed vocabulary, or "general" when nothing
#   matches
#
# Pure functions over the commit + contributor lists. No network, and nothing
# here depends on the AI layer having run.

import re

from models import (
    AreaOwnership,
    BusFactorAnalysis,
    CollaborationMetrics,
    CollaborationPattern,
    KnowledgeSilo,
    ReviewPattern,
)
from scoring import round_half_up


AREA_KEYWORDS = (
    "api", "auth", "ui", "frontend", "backend", "database", "db",
    "test", "config", "build", "ci", "docs", "readme", "security",
    "component", "service", "util", "helper", "model", "controller",
    "view", "route", "middleware", "hook", "context", "store",
)
DEFAULT_AREA = "general"

SILO_OWNERSHIP = 90            # percent
CRITICAL_OWNERSHIP = 80        # percent, single contributor only
TOP_MERGERS = 5

SCOPE_RE = re.compile(r"^\w+\(([^)]+)\)")
_KEYWORD_RES = [(k, re.compile(r"\b" + re.escape(k) + r"s?\b")) for k in AREA_KEYWORDS]

_RISK_ORDER = {"high": 0, "medium": 1, "low": 2}


def commit_areas(commit):
    """
    The areas a commit touches, in first-seen order with duplicates removed.
    """
    if commit.files:
        return list(dict.fromkeys(commit.files))

    areas = []
    m = SCOPE_RE.match(commit.subject)
    if m:
        areas.append(m.group(1).strip().lower())

    lower = commit.message.lower()
    for keyword, pattern in _KEYWORD_RES:
        if pattern.search(lower):
            areas.append(keyword)

    if not areas:
        areas.append(DEFAULT_AREA)
    return list(dict.fromkeys(areas))


def _percent(part, whole):
    return round_half_up(part * 100 / whole) if whole else 0


def file_ownership(commits):
    """
    One AreaOwnership per area, highest ownership share first (ties by area name).

    primary_owner is the email with the most commits in the area; ties go to
    the alphabetically first email.
    """
    counts = {}          # area -> {email: n}
    last_modified = {}

    for c in commits:
        email = c.author.key
        for area in commit_areas(c):
            owners = counts.setdefault(area, {})
            owners[email] = owners.get(email, 0) + 1
            if c.timestamp is not None:
                prev = last_modified.get(area)
                if prev is None or c.timestamp > prev:
                    last_modified[area] = c.timestamp

    ownership = []
    for area, owners in counts.items():
        total = sum(owners.values())
        ranked = sorted(owners.items(), key=lambda kv: (-kv[1], kv[0]))
        ownership.append(AreaOwnership(
            area=area,
            primary_owner=ranked[0][0],
            ownership_percent=_percent(ranked[0][1], total),
            total_commits=total,
            contributors=tuple((email, _percent(n, total)) for email, n in ranked),
            last_modified=last_modified.get(area),
        ))

    ownership.sort(key=lambda o: (-o.ownership_percent, o.area))
    return ownership


def bus_factor(contributors, ownership=()):
    """
    Smallest number of contributors (largest first) whose commits add up to
    at least half of all commits.

    Risk: 1 -> high, 2 -> medium, 3+ -> low. No contributors -> 0, high.
    """
    if not contributors:
        return BusFactorAnalysis(
            bus_factor=0,
            risk_level="high",
            critical_areas=(),
            recommendation="No contributors found.",
        )

    critical = tuple(
        o.area for o in ownership
        if o.ownership_percent > CRITICAL_OWNERSHIP and len(o.contributors) == 1
    )

    total = sum(c.stats.total_commits for c in contributors)
    ranked = sorted((c.stats.total_commits for c in contributors), reverse=True)

    factor = 0
    running = 0
    for n in ranked:
        running += n
        factor += 1
        if running * 2 >= total:
            break

    if factor == 1:
        risk = "high"
        recommendation = (
            "Critical risk: one person controls most of the codebase. "
            "Encourage knowledge sharing and pair programming."
        )
    elif factor == 2:
        risk = "medium"
        recommendation = "Moderate risk: consider cross-training team members on critical areas."
    else:
        risk = "low"
        recommendation = "Good knowledge distribution across the team."

    if critical:
        recommendation += f" {len(critical)} area(s) have single owners."

    return BusFactorAnalysis(
        bus_factor=factor,
        risk_level=risk,
        critical_areas=critical,
        recommendation=recommendation,
    )


def knowledge_silos(contributors, ownership):
    """
    Contributors who hold >= 90% of the commits of one or more areas.

    Risk by number of such areas: 3+ high, 2 medium, 1 low. Sorted by risk,
    then by number of areas (desc), then email.
    """
    names = {c.email: c.name for c in contributors}

    exclusive = {}
    for o in ownership:
        if o.ownership_percent >= SILO_OWNERSHIP:
            exclusive.setdefault(o.primary_owner, []).append(o.area)

    silos = []
    for email, areas in exclusive.items():
        name = names.get(email, email)
        n = len(areas)
        if n >= 3:
            risk = "high"
            recommendation = (
                f"{name} is the sole contributor to {n} areas. "
                "Consider pair programming or documentation."
            )
        elif n == 2:
            risk = "medium"
            recommendation = f"{name} has exclusive knowledge of {n} areas. Plan for knowledge transfer."
        else:
            risk = "low"
            recommendation = f"Minor silo detected for {name}. Monitor for growth."

        silos.append(KnowledgeSilo(
            email=email,
            name=name,
            exclusive_areas=tuple(areas),
            risk_level=risk,
            recommendation=recommendation,
        ))

    silos.sort(key=lambda s: (_RISK_ORDER[s.risk_level], -len(s.exclusive_areas), s.email))
    return silos


def collaboration_pattern(contributors, commits):
    """
    Classify the team as collaborative / mixed / siloed.

    score = 70% distribution evenness + 30% merge activity
      evenness: 100 - mean relative deviation from an equal share (floored at 0)
      merge activity: merge ratio * 200, capped at 50
    """
    if len(contributors) <= 1 or not commits:
        return CollaborationPattern(
            type="siloed",
            description="Single contributor project.",
            score=0,
        )

    total = len(commits)
    ideal = total / len(contributors)
    deviation = sum(abs(c.stats.total_commits - ideal) / ideal for c in contributors) / len(contributors)
    distribution = max(0.0, 100 - deviation * 100)

    merges = sum(1 for c in commits if c.is_merge)
    merge_score = min(merges / total * 200, 50)

    score = round_half_up(distribution * 0.7 + merge_score * 0.3)

    if score >= 70:
        kind = "collaborative"
        description = "Team shows good collaboration with balanced contributions and regular code reviews."
    elif score >= 40:
        kind = "mixed"
        description = "Some collaboration exists but contributions are unevenly distributed."
    else:
        kind = "siloed"
        description = "Work is heavily siloed with little overlap between contributors."

    return CollaborationPattern(type=kind, description=description, score=score)


def review_patterns(commits):
    """Merge-commit statistics as a rough stand-in for code review activity."""
    merges = [c for c in commits if c.is_merge]
    ratio = round(len(merges) / len(commits), 2) if commits else 0.0

    stamps = sorted(c.timestamp for c in merges if c.timestamp is not None)
    avg_hours = 0
    if len(stamps) >= 2:
        gaps = [(b - a).total_seconds() for a, b in zip(stamps, stamps[1:])]
        avg_hours = round_half_up(sum(gaps) / len(gaps) / 3600)

    mergers = {}
    for c in merges:
        mergers[c.author.name] = mergers.get(c.author.name, 0) + 1
    top = sorted(mergers.items(), key=lambda kv: (-kv[1], kv[0]))[:TOP_MERGERS]

    return ReviewPattern(
        has_merge_commits=bool(merges),
        merge_commit_ratio=ratio,
        average_hours_between_merges=avg_hours,
        top_mergers=tuple(top),
    )


def collaboration_insights(bus, pattern, silos, review):
    """Short text observations for reports."""
    insights = []

    if bus.risk_level == "high":
        insights.append(f"High bus factor risk: {bus.recommendation}")
    if pattern.type == "siloed":
        insights.append(f"Siloed development detected: {pattern.description}")

    high = [s for s in silos if s.risk_level == "high"]
    if high:
        insights.append(f"{len(high)} contributor(s) have exclusive knowledge of critical areas.")

    if not review.has_merge_commits:
        insights.append(
            "No merge commits detected. Consider a code review process with pull requests."
        )
    elif review.merge_commit_ratio < 0.1:
        insights.append("Low merge commit ratio. Most commits go directly to the branch without review.")

    return insights


def analyze_collaboration(commits, contributors):
    """Build the full CollaborationMetrics bundle."""
    commits = list(commits)
    ownership = file_ownership(commits)
    bus = bus_factor(contributors, ownership)
    silos = knowledge_silos(contributors, ownership)
    pattern = collaboration_pattern(contributors, commits)
    review = review_patterns(commits)

    return CollaborationMetrics(
        ownership=tuple(ownership),
        bus_factor=bus,
        knowledge_silos=tuple(silos),
        pattern=pattern,
        review=review,
        insights=tuple(collaboration_insights(bus, pattern, silos, review)),
    )
