# scoring_policy.py
#
# Purpose:
# One place for every threshold and point table used by the heuristic scorers.
#
# The tables are fixed constants, not learned or tuned per run. If the scoring
# rules ever change, build a new ScoringPolicy and pass it as policy=...;
# call sites stay the same.
#
# Tier tables are tuples of (low, high, points). A value matches a tier when
# low <= value <= high; high=None means "no upper bound". Tiers are checked in
# order and the first match wins.

from dataclasses import dataclass


def tier_points(value, tiers, default=0):
    """Return the points of the first tier containing value."""
    for low, high, points in tiers:
        if value < low:
            continue
        if high is None or value <= high:
            return points
    return default


@dataclass(frozen=True)
class ScoringPolicy:
    # --- message format (convention sub-score, 0-40) ---
    conventional_types: tuple = (
        "feat", "fix", "docs", "style", "refactor", "perf",
        "test", "build", "ci", "chore", "revert",
    )
    convention_points: int = 40
    unknown_type_points: int = 20

    # --- subject length (0-30), peaked not linear ---
    length_tiers: tuple = (
        (10, 72, 30),
        (73, 100, 20),
        (101, None, 10),
        (5, 9, 15),
        (0, 4, 5),
    )

    # --- imperative mood (0-30) ---
    imperative_verbs: tuple = (
        "add", "fix", "update", "remove", "delete", "change", "create",
        "implement", "refactor", "improve", "move", "rename", "merge",
        "revert", "bump", "release", "deploy", "configure", "enable",
        "disable", "set", "use", "apply", "clean", "optimize", "simplify",
        "extract", "convert", "replace", "handle", "support", "allow",
        "prevent", "ensure", "make", "init", "initialize", "introduce",
        "drop", "upgrade", "downgrade", "migrate", "integrate", "separate",
        "split", "combine", "consolidate",
    )
    imperative_points: int = 30
    third_person_points: int = 15
    past_or_gerund_points: int = 10
    sentence_case_points: int = 15
    sentence_case_min_length: int = 11
    fallback_mood_points: int = 5

    # --- size (lines 0-50, files 0-50) ---
    line_tiers: tuple = (
        (0, 0, 25),
        (1, 300, 50),
        (301, 500, 40),
        (501, 1000, 25),
        (1001, None, 10),
    )
    file_tiers: tuple = (
        (0, 0, 25),
        (1, 10, 50),
        (11, 20, 40),
        (21, 50, 25),
        (51, None, 10),
    )
    giant_threshold: int = 1000   # total > threshold
    tiny_threshold: int = 5       # total < threshold

    # --- per-commit weights, in percent ---
    message_weight: int = 60
    size_weight: int = 40

    # --- enhanced (AI) weights, in percent ---
    enhanced_heuristic_weight: int = 30
    enhanced_clarity_weight: int = 25
    enhanced_completeness_weight: int = 20
    enhanced_size_weight: int = 20
    enhanced_technical_weight: int = 5

    # --- contributor categories ---
    excellent_threshold: int = 80
    good_threshold: int = 60

    # --- anti-patterns ---
    vague_subject_length: int = 20   # subject shorter than this is "vague"
    wip_indicators: tuple = (
        "wip",
        "work in progress",
        "todo",
        "fixme",
        "temp",
        "hack",
        "xxx",
        "checkpoint",
        "do not merge",
        "fixup!",
        "squash!",
    )


DEFAULT_POLICY = ScoringPolicy()
