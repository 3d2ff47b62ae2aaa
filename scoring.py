# scoring.py
#
# What this file is:
# The heuristic scoring rules for a single commit. It turns a commit message
# and its diff stats into 0-100 scores and then combines them into one
# per-commit score.
#
# How it is organized:
# - message_quality_score(): format/convention + subject length + imperative mood
# - size_score(): lines changed + files changed, plus giant/tiny flags
# - commit_score(): weighted blend of the two (60% message, 40% size)
#
# Each piece is a pure function so it can be tested and tuned on its own.
# All thresholds come from scoring_policy.DEFAULT_POLICY; pass policy=... to
# score under a different table.

import re

from models import CommitScore, MessageQualityScore, SizeScore
from scoring_policy import DEFAULT_POLICY, tier_points


# type, optional (scope), optional "!", then a colon
CONVENTIONAL_RE = re.compile(r"^(\w+)(\([^)]*\))?!?:")


def clamp(x, lo=0, hi=100):
    """
    Clamp a number into a bounded range.

    Every score field is documented as living inside a closed range, so any
    arithmetic that could drift outside it is passed through here.
    """
    if x < lo:
        return lo
    if x > hi:
        return hi
    return x


def round_half_up(x):
    """Round .5 away from zero for non-negative values (Python's round() is banker's)."""
    return int(x + 0.5) if x >= 0 else -int(-x + 0.5)


def weighted_round(pairs):
    """
    Weighted sum of (weight_percent, value) pairs, rounded half-up.

    Integer arithmetic only: sum(w * v) is exact, then (s + 50) // 100.
    This keeps overall == round(0.6 * a + 0.4 * b) exact with no float drift.
    """
    s = 0
    for weight, value in pairs:
        s += int(weight) * int(value)
    return (s + 50) // 100


def _subject(message):
    return (message or "").split("\n", 1)[0].strip()


def _first_word(text):
    parts = text.split()
    return parts[0].lower() if parts else ""


def _mood_points(subject, conventional_match, policy):
    """
    Imperative-mood sub-score (0-30).

    The conventional prefix is stripped first (known or unknown type), then
    the first remaining word is checked against the verb list.
    """
    rest = subject
    if conventional_match:
        colon = subject.find(":")
        if colon != -1:
            rest = subject[colon + 1:].strip()

    word = _first_word(rest)
    verbs = policy.imperative_verbs

    if word in verbs:
        return policy.imperative_points
    # "adds" instead of "add"
    if word.endswith("s") and word[:-1] in verbs:
        return policy.third_person_points
    # "added" / "adding"
    if word.endswith("ed") or word.endswith("ing"):
        return policy.past_or_gerund_points
    if subject[:1].isupper() and len(subject) >= policy.sentence_case_min_length:
        return policy.sentence_case_points
    return policy.fallback_mood_points


def message_quality_score(message, policy=DEFAULT_POLICY):
    """
    Score a commit message (0-100).

    Only the subject (first line) is judged. A missing message is treated as
    an empty subject and still gets a fully populated score.
    """
    subject = _subject(message)

    convention = 0
    is_conventional = False
    commit_type = None

    m = CONVENTIONAL_RE.match(subject)
    if m:
        t = m.group(1).lower()
        if t in policy.conventional_types:
            convention = policy.convention_points
            is_conventional = True
            commit_type = t
        else:
            # right shape, unknown type
            convention = policy.unknown_type_points

    length = tier_points(len(subject), policy.length_tiers)
    mood = _mood_points(subject, m, policy)

    return MessageQualityScore(
        convention=convention,
        length=length,
        imperative_mood=mood,
        total=clamp(convention + length + mood),
        is_conventional=is_conventional,
        commit_type=commit_type,
    )


def size_score(stats, policy=DEFAULT_POLICY):
    """
    Score a commit's magnitude (0-100) from its CommitStats.

    An empty diff gets the neutral middle tier rather than full or zero points.
    """
    total = max(0, int(stats.total))
    files = max(0, int(stats.files_changed))

    lines_pts = tier_points(total, policy.line_tiers)
    files_pts = tier_points(files, policy.file_tiers)

    return SizeScore(
        lines=lines_pts,
        files=files_pts,
        total=clamp(lines_pts + files_pts),
        is_giant=total > policy.giant_threshold,
        is_tiny=total < policy.tiny_threshold,
    )


def commit_score(commit, policy=DEFAULT_POLICY):
    """
    Score one commit. No state, no I/O: safe for incremental re-scoring.
    """
    mq = message_quality_score(commit.message, policy)
    sz = size_score(commit.stats, policy)
    overall = weighted_round([
        (policy.message_weight, mq.total),
        (policy.size_weight, sz.total),
    ])
    return CommitScore(
        sha=commit.sha,
        message_quality=mq,
        size_score=sz,
        overall=clamp(overall),
    )


def score_commits(commits, policy=DEFAULT_POLICY):
    """Return a sha -> CommitScore dict for a list of commits."""
    return {c.sha: commit_score(c, policy) for c in commits}
