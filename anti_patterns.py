# anti_patterns.py
#
# Purpose:
# Scan the full commit list for commit-level practices that tend to hurt a
# history: oversized diffs, tiny diffs with vague messages, work-in-progress
# markers and merge commits.
#
# Rules are evaluated independently, so one commit can show up under several
# types. The detector always returns the complete list; cutting it down for
# display is the caller's job (top_examples() helps with that).

from models import (
    ANTI_PATTERN_TYPES,
    GIANT_COMMIT,
    MERGE_COMMIT,
    TINY_COMMIT,
    WIP_COMMIT,
    AntiPatternRecord,
    AntiPatternSummary,
)
from scoring_policy import DEFAULT_POLICY


def is_vague_message(message, policy=DEFAULT_POLICY):
    """A subject line shorter than policy.vague_subject_length characters."""
    subject = (message or "").split("\n", 1)[0].strip()
    return len(subject) < policy.vague_subject_length


def is_wip_message(message, policy=DEFAULT_POLICY):
    """Case-insensitive substring (or subject-start) match on the WIP indicator list."""
    lower = (message or "").lower()
    subject = lower.split("\n", 1)[0].strip()
    for indicator in policy.wip_indicators:
        if indicator in lower or subject.startswith(indicator):
            return True
    return False


def detect_commit_anti_patterns(commit, policy=DEFAULT_POLICY):
    """Return the AntiPatternRecords triggered by a single commit."""
    found = []
    subject = commit.subject
    total = commit.stats.total

    if total > policy.giant_threshold:
        found.append(AntiPatternRecord(
            type=GIANT_COMMIT,
            sha=commit.sha,
            message=subject,
            description=(
                f"This commit changes {total:,} lines across "
                f"{commit.stats.files_changed} files. Consider breaking large "
                "changes into smaller, focused commits."
            ),
        ))

    if total < policy.tiny_threshold and is_vague_message(commit.message, policy):
        found.append(AntiPatternRecord(
            type=TINY_COMMIT,
            sha=commit.sha,
            message=subject,
            description=(
                f"This commit has only {total} lines changed with a brief "
                "message. Consider combining related small changes."
            ),
        ))

    if is_wip_message(commit.message, policy):
        found.append(AntiPatternRecord(
            type=WIP_COMMIT,
            sha=commit.sha,
            message=subject,
            description=(
                "Work-in-progress commits should be squashed or amended "
                "before merging to the main branch."
            ),
        ))

    if commit.is_merge:
        found.append(AntiPatternRecord(
            type=MERGE_COMMIT,
            sha=commit.sha,
            message=subject,
            description=(
                "Merge commits add noise to history. Consider a rebase "
                "workflow for a cleaner history."
            ),
        ))

    return found


def detect_anti_patterns(commits, policy=DEFAULT_POLICY):
    """
    Run every rule over every commit.

    Returns an AntiPatternSummary with the complete record list (commit order,
    then rule order) plus a count per type.
    """
    records = []
    for c in commits:
        records.extend(detect_commit_anti_patterns(c, policy))

    counts = {t: 0 for t in ANTI_PATTERN_TYPES}
    for r in records:
        counts[r.type] += 1

    return AntiPatternSummary(
        records=tuple(records),
        giant_commits=counts[GIANT_COMMIT],
        tiny_commits=counts[TINY_COMMIT],
        wip_commits=counts[WIP_COMMIT],
        merge_commits=counts[MERGE_COMMIT],
    )


def top_examples(records, n=5, pattern_type=None):
    """First n records, optionally only of one type. For display layers."""
    picked = [r for r in records if pattern_type is None or r.type == pattern_type]
    return picked[:n]
