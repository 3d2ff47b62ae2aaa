# recommendations.py
#
# Purpose:
# Turn repository-level numbers into a short, prioritized list of advice.
#
# Fixed rules, checked in order, at most MAX_RECOMMENDATIONS returned
# (high before medium before low). Ids are fixed slugs, so the same input
# always produces the same list.

from models import Recommendation


MAX_RECOMMENDATIONS = 3

MESSAGE_SCORE_FLOOR = 60
SIZE_SCORE_FLOOR = 70
WIP_RATIO_CEILING = 0.10
MERGE_RATIO_CEILING = 0.30

_PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


def _conventional_commits():
    return Recommendation(
        id="adopt-conventional-commits",
        priority="high",
        category="Message Quality",
        title="Adopt Conventional Commits",
        description=(
            "Commit messages could benefit from a standard format like "
            "Conventional Commits."
        ),
        action_items=(
            "Use prefixes like feat:, fix:, docs:, refactor:",
            "Keep the first line under 72 characters",
            'Use imperative mood (e.g., "Add feature" not "Added feature")',
        ),
    )


def _smaller_commits():
    return Recommendation(
        id="make-smaller-atomic-commits",
        priority="high",
        category="Commit Size",
        title="Make Smaller, Atomic Commits",
        description=(
            "Commits tend to be large. Breaking them into smaller, focused "
            "changes improves reviewability."
        ),
        action_items=(
            "Aim for commits under 300 lines of change",
            "Each commit should represent one logical change",
            "Use git add -p to stage partial changes",
        ),
    )


def _squash_wip():
    return Recommendation(
        id="squash-wip-commits",
        priority="medium",
        category="History Hygiene",
        title="Squash Work-in-Progress Commits",
        description=(
            "Many commits are marked as work in progress. Squash or amend "
            "them before they reach the main branch."
        ),
        action_items=(
            "Use git commit --fixup and git rebase --autosquash",
            "Reword WIP commits to describe the finished change",
        ),
    )


def _prefer_rebase():
    return Recommendation(
        id="prefer-rebasing",
        priority="low",
        category="History Hygiene",
        title="Prefer Rebasing Feature Branches",
        description=(
            "A large share of the history is merge commits. Rebasing keeps "
            "the history linear and easier to bisect."
        ),
        action_items=(
            "Rebase feature branches onto the main branch before merging",
            "Consider squash-merge for small pull requests",
        ),
    )


def _keep_it_up():
    return Recommendation(
        id="keep-up-the-good-work",
        priority="low",
        category="General",
        title="Keep Up the Good Work!",
        description="Git practices are solid. A few tips to go from good to great.",
        action_items=(
            "Add detailed commit bodies for complex changes",
            "Consider git hooks for commit message validation",
            "Document your branching strategy for team alignment",
        ),
    )


def generate_recommendations(summary, anti_patterns):
    """
    summary: dict from analytics.compute_summary()
    anti_patterns: AntiPatternSummary

    An empty history gets no recommendations.
    """
    total = summary.get("total_commits", 0)
    if not total:
        return ()

    picked = []
    if summary.get("average_message_score", 0) < MESSAGE_SCORE_FLOOR:
        picked.append(_conventional_commits())
    if summary.get("average_size_score", 0) < SIZE_SCORE_FLOOR:
        picked.append(_smaller_commits())
    if anti_patterns.wip_commits / total > WIP_RATIO_CEILING:
        picked.append(_squash_wip())
    if anti_patterns.merge_commits / total > MERGE_RATIO_CEILING:
        picked.append(_prefer_rebase())

    if not picked:
        picked.append(_keep_it_up())

    picked.sort(key=lambda r: _PRIORITY_ORDER[r.priority])
    return tuple(picked[:MAX_RECOMMENDATIONS])
