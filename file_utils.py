# file_utils.py
#
# Purpose:
# This file handles saving an analysis to disk in a few formats:
#   1) JSON snapshot (the whole result, easy for tools to read later)
#   2) contributors CSV and commits CSV (easy to open in Excel/Sheets)
#   3) Markdown report (easy for a human to read, renders on GitHub)
# It also loads a list of repositories from a text file.
#
# Every export accepts either an AnalysisResult or the dict snapshot from
# AnalysisResult.to_dict() (which is what the analysis cache stores), so a
# cached result can be exported without re-running anything.

import csv                     # Write CSV files (built-in)
import json                    # Write JSON files (built-in)
import logging
import os                      # File paths + existence checks
import re
from datetime import datetime  # Timestamp for filenames

logger = logging.getLogger(__name__)

REPORTS_DIR = "reports"        # Folder to store all outputs

CONTRIBUTOR_FIELDS = [
    "email", "name", "username", "total_commits", "average_score",
    "consistency_score", "category", "ai_average_score", "dominant_intent",
    "total_additions", "total_deletions", "average_commit_size", "velocity",
    "first_commit", "last_commit",
]

COMMIT_FIELDS = [
    "sha", "author_email", "timestamp", "subject", "message_score",
    "size_score", "heuristic_score", "enhanced_score", "effective_score",
    "intent", "additions", "deletions", "files_changed", "is_merge",
]


def ensure_reports_dir(reports_dir=REPORTS_DIR):
    """Create the reports folder if it doesn't exist."""
    os.makedirs(reports_dir, exist_ok=True)


def _timestamp():
    """
    Timestamp string for filenames, e.g. 20260228_014512.
    Exports never overwrite previous runs.
    """
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def as_snapshot(result):
    """AnalysisResult -> dict snapshot; dicts pass through unchanged."""
    if hasattr(result, "to_dict"):
        return result.to_dict()
    return result


def snapshot_name(snapshot):
    """Filename-safe base name, e.g. 'octocat_hello-world'."""
    repo = snapshot.get("repository") or {}
    name = repo.get("full_name") or "analysis"
    return re.sub(r"[^A-Za-z0-9._-]+", "_", name)


def _export_path(snapshot, kind, ext, reports_dir):
    ensure_reports_dir(reports_dir)
    return os.path.join(reports_dir, f"{snapshot_name(snapshot)}_{kind}_{_timestamp()}.{ext}")


def effective_score(commit_row):
    """Enhanced overall when present, else heuristic overall (snapshot rows)."""
    enhanced = commit_row.get("enhanced")
    if enhanced:
        return enhanced.get("overall")
    return (commit_row.get("score") or {}).get("overall")


def save_result_json(result, reports_dir=REPORTS_DIR):
    """Save the full analysis snapshot as JSON. Returns the saved path."""
    snapshot = as_snapshot(result)
    path = _export_path(snapshot, "analysis", "json", reports_dir)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(snapshot, f, indent=2)

    return path


def contributor_rows(snapshot):
    """Flatten snapshot contributors into CSV-ready dicts."""
    rows = []
    for c in snapshot.get("contributors") or []:
        stats = c.get("stats") or {}
        score = c.get("score") or {}
        rows.append({
            "email": c.get("email"),
            "name": c.get("name"),
            "username": c.get("username"),
            "total_commits": stats.get("total_commits", 0),
            "average_score": score.get("average_score", 0),
            "consistency_score": score.get("consistency_score", 0),
            "category": score.get("category"),
            "ai_average_score": c.get("ai_average_score"),
            "dominant_intent": c.get("dominant_intent"),
            "total_additions": stats.get("total_additions", 0),
            "total_deletions": stats.get("total_deletions", 0),
            "average_commit_size": stats.get("average_commit_size", 0),
            "velocity": stats.get("velocity", 0),
            "first_commit": stats.get("first_commit"),
            "last_commit": stats.get("last_commit"),
        })
    return rows


def commit_rows(snapshot):
    """Flatten snapshot commits into CSV-ready dicts."""
    rows = []
    for sc in snapshot.get("commits") or []:
        commit = sc.get("commit") or {}
        score = sc.get("score") or {}
        enhanced = sc.get("enhanced") or {}
        stats = commit.get("stats") or {}
        semantic = enhanced.get("semantic_analysis") or {}
        rows.append({
            "sha": commit.get("sha"),
            "author_email": (commit.get("author") or {}).get("email"),
            "timestamp": commit.get("timestamp"),
            "subject": (commit.get("message") or "").split("\n", 1)[0],
            "message_score": (score.get("message_quality") or {}).get("total"),
            "size_score": (score.get("size_score") or {}).get("total"),
            "heuristic_score": score.get("overall"),
            "enhanced_score": enhanced.get("overall"),
            "effective_score": effective_score(sc),
            "intent": semantic.get("intent"),
            "additions": stats.get("additions", 0),
            "deletions": stats.get("deletions", 0),
            "files_changed": stats.get("files_changed", 0),
            "is_merge": len(commit.get("parent_shas") or []) > 1,
        })
    return rows


def _write_csv(path, fieldnames, rows):
    # newline="" prevents extra blank lines on Windows
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)


def save_contributors_csv(result, reports_dir=REPORTS_DIR):
    """One row per contributor. Returns the saved path (header-only when empty)."""
    snapshot = as_snapshot(result)
    path = _export_path(snapshot, "contributors", "csv", reports_dir)
    _write_csv(path, CONTRIBUTOR_FIELDS, contributor_rows(snapshot))
    return path


def save_commits_csv(result, reports_dir=REPORTS_DIR):
    """One row per commit, in fetch order. Returns the saved path."""
    snapshot = as_snapshot(result)
    path = _export_path(snapshot, "commits", "csv", reports_dir)
    _write_csv(path, COMMIT_FIELDS, commit_rows(snapshot))
    return path


def markdown_report(snapshot):
    """Render a snapshot as Markdown text."""
    repo = snapshot.get("repository") or {}
    summary = snapshot.get("summary") or {}
    anti = snapshot.get("anti_patterns") or {}
    collab = snapshot.get("collaboration") or {}
    temporal = snapshot.get("temporal") or {}
    usage = snapshot.get("token_usage") or {}

    lines = []
    lines.append(f"# Commit Quality Report: {repo.get('full_name') or 'repository'}")
    lines.append("")
    lines.append(f"- Repository score: **{snapshot.get('repository_score', 0)}** / 100")
    lines.append(f"- Heuristic score: {snapshot.get('heuristic_score', 0)}")
    if snapshot.get("ai_repository_score") is not None:
        lines.append(f"- AI-enhanced score: {snapshot.get('ai_repository_score')}")
    lines.append(
        f"- AI analysis: {snapshot.get('ai_status', 'disabled')} "
        f"(coverage {round((snapshot.get('ai_coverage') or 0) * 100)}%, "
        f"{usage.get('total_tokens', 0)} tokens)"
    )
    lines.append(f"- Commits analysed: {summary.get('total_commits', 0)}")
    lines.append(f"- Contributors: {summary.get('total_contributors', 0)}")
    lines.append("")

    lines.append("## Contributors")
    lines.append("")
    lines.append("| Contributor | Commits | Avg score | Consistency | Category |")
    lines.append("|---|---|---|---|---|")
    for row in contributor_rows(snapshot):
        lines.append(
            f"| {row['name']} ({row['email']}) | {row['total_commits']} | "
            f"{row['average_score']} | {row['consistency_score']} | {row['category']} |"
        )
    lines.append("")

    records = anti.get("records") or []
    lines.append("## Anti-patterns")
    lines.append("")
    lines.append(
        f"Giant: {anti.get('giant_commits', 0)}, tiny: {anti.get('tiny_commits', 0)}, "
        f"WIP: {anti.get('wip_commits', 0)}, merge: {anti.get('merge_commits', 0)} "
        f"(total {len(records)})"
    )
    lines.append("")
    for r in records[:10]:
        lines.append(f"- `{(r.get('sha') or '')[:7]}` {r.get('type')}: {r.get('message')}")
    lines.append("")

    bus = collab.get("bus_factor") or {}
    lines.append("## Collaboration")
    lines.append("")
    lines.append(f"- Bus factor: {bus.get('bus_factor', 0)} ({bus.get('risk_level', 'high')} risk)")
    pattern = collab.get("pattern") or {}
    lines.append(f"- Pattern: {pattern.get('type', 'siloed')} (score {pattern.get('score', 0)})")
    for text in collab.get("insights") or []:
        lines.append(f"- {text}")
    lines.append("")

    flags = temporal.get("flags") or []
    if flags:
        lines.append("## Temporal flags")
        lines.append("")
        for text in flags:
            lines.append(f"- {text}")
        lines.append("")

    lines.append("## Recommendations")
    lines.append("")
    for rec in snapshot.get("recommendations") or []:
        lines.append(f"### {rec.get('title')} ({rec.get('priority')})")
        lines.append("")
        lines.append(rec.get("description") or "")
        for item in rec.get("action_items") or []:
            lines.append(f"- {item}")
        lines.append("")

    insights = snapshot.get("ai_insights") or []
    if insights:
        lines.append("## AI insights")
        lines.append("")
        for ins in insights:
            lines.append(f"- **{ins.get('title')}** [{ins.get('severity')}]: {ins.get('description')}")
        lines.append("")

    return "\n".join(lines)


def save_markdown_report(result, reports_dir=REPORTS_DIR):
    """Save a human-readable Markdown report. Returns the saved path."""
    snapshot = as_snapshot(result)
    path = _export_path(snapshot, "report", "md", reports_dir)

    with open(path, "w", encoding="utf-8") as f:
        f.write(markdown_report(snapshot))

    return path


def load_repo_list(path="repos.txt"):
    """
    Load repositories from a text file (one per line).

    Expected file format:
      octocat/Hello-World
      https://github.com/psf/requests
      # lines starting with '#' are ignored

    Returns a list of strings ([] when the file is missing).
    """
    if not os.path.exists(path):
        logger.warning("Repository list not found: %s", path)
        return []

    repos = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            s = line.strip()
            if s != "" and not s.startswith("#"):
                repos.append(s)

    return repos
