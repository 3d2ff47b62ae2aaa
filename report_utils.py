# report_utils.py
#
# What this file is:
# Generates a PDF version of an analysis using ReportLab.
#
# Why:
# A PDF is a shareable snapshot someone can read without running anything.
#
# How it works (high level):
# - Create the reports/ folder if it doesn't exist
# - Build a timestamped filename so old reports aren't overwritten
# - Draw lines of text top to bottom on a ReportLab canvas
# - Start a new page when the current one fills up
# - Save the PDF and return the file path

import os
from datetime import datetime

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from file_utils import REPORTS_DIR, as_snapshot, contributor_rows, ensure_reports_dir, snapshot_name


def export_analysis_pdf(result, output_name=None, reports_dir=REPORTS_DIR):
    """
    Create a PDF report and return its path.

    result: AnalysisResult or its to_dict() snapshot (e.g. from the cache)
    output_name: optional filename override

    ReportLab does not wrap text, so long strings are clamped.
    """
    snapshot = as_snapshot(result)
    ensure_reports_dir(reports_dir)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    if not output_name:
        output_name = f"{snapshot_name(snapshot)}_report_{timestamp}.pdf"
    path = os.path.join(reports_dir, output_name)

    c = canvas.Canvas(path, pagesize=letter)
    width, height = letter

    x = 50                 # left margin
    y = height - 50        # ReportLab's origin is bottom-left
    line = 14

    def write(text, bold=False):
        """Draw one line and move down, breaking the page when needed."""
        nonlocal y
        if y < 60:
            c.showPage()
            y = height - 50
        c.setFont("Helvetica-Bold" if bold else "Helvetica", 11)
        c.drawString(x, y, str(text)[:120])
        y -= line

    repo = snapshot.get("repository") or {}
    summary = snapshot.get("summary") or {}
    anti = snapshot.get("anti_patterns") or {}
    collab = snapshot.get("collaboration") or {}
    bus = collab.get("bus_factor") or {}
    pattern = collab.get("pattern") or {}
    usage = snapshot.get("token_usage") or {}

    # ----------------------------
    # Report Content
    # ----------------------------
    write("Commit Quality Report", bold=True)
    write(f"Repository: {repo.get('full_name') or 'n/a'}")
    write(f"Generated: {timestamp}")
    write("")

    write("Scores", bold=True)
    write(f"Repository Score: {snapshot.get('repository_score', 0)} / 100")
    write(f"Heuristic Score: {snapshot.get('heuristic_score', 0)}")
    ai_score = snapshot.get("ai_repository_score")
    write(f"AI-Enhanced Score: {ai_score if ai_score is not None else 'n/a'}")
    write(f"AI Analysis: {snapshot.get('ai_status', 'disabled')} ({usage.get('total_tokens', 0)} tokens)")
    write(f"Commits: {summary.get('total_commits', 0)} | Contributors: {summary.get('total_contributors', 0)}")
    write("")

    write("Top Contributors", bold=True)
    rows = contributor_rows(snapshot)
    if rows:
        for r in rows[:10]:
            write(f"{r['name']} <{r['email']}> | commits={r['total_commits']} | "
                  f"avg={r['average_score']} | consistency={r['consistency_score']} | {r['category']}")
    else:
        write("No contributors.")
    write("")

    write("Anti-Patterns", bold=True)
    write(f"Giant: {anti.get('giant_commits', 0)} | Tiny: {anti.get('tiny_commits', 0)} | "
          f"WIP: {anti.get('wip_commits', 0)} | Merge: {anti.get('merge_commits', 0)}")
    write("")

    write("Collaboration", bold=True)
    write(f"Bus Factor: {bus.get('bus_factor', 0)} ({bus.get('risk_level', 'high')} risk)")
    write(f"Pattern: {pattern.get('type', 'siloed')} (score {pattern.get('score', 0)})")
    write("")

    write("Recommendations", bold=True)
    recs = snapshot.get("recommendations") or []
    if recs:
        for rec in recs:
            write(f"[{rec.get('priority')}] {rec.get('title')}")
            for item in rec.get("action_items") or []:
                write(f"  - {item}")
    else:
        write("No recommendations.")

    c.save()
    return path
