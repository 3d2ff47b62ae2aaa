# main.py
#
# What this file is:
# The command-line (terminal) front end. It uses a simple menu and prints
# results to the console.
#
# Big picture flow (Option 1):
#   parse input -> cache check -> GitHub API -> analytics pipeline
#   -> exports (JSON/CSV/Markdown/PDF) -> cache
#
# Notes on style:
# - printing lives here; the pipeline modules only log
# - every printer works on the dict snapshot, so a cached result and a fresh
#   one are shown the same way
# - input is validated before any API call is made

import logging

from analytics import analyze_repository
from cache_utils import clear_cached_analysis, get_cached_analysis, set_cached_analysis
from file_utils import (
    effective_score,
    load_repo_list,
    save_commits_csv,
    save_contributors_csv,
    save_markdown_report,
    save_result_json,
)
from github_api import MAX_COMMITS, fetch_commits, fetch_repository, parse_repo_input
from llm_utils import make_default_provider
from report_utils import export_analysis_pdf

# Upper bound on the AI stage; batches still running after this keep their
# heuristic score.
SEMANTIC_TIMEOUT_SECONDS = 180


def print_menu():
    """Print the menu options."""
    print("\nCommitLens - Commit Quality Analyzer")
    print("----------------------------")
    print("1. Analyze a repository (exports + cache)")
    print("2. Analyze repositories from file (summary only)")
    print("3. Clear analysis cache")
    print("q. Quit")


def print_summary(snapshot):
    """Print the headline numbers in a fixed order."""
    summary = snapshot.get("summary") or {}
    usage = snapshot.get("token_usage") or {}

    print("\nSUMMARY")
    print("----------------------------")
    rows = [
        ("repository_score", snapshot.get("repository_score")),
        ("heuristic_score", snapshot.get("heuristic_score")),
        ("ai_score", snapshot.get("ai_repository_score")),
        ("ai_status", snapshot.get("ai_status")),
        ("ai_coverage", snapshot.get("ai_coverage")),
        ("tokens_used", usage.get("total_tokens", 0)),
        ("total_commits", summary.get("total_commits")),
        ("contributors", summary.get("total_contributors")),
        ("avg_message", summary.get("average_message_score")),
        ("avg_size", summary.get("average_size_score")),
        ("conventional", summary.get("conventional_commit_ratio")),
    ]
    for k, v in rows:
        print(f"{k:16} : {v}")


def print_contributors(snapshot, n=5):
    print("\nTOP CONTRIBUTORS")
    print("----------------------------")
    for i, c in enumerate((snapshot.get("contributors") or [])[:n], start=1):
        score = c.get("score") or {}
        stats = c.get("stats") or {}
        print(
            f"{i}. {c.get('name')} <{c.get('email')}> | commits={stats.get('total_commits')} | "
            f"avg={score.get('average_score')} | consistency={score.get('consistency_score')} | "
            f"{score.get('category')}"
        )


def print_anti_patterns(snapshot, n=5):
    anti = snapshot.get("anti_patterns") or {}
    records = anti.get("records") or []

    print("\nANTI-PATTERNS")
    print("----------------------------")
    print(
        f"giant={anti.get('giant_commits', 0)} tiny={anti.get('tiny_commits', 0)} "
        f"wip={anti.get('wip_commits', 0)} merge={anti.get('merge_commits', 0)}"
    )
    for r in records[:n]:
        print(f"- {(r.get('sha') or '')[:7]} {r.get('type')}: {r.get('message')}")
    if len(records) > n:
        print(f"(Showing first {n} of {len(records)})")


def print_lowest_commits(snapshot, n=5):
    rows = [c for c in (snapshot.get("commits") or []) if effective_score(c) is not None]
    rows.sort(key=effective_score)

    print("\nLOWEST-SCORING COMMITS")
    print("----------------------------")
    for c in rows[:n]:
        commit = c.get("commit") or {}
        subject = (commit.get("message") or "").split("\n", 1)[0]
        print(f"- {(commit.get('sha') or '')[:7]} score={effective_score(c)} | {subject[:70]}")


def print_recommendations(snapshot):
    print("\nRECOMMENDATIONS")
    print("----------------------------")
    for rec in snapshot.get("recommendations") or []:
        print(f"[{rec.get('priority')}] {rec.get('title')}")
        for item in rec.get("action_items") or []:
            print(f"    - {item}")


def _run_analysis(owner, repo, provider, limit=MAX_COMMITS):
    """
    Cache -> GitHub -> pipeline. Returns (snapshot, error_string).
    """
    ai_enabled = provider is not None
    cached = get_cached_analysis(owner, repo, ai_enabled=ai_enabled, limit=limit)
    if cached is not None:
        print("(Loaded from cache)")
        return cached, None

    repository, err = fetch_repository(owner, repo)
    if err:
        return None, str(err)

    commits, err = fetch_commits(owner, repo, limit=limit)
    if err:
        return None, str(err)

    if ai_enabled:
        print(f"Analyzing {len(commits)} commits with AI (this can take a minute)...")

    result = analyze_repository(
        commits,
        repository=repository,
        provider=provider,
        timeout=SEMANTIC_TIMEOUT_SECONDS,
    )
    set_cached_analysis(owner, repo, result, ai_enabled=ai_enabled, limit=limit)
    return result.to_dict(), None


def analyze_one(provider):
    """
    Full pipeline for one repository, with every export.
    """
    text = input("Enter repository (owner/repo or URL): ").strip()
    parsed, err = parse_repo_input(text)
    if err:
        print(f"Error: {err}")
        return
    owner, repo = parsed

    snapshot, err = _run_analysis(owner, repo, provider)
    if err:
        print(f"Error: {err}")
        return

    json_path = save_result_json(snapshot)
    contrib_path = save_contributors_csv(snapshot)
    commits_path = save_commits_csv(snapshot)
    md_path = save_markdown_report(snapshot)
    pdf_path = export_analysis_pdf(snapshot)

    print("\nEXPORTS")
    print("----------------------------")
    print("Analysis JSON   :", json_path)
    print("Contributors CSV:", contrib_path)
    print("Commits CSV     :", commits_path)
    print("Report MD       :", md_path)
    print("Report PDF      :", pdf_path)

    print_summary(snapshot)
    print_contributors(snapshot)
    print_anti_patterns(snapshot)
    print_lowest_commits(snapshot)
    print_recommendations(snapshot)


def analyze_file(provider):
    """
    Analyze every repository listed in repos.txt (summary-only mode, no exports).
    """
    entries = load_repo_list()
    if not entries:
        print("No repositories found. Create repos.txt with one owner/repo per line.")
        return

    for entry in entries:
        print(f"\nAnalyzing {entry}...")
        parsed, err = parse_repo_input(entry)
        if err:
            print(f"  Skipped: {err}")
            continue

        snapshot, err = _run_analysis(parsed[0], parsed[1], provider)
        if err:
            print(f"  Error: {err}")
            continue
        print_summary(snapshot)


def clear_cache_option():
    removed = clear_cached_analysis()
    print(f"Removed {removed} cached analyses.")


def main():
    """
    Sentinel-controlled main menu loop: keep going until the user enters "q".
    """
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    provider = make_default_provider()
    if provider is None:
        print("GROQ_API_KEY not set: running heuristic-only analysis (AI disabled).")

    choice = ""
    while choice != "q":
        print_menu()
        choice = input("Choice: ").strip().lower()

        if choice == "1":
            analyze_one(provider)
        elif choice == "2":
            analyze_file(provider)
        elif choice == "3":
            clear_cache_option()
        elif choice == "q":
            print("Goodbye!")
        else:
            print("Invalid option. Try again.")


# Run the menu only when executed directly (python main.py), not on import.
if __name__ == "__main__":
    main()
