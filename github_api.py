# github_api.py
#
# Purpose:
# This file is the "data ingestion" layer.
# It pulls repository metadata and commit history from the GitHub REST API and
# returns Repository / Commit records for the scoring pipeline.
#
# Why it is separate:
# - the scoring modules stay pure (no network calls)
# - main.py only deals with menus and printing
# - errors are classified once here, so callers can show a clear message
#
# Main features in this file:
# 1) Token support (higher GitHub rate limits)
# 2) A JSON file cache for raw responses (so re-runs don't spam the API)
# 3) parse_repo_input(): "owner/repo" or a github.com URL -> (owner, repo)
# 4) fetch_repository(): repo metadata
# 5) fetch_commits(): paginated commit list + per-commit detail (stats, files)
#
# Every fetch returns (data, error). error is a GitHubError or None; this
# module never retries, the caller decides what to do.

import hashlib
import json
import logging
import os
import re

import requests

from cache_utils import cache_get, cache_set
from models import Commit, Repository, parse_timestamp

logger = logging.getLogger(__name__)

# ----------------------------
# Config
# ----------------------------

# Read the GitHub token from the environment (never hard-code it).
GITHUB_TOKEN = os.getenv("GITHUB_TOKEN")

API_ROOT = "https://api.github.com"

# Accept tells GitHub I want the modern JSON format.
BASE_HEADERS = {"Accept": "application/vnd.github+json"}

# With a token the rate limit goes from 60 to 5000 requests per hour.
if GITHUB_TOKEN:
    BASE_HEADERS["Authorization"] = f"Bearer {GITHUB_TOKEN}"

# Raw API responses are cached here.
CACHE_DIR_DEFAULT = os.path.join("cache", "github")
CACHE_MINUTES_DEFAULT = 30

MAX_COMMITS = 100
PER_PAGE = 100

# Error kinds
NOT_FOUND = "not_found"
PRIVATE_REPO = "private_repo"
RATE_LIMIT = "rate_limit"
INVALID_TOKEN = "invalid_token"
NETWORK_ERROR = "network_error"
UNKNOWN = "unknown"


class GitHubError(Exception):
    """A classified GitHub API failure. kind is one of the constants above."""

    def __init__(self, kind, message, status=None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status

    def __str__(self):
        return self.message


# ----------------------------
# Input parsing
# ----------------------------
_URL_RES = (
    re.compile(r"^https?://github\.com/([^/]+)/([^/]+)", re.IGNORECASE),
    re.compile(r"^github\.com/([^/]+)/([^/]+)", re.IGNORECASE),
    re.compile(r"^([^/]+)/([^/]+)$"),
)
_OWNER_RE = re.compile(r"^[A-Za-z0-9]([A-Za-z0-9-]*[A-Za-z0-9])?$")
_REPO_RE = re.compile(r"^[A-Za-z0-9._-]+$")


def parse_repo_input(text):
    """
    Accepts:
      https://github.com/owner/repo   (http too, extra path segments ignored)
      github.com/owner/repo
      owner/repo
    A trailing slash or ".git" is dropped.

    Returns ((owner, repo), None) or (None, error_string).
    """
    s = (text or "").strip()
    if s == "":
        return None, "Please enter a GitHub repository (owner/repo or a github.com URL)."

    s = s.rstrip("/")
    if s.endswith(".git"):
        s = s[:-4]

    for pattern in _URL_RES:
        m = pattern.match(s)
        if m:
            owner, repo = m.group(1), m.group(2)
            if _OWNER_RE.match(owner) and _REPO_RE.match(repo):
                return (owner, repo), None
            break

    return None, "Invalid GitHub repository. Use owner/repo or https://github.com/owner/repo"


# ----------------------------
# HTTP
# ----------------------------
def _cache_key(url, params):
    """Stable, filename-safe key from URL + sorted params."""
    raw = "GET|" + url + "|" + json.dumps(params or {}, sort_keys=True)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _classify(resp):
    """Map a non-200 response to a GitHubError."""
    status = resp.status_code

    msg = ""
    try:
        body = resp.json()
        if isinstance(body, dict):
            msg = str(body.get("message", ""))
    except ValueError:
        msg = ""

    if status == 404:
        return GitHubError(NOT_FOUND, "Repository not found. Please check the name and try again.", status)
    if status == 401:
        return GitHubError(INVALID_TOKEN, "Unauthorized (401). Check your GITHUB_TOKEN.", status)
    if status in (403, 429):
        remaining = resp.headers.get("X-RateLimit-Remaining")
        if status == 429 or remaining == "0" or "rate limit" in msg.lower():
            return GitHubError(
                RATE_LIMIT,
                "GitHub API rate limit exceeded. Try again later or set GITHUB_TOKEN.",
                status,
            )
        return GitHubError(
            PRIVATE_REPO,
            "This repository is private or access is forbidden. A token with repo access is required.",
            status,
        )
    return GitHubError(UNKNOWN, f"GitHub API error: status {status}. {msg}".strip(), status)


def _get(url, params=None, timeout=20, use_cache=False,
         cache_minutes=CACHE_MINUTES_DEFAULT, cache_dir=CACHE_DIR_DEFAULT):
    """
    Wrapper around requests.get() with optional caching.

    Returns (json_data, GitHubError or None).
    """
    key = None
    if use_cache:
        key = _cache_key(url, params)
        hit = cache_get(cache_dir, key, cache_minutes)
        if hit is not None:
            return hit, None

    try:
        resp = requests.get(url, headers=BASE_HEADERS, params=params, timeout=timeout)
    except requests.RequestException as e:
        # timeouts, DNS issues, no internet, ...
        logger.warning("Network error calling %s: %s", url, e)
        return None, GitHubError(NETWORK_ERROR, f"Network error calling GitHub API: {e}")

    if resp.status_code != 200:
        err = _classify(resp)
        logger.warning("GitHub request failed (%s): %s", err.kind, url)
        return None, err

    try:
        data = resp.json()
    except ValueError:
        return None, GitHubError(UNKNOWN, "GitHub response was not valid JSON.", resp.status_code)

    if use_cache:
        cache_set(cache_dir, key, data)

    return data, None


# ----------------------------
# Core API functions
# ----------------------------
def fetch_repository(owner, repo, use_cache=True,
                     cache_minutes=CACHE_MINUTES_DEFAULT, cache_dir=CACHE_DIR_DEFAULT):
    """
    Fetch repository metadata.

    Returns (Repository, None) or (None, GitHubError).
    """
    url = f"{API_ROOT}/repos/{owner}/{repo}"
    data, err = _get(url, use_cache=use_cache, cache_minutes=cache_minutes, cache_dir=cache_dir)
    if err:
        return None, err
    if not isinstance(data, dict):
        return None, GitHubError(UNKNOWN, "Unexpected response format for repository.")

    owner_obj = data.get("owner") or {}
    return Repository(
        owner=str(owner_obj.get("login") or owner),
        name=str(data.get("name") or repo),
        full_name=str(data.get("full_name") or f"{owner}/{repo}"),
        url=str(data.get("html_url") or f"https://github.com/{owner}/{repo}"),
        description=data.get("description"),
        default_branch=str(data.get("default_branch") or "main"),
        language=data.get("language"),
        stars=int(data.get("stargazers_count") or 0),
        forks=int(data.get("forks_count") or 0),
        created_at=parse_timestamp(data.get("created_at")),
        updated_at=parse_timestamp(data.get("updated_at")),
    ), None


def _raw_commit(item, detail=None):
    """
    Flatten a list-commits item (plus optional detail response) into the
    dict shape Commit.from_dict() understands.
    """
    inner = item.get("commit") or {}
    git_author = inner.get("author") or {}
    gh_author = item.get("author") or {}

    raw = {
        "sha": item.get("sha"),
        "message": inner.get("message"),
        "timestamp": git_author.get("date"),
        "author": {
            "name": git_author.get("name"),
            "email": git_author.get("email"),
            "username": gh_author.get("login"),
        },
        "parent_shas": [p.get("sha") for p in (item.get("parents") or []) if p.get("sha")],
    }

    if isinstance(detail, dict):
        stats = detail.get("stats") or {}
        files = [f.get("filename") for f in (detail.get("files") or []) if f.get("filename")]
        raw["stats"] = {
            "additions": stats.get("additions"),
            "deletions": stats.get("deletions"),
            "total": stats.get("total"),
            "files_changed": len(files),
        }
        raw["files"] = files

    return raw


def fetch_commits(owner, repo, limit=MAX_COMMITS, with_details=True, use_cache=True,
                  cache_minutes=CACHE_MINUTES_DEFAULT, cache_dir=CACHE_DIR_DEFAULT):
    """
    Fetch up to `limit` most recent commits on the default branch.

    Returns (list of Commit, None) or ([], GitHubError) when the commit list
    itself cannot be fetched.

    Why two steps:
      the list endpoint has no diff stats, so each commit's detail endpoint
      is called for additions/deletions and changed file paths. A failed
      detail call keeps the commit with zero stats instead of dropping it.
    """
    limit = max(0, int(limit))
    items = []
    page = 1

    while len(items) < limit:
        url = f"{API_ROOT}/repos/{owner}/{repo}/commits"
        params = {"per_page": min(PER_PAGE, limit), "page": page}

        data, err = _get(url, params=params, use_cache=use_cache,
                         cache_minutes=cache_minutes, cache_dir=cache_dir)
        if err:
            return [], err
        if not isinstance(data, list):
            return [], GitHubError(UNKNOWN, "Unexpected response format for commits.")

        # Empty list means no more pages.
        if len(data) == 0:
            break

        items.extend(data)

        # Fewer than a full page means this was the last one.
        if len(data) < params["per_page"]:
            break
        page += 1

    commits = []
    for item in items[:limit]:
        detail = None
        if with_details and item.get("sha"):
            detail_url = f"{API_ROOT}/repos/{owner}/{repo}/commits/{item['sha']}"
            detail, err = _get(detail_url, use_cache=use_cache,
                               cache_minutes=cache_minutes, cache_dir=cache_dir)
            if err:
                logger.warning("No detail for commit %s: %s", item["sha"][:7], err)
                detail = None
        commits.append(Commit.from_dict(_raw_commit(item, detail)))

    return commits, None
