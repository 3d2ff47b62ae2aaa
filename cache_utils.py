# cache_utils.py
#
# Purpose:
# A very simple file-based cache for JSON objects.
# Used for raw GitHub responses and for finished analysis results, so a
# repository analysed in the last 24 hours is not fetched and scored again.
#
# Why files:
# - easy to inspect by hand (one .json per entry)
# - no extra service to run
# - a broken or stale file is just a cache miss

import hashlib  # Used to create stable hashed cache keys
import json     # Used to save/load cached objects as JSON
import logging
import os       # Used for file paths and creating folders
import shutil   # Used to wipe a cache folder
import time     # Used to calculate cache age (TTL)

logger = logging.getLogger(__name__)

ANALYSIS_CACHE_DIR = os.path.join("cache", "analyses")
ANALYSIS_TTL_MINUTES = 24 * 60


def ensure_dir(path):
    """
    Ensure a directory exists.
    exist_ok=True prevents errors if the folder already exists.
    """
    os.makedirs(path, exist_ok=True)


def _hash_key(s):
    """
    Convert an input string into a fixed-length SHA256 hex string, so cache
    file names are safe (no slashes, spaces, etc.).
    """
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def cache_get(cache_dir, key, ttl_minutes):
    """
    Read from cache if possible.

    Returns the cached JSON object, or None if the file is missing, older
    than ttl_minutes, or unreadable.
    """
    path = os.path.join(cache_dir, f"{key}.json")

    if not os.path.exists(path):
        return None

    # File modification time = last time this entry was written
    age_seconds = time.time() - os.path.getmtime(path)
    if age_seconds > (ttl_minutes * 60):
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable cache file %s: %s", path, e)
        return None


def cache_set(cache_dir, key, obj):
    """
    Write a JSON-serializable object to cache.

    Best effort: a failed write is logged and otherwise ignored.
    """
    path = os.path.join(cache_dir, f"{key}.json")

    try:
        ensure_dir(cache_dir)
        with open(path, "w", encoding="utf-8") as f:
            # indent=2 keeps the file human-readable
            json.dump(obj, f, indent=2)
    except (OSError, TypeError, ValueError) as e:
        logger.warning("Could not write cache file %s: %s", path, e)


def make_analysis_cache_key(owner, repo, ai_enabled=False, limit=None):
    """
    Cache key for a finished analysis.

    GitHub names are case-insensitive, so owner/repo is lowercased. Whether
    the AI layer ran and the commit limit are part of the key, so a
    heuristic-only result never answers a request for an AI-enhanced one.
    """
    raw = json.dumps({
        "repo": f"{owner}/{repo}".lower(),
        "ai": bool(ai_enabled),
        "limit": limit,
    }, sort_keys=True)
    return _hash_key(raw)


def get_cached_analysis(owner, repo, ai_enabled=False, limit=None,
                        cache_dir=ANALYSIS_CACHE_DIR, ttl_minutes=ANALYSIS_TTL_MINUTES):
    """Return a cached analysis snapshot (dict) or None."""
    key = make_analysis_cache_key(owner, repo, ai_enabled, limit)
    hit = cache_get(cache_dir, key, ttl_minutes)
    if hit is not None:
        logger.info("Cache hit for %s/%s", owner, repo)
    return hit


def set_cached_analysis(owner, repo, result, ai_enabled=False, limit=None, cache_dir=ANALYSIS_CACHE_DIR):
    """
    Store an analysis. result may be an AnalysisResult or its to_dict()
    snapshot.
    """
    snapshot = result.to_dict() if hasattr(result, "to_dict") else result
    key = make_analysis_cache_key(owner, repo, ai_enabled, limit)
    cache_set(cache_dir, key, snapshot)


def clear_cached_analysis(cache_dir=ANALYSIS_CACHE_DIR):
    """Delete every cached analysis. Returns the number of files removed."""
    if not os.path.isdir(cache_dir):
        return 0
    count = len([n for n in os.listdir(cache_dir) if n.endswith(".json")])
    shutil.rmtree(cache_dir, ignore_errors=True)
    return count
