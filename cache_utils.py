# cache_utils.py
#
# Purpose:
# A small JSON file cache for analysis results.
# Uploading the same files twice should not cost another Gemini request,
# and with a rate limit of one request every two seconds (plus 5s backoffs
# when throttled) a repeat analysis is slow.
#
# Only genuine results are cached. A fallback report is a placeholder, so
# the next attempt should try the API again instead of replaying it.
#
# Layout on disk:
#   cache/analysis/<sha256>.json  ->  {"result": {...}, "model": "..."}

import hashlib
import json
import os
import shutil
import time

from log_utils import get_logger

logger = get_logger("cache")

ANALYSIS_CACHE_DIR = os.path.join("cache", "analysis")

# Bump when the prompt changes so old entries are not reused.
CACHE_VERSION = "debt_v1"


def make_analysis_cache_key(selected_files, model_name="default"):
    """
    Hash the exact prompt inputs (paths + truncated contents + model).

    selected_files should be the output of llm_utils.select_files(), so two
    uploads that produce the same prompt share a cache entry.
    """
    files_part = [
        {"path": f.get("path", ""), "content": f.get("content", "")}
        for f in (selected_files or [])
    ]
    raw = json.dumps(
        {"version": CACHE_VERSION, "model": model_name, "files": files_part},
        sort_keys=True,
    )
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _entry_path(cache_dir, key):
    return os.path.join(cache_dir, f"{key}.json")


def cache_get(key, ttl_minutes, cache_dir=ANALYSIS_CACHE_DIR):
    """
    Return the cached analysis dict, or None on a miss.

    Expired, missing and unreadable entries are all treated as misses.
    """
    path = _entry_path(cache_dir, key)
    if not os.path.exists(path):
        return None

    age_seconds = time.time() - os.path.getmtime(path)
    if age_seconds > ttl_minutes * 60:
        logger.debug("Cache entry %s expired (%.0fs old)", key[:12], age_seconds)
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            entry = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable cache entry %s: %s", path, e)
        return None

    if not isinstance(entry, dict) or not isinstance(entry.get("result"), dict):
        return None
    return entry["result"]


def cache_set(key, result, model_name="default", cache_dir=ANALYSIS_CACHE_DIR):
    """
    Store an analysis dict. A failed write is logged and otherwise ignored,
    since the cache is only an optimization.
    """
    os.makedirs(cache_dir, exist_ok=True)
    path = _entry_path(cache_dir, key)

    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump({"result": result, "model": model_name}, f, indent=2)
    except (OSError, TypeError, ValueError) as e:
        logger.warning("Could not write cache entry %s: %s", path, e)


def clear_cache(cache_dir=ANALYSIS_CACHE_DIR):
    """Delete every cached entry and recreate the empty folder."""
    if os.path.exists(cache_dir):
        shutil.rmtree(cache_dir)
    os.makedirs(cache_dir, exist_ok=True)
