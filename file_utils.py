# file_utils.py
#
# Purpose:
# Everything that touches files on the way in or out:
#   1) turning Streamlit uploads into {"path", "content", "size"} dicts
#   2) collecting source files from a local folder (CLI mode)
#   3) writing the JSON export of a report
#
# Upload rules:
# - extensions: the analyzable ones plus json/vue/svelte
# - at most 5 MB per file and 100 files per upload
# Files that break a rule are skipped, not treated as errors.

import json
import os
import re
from datetime import datetime

from llm_utils import ANALYSIS_EXTENSIONS, file_extension
from log_utils import get_logger

logger = get_logger("files")

REPORTS_DIR = "reports"

UPLOAD_EXTENSIONS = ANALYSIS_EXTENSIONS + ("json", "vue", "svelte")
MAX_UPLOAD_BYTES = 5 * 1024 * 1024
MAX_UPLOAD_FILES = 100

# Folders that never contain project source worth analyzing.
SKIP_DIRS = {".git", "node_modules", "__pycache__", ".venv", "venv", "dist", "build", ".next", "target"}


def ensure_reports_dir():
    os.makedirs(REPORTS_DIR, exist_ok=True)


def _timestamp():
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def safe_filename(name):
    """Replace anything that is not a letter, digit, dot, dash or underscore."""
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "_", str(name or "").strip())
    return cleaned.strip("_") or "project"


def is_uploadable(path):
    return file_extension(path) in UPLOAD_EXTENSIONS


def decode_content(data):
    """Bytes -> text. Invalid UTF-8 sequences become U+FFFD instead of failing."""
    if isinstance(data, str):
        return data
    return (data or b"").decode("utf-8", errors="replace")


def read_uploaded_files(uploaded):
    """
    Convert Streamlit UploadedFile objects into file dicts.

    Each object needs .name, .size and .getvalue() (that is all Streamlit's
    UploadedFile offers, and all the tests fake).
    """
    files = []
    for up in (uploaded or []):
        name = getattr(up, "name", "") or ""
        size = int(getattr(up, "size", 0) or 0)

        if not is_uploadable(name):
            logger.info("Skipping %s: unsupported file type", name)
            continue
        if size > MAX_UPLOAD_BYTES:
            logger.info("Skipping %s: %d bytes is over the 5 MB limit", name, size)
            continue

        files.append({"path": name, "content": decode_content(up.getvalue()), "size": size})

        if len(files) >= MAX_UPLOAD_FILES:
            logger.info("Upload limit of %d files reached; ignoring the rest", MAX_UPLOAD_FILES)
            break

    return files


def collect_files_from_dir(root):
    """
    Walk a local folder and return file dicts with paths relative to root.
    Paths use "/" separators and the walk order is sorted, so the result is
    the same on every run.
    """
    if not os.path.isdir(root):
        raise FileNotFoundError(f"Not a directory: {root}")

    files = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)

        for name in sorted(filenames):
            full = os.path.join(dirpath, name)
            rel = os.path.relpath(full, root).replace(os.sep, "/")

            if not is_uploadable(rel):
                continue
            size = os.path.getsize(full)
            if size > MAX_UPLOAD_BYTES:
                logger.info("Skipping %s: over the 5 MB limit", rel)
                continue

            with open(full, "rb") as f:
                content = decode_content(f.read())
            files.append({"path": rel, "content": content, "size": size})

            if len(files) >= MAX_UPLOAD_FILES:
                return files

    return files


def infer_project_name(paths, default=""):
    """
    Guess a project name from a folder upload: the first path segment of
    the first nested path ("myapp/src/index.ts" -> "myapp").
    """
    for p in (paths or []):
        parts = [x for x in str(p).replace("\\", "/").split("/") if x]
        if len(parts) > 1:
            return parts[0]
    return default


def save_analysis_json(project_name, result, source="genuine", error=None):
    """
    Write a report as JSON into reports/ and return the path.
    The file carries the provenance next to the analysis itself.
    """
    ensure_reports_dir()

    path = os.path.join(REPORTS_DIR, f"{safe_filename(project_name)}_analysis_{_timestamp()}.json")
    payload = {
        "project_name": project_name,
        "generated_at": datetime.now().isoformat(timespec="seconds"),
        "source": source,
        "error": error,
        "analysis": result,
    }

    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    return path
