# db_utils.py
#
# Purpose:
# Local SQLite persistence for projects, their uploaded files, and the
# analysis reports produced for them (debtlens.db by default).
#
# Tables:
# - projects:          one row per uploaded project (+ analysis status)
# - project_files:     metadata for each uploaded file (path, size)
# - analysis_reports:  the analysis for a project, including whether it is a
#                      genuine model result or a fallback placeholder
# - schema_version:    single-row table used by the migrations below
#
# Every public function calls init_db() first, so a deleted database file
# is simply recreated on the next call.

import json
import os
import sqlite3
from datetime import datetime

from log_utils import get_logger

logger = get_logger("db")

DB_PATH = os.getenv("DEBTLENS_DB_PATH", "debtlens.db")

SCHEMA_VERSION = 2

PROJECT_STATUSES = ("pending", "analyzing", "completed", "failed")


# ----------------------------
# Connection helpers
# ----------------------------
def get_conn():
    """
    Open a connection to DB_PATH.
    check_same_thread=False because Streamlit may run reruns on another thread.
    """
    conn = sqlite3.connect(DB_PATH, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def _now():
    return datetime.now().isoformat(timespec="seconds")


def _table_exists(conn, table_name):
    cur = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
        (table_name,),
    )
    return cur.fetchone() is not None


def _get_table_columns(conn, table_name):
    """Column names of a table (PRAGMA table_info rows are (cid, name, ...))."""
    rows = conn.execute(f"PRAGMA table_info({table_name})").fetchall()
    return set(r[1] for r in rows)


# ----------------------------
# Schema versioning
# ----------------------------
def _ensure_schema_version_table(conn):
    conn.execute("""
    CREATE TABLE IF NOT EXISTS schema_version (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        version INTEGER NOT NULL
    )
    """)
    row = conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()
    if row is None:
        conn.execute("INSERT INTO schema_version (id, version) VALUES (1, 1)")
    conn.commit()


def _get_schema_version(conn):
    _ensure_schema_version_table(conn)
    row = conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()
    return int(row[0])


def _set_schema_version(conn, version):
    conn.execute("UPDATE schema_version SET version = ? WHERE id = 1", (int(version),))
    conn.commit()


# ----------------------------
# Base schema creation
# ----------------------------
def _create_base_tables(conn):
    conn.execute("""
    CREATE TABLE IF NOT EXISTS projects (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        owner TEXT NOT NULL DEFAULT '',
        project_name TEXT NOT NULL,
        analysis_status TEXT NOT NULL DEFAULT 'pending',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """)

    conn.execute("""
    CREATE TABLE IF NOT EXISTS project_files (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        project_id INTEGER NOT NULL,
        file_path TEXT NOT NULL,
        file_size INTEGER NOT NULL DEFAULT 0,
        uploaded_at TEXT NOT NULL,
        FOREIGN KEY(project_id) REFERENCES projects(id) ON DELETE CASCADE
    )
    """)

    conn.execute("""
    CREATE TABLE IF NOT EXISTS analysis_reports (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        project_id INTEGER NOT NULL,
        debt_score INTEGER NOT NULL,
        summary TEXT,
        recommendations TEXT,
        file_analysis TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY(project_id) REFERENCES projects(id) ON DELETE CASCADE
    )
    """)

    conn.commit()


# ----------------------------
# Migrations
# ----------------------------
def _migration_add_report_provenance(conn):
    """
    Version 2: analysis_reports gained "source" (genuine/fallback) and
    "error" columns. Reports written before that are assumed genuine.
    Safe to run more than once.
    """
    if not _table_exists(conn, "analysis_reports"):
        return

    cols = _get_table_columns(conn, "analysis_reports")
    if "source" not in cols:
        conn.execute("ALTER TABLE analysis_reports ADD COLUMN source TEXT NOT NULL DEFAULT 'genuine'")
    if "error" not in cols:
        conn.execute("ALTER TABLE analysis_reports ADD COLUMN error TEXT")
    conn.commit()


def init_db():
    """Create tables and run migrations. Safe to call repeatedly."""
    conn = get_conn()
    try:
        _ensure_schema_version_table(conn)
        _create_base_tables(conn)
        _migration_add_report_provenance(conn)

        if _get_schema_version(conn) < SCHEMA_VERSION:
            _set_schema_version(conn, SCHEMA_VERSION)
    finally:
        conn.close()


# ----------------------------
# Row conversion
# ----------------------------
def _project_from_row(row):
    return {
        "id": row["id"],
        "owner": row["owner"],
        "project_name": row["project_name"],
        "analysis_status": row["analysis_status"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def _load_json(text, default):
    if not text:
        return default
    try:
        return json.loads(text)
    except ValueError:
        logger.warning("Stored report contains invalid JSON; using an empty value")
        return default


def _load_file_analyses(text):
    """
    Stored file analyses as a list. Older rows keyed them by file path,
    so a JSON object is read back as its values.
    """
    data = _load_json(text, [])
    if isinstance(data, dict):
        return list(data.values())
    if not isinstance(data, list):
        return []
    return data


def _report_from_row(row):
    return {
        "id": row["id"],
        "project_id": row["project_id"],
        "debt_score": row["debt_score"],
        "summary": row["summary"] or "",
        "recommendations": _load_json(row["recommendations"], []),
        "file_analysis": _load_file_analyses(row["file_analysis"]),
        "source": row["source"],
        "error": row["error"],
        "created_at": row["created_at"],
    }


def report_to_analysis(report):
    """
    Turn a stored report back into the analysis dict shape used by
    llm_utils / report_utils.
    """
    return {
        "overall_debt_score": report.get("debt_score"),
        "summary": report.get("summary", ""),
        "file_analyses": list(report.get("file_analysis") or []),
        "recommendations": report.get("recommendations") or [],
    }


# ----------------------------
# Public DB functions
# ----------------------------
def create_project(owner, project_name, status="analyzing"):
    """Insert a project row and return its id."""
    if status not in PROJECT_STATUSES:
        raise ValueError(f"Unknown project status: {status!r}")

    init_db()
    conn = get_conn()
    try:
        now = _now()
        cur = conn.execute(
            "INSERT INTO projects (owner, project_name, analysis_status, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (str(owner or ""), str(project_name), status, now, now),
        )
        conn.commit()
        return cur.lastrowid
    finally:
        conn.close()


def add_project_file(project_id, file_path, file_size):
    """Record one uploaded file's metadata. Returns the new row id."""
    init_db()
    conn = get_conn()
    try:
        cur = conn.execute(
            "INSERT INTO project_files (project_id, file_path, file_size, uploaded_at) VALUES (?, ?, ?, ?)",
            (int(project_id), str(file_path), int(file_size or 0), _now()),
        )
        conn.commit()
        return cur.lastrowid
    finally:
        conn.close()


def get_project_files(project_id):
    init_db()
    conn = get_conn()
    try:
        rows = conn.execute(
            "SELECT file_path, file_size, uploaded_at FROM project_files WHERE project_id = ? ORDER BY id",
            (int(project_id),),
        ).fetchall()
        return [dict(r) for r in rows]
    finally:
        conn.close()


def update_project_status(project_id, status):
    if status not in PROJECT_STATUSES:
        raise ValueError(f"Unknown project status: {status!r}")

    init_db()
    conn = get_conn()
    try:
        conn.execute(
            "UPDATE projects SET analysis_status = ?, updated_at = ? WHERE id = ?",
            (status, _now(), int(project_id)),
        )
        conn.commit()
    finally:
        conn.close()


def save_analysis_report(project_id, result, source="genuine", error=None):
    """
    Store an analysis for a project and return the report id.

    result should already be normalized (scoring.normalize_analysis).
    file_analyses are stored as a JSON list in their original order, so
    two entries with the same file path are both kept.
    """
    init_db()

    file_list = list(result.get("file_analyses", []))

    conn = get_conn()
    try:
        cur = conn.execute(
            """
            INSERT INTO analysis_reports (
                project_id, debt_score, summary, recommendations, file_analysis,
                created_at, source, error
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                int(project_id),
                int(result.get("overall_debt_score") or 0),
                str(result.get("summary", "")),
                json.dumps(result.get("recommendations", [])),
                json.dumps(file_list),
                _now(),
                str(source),
                error,
            ),
        )
        conn.commit()
        return cur.lastrowid
    finally:
        conn.close()


def get_projects(owner=None, limit=100):
    """Most recent projects first, optionally filtered by owner."""
    init_db()
    conn = get_conn()
    try:
        if owner:
            rows = conn.execute(
                "SELECT * FROM projects WHERE owner = ? ORDER BY id DESC LIMIT ?",
                (str(owner), int(limit)),
            ).fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM projects ORDER BY id DESC LIMIT ?",
                (int(limit),),
            ).fetchall()
        return [_project_from_row(r) for r in rows]
    finally:
        conn.close()


def get_project(project_id):
    init_db()
    conn = get_conn()
    try:
        row = conn.execute("SELECT * FROM projects WHERE id = ?", (int(project_id),)).fetchone()
        return _project_from_row(row) if row else None
    finally:
        conn.close()


def get_report_for_project(project_id):
    """Latest report for a project, or None if it has not been analyzed."""
    init_db()
    conn = get_conn()
    try:
        row = conn.execute(
            "SELECT * FROM analysis_reports WHERE project_id = ? ORDER BY id DESC LIMIT 1",
            (int(project_id),),
        ).fetchone()
        return _report_from_row(row) if row else None
    finally:
        conn.close()


def get_reports_by_project():
    """Latest report per project as {project_id: report}."""
    init_db()
    conn = get_conn()
    try:
        rows = conn.execute("SELECT * FROM analysis_reports ORDER BY id ASC").fetchall()
    finally:
        conn.close()

    reports = {}
    for r in rows:
        # ascending order, so later rows overwrite older reports
        reports[r["project_id"]] = _report_from_row(r)
    return reports


def delete_project(project_id):
    """Delete a project with its files and reports. Returns True if it existed."""
    init_db()
    conn = get_conn()
    try:
        pid = int(project_id)
        conn.execute("DELETE FROM analysis_reports WHERE project_id = ?", (pid,))
        conn.execute("DELETE FROM project_files WHERE project_id = ?", (pid,))
        cur = conn.execute("DELETE FROM projects WHERE id = ?", (pid,))
        conn.commit()
        return cur.rowcount > 0
    finally:
        conn.close()
