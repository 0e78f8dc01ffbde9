# workflow.py
#
# Purpose:
# The upload workflow shared by the Streamlit app and the CLI:
#
#   create project (status "analyzing")
#     -> record file metadata
#     -> analysis (from cache, or analyze_codebase)
#     -> save report with its provenance
#     -> status "completed"
#
# analyze_codebase() always returns a report, so "failed" normally means
# there are no API keys or the database write broke. Whatever the error,
# the project is marked "failed" before the exception is re-raised.

from cache_utils import cache_get, cache_set, make_analysis_cache_key
from db_utils import add_project_file, create_project, save_analysis_report, update_project_status
from gemini_client import GEMINI_MODEL
from llm_utils import SOURCE_GENUINE, AnalysisOutcome, analyze_codebase, select_files
from log_utils import get_logger
from scoring import normalize_analysis

logger = get_logger("workflow")

DEFAULT_CACHE_TTL_MINUTES = 24 * 60


def analyze_with_cache(files, client=None, use_cache=True, ttl_minutes=DEFAULT_CACHE_TTL_MINUTES):
    """
    Return (outcome, from_cache).
    Cached results are always genuine; fallback outcomes are never stored.
    """
    key = make_analysis_cache_key(select_files(files), model_name=GEMINI_MODEL)

    if use_cache:
        cached = cache_get(key, ttl_minutes)
        if cached is not None:
            logger.info("Loaded analysis from cache (%s)", key[:12])
            return AnalysisOutcome(result=cached, source=SOURCE_GENUINE), True

    outcome = analyze_codebase(files, client=client)

    if use_cache and not outcome.is_fallback:
        cache_set(key, outcome.result, model_name=GEMINI_MODEL)

    return outcome, False


def run_upload_workflow(owner, project_name, files, client=None, use_cache=True,
                        ttl_minutes=DEFAULT_CACHE_TTL_MINUTES):
    """
    Store a new project, analyze its files and save the report.

    files: list of {"path", "content", "size"} dicts (see file_utils)

    Returns a dict with project_id, report_id, outcome (AnalysisOutcome with
    a normalized result) and from_cache.
    """
    project_name = (project_name or "").strip()
    if not project_name:
        raise ValueError("Please provide a project name.")
    if not files:
        raise ValueError("Please select at least one supported file.")

    project_id = create_project(owner, project_name, status="analyzing")
    for f in files:
        add_project_file(project_id, f.get("path", ""), f.get("size", len(f.get("content", ""))))

    try:
        outcome, from_cache = analyze_with_cache(files, client=client, use_cache=use_cache,
                                                 ttl_minutes=ttl_minutes)
        outcome.result = normalize_analysis(outcome.result)
        report_id = save_analysis_report(project_id, outcome.result, source=outcome.source,
                                         error=outcome.error)
    except Exception:
        logger.exception("Analysis for project %s (%s) failed", project_id, project_name)
        update_project_status(project_id, "failed")
        raise

    update_project_status(project_id, "completed")

    if outcome.is_fallback:
        logger.warning("Project %s stored with a fallback report: %s", project_id, outcome.error)

    return {
        "project_id": project_id,
        "report_id": report_id,
        "outcome": outcome,
        "from_cache": from_cache,
    }
