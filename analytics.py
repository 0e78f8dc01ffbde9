import numpy as np              # NumPy for mean/median over file scores

from scoring import SEVERITIES, debt_level


def compute_dashboard_stats(projects, reports):
    """
    Compute the numbers shown at the top of the dashboard.

    Inputs:
      projects: list of project dicts (from db_utils.get_projects)
      reports: dict of project_id -> report dict (from db_utils.get_reports_by_project)

    Returns a complete dict even for empty inputs so the UI never has to
    check for missing keys.
    """
    if not projects:
        return {
            "total_projects": 0,
            "completed_analyses": 0,
            "analyzing_projects": 0,
            "failed_projects": 0,
            "average_debt_score": 0,
            "fallback_reports": 0,
        }

    completed = 0
    analyzing = 0
    failed = 0

    for p in projects:
        status = p.get("analysis_status")
        if status == "completed":
            completed += 1
        elif status == "analyzing":
            analyzing += 1
        elif status == "failed":
            failed += 1

    report_list = list((reports or {}).values())
    scores = [int(r.get("debt_score") or 0) for r in report_list]

    # max(len, 1) avoids dividing by zero when nothing has been analyzed yet
    average = round(sum(scores) / max(len(scores), 1))

    fallback_count = 0
    for r in report_list:
        if r.get("source") == "fallback":
            fallback_count += 1

    return {
        "total_projects": len(projects),
        "completed_analyses": completed,
        "analyzing_projects": analyzing,
        "failed_projects": failed,
        "average_debt_score": average,
        "fallback_reports": fallback_count,
    }


def severity_breakdown(result):
    """
    Count issues per severity across every file in a (normalized) analysis.
    Always returns all three keys.
    """
    counts = {s: 0 for s in SEVERITIES}

    for f in result.get("file_analyses", []):
        for issue in f.get("issues", []):
            sev = issue.get("severity")
            if sev in counts:
                counts[sev] += 1

    return counts


def issue_type_counts(result, n=10):
    """
    Count issues per type and return the top n as
    [{"type": "Code Complexity", "count": 3}, ...], most common first.
    """
    counts = {}

    for f in result.get("file_analyses", []):
        for issue in f.get("issues", []):
            t = issue.get("type") or "General"
            if t not in counts:
                counts[t] = 0
            counts[t] += 1

    rows = [{"type": t, "count": counts[t]} for t in counts]
    return sorted(rows, key=lambda x: x["count"], reverse=True)[:n]


def file_score_stats(result):
    """
    Mean, median, min and max of the per-file debt scores.
    Values are None when there are no file analyses.
    """
    scores = [f.get("debt_score") for f in result.get("file_analyses", [])]
    scores = [s for s in scores if s is not None]

    if not scores:
        return {"file_count": 0, "mean": None, "median": None, "min": None, "max": None}

    arr = np.array(scores, dtype=float)
    return {
        "file_count": len(scores),
        "mean": round(float(arr.mean()), 1),
        "median": round(float(np.median(arr)), 1),
        "min": int(arr.min()),
        "max": int(arr.max()),
    }


def build_file_rows(result):
    """
    Flatten file analyses into table rows (one row per file), worst first.
    Used for st.dataframe and the CLI listing.
    """
    rows = []

    for f in result.get("file_analyses", []):
        issues = f.get("issues", [])
        high = 0
        for issue in issues:
            if issue.get("severity") == "high":
                high += 1

        rows.append({
            "file_path": f.get("file_path", ""),
            "debt_score": f.get("debt_score", 0),
            "debt_level": debt_level(f.get("debt_score")),
            "issue_count": len(issues),
            "high_severity": high,
        })

    return sorted(rows, key=lambda r: r["debt_score"] or 0, reverse=True)
