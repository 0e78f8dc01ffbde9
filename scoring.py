# scoring.py
#
# What this file is:
# Helpers for working with debt scores and for cleaning up analysis dicts
# before they are rendered or saved.
#
# The model is asked for a fixed JSON layout, but nothing forces it to
# comply: scores can come back as strings or floats, severities as
# "Medium" or "critical", and whole sections can be missing.
# normalize_analysis() turns whatever came back into a dict the UI, the
# PDF export and SQLite can all rely on.
#
# Debt scores run the other way from most scores: 0 is clean code and
# 100 is a lot of debt. Higher = worse.

SEVERITIES = ("low", "medium", "high")

# Thresholds shared by the dashboard, the report and the PDF.
HIGH_DEBT_THRESHOLD = 70
MODERATE_DEBT_THRESHOLD = 40


def clamp(x, lo=0, hi=100):
    """Clamp a number into [lo, hi]."""
    if x < lo:
        return lo
    if x > hi:
        return hi
    return x


def to_score(value, default=None):
    """
    Convert a model-provided score into an int in [0, 100].
    Returns default if the value can't be read as a number.
    """
    if isinstance(value, bool):
        return default
    try:
        n = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return default
    return clamp(n, 0, 100)


def debt_level(score):
    """
    Label a debt score: "High" (>= 70), "Moderate" (>= 40) or "Low".
    None or unreadable input gives "Unknown".
    """
    s = to_score(score)
    if s is None:
        return "Unknown"
    if s >= HIGH_DEBT_THRESHOLD:
        return "High"
    if s >= MODERATE_DEBT_THRESHOLD:
        return "Moderate"
    return "Low"


def debt_color(score):
    """
    Color for a debt score, used by the dashboard badges and the PDF.
    Red for high debt, orange for moderate, green for low, gray if unknown.
    """
    level = debt_level(score)
    if level == "High":
        return "#EF4444"
    if level == "Moderate":
        return "#F59E0B"
    if level == "Low":
        return "#22C55E"
    return "#94A3B8"


def _normalize_level(value, default="medium"):
    """Map free-text severity/priority onto low/medium/high."""
    text = str(value or "").strip().lower()
    if text in SEVERITIES:
        return text
    if text in ("critical", "severe", "major", "urgent"):
        return "high"
    if text in ("minor", "info", "trivial"):
        return "low"
    return default


def _normalize_issue(issue):
    if not isinstance(issue, dict):
        return {
            "type": "General",
            "severity": "medium",
            "description": str(issue),
            "line": None,
            "suggestion": "",
        }

    line = issue.get("line")
    try:
        line = int(line) if line is not None else None
    except (TypeError, ValueError, OverflowError):
        line = None

    return {
        "type": str(issue.get("type") or "General"),
        "severity": _normalize_level(issue.get("severity")),
        "description": str(issue.get("description") or ""),
        "line": line,
        "suggestion": str(issue.get("suggestion") or ""),
    }


def _normalize_file_analysis(entry):
    if not isinstance(entry, dict):
        return None

    issues = entry.get("issues") or []
    if not isinstance(issues, list):
        issues = []

    return {
        "file_path": str(entry.get("file_path") or entry.get("path") or ""),
        "debt_score": to_score(entry.get("debt_score"), default=0),
        "issues": [_normalize_issue(i) for i in issues],
    }


def _normalize_recommendation(rec):
    if not isinstance(rec, dict):
        return {
            "category": "General",
            "priority": "medium",
            "description": str(rec),
            "impact": "",
        }
    return {
        "category": str(rec.get("category") or "General"),
        "priority": _normalize_level(rec.get("priority")),
        "description": str(rec.get("description") or ""),
        "impact": str(rec.get("impact") or ""),
    }


def normalize_analysis(result):
    """
    Return a cleaned copy of an analysis dict.

    Guarantees:
    - overall_debt_score is an int in [0, 100]
    - summary is a string
    - file_analyses / recommendations are lists of dicts with every key present
    - severities and priorities are one of low/medium/high

    A missing overall score is replaced by the mean of the file scores
    (or 0 when there are none).
    """
    if not isinstance(result, dict):
        result = {}

    file_analyses = result.get("file_analyses") or []
    if isinstance(file_analyses, dict):
        # Stored reports key file analyses by path.
        file_analyses = list(file_analyses.values())
    if not isinstance(file_analyses, list):
        file_analyses = []
    files = [f for f in (_normalize_file_analysis(x) for x in file_analyses) if f is not None]

    recommendations = result.get("recommendations") or []
    if not isinstance(recommendations, list):
        recommendations = []

    overall = to_score(result.get("overall_debt_score"))
    if overall is None:
        if files:
            overall = int(round(sum(f["debt_score"] for f in files) / len(files)))
        else:
            overall = 0

    return {
        "overall_debt_score": overall,
        "summary": str(result.get("summary") or ""),
        "file_analyses": files,
        "recommendations": [_normalize_recommendation(r) for r in recommendations],
    }
