# app.py
#
# DebtLens (Streamlit UI)
#
# Purpose:
# The web front-end: upload a project, run the technical debt analysis,
# browse saved projects and download their reports.
#
# UI code stays here. The pipeline itself lives in:
# - file_utils.py:   upload filtering and JSON export
# - workflow.py:     project -> analysis -> SQLite
# - llm_utils.py:    prompt, Gemini call, parsing, fallback
# - analytics.py / scoring.py: dashboard numbers, labels and colors
# - report_utils.py: PDF export
# - db_utils.py:     SQLite persistence

import base64
import os
import sqlite3

import pandas as pd
import streamlit as st
from dotenv import load_dotenv

# .env has to be loaded before the modules below read their settings.
load_dotenv()

from analytics import (
    build_file_rows,
    compute_dashboard_stats,
    file_score_stats,
    issue_type_counts,
    severity_breakdown,
)
from cache_utils import clear_cache
from db_utils import (
    delete_project,
    get_projects,
    get_reports_by_project,
    init_db,
    report_to_analysis,
)
from errors import ConfigurationError
from file_utils import UPLOAD_EXTENSIONS, infer_project_name, read_uploaded_files, save_analysis_json
from log_utils import configure_logging
from report_utils import export_analysis_pdf
from scoring import debt_color, debt_level, normalize_analysis
from workflow import run_upload_workflow

configure_logging()


# ----------------------------
# Page Config
# ----------------------------
st.set_page_config(page_title="DebtLens", layout="wide")


def debtlens_logo_svg(accent="#2563EB", accent2="#9333EA"):
    return f"""
<svg width="42" height="42" viewBox="0 0 64 64" xmlns="http://www.w3.org/2000/svg" role="img" aria-label="DebtLens logo">
  <defs>
    <linearGradient id="g" x1="0" y1="0" x2="1" y2="1">
      <stop offset="0" stop-color="{accent}"/>
      <stop offset="1" stop-color="{accent2}"/>
    </linearGradient>
  </defs>
  <rect x="0" y="0" width="64" height="64" rx="16" fill="#FFFFFF"/>
  <path d="M18 20 L10 32 L18 44" fill="none" stroke="url(#g)" stroke-width="5" stroke-linecap="round"/>
  <path d="M46 20 L54 32 L46 44" fill="none" stroke="url(#g)" stroke-width="5" stroke-linecap="round"/>
  <circle cx="32" cy="30" r="8" fill="none" stroke="{accent}" stroke-width="4"/>
  <path d="M38 36 L44 42" stroke="{accent2}" stroke-width="4" stroke-linecap="round"/>
</svg>
""".strip()


def svg_to_data_uri(svg: str) -> str:
    b64 = base64.b64encode(svg.encode("utf-8")).decode("utf-8")
    return f"data:image/svg+xml;base64,{b64}"


TOOLTIPS = {
    "Debt": "Technical debt score (0–100). Lower is better: 0 is clean code, 100 is extremely problematic.",
    "Average": "Average overall debt score across every analyzed project.",
    "Fallback": "Reports built from placeholder estimates because the AI analysis was unavailable.",
}


# ----------------------------
# UI helpers
# ----------------------------
def render_score_badge(label, score):
    """Pill with a colored dot; red/orange/green follow the debt level."""
    color = debt_color(score)
    safe_val = f"{score}/100" if score is not None else "—"

    return f"""
    <span style="
        display:inline-flex;
        align-items:center;
        gap:8px;
        padding:7px 12px;
        border-radius:999px;
        border:1px solid #E2E8F0;
        background:#FFFFFF;
        font-weight:800;
        color:#0F172A;
        font-size: 13px;">
        <span style="width:10px;height:10px;border-radius:999px;background:{color};"></span>
        <span style="color:#334155; font-weight:800;">{label}:</span>
        <span>{safe_val}</span>
    </span>
    """


def render_score_bar(label, value):
    try:
        v = max(0, min(100, int(value)))
    except (TypeError, ValueError):
        v = 0

    return f"""
    <div style="margin: 10px 0;">
        <div style="display:flex; justify-content:space-between; align-items:center;">
            <div style="font-weight:900; color:#0F172A;">{label}</div>
            <div style="font-weight:900; color:#0F172A;">{v}/100 ({debt_level(v)})</div>
        </div>
        <div style="width:100%; height:12px; background:#F1F5F9; border-radius:999px;
                    overflow:hidden; border:1px solid #E2E8F0;">
            <div style="height:12px; width:{v}%; background:{debt_color(v)}; border-radius:999px;"></div>
        </div>
    </div>
    """


def render_report(project, report):
    """Full report view for one stored report (the old report modal)."""
    result = normalize_analysis(report_to_analysis(report))
    is_fallback = report.get("source") == "fallback"
    name = project["project_name"]

    if is_fallback:
        st.warning(
            "The AI analysis was unavailable for this project, so this report contains "
            "placeholder estimates rather than a real review of your code."
        )
        if report.get("error"):
            st.caption(f"Reason: {report['error']}")

    st.markdown(render_score_bar("Overall Tech Debt Score", result["overall_debt_score"]), unsafe_allow_html=True)
    st.caption("Lower scores indicate better code quality.")

    st.subheader("Summary")
    st.write(result["summary"] or "No summary provided.")

    sev = severity_breakdown(result)
    stats = file_score_stats(result)
    a, b, c, d = st.columns(4)
    a.metric("Files analyzed", stats["file_count"])
    b.metric("High severity", sev["high"])
    c.metric("Medium severity", sev["medium"])
    d.metric("Low severity", sev["low"])

    types = issue_type_counts(result)
    if types:
        st.subheader("Issue Types")
        st.bar_chart(pd.DataFrame(types).set_index("type"))

    st.subheader("File Analysis")
    rows = build_file_rows(result)
    if rows:
        st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)

    for f in result["file_analyses"]:
        with st.expander(f"{f['file_path']} | {f['debt_score']}/100"):
            if not f["issues"]:
                st.write("No issues reported.")
            for issue in f["issues"]:
                where = f" (line {issue['line']})" if issue["line"] is not None else ""
                st.markdown(f"**[{issue['severity'].upper()}] {issue['type']}**{where}")
                st.write(issue["description"])
                if issue["suggestion"]:
                    st.caption(f"Suggestion: {issue['suggestion']}")

    st.subheader("Recommendations")
    if result["recommendations"]:
        for rec in result["recommendations"]:
            st.markdown(f"- **[{rec['priority'].upper()}] {rec['category']}**: {rec['description']}")
            if rec["impact"]:
                st.caption(f"Impact: {rec['impact']}")
    else:
        st.info("No recommendations returned.")

    st.divider()
    col_pdf, col_json = st.columns(2)
    with col_pdf:
        if st.button("Export PDF", key=f"pdf_{project['id']}"):
            pdf_path = export_analysis_pdf(name, result, owner=project.get("owner", ""), is_fallback=is_fallback)
            with open(pdf_path, "rb") as fh:
                st.download_button(
                    "Download PDF",
                    data=fh.read(),
                    file_name=f"{name}-analysis-report.pdf",
                    mime="application/pdf",
                    key=f"dl_pdf_{project['id']}",
                )
    with col_json:
        if st.button("Export JSON", key=f"json_{project['id']}"):
            json_path = save_analysis_json(name, result, source=report.get("source"), error=report.get("error"))
            with open(json_path, "rb") as fh:
                st.download_button(
                    "Download JSON",
                    data=fh.read(),
                    file_name=os.path.basename(json_path),
                    mime="application/json",
                    key=f"dl_json_{project['id']}",
                )


st.markdown(
    """
<style>
[data-testid="stHeader"]{ background: transparent !important; height: 0px !important; border-bottom: none !important; }
[data-testid="stToolbar"]{ visibility: hidden !important; height: 0px !important; }
[data-testid="stDecoration"]{ display: none !important; }
header{ visibility: hidden !important; height: 0px !important; }
.block-container{ padding-top: 1.2rem !important; }
</style>
""",
    unsafe_allow_html=True,
)


# ----------------------------
# Header
# ----------------------------
logo_uri = svg_to_data_uri(debtlens_logo_svg())

st.markdown(
    f"""
<div style="display:flex; align-items:center; gap:12px; margin-bottom:6px;">
    <img src="{logo_uri}" width="42" height="42" />
    <div>
      <h1 style="margin:0; padding:0;">DebtLens</h1>
      <div style="font-weight:800; margin-top:2px;">AI technical debt analysis.</div>
    </div>
</div>
<div style="height:5px;width:100%;background: linear-gradient(90deg, #2563EB, #9333EA);
border-radius:999px;margin-bottom:18px;"></div>
""",
    unsafe_allow_html=True,
)


# ----------------------------
# Session state
# ----------------------------
if "owner" not in st.session_state:
    st.session_state["owner"] = os.getenv("DEBTLENS_OWNER", "")
if "selected_project_id" not in st.session_state:
    st.session_state["selected_project_id"] = None
if "last_raw_output" not in st.session_state:
    st.session_state["last_raw_output"] = ""


# ----------------------------
# Sidebar controls
# ----------------------------
st.sidebar.header("Controls")

owner = st.sidebar.text_input(
    "Your name",
    value=st.session_state["owner"],
    placeholder="Used to group your projects",
).strip()
st.session_state["owner"] = owner

st.sidebar.subheader("Analysis Settings")
use_cache = st.sidebar.checkbox("Reuse cached analyses (recommended)", value=True)
cache_minutes = st.sidebar.number_input("Cache minutes", 1, 7 * 24 * 60, 24 * 60)
show_raw = st.sidebar.checkbox("Keep raw model output (debug)", value=False)

st.sidebar.subheader("Maintenance")
if st.sidebar.button("Clear analysis cache", type="secondary"):
    try:
        clear_cache()
        st.sidebar.success("Cleared analysis cache.")
    except OSError as e:
        st.sidebar.error(f"Failed to clear cache: {e!r}")


init_db()

tabs = st.tabs(["Dashboard", "Upload Project", "Report"])


# ----------------------------
# Dashboard
# ----------------------------
with tabs[0]:
    st.header("Dashboard")

    projects = get_projects(owner=owner or None)
    reports = get_reports_by_project()
    stats = compute_dashboard_stats(projects, reports)

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total Projects", stats["total_projects"])
    c2.metric("Completed", stats["completed_analyses"])
    c3.metric("Avg Debt Score", stats["average_debt_score"], help=TOOLTIPS["Average"])
    c4.metric("Fallback Reports", stats["fallback_reports"], help=TOOLTIPS["Fallback"])

    st.divider()

    if not projects:
        st.info("No projects yet. Upload one in the Upload Project tab.")
    else:
        chart_rows = []
        for p in projects:
            r = reports.get(p["id"])
            if r:
                chart_rows.append({"project": p["project_name"], "debt_score": r["debt_score"]})
        if chart_rows:
            st.subheader("Debt Score per Project")
            st.bar_chart(pd.DataFrame(chart_rows).set_index("project"))

        st.subheader("Projects")
        for p in projects:
            report = reports.get(p["id"])
            with st.container(border=True):
                left, right = st.columns([3, 2])
                with left:
                    st.markdown(f"**{p['project_name']}**")
                    st.caption(f"Status: {p['analysis_status']} · Created {p['created_at']}")
                    if report:
                        st.markdown(render_score_badge("Tech Debt Score", report["debt_score"]), unsafe_allow_html=True)
                        if report.get("source") == "fallback":
                            st.caption("⚠ Placeholder report (AI analysis unavailable)")
                with right:
                    if report and st.button("View Report", key=f"view_{p['id']}"):
                        st.session_state["selected_project_id"] = p["id"]
                        st.info("Open the Report tab to see it.")
                    if st.button("Delete", key=f"delete_{p['id']}"):
                        delete_project(p["id"])
                        if st.session_state["selected_project_id"] == p["id"]:
                            st.session_state["selected_project_id"] = None
                        st.rerun()


# ----------------------------
# Upload Project
# ----------------------------
with tabs[1]:
    st.header("Upload Project")

    uploaded = st.file_uploader(
        "Code files",
        type=list(UPLOAD_EXTENSIONS),
        accept_multiple_files=True,
        help="Supports JS, TS, Python, Java, C++, and more (max 5MB per file, 100 files total).",
    )

    suggested_name = infer_project_name([u.name for u in (uploaded or [])])
    project_name = st.text_input("Project Name", value=suggested_name, placeholder="Enter project name").strip()

    files = read_uploaded_files(uploaded)
    if files:
        st.caption(f"Selected files ({len(files)})")
        preview = pd.DataFrame(
            [{"file": f["path"], "size_kb": round(f["size"] / 1024, 1)} for f in files[:10]]
        )
        st.dataframe(preview, use_container_width=True, hide_index=True)
        if len(files) > 10:
            st.caption(f"... and {len(files) - 10} more files")

    if st.button("Start Analysis", type="primary", disabled=not files or not project_name):
        with st.spinner("Analyzing codebase... (requests are rate limited, this can take a moment)"):
            try:
                run = run_upload_workflow(
                    owner,
                    project_name,
                    files,
                    use_cache=use_cache,
                    ttl_minutes=int(cache_minutes),
                )
            except ConfigurationError as e:
                st.error(str(e))
                st.stop()
            except ValueError as e:
                st.error(str(e))
                st.stop()
            except sqlite3.Error as e:
                st.error(f"Could not save the project to the database: {e}")
                st.stop()

        outcome = run["outcome"]
        st.session_state["selected_project_id"] = run["project_id"]
        st.session_state["last_raw_output"] = outcome.raw_text if show_raw else ""

        if outcome.is_fallback:
            st.warning("The AI analysis failed; a placeholder report was saved. Check the Report tab for details.")
        elif run["from_cache"]:
            st.success("Analysis loaded from cache and saved.")
        else:
            st.success(f"Analysis complete. Debt score: {outcome.result['overall_debt_score']}/100")

    if show_raw and st.session_state["last_raw_output"]:
        st.subheader("Raw Output")
        st.code(st.session_state["last_raw_output"], language="text")


# ----------------------------
# Report
# ----------------------------
with tabs[2]:
    st.header("Report")

    projects = get_projects(owner=owner or None)
    reports = get_reports_by_project()
    analyzed = [p for p in projects if p["id"] in reports]

    if not analyzed:
        st.info("No analyzed projects yet.")
    else:
        ids = [p["id"] for p in analyzed]
        selected_id = st.session_state["selected_project_id"]
        index = ids.index(selected_id) if selected_id in ids else 0

        chosen = st.selectbox(
            "Project",
            analyzed,
            index=index,
            format_func=lambda p: f"{p['project_name']} (#{p['id']})",
        )
        st.session_state["selected_project_id"] = chosen["id"]
        render_report(chosen, reports[chosen["id"]])
