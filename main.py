# main.py
#
# What this file is:
# The command-line version of DebtLens. Same pipeline as the Streamlit app
# (folder -> Gemini analysis -> SQLite -> PDF/JSON export), driven by a
# simple menu and printed to the console.
#
# Option 1 flow:
#   local folder -> file_utils.collect_files_from_dir -> workflow.run_upload_workflow
#   -> exports (PDF + JSON) -> printed summary

import os
import sqlite3

from dotenv import load_dotenv

# .env has to be loaded before the modules below read their settings.
load_dotenv()

from analytics import build_file_rows, compute_dashboard_stats, severity_breakdown
from db_utils import (
    DB_PATH,
    delete_project,
    get_project,
    get_projects,
    get_report_for_project,
    get_reports_by_project,
    init_db,
    report_to_analysis,
)
from errors import ConfigurationError
from file_utils import collect_files_from_dir, infer_project_name, save_analysis_json
from log_utils import configure_logging
from report_utils import export_analysis_pdf
from scoring import debt_level, normalize_analysis
from workflow import run_upload_workflow


def print_menu():
    print("\nDebtLens - Technical Debt Analyzer")
    print("----------------------------")
    print("1. Analyze a local project folder")
    print("2. List saved projects")
    print("3. Show a saved report")
    print("4. Export a saved report to PDF")
    print("5. Delete a project")
    print("q. Quit")


def print_analysis(result, is_fallback=False):
    """Print a normalized analysis in a readable format."""
    score = result["overall_debt_score"]

    print("\nANALYSIS")
    print("----------------------------")
    if is_fallback:
        print("!! AI analysis unavailable - showing placeholder estimates !!")
    print(f"Overall debt score : {score}/100 ({debt_level(score)})")
    print(f"Summary            : {result['summary']}")

    sev = severity_breakdown(result)
    print(f"Issues             : high={sev['high']} medium={sev['medium']} low={sev['low']}")

    print("\nFILES (worst first)")
    print("----------------------------")
    for row in build_file_rows(result)[:10]:
        print(f"{row['debt_score']:>3} | {row['debt_level']:8} | issues={row['issue_count']} | {row['file_path']}")

    print("\nRECOMMENDATIONS")
    print("----------------------------")
    for i, rec in enumerate(result["recommendations"], start=1):
        print(f"{i}. [{rec['priority']}] {rec['category']}: {rec['description']}")


def _ask_project_id():
    raw = input("Project id: ").strip()
    if not raw.isdigit():
        print("Project id must be a number.")
        return None
    return int(raw)


def analyze_folder_option(owner):
    """
    Full pipeline for one folder:
      collect files -> analyze -> SQLite -> PDF + JSON exports.
    """
    folder = input("Project folder path: ").strip()
    if folder == "":
        print("Error: folder path cannot be empty.")
        return

    try:
        files = collect_files_from_dir(folder)
    except FileNotFoundError as e:
        print(f"Error: {e}")
        return

    if not files:
        print("No supported source files found in that folder.")
        return

    default_name = os.path.basename(os.path.abspath(folder)) or infer_project_name([f["path"] for f in files])
    name = input(f"Project name [{default_name}]: ").strip() or default_name

    print(f"Analyzing {len(files)} file(s)... (requests are rate limited, this can take a moment)")
    try:
        run = run_upload_workflow(owner, name, files)
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        return
    except sqlite3.Error as e:
        print(f"Database error: {e}")
        return

    outcome = run["outcome"]
    pdf_path = export_analysis_pdf(name, outcome.result, owner=owner, is_fallback=outcome.is_fallback)
    json_path = save_analysis_json(name, outcome.result, source=outcome.source, error=outcome.error)

    print("\nEXPORTS")
    print("----------------------------")
    print("Report PDF :", pdf_path)
    print("Report JSON:", json_path)
    print("SQLite DB  :", DB_PATH)
    print("Project ID :", run["project_id"])
    if run["from_cache"]:
        print("(analysis loaded from cache)")

    print_analysis(outcome.result, is_fallback=outcome.is_fallback)


def list_projects_option(owner):
    projects = get_projects(owner=owner or None)
    if not projects:
        print("No saved projects yet.")
        return

    reports = get_reports_by_project()
    stats = compute_dashboard_stats(projects, reports)

    print("\nPROJECTS")
    print("----------------------------")
    print(
        f"total={stats['total_projects']} completed={stats['completed_analyses']} "
        f"failed={stats['failed_projects']} avg_debt={stats['average_debt_score']}"
    )
    for p in projects:
        report = reports.get(p["id"])
        score = report["debt_score"] if report else "-"
        flag = " (fallback)" if report and report.get("source") == "fallback" else ""
        print(f"{p['id']:>4} | {p['analysis_status']:9} | debt={score}{flag} | {p['project_name']} | {p['created_at']}")


def show_report_option():
    project_id = _ask_project_id()
    if project_id is None:
        return

    report = get_report_for_project(project_id)
    if report is None:
        print("No report found for that project.")
        return

    result = normalize_analysis(report_to_analysis(report))
    print_analysis(result, is_fallback=report.get("source") == "fallback")


def export_report_option(owner):
    project_id = _ask_project_id()
    if project_id is None:
        return

    project = get_project(project_id)
    report = get_report_for_project(project_id)
    if project is None or report is None:
        print("No report found for that project.")
        return

    path = export_analysis_pdf(
        project["project_name"],
        report_to_analysis(report),
        owner=project.get("owner") or owner,
        is_fallback=report.get("source") == "fallback",
    )
    print("Saved PDF:", path)


def delete_project_option():
    project_id = _ask_project_id()
    if project_id is None:
        return

    confirm = input("Are you sure you want to delete this project? (y/n): ").strip().lower()
    if confirm != "y":
        print("Cancelled.")
        return

    if delete_project(project_id):
        print("Project deleted.")
    else:
        print("No project with that id.")


def main():
    """Menu loop; runs until the user enters "q"."""
    configure_logging()
    init_db()

    owner = os.getenv("DEBTLENS_OWNER") or input("Your name (used to group projects, optional): ").strip()

    choice = ""
    while choice != "q":
        print_menu()
        choice = input("Choice: ").strip().lower()

        if choice == "1":
            analyze_folder_option(owner)
        elif choice == "2":
            list_projects_option(owner)
        elif choice == "3":
            show_report_option()
        elif choice == "4":
            export_report_option(owner)
        elif choice == "5":
            delete_project_option()
        elif choice == "q":
            print("Goodbye!")
        else:
            print("Invalid option. Try again.")


if __name__ == "__main__":
    main()
