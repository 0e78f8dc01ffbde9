# report_utils.py
#
# What this file is:
# Generates the downloadable PDF version of an analysis report with
# ReportLab. The layout is drawn line by line on a canvas:
# title, overall score, summary, per-file scores and issues, and the
# recommendations. Fallback reports get a visible notice at the top.

import os
import textwrap
from datetime import datetime

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from file_utils import REPORTS_DIR, ensure_reports_dir, safe_filename
from scoring import debt_color, debt_level, normalize_analysis

# Characters per line at 11pt Helvetica inside the margins.
WRAP_WIDTH = 95


def export_analysis_pdf(project_name, result, owner="", is_fallback=False, output_name=None):
    """
    Write the PDF into reports/ and return its path.

    result may be a raw analysis dict; it is normalized first so missing
    fields render as blanks instead of crashing the export.
    """
    ensure_reports_dir()
    analysis = normalize_analysis(result)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    if not output_name:
        output_name = f"{safe_filename(project_name)}-analysis-report_{timestamp}.pdf"
    path = os.path.join(REPORTS_DIR, output_name)

    c = canvas.Canvas(path, pagesize=letter)
    width, height = letter

    x = 50
    y = height - 50
    line = 14

    def write(text, bold=False, color=None, indent=0):
        """Draw wrapped text, starting a new page when near the bottom."""
        nonlocal y
        chunks = textwrap.wrap(str(text), WRAP_WIDTH - indent // 6) or [""]
        for chunk in chunks:
            if y < 60:
                c.showPage()
                y = height - 50
            c.setFont("Helvetica-Bold" if bold else "Helvetica", 11)
            c.setFillColor(HexColor(color) if color else HexColor("#0F172A"))
            c.drawString(x + indent, y, chunk)
            y -= line

    score = analysis["overall_debt_score"]

    write(f"Technical Debt Analysis - {project_name}", bold=True)
    if owner:
        write(f"Owner: {owner}")
    write(f"Generated: {timestamp}")
    write("")

    if is_fallback:
        write("NOTICE: the AI analysis was unavailable. This report contains placeholder", bold=True, color="#B45309")
        write("estimates, not a real review of the uploaded code.", bold=True, color="#B45309")
        write("")

    write("Overall Tech Debt Score", bold=True)
    write(f"{score}/100 ({debt_level(score)} debt) - lower scores indicate better code quality",
          color=debt_color(score))
    write("")

    write("Summary", bold=True)
    write(analysis["summary"] or "No summary provided.")
    write("")

    write("File Analysis", bold=True)
    if analysis["file_analyses"]:
        for f in analysis["file_analyses"]:
            write(f"{f['file_path']}  |  {f['debt_score']}/100", bold=True, color=debt_color(f["debt_score"]))
            for issue in f["issues"]:
                where = f" (line {issue['line']})" if issue["line"] is not None else ""
                write(f"[{issue['severity'].upper()}] {issue['type']}{where}: {issue['description']}", indent=12)
                if issue["suggestion"]:
                    write(f"Suggestion: {issue['suggestion']}", indent=24)
            write("")
    else:
        write("No per-file results.")
        write("")

    write("Recommendations", bold=True)
    if analysis["recommendations"]:
        for i, rec in enumerate(analysis["recommendations"], start=1):
            write(f"{i}. [{rec['priority'].upper()}] {rec['category']}: {rec['description']}")
            if rec["impact"]:
                write(f"Impact: {rec['impact']}", indent=12)
    else:
        write("No recommendations.")

    c.save()
    return path
