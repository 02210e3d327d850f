import io
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_LEFT

SCORE_LABELS = [
    ("Demand Score", "demand_score"),
    ("Competition Intensity", "competition_intensity"),
    ("Differentiation Potential", "differentiation_potential"),
    ("Monetization Difficulty", "monetization_difficulty"),
    ("Scalability", "scalability_score"),
]


# --- Styles ---
def _get_styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(
        name="ReportHeading",
        fontSize=16,
        leading=18,
        textColor=colors.HexColor("#0d6efd"),
        spaceAfter=10,
        alignment=TA_LEFT
    ))
    styles.add(ParagraphStyle(
        name="ReportBody",
        fontSize=11,
        leading=14,
        alignment=TA_LEFT
    ))
    return styles


def report_filename(record):
    name = "_".join((record.idea_name or "Idea").split())
    safe = "".join(ch for ch in name if ch.isalnum() or ch in "_-") or "Idea"
    return f"{safe}_Validation.pdf"


def _section(story, styles, title, text):
    story.append(Paragraph(title, styles["ReportHeading"]))
    story.append(Paragraph(escape(str(text or "N/A")), styles["ReportBody"]))
    story.append(Spacer(1, 10))


# --- Main PDF Generator ---
def generate_pdf(record):
    """
    Render a stored validation as a one-page PDF.
    Returns: the PDF bytes.
    """
    styles = _get_styles()
    report = record.report
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title=f"Validation Report: {record.idea_name}")
    story = []

    # --- Header ---
    story.append(Paragraph(f"Validation Report: {escape(record.idea_name or '')}", styles["Title"]))
    story.append(Paragraph(f"Date: {escape(record.created_at or '')}", styles["ReportBody"]))
    story.append(Spacer(1, 12))

    # --- Scorecard ---
    story.append(Paragraph("Market Scorecard", styles["ReportHeading"]))
    story.append(Paragraph(f"<b>Verdict:</b> {escape(report.get('verdict', 'N/A'))}", styles["ReportBody"]))
    rows = [[label, f"{report.get(key, '-')}/10"] for label, key in SCORE_LABELS]
    table = Table(rows, colWidths=[200, 80])
    table.setStyle(TableStyle([
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
    ]))
    story.append(table)
    story.append(Spacer(1, 12))

    _section(story, styles, "Niche Refinement", report.get("niche_narrowing"))

    angles = report.get("unique_positioning_angles", [])
    if angles:
        story.append(Paragraph("Positioning Angles", styles["ReportHeading"]))
        for angle in angles:
            story.append(Paragraph(f"• {escape(angle)}", styles["ReportBody"]))
        story.append(Spacer(1, 10))

    _section(story, styles, "First 100 Customers", report.get("first_100_customer_strategy"))
    _section(story, styles, "Suggested Price Range", report.get("suggested_price_range"))

    # --- Build PDF ---
    doc.build(story)
    return buffer.getvalue()
