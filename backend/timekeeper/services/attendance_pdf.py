"""Generate attendance report PDFs."""
import io
from datetime import datetime
from typing import List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_RIGHT
from reportlab.lib.pagesizes import landscape, letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import (
    HRFlowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle,
)

from timekeeper.core.config import settings

PDF_COLUMNS = [
    ("Employee ID", 0.9),
    ("Employee Name", 1.6),
    ("Date", 0.85),
    ("Check In", 1.15),
    ("Check Out", 1.15),
    ("Total Hours", 0.6),
    ("Regular Hours", 0.6),
    ("Overtime Hours", 0.6),
    ("Approved OT", 0.6),
    ("Sunday Hours", 0.6),
    ("Overnight Hours", 0.6),
    ("Status", 0.7),
]
NUMERIC = {"Total Hours", "Regular Hours", "Overtime Hours", "Approved OT", "Sunday Hours", "Overnight Hours"}


def generate_attendance_pdf(rows: List[dict], summary: dict, title: Optional[str] = None) -> bytes:
    """Render export rows plus the summary totals as a landscape PDF."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(letter),
        rightMargin=0.5 * inch,
        leftMargin=0.5 * inch,
        topMargin=0.5 * inch,
        bottomMargin=0.5 * inch,
    )

    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(
        name='ReportTitle',
        parent=styles['Heading1'],
        fontSize=16,
        textColor=colors.HexColor('#1e3a8a'),
        spaceAfter=4,
    ))
    styles.add(ParagraphStyle(
        name='SectionHeader',
        parent=styles['Heading3'],
        fontSize=11,
        textColor=colors.HexColor('#1e293b'),
        spaceBefore=8,
        spaceAfter=4,
    ))
    styles.add(ParagraphStyle(
        name='SmallRight',
        parent=styles['Normal'],
        fontSize=8,
        alignment=TA_RIGHT,
        textColor=colors.HexColor('#64748b'),
    ))
    styles.add(ParagraphStyle(
        name='TableCell',
        parent=styles['Normal'],
        fontSize=7,
        leading=8.5,
    ))
    styles.add(ParagraphStyle(
        name='TableCellRight',
        parent=styles['Normal'],
        fontSize=7,
        leading=8.5,
        alignment=TA_RIGHT,
    ))

    story = []
    hours = lambda n: f"{n:,.2f}"

    # ── Header ────────────────────────────────────────────────────
    story.append(Paragraph(settings.APP_NAME, styles['ReportTitle']))
    story.append(Paragraph(escape(title or "Attendance Report"), styles['SectionHeader']))
    story.append(HRFlowable(width="100%", thickness=1, color=colors.HexColor('#1e3a8a')))
    story.append(Spacer(1, 8))

    # ── Summary ───────────────────────────────────────────────────
    sum_rows = [
        ["Days Worked", str(summary.get("total_days_worked", 0)),
         "Employees", str(summary.get("total_employees", 0))],
        ["Hours Worked", hours(summary.get("total_hours_worked", 0)),
         "Overtime (raw)", hours(summary.get("total_overtime_hours", 0))],
        ["Sunday Hours", hours(summary.get("total_sunday_hours", 0)),
         "Overtime (approved)", hours(summary.get("total_approved_overtime", 0))],
        ["Overnight Hours", hours(summary.get("total_overnight_hours", 0)), "", ""],
    ]
    sum_table = Table(sum_rows, colWidths=[1.6 * inch, 1.2 * inch, 1.6 * inch, 1.2 * inch])
    sum_table.setStyle(TableStyle([
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTNAME', (2, 0), (2, -1), 'Helvetica-Bold'),
        ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
        ('ALIGN', (3, 0), (3, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#e2e8f0')),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
        ('TOPPADDING', (0, 0), (-1, -1), 4),
    ]))
    story.append(sum_table)
    story.append(Spacer(1, 14))

    # ── Detail ────────────────────────────────────────────────────
    story.append(Paragraph(f"Attendance Detail ({len(rows)} records)", styles['SectionHeader']))

    header = []
    for name, _ in PDF_COLUMNS:
        style = styles['TableCellRight'] if name in NUMERIC else styles['TableCell']
        header.append(Paragraph(f"<b>{name}</b>", style))

    table_data = [header]
    for row in rows:
        cells = []
        for name, _ in PDF_COLUMNS:
            value = row.get(name, "")
            if name in NUMERIC:
                cells.append(Paragraph(hours(value or 0), styles['TableCellRight']))
            else:
                cells.append(Paragraph(escape(str(value or "—")[:30]), styles['TableCell']))
        table_data.append(cells)

    detail_table = Table(
        table_data,
        colWidths=[width * inch for _, width in PDF_COLUMNS],
        repeatRows=1,
    )
    style_cmds = [
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('TOPPADDING', (0, 0), (-1, -1), 3),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
        ('LINEBELOW', (0, 0), (-1, 0), 1, colors.HexColor('#334155')),
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#f1f5f9')),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#fafafa')]),
    ]
    # Open shifts in amber
    for i, row in enumerate(rows, start=1):
        if row.get("Incomplete") == "Yes":
            style_cmds.append(('BACKGROUND', (0, i), (-1, i), colors.HexColor('#fffbeb')))
    detail_table.setStyle(TableStyle(style_cmds))
    story.append(detail_table)

    # Footer
    story.append(Spacer(1, 16))
    story.append(HRFlowable(width="100%", thickness=0.5, color=colors.HexColor('#cbd5e1')))
    story.append(Spacer(1, 4))
    story.append(Paragraph(
        f"Generated on {datetime.utcnow().strftime('%B %d, %Y at %I:%M %p UTC')}",
        styles['SmallRight'],
    ))

    doc.build(story)
    return buffer.getvalue()
