"""Generate commission distribution statement PDFs."""
import io
from datetime import datetime, timezone
from reportlab.lib.pagesizes import letter, landscape
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.platypus import (
    SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer, HRFlowable,
)
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_RIGHT


def generate_distribution_pdf(tenant_name: str, rows, totals: dict) -> bytes:
    """Render the tenant's distribution rows and totals as a landscape statement."""
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
        name='SheetTitle',
        parent=styles['Heading2'],
        fontSize=14,
        textColor=colors.HexColor('#334155'),
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
        fontSize=7.5,
        leading=9,
    ))
    styles.add(ParagraphStyle(
        name='TableCellRight',
        parent=styles['Normal'],
        fontSize=7.5,
        leading=9,
        alignment=TA_RIGHT,
    ))

    story = []
    fmt = lambda n: f"{n:,.2f}"

    # ── Header ────────────────────────────────────────────────────
    story.append(Paragraph(f"Commission Distribution Statement: {tenant_name}", styles['SheetTitle']))
    story.append(HRFlowable(width="100%", thickness=1, color=colors.HexColor('#1a5632')))
    story.append(Spacer(1, 8))

    # ── Summary Box ───────────────────────────────────────────────
    story.append(Paragraph("Summary", styles['SectionHeader']))
    sum_rows = [
        ["Policies", str(totals["total_policies"]),
         "Total Premium", fmt(totals["total_premium"])],
        ["Insurer Commission", fmt(totals["total_insurer_commission"]),
         "Agent Commission", fmt(totals["total_agent_commission"])],
        ["MISP Commission", fmt(totals["total_misp_commission"]),
         "Employee Commission", fmt(totals["total_employee_commission"])],
        ["", "", "Broker Share", fmt(totals["total_broker_share"])],
    ]
    sum_table = Table(sum_rows, colWidths=[2 * inch, 1.5 * inch, 2 * inch, 1.5 * inch])
    sum_table.setStyle(TableStyle([
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
        ('ALIGN', (3, 0), (3, -1), 'RIGHT'),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
        ('TOPPADDING', (0, 0), (-1, -1), 4),
        ('LINEBELOW', (0, -1), (-1, -1), 1, colors.HexColor('#1a5632')),
        ('FONTNAME', (2, -1), (-1, -1), 'Helvetica-Bold'),
        ('TEXTCOLOR', (3, -1), (3, -1), colors.HexColor('#15803d')),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#e2e8f0')),
    ]))
    story.append(sum_table)
    story.append(Spacer(1, 14))

    # ── Policy Detail ─────────────────────────────────────────────
    story.append(Paragraph(f"Policy Detail ({len(rows)} policies)", styles['SectionHeader']))
    header = [
        Paragraph("<b>Policy #</b>", styles['TableCell']),
        Paragraph("<b>Customer</b>", styles['TableCell']),
        Paragraph("<b>Provider</b>", styles['TableCell']),
        Paragraph("<b>Source</b>", styles['TableCell']),
        Paragraph("<b>Premium</b>", styles['TableCellRight']),
        Paragraph("<b>Rate %</b>", styles['TableCellRight']),
        Paragraph("<b>Insurer Comm</b>", styles['TableCellRight']),
        Paragraph("<b>Party Comm</b>", styles['TableCellRight']),
        Paragraph("<b>Broker Share</b>", styles['TableCellRight']),
        Paragraph("<b>Tier / Override</b>", styles['TableCell']),
    ]
    table_data = [header]
    for row in rows:
        party = row.agent_commission + row.misp_commission + row.employee_commission
        if row.override_used:
            basis = f"Override {row.party_percentage:.2f}%"
        elif row.tier_name:
            basis = f"{row.tier_name} {row.party_percentage:.2f}%"
        else:
            basis = row.share_mode.replace("_", " ")
        table_data.append([
            Paragraph(str(row.policy_number)[:18], styles['TableCell']),
            Paragraph(str(row.customer_name or "—")[:22], styles['TableCell']),
            Paragraph(str(row.provider or "—")[:18], styles['TableCell']),
            Paragraph(f"{row.source_type}: {row.source_name}"[:26], styles['TableCell']),
            Paragraph(fmt(row.premium_amount), styles['TableCellRight']),
            Paragraph(f"{row.total_rate:.2f}", styles['TableCellRight']),
            Paragraph(fmt(row.insurer_commission), styles['TableCellRight']),
            Paragraph(fmt(party), styles['TableCellRight']),
            Paragraph(fmt(row.broker_share), styles['TableCellRight']),
            Paragraph(basis[:30], styles['TableCell']),
        ])

    col_widths = [1.0 * inch, 1.2 * inch, 0.9 * inch, 1.3 * inch, 0.8 * inch,
                  0.5 * inch, 0.9 * inch, 0.8 * inch, 0.8 * inch, 1.4 * inch]
    detail_table = Table(table_data, colWidths=col_widths, repeatRows=1)
    detail_table.setStyle(TableStyle([
        ('FONTSIZE', (0, 0), (-1, -1), 7.5),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('TOPPADDING', (0, 0), (-1, -1), 3),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
        ('LINEBELOW', (0, 0), (-1, 0), 1, colors.HexColor('#334155')),
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#f1f5f9')),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#fafafa')]),
        ('LINEBELOW', (0, -1), (-1, -1), 0.5, colors.HexColor('#cbd5e1')),
    ]))
    story.append(detail_table)

    # Footer
    story.append(Spacer(1, 16))
    story.append(HRFlowable(width="100%", thickness=0.5, color=colors.HexColor('#cbd5e1')))
    story.append(Spacer(1, 4))
    story.append(Paragraph(
        f"Generated on {datetime.now(timezone.utc).strftime('%B %d, %Y at %I:%M %p UTC')}",
        styles['SmallRight']
    ))

    doc.build(story)
    return buffer.getvalue()
