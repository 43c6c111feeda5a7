"""
CSV and PDF reports of a group's expenses, balances and suggested payments.
"""
import csv
import io
import logging
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import cm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont, TTFError

from models import Group, Settlement
from utils import format_currency

logger = logging.getLogger(__name__)

DEJAVU_DIR = '/usr/share/fonts/truetype/dejavu'
HEADER_BG = colors.HexColor('#e5e7eb')
HEADER_FG = colors.HexColor('#1f2937')
GRID_COLOR = colors.HexColor('#d1d5db')


def _member_names(group: Group) -> dict:
    return {m.id: m.name for m in group.members}


def _expense_rows(group: Group, currency: str):
    names = _member_names(group)
    for expense in group.expenses:
        participants = ", ".join(
            names.get(pid, "(removed)") for pid in expense.participant_ids)
        yield [
            expense.date.strftime('%Y-%m-%d'), expense.description,
            format_currency(expense.amount, currency),
            names.get(expense.payer_id, "(removed)"), participants,
            expense.strategy.value
        ]


def export_csv(group: Group, settlement: Settlement, currency: str = "$") -> bytes:
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow([f"Group: {group.name}"])
    writer.writerow(
        [f"Created: {group.created_at.strftime('%Y-%m-%d %H:%M')}"])
    writer.writerow([])

    writer.writerow(["MEMBERS"])
    writer.writerow(["Name"])
    for member in group.members:
        writer.writerow([member.name])
    writer.writerow([])

    writer.writerow(["EXPENSES"])
    writer.writerow(["Date", "Description", "Amount", "Payer", "Participants", "Split"])
    for row in _expense_rows(group, currency):
        writer.writerow(row)
    writer.writerow([])

    writer.writerow(["BALANCES"])
    writer.writerow(["Member", "Balance"])
    for balance in settlement.balances:
        writer.writerow(
            [balance.member_name, format_currency(balance.amount, currency)])
    writer.writerow([])

    writer.writerow(["SUGGESTED PAYMENTS"])
    writer.writerow(["From", "To", "Amount"])
    for suggestion in settlement.suggestions:
        writer.writerow([
            suggestion.payer_name, suggestion.payee_name,
            format_currency(suggestion.amount, currency)
        ])

    return output.getvalue().encode('utf-8-sig')


def _register_fonts():
    try:
        pdfmetrics.registerFont(
            TTFont('DejaVuSans', f'{DEJAVU_DIR}/DejaVuSans.ttf'))
        pdfmetrics.registerFont(
            TTFont('DejaVuSans-Bold', f'{DEJAVU_DIR}/DejaVuSans-Bold.ttf'))
        return 'DejaVuSans', 'DejaVuSans-Bold'
    except (OSError, TTFError):
        logger.debug("DejaVu fonts not available, using Helvetica")
        return 'Helvetica', 'Helvetica-Bold'


def _table_style(font_name, font_name_bold, right_columns=()):
    commands = [
        ('BACKGROUND', (0, 0), (-1, 0), HEADER_BG),
        ('TEXTCOLOR', (0, 0), (-1, 0), HEADER_FG),
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (-1, 0), font_name_bold),
        ('FONTNAME', (0, 1), (-1, -1), font_name),
        ('FONTSIZE', (0, 0), (-1, 0), 10),
        ('FONTSIZE', (0, 1), (-1, -1), 9),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
        ('TOPPADDING', (0, 0), (-1, 0), 8),
        ('GRID', (0, 0), (-1, -1), 0.5, GRID_COLOR),
    ]
    for col in right_columns:
        commands.append(('ALIGN', (col, 0), (col, -1), 'RIGHT'))
    return TableStyle(commands)


def export_pdf(group: Group, settlement: Settlement, currency: str = "$") -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4)
    elements = []

    font_name, font_name_bold = _register_fonts()

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'CustomTitle',
        parent=styles['Heading1'],
        fontSize=18,
        fontName=font_name_bold,
        textColor=HEADER_FG,
        spaceAfter=12,
    )
    heading_style = ParagraphStyle(
        'CustomHeading',
        parent=styles['Heading2'],
        fontSize=14,
        fontName=font_name_bold,
        textColor=colors.HexColor('#374151'),
        spaceAfter=10,
        spaceBefore=14,
    )
    normal_style = ParagraphStyle(
        'CustomNormal',
        parent=styles['Normal'],
        fontName=font_name,
    )

    elements.append(Paragraph(escape(group.name), title_style))
    elements.append(
        Paragraph(f"Created: {group.created_at.strftime('%Y-%m-%d %H:%M')}",
                  normal_style))
    elements.append(Spacer(1, 0.5 * cm))

    elements.append(Paragraph("Expenses", heading_style))
    expense_data = [["Date", "Description", "Amount", "Payer", "Participants", "Split"]]
    expense_data.extend(_expense_rows(group, currency))
    expense_table = Table(
        expense_data,
        colWidths=[2.2 * cm, 3.8 * cm, 2.4 * cm, 2.6 * cm, 4 * cm, 2.8 * cm])
    expense_table.setStyle(_table_style(font_name, font_name_bold, right_columns=(2,)))
    elements.append(expense_table)
    elements.append(Spacer(1, 0.5 * cm))

    elements.append(Paragraph("Balances", heading_style))
    balance_data = [["Member", "Balance"]]
    for balance in settlement.balances:
        balance_data.append(
            [balance.member_name, format_currency(balance.amount, currency)])
    balance_table = Table(balance_data, colWidths=[10 * cm, 5 * cm])
    balance_table.setStyle(_table_style(font_name, font_name_bold, right_columns=(1,)))
    elements.append(balance_table)
    elements.append(Spacer(1, 0.5 * cm))

    elements.append(Paragraph("Suggested payments", heading_style))
    payment_data = [["From", "To", "Amount"]]
    for suggestion in settlement.suggestions:
        payment_data.append([
            suggestion.payer_name, suggestion.payee_name,
            format_currency(suggestion.amount, currency)
        ])
    if settlement.fully_settled:
        payment_data.append(["All settled up", "", ""])

    payment_table = Table(payment_data, colWidths=[5 * cm, 5 * cm, 5 * cm])
    payment_table.setStyle(_table_style(font_name, font_name_bold, right_columns=(2,)))
    elements.append(payment_table)

    doc.build(elements)
    return buffer.getvalue()
