"""
CSV and PDF exports of a user's carbon activity.
"""

import csv
import io
from datetime import datetime, timezone

from markupsafe import escape
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

CSV_HEADERS = ['Date', 'Category', 'Activity', 'CO2 Amount (kg)', 'Notes']
SUMMARY_HEADERS = ['Category', 'Total CO2 (kg)', 'Number of Activities', 'Average CO2 per Activity (kg)']

CATEGORY_LABELS = {
    'calculator': 'Carbon Footprint',
    'bill_upload': 'Bill Scan',
}

BRAND = colors.HexColor('#22c55e')
SLATE_900 = colors.HexColor('#0f172a')
SLATE_500 = colors.HexColor('#64748b')
ROW_SHADE = colors.HexColor('#f9fafb')


def format_csv_date(value):
    if value is None:
        return ''
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return value.strftime('%Y-%m-%d %H:%M:%S')


def generate_carbon_csv(activities):
    """One row per activity: Date, Category, Activity, CO2 Amount (kg), Notes."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADERS)
    for activity in activities:
        writer.writerow([
            format_csv_date(activity.created_at),
            activity.category or '',
            activity.description or '',
            f'{activity.impact or 0:.2f}',
            activity.notes or '',
        ])
    return buffer.getvalue()


def generate_summary_csv(category_data):
    """Per-category totals followed by a blank row and a TOTAL row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(SUMMARY_HEADERS)

    total_co2 = 0.0
    total_count = 0
    for item in category_data:
        count = item['count']
        average = item['total_co2'] / count if count else 0
        writer.writerow([item['category'], f"{item['total_co2']:.2f}", str(count), f'{average:.2f}'])
        total_co2 += item['total_co2']
        total_count += count

    total_average = total_co2 / total_count if total_count else 0
    writer.writerow([])
    writer.writerow(['TOTAL', f'{total_co2:.2f}', str(total_count), f'{total_average:.2f}'])
    return buffer.getvalue()


def _clip(value, limit):
    text = str(value or '').strip().replace('\n', ' ')
    if len(text) <= limit:
        return text
    return f'{text[:limit - 3].rstrip()}...'


def generate_carbon_pdf(profile, activities, category_data):
    """
    Render the carbon summary report.

    Args:
        profile: Profile the report is generated for
        activities: Activity rows, oldest first
        category_data: output of reports.aggregate_by_category

    Returns:
        PDF bytes
    """
    buffer = io.BytesIO()
    pdf = SimpleDocTemplate(buffer, pagesize=A4, leftMargin=36, rightMargin=36, topMargin=30, bottomMargin=30,
                            title='ReLief Carbon Report')
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle('ReliefTitle', parent=styles['Heading1'], fontName='Helvetica-Bold',
                                 fontSize=22, leading=26, textColor=colors.white, alignment=1)
    tagline_style = ParagraphStyle('ReliefTagline', parent=styles['Normal'], fontSize=11,
                                   textColor=colors.white, alignment=1)
    section_style = ParagraphStyle('ReliefSection', parent=styles['Heading2'], fontName='Helvetica-Bold',
                                   fontSize=14, leading=17, textColor=SLATE_900, spaceAfter=6)
    body_style = ParagraphStyle('ReliefBody', parent=styles['Normal'], fontSize=10, leading=13)
    meta_style = ParagraphStyle('ReliefMeta', parent=styles['Normal'], fontSize=9, textColor=SLATE_500)

    story = []

    header = Table([[Paragraph('ReLief Carbon Report', title_style)],
                    [Paragraph('Track. Reduce. Heal.', tagline_style)]],
                   colWidths=[pdf.width])
    header.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, -1), BRAND),
        ('TOPPADDING', (0, 0), (-1, -1), 8),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 8),
    ]))
    story.append(header)
    story.append(Spacer(1, 14))

    generated_on = datetime.now(timezone.utc).strftime('%Y-%m-%d')
    story.append(Paragraph(f'<b>Generated for:</b> {escape(profile.username or "User")}', body_style))
    if profile.email:
        story.append(Paragraph(escape(profile.email), meta_style))
    story.append(Paragraph(f'Report Date: {generated_on}', meta_style))
    story.append(Spacer(1, 12))

    total = sum(a.impact or 0 for a in activities)
    entries = len(activities)
    story.append(Paragraph('Carbon Footprint Summary', section_style))
    stats = Table([
        ['Total Emissions', 'Total Entries', 'Carbon Saved'],
        [f'{total:.2f} kg CO2', f'{entries} record{"s" if entries != 1 else ""}',
         f'{profile.carbon_savings or 0:.2f} kg CO2'],
    ], colWidths=[pdf.width / 3] * 3)
    stats.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, -1), ROW_SHADE),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 1), (-1, 1), 12),
        ('TOPPADDING', (0, 0), (-1, -1), 6),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
    ]))
    story.append(stats)
    story.append(Spacer(1, 14))

    if category_data:
        story.append(Paragraph('Category Breakdown', section_style))
        rows = [['Category', 'Total (kg CO2)', 'Entries']]
        rows += [[item['category'].title(), f"{item['total_co2']:.2f}", str(item['count'])]
                 for item in category_data]
        table = Table(rows, colWidths=[pdf.width * 0.5, pdf.width * 0.3, pdf.width * 0.2])
        table.setStyle(_table_style())
        story.append(table)
        story.append(Spacer(1, 14))

    if activities:
        story.append(Paragraph('Emission History', section_style))
        rows = [['Date', 'Category', 'Description', 'kg CO2']]
        for activity in activities:
            label = CATEGORY_LABELS.get(activity.type, activity.category)
            rows.append([
                activity.log_date.isoformat() if activity.log_date else '',
                _clip(label, 20),
                _clip(activity.description, 55),
                f'{activity.impact or 0:.2f}',
            ])
        table = Table(rows, colWidths=[pdf.width * 0.17, pdf.width * 0.2, pdf.width * 0.48, pdf.width * 0.15],
                      repeatRows=1)
        table.setStyle(_table_style())
        story.append(table)

    pdf.build(story)
    return buffer.getvalue()


def _table_style():
    return TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), BRAND),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 8.5),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, ROW_SHADE]),
        ('GRID', (0, 0), (-1, -1), 0.25, colors.HexColor('#e5e7eb')),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
    ])
