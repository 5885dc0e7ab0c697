# procurement/services/documents.py
from io import BytesIO
import logging

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .formatting import format_decimal, utcnow

logger = logging.getLogger(__name__)

TABLE_STYLE = TableStyle([
    ('BACKGROUND', (0, 0), (-1, 0), colors.lightgrey),
    ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
    ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
    ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
    ('BACKGROUND', (0, -1), (-1, -1), colors.lightgrey),
    ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
    ('GRID', (0, 0), (-1, -1), 1, colors.black),
])


def purchase_order_filename(offer):
    return f'purchase_order_{offer.id}.pdf'


def generate_purchase_order(offer, bid_item, bid_request, school, supplier, generated_at=None):
    """
    Render the purchase order for an accepted offer.

    Returns:
        bytes: the PDF document
    """
    generated_at = generated_at or utcnow()
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=72,
        leftMargin=72,
        topMargin=72,
        bottomMargin=72,
        title=f'Purchase Order #{offer.id}',
    )

    styles = getSampleStyleSheet()
    heading = styles['Heading2']
    normal = styles['Normal']
    date_str = generated_at.strftime('%B %d, %Y')

    elements = [
        Paragraph(f'Purchase Order #{offer.id}', styles['Heading1']),
        Spacer(1, 0.25 * inch),
        Paragraph(f'Date: {date_str}', normal),
        Paragraph(f'Bid request: {bid_request.title}', normal),
        Spacer(1, 0.25 * inch),
        Paragraph('Buyer', heading),
        Paragraph(f'Name: {school.display_name}', normal),
        Paragraph(f'Email: {school.email}', normal),
        Paragraph(f"Phone: {school.contact_phone or 'N/A'}", normal),
        Spacer(1, 0.25 * inch),
        Paragraph('Supplier', heading),
        Paragraph(f'Name: {supplier.display_name}', normal),
        Paragraph(f'Email: {supplier.email}', normal),
        Paragraph(f"Phone: {supplier.contact_phone or 'N/A'}", normal),
        Spacer(1, 0.25 * inch),
        Paragraph('Order', heading),
    ]

    order_table = Table([
        ['Item', 'Quantity', 'Unit', 'Price per unit', 'Total'],
        [
            bid_item.item_name,
            format_decimal(bid_item.quantity),
            bid_item.unit,
            format_decimal(offer.price_per_unit),
            format_decimal(offer.total_price),
        ],
        ['', '', '', 'Order total:', format_decimal(offer.total_price)],
    ])
    order_table.setStyle(TABLE_STYLE)
    elements.append(order_table)
    elements.append(Spacer(1, 0.25 * inch))

    if offer.delivery_time:
        elements.append(Paragraph(f'Delivery time: {offer.delivery_time} days', normal))
    if offer.notes:
        elements.append(Paragraph(f'Supplier notes: {offer.notes}', normal))
    elements.append(Spacer(1, 0.25 * inch))
    elements.append(Paragraph(f'Generated on {date_str}', normal))

    doc.build(elements)
    logger.info(f"Generated purchase order for offer {offer.id}")
    return buffer.getvalue()
