"""
PDF rendering for quotations, invoices, production orders and parts
manifests.

Rendering is read-only. A document whose customer or catalog entries have
since been deleted still renders; the missing pieces show a placeholder.
"""
import logging
from decimal import Decimal
from io import BytesIO
from typing import Any, Dict, List, Optional, Tuple
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER

from fabquote.exceptions import ReferentialGap
from fabquote.models import Catalog, Invoice, Order, Part, Quotation, ShippingAddressChoice, TaxMode
from fabquote.services.tax_service import TaxBreakdown, format_tax_breakdown
from fabquote.utils.formatters import date_in, money_in, volume_cc

logger = logging.getLogger(__name__)

# Base-14 fonts have no rupee glyph
CURRENCY_SYMBOL = 'Rs. '

HEADER_BLUE = colors.HexColor('#3498DB')
TEXT_DARK = colors.HexColor('#34495E')
GRID_GREY = colors.HexColor('#BDC3C7')
ROW_ALT = colors.HexColor('#ECF0F1')
TOTAL_GREEN = colors.HexColor('#27AE60')


def _money(value) -> str:
    return money_in(value, CURRENCY_SYMBOL)


def _text(value) -> str:
    return escape(str(value or ''))


def document_tax_breakdown(document) -> TaxBreakdown:
    """Tax components of a saved document, split by its stored tax mode."""
    total = document.totals.total_tax
    zero = Decimal('0')
    if document.tax_mode == TaxMode.DUAL:
        half = total / 2
        return TaxBreakdown(cgst=half, sgst=half, igst=zero, total=total, mode=TaxMode.DUAL)
    return TaxBreakdown(cgst=zero, sgst=zero, igst=total, total=total, mode=TaxMode.SINGLE)


def catalog_labels(catalog: Optional[Catalog], technology_id: Optional[str],
                   material_id: Optional[str]) -> Tuple[str, str]:
    """(process name, material name) for display; missing entries become placeholders."""
    if not technology_id:
        return '-', '-'
    if catalog is None:
        return technology_id, material_id or '-'

    try:
        technology_name = catalog.get_technology(technology_id).name
    except ReferentialGap:
        return f"{technology_id} (not in catalog)", material_id or '-'

    if not material_id:
        return technology_name, '-'
    try:
        material_name = catalog.get_material(technology_id, material_id).name
    except ReferentialGap:
        material_name = f"{material_id} (not in catalog)"
    return technology_name, material_name


def customer_lines(document, customer) -> List[str]:
    """Bill-to block; a deleted customer falls back to the name snapshot."""
    if customer is None:
        snapshot = getattr(document, 'customer_name', None) or 'Unknown customer'
        return [f"<b>{_text(snapshot)}</b>", f"Customer {_text(document.customer_id)} (not in registry)"]

    lines = [f"<b>{_text(customer.display_name)}</b>"]
    if customer.company_name and customer.contact_person:
        lines.append(f"Attn: {_text(customer.contact_person)}")

    choice = getattr(document, 'shipping_address_type', ShippingAddressChoice.SHIPPING)
    address = customer.billing_address if choice == ShippingAddressChoice.BILLING else customer.shipping_address
    street = ', '.join(p for p in (address.street, address.city) if p)
    region = ' - '.join(p for p in (address.state, address.pin) if p)
    for line in (street, region):
        if line:
            lines.append(_text(line))
    if customer.gstn:
        lines.append(f"GSTN: {_text(customer.gstn)}")
    contact = ' | '.join(p for p in (customer.phone, customer.email) if p)
    if contact:
        lines.append(_text(contact))
    return lines


def _production_rows(parts) -> List[Dict[str, Any]]:
    return [p.to_production_dict() if isinstance(p, Part) else dict(p) for p in parts]


def _styles():
    styles = getSampleStyleSheet()
    return {
        'title': ParagraphStyle(
            'DocTitle',
            parent=styles['Heading1'],
            fontSize=22,
            textColor=colors.HexColor('#2C3E50'),
            spaceAfter=12,
            alignment=TA_CENTER,
            fontName='Helvetica-Bold'
        ),
        'header': ParagraphStyle(
            'DocHeader',
            parent=styles['Normal'],
            fontSize=10,
            textColor=colors.HexColor('#7F8C8D'),
            alignment=TA_CENTER,
            spaceAfter=6
        ),
        'body': ParagraphStyle('DocBody', parent=styles['Normal'], fontSize=10, textColor=TEXT_DARK),
        'cell': ParagraphStyle('DocCell', parent=styles['Normal'], fontSize=9, leading=11),
        'footer': ParagraphStyle(
            'DocFooter',
            parent=styles['Normal'],
            fontSize=9,
            textColor=colors.HexColor('#95A5A6'),
            alignment=TA_CENTER
        ),
    }


def _business_header(elements, styles, business: Dict[str, Any]):
    if business.get('name'):
        elements.append(Paragraph(f"<b>{_text(business['name'])}</b>", styles['header']))

    location = ', '.join(p for p in (business.get('address'), business.get('city'), business.get('state')) if p)
    if location:
        elements.append(Paragraph(_text(location), styles['header']))

    contact_parts = []
    if business.get('gstn'):
        contact_parts.append(f"GSTN: {_text(business['gstn'])}")
    if business.get('phone'):
        contact_parts.append(f"Tel: {_text(business['phone'])}")
    if business.get('email'):
        contact_parts.append(f"Email: {_text(business['email'])}")
    if contact_parts:
        elements.append(Paragraph(" | ".join(contact_parts), styles['header']))


def _info_table(rows):
    table = Table(rows, colWidths=[1.8*inch, 4.9*inch])
    table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
        ('ALIGN', (1, 0), (1, -1), 'LEFT'),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), TEXT_DARK),
    ]))
    return table


def _items_table(table_data, col_widths, right_from: int):
    table = Table(table_data, colWidths=col_widths, repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), HEADER_BLUE),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('ALIGN', (right_from, 1), (-1, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -1), 0.5, GRID_GREY),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, ROW_ALT]),
    ]))
    return table


def _totals_table(rows, highlight_last: bool = True):
    table = Table(rows, colWidths=[5.2*inch, 1.5*inch])
    style = [
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), TEXT_DARK),
    ]
    if highlight_last:
        style += [
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, -1), (-1, -1), 13),
            ('TEXTCOLOR', (0, -1), (-1, -1), TOTAL_GREEN),
            ('BACKGROUND', (0, -1), (-1, -1), colors.HexColor('#E8F8F5')),
            ('BOX', (0, -1), (-1, -1), 2, TOTAL_GREEN),
        ]
    table.setStyle(TableStyle(style))
    return table


def _priced_items(document, catalog, styles):
    table_data = [['#', 'Part', 'Process / Material', 'Volume', 'Qty', 'Unit Price', 'Amount']]
    for part in sorted(document.parts, key=lambda p: p.serial_number):
        technology, material = catalog_labels(catalog, part.technology, part.material)
        description = _text(part.file_name)
        if part.comments:
            description += f"<br/><i>{_text(part.comments)}</i>"
        table_data.append([
            str(part.serial_number),
            Paragraph(description, styles['cell']),
            Paragraph(f"{_text(technology)}<br/>{_text(material)}", styles['cell']),
            volume_cc(part.volume),
            str(part.quantity),
            _money(part.pricing.unit_price),
            _money(part.pricing.line_total),
        ])
    for charge in document.service_charges:
        table_data.append(['', Paragraph(_text(charge.description), styles['cell']),
                           'Service charge', '', '', '', _money(charge.amount)])
    return _items_table(
        table_data,
        [0.35*inch, 1.9*inch, 1.55*inch, 0.8*inch, 0.4*inch, 0.85*inch, 0.85*inch],
        right_from=3
    )


def _amount_rows(document) -> List[List[str]]:
    totals = document.totals
    rows = [['Subtotal (incl. service charges):', _money(totals.total_base_price)]]
    if totals.discount_amount:
        rows.append([f"Discount ({document.discount}%):", f"- {_money(totals.discount_amount)}"])
    rows.append(['Taxable amount:', _money(totals.taxable_amount)])

    breakdown = document_tax_breakdown(document)
    if breakdown.mode == TaxMode.DUAL:
        rows.append(['CGST (9%):', _money(breakdown.cgst)])
        rows.append(['SGST (9%):', _money(breakdown.sgst)])
    else:
        rows.append(['IGST (18%):', _money(breakdown.igst)])
    rows.append(['TOTAL:', _money(totals.final_price)])
    return rows


def _build(title: str, business: Dict[str, Any], body) -> BytesIO:
    """Shared page setup: title, business header, then the document body."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75*inch,
        leftMargin=0.75*inch,
        topMargin=0.75*inch,
        bottomMargin=0.75*inch,
        title=title
    )

    styles = _styles()
    elements = [Paragraph(_text(title.upper()), styles['title'])]
    _business_header(elements, styles, business or {})
    elements.append(Spacer(1, 0.3*inch))
    body(elements, styles)

    doc.build(elements)
    buffer.seek(0)
    return buffer


def render_quotation_pdf(quotation: Quotation, customer, catalog: Optional[Catalog],
                         business: Dict[str, Any] = None) -> BytesIO:
    """Render a saved quotation."""
    def body(elements, styles):
        info = [
            ['Quotation No:', quotation.quotation_number],
            ['Date:', date_in(quotation.created_at)],
            ['Valid Until:', date_in(quotation.valid_until)],
            ['Status:', quotation.status.value],
            ['Bill To:', Paragraph('<br/>'.join(customer_lines(quotation, customer)), styles['body'])],
        ]
        if quotation.payment_terms:
            info.append(['Payment Terms:', quotation.payment_terms])
        if quotation.lead_time:
            info.append(['Lead Time:', quotation.lead_time])
        elements.append(_info_table(info))
        elements.append(Spacer(1, 0.3*inch))

        elements.append(_priced_items(quotation, catalog, styles))
        elements.append(Spacer(1, 0.2*inch))
        elements.append(_totals_table(_amount_rows(quotation)))
        elements.append(Spacer(1, 0.4*inch))

        footer_text = "<b>Tax:</b> " + _text(format_tax_breakdown(document_tax_breakdown(quotation), CURRENCY_SYMBOL))
        footer_text += "<br/><i>This is a quotation, not a tax invoice.</i>"
        if quotation.notes:
            footer_text += f"<br/><br/><b>Notes:</b> {_text(quotation.notes)}"
        elements.append(Paragraph(footer_text, styles['footer']))

    logger.debug(f"[RENDER] Quotation {quotation.quotation_number}")
    return _build('Quotation', business, body)


def render_invoice_pdf(invoice: Invoice, customer, catalog: Optional[Catalog],
                       business: Dict[str, Any] = None) -> BytesIO:
    """Render an invoice with its payment history and balance."""
    def body(elements, styles):
        info = [
            ['Invoice No:', invoice.invoice_number],
            ['Date:', date_in(invoice.created_at)],
            ['Due Date:', date_in(invoice.due_date)],
            ['Quotation Ref:', invoice.quotation_number or '-'],
            ['Status:', invoice.status.value],
            ['Bill To:', Paragraph('<br/>'.join(customer_lines(invoice, customer)), styles['body'])],
        ]
        if invoice.payment_terms:
            info.append(['Payment Terms:', invoice.payment_terms])
        elements.append(_info_table(info))
        elements.append(Spacer(1, 0.3*inch))

        elements.append(_priced_items(invoice, catalog, styles))
        elements.append(Spacer(1, 0.2*inch))
        elements.append(_totals_table(_amount_rows(invoice)))

        if invoice.payments:
            elements.append(Spacer(1, 0.3*inch))
            payment_rows = [['Date', 'Method', 'Reference', 'Amount']]
            for payment in sorted(invoice.payments, key=lambda p: (p.payment_date, p.created_at)):
                payment_rows.append([
                    date_in(payment.payment_date),
                    payment.payment_method.value,
                    payment.reference_number or '-',
                    _money(payment.amount),
                ])
            elements.append(_items_table(payment_rows, [1.3*inch, 1.6*inch, 2.3*inch, 1.5*inch], right_from=3))

        elements.append(Spacer(1, 0.2*inch))
        elements.append(_totals_table([
            ['Amount Paid:', _money(invoice.total_paid)],
            ['Balance Due:', _money(invoice.remaining_amount)],
        ]))
        elements.append(Spacer(1, 0.4*inch))

        footer_text = "<b>Tax:</b> " + _text(format_tax_breakdown(document_tax_breakdown(invoice), CURRENCY_SYMBOL))
        if invoice.notes:
            footer_text += f"<br/><br/><b>Notes:</b> {_text(invoice.notes)}"
        elements.append(Paragraph(footer_text, styles['footer']))

    logger.debug(f"[RENDER] Invoice {invoice.invoice_number}")
    return _build('Tax Invoice', business, body)


def _production_table(parts, catalog, styles):
    table_data = [['#', 'Part', 'Process', 'Material', 'Volume', 'Bounding Box (mm)', 'Qty']]
    for part in sorted(_production_rows(parts), key=lambda p: p.get('serial_number') or 0):
        technology, material = catalog_labels(catalog, part.get('technology'), part.get('material'))
        box = part.get('bounding_box')
        box_text = f"{box['x']} x {box['y']} x {box['z']}" if box else '-'
        description = _text(part.get('file_name'))
        if part.get('comments'):
            description += f"<br/><i>{_text(part['comments'])}</i>"
        table_data.append([
            str(part.get('serial_number') or ''),
            Paragraph(description, styles['cell']),
            Paragraph(_text(technology), styles['cell']),
            Paragraph(_text(material), styles['cell']),
            volume_cc(part.get('volume')),
            box_text,
            str(part.get('quantity') or 1),
        ])
    return _items_table(
        table_data,
        [0.35*inch, 1.9*inch, 1.0*inch, 1.0*inch, 0.8*inch, 1.25*inch, 0.4*inch],
        right_from=4
    )


def render_order_pdf(order: Order, customer, catalog: Optional[Catalog],
                     business: Dict[str, Any] = None) -> BytesIO:
    """Render a production order (no prices)."""
    def body(elements, styles):
        info = [
            ['Order No:', order.order_number],
            ['Date:', date_in(order.created_at)],
            ['Invoice Ref:', order.invoice_number or '-'],
            ['Status:', order.status.value],
            ['Customer:', Paragraph('<br/>'.join(customer_lines(order, customer)), styles['body'])],
        ]
        elements.append(_info_table(info))
        elements.append(Spacer(1, 0.3*inch))
        elements.append(_production_table(order.parts, catalog, styles))

        if order.service_charges:
            elements.append(Spacer(1, 0.2*inch))
            services = '<br/>'.join(f"- {_text(c.get('description'))}" for c in order.service_charges)
            elements.append(Paragraph(f"<b>Additional services:</b><br/>{services}", styles['body']))

    logger.debug(f"[RENDER] Order {order.order_number}")
    return _build('Production Order', business, body)


def render_parts_manifest_pdf(document, catalog: Optional[Catalog], business: Dict[str, Any] = None) -> BytesIO:
    """Parts-only manifest of any document: geometry, process and quantity."""
    reference = getattr(document, 'order_number', None) or getattr(document, 'invoice_number', None) \
        or getattr(document, 'quotation_number', None) or document.id

    def body(elements, styles):
        parts = _production_rows(document.parts)
        total_quantity = sum(int(p.get('quantity') or 1) for p in parts)
        elements.append(_info_table([
            ['Reference:', reference],
            ['Parts:', f"{len(parts)} ({total_quantity} pcs)"],
        ]))
        elements.append(Spacer(1, 0.3*inch))
        elements.append(_production_table(parts, catalog, styles))

    logger.debug(f"[RENDER] Parts manifest for {reference}")
    return _build('Parts Manifest', business, body)


def render_document(document, customer, catalog: Optional[Catalog], business: Dict[str, Any] = None) -> BytesIO:
    """
    Render any saved document.

    Args:
        document: Quotation, Invoice or Order
        customer: Customer record, or None when it is no longer registered
        catalog: Catalog used for process/material names
        business: Seller header (name, gstn, address, city, state, phone, email)

    Returns:
        BytesIO positioned at 0
    """
    if isinstance(document, Quotation):
        return render_quotation_pdf(document, customer, catalog, business)
    if isinstance(document, Invoice):
        return render_invoice_pdf(document, customer, catalog, business)
    if isinstance(document, Order):
        return render_order_pdf(document, customer, catalog, business)
    raise TypeError(f"Cannot render {type(document).__name__}")


def render_for_books(books, document, manifest: bool = False) -> BytesIO:
    """Render a document with the customer and catalog currently on the books."""
    customer = books.customers.get(document.customer_id)
    if customer is None:
        logger.warning(f"[RENDER] ⚠ Customer {document.customer_id} missing; rendering placeholder")
    catalog = books.catalog.get()
    if manifest:
        return render_parts_manifest_pdf(document, catalog, books.business)
    return render_document(document, customer, catalog, books.business)
