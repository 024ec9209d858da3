"""Invoice and payment ledger endpoints."""
from flask import Blueprint, request

from fabquote.books import get_books
from fabquote.services import invoice_service, payment_service
from fabquote.services.render_service import render_for_books
from fabquote.utils.http import json_body, ok, pdf_response

invoices_bp = Blueprint('invoices', __name__, url_prefix='/invoices')


@invoices_bp.route('', methods=['GET'])
def list_invoices():
    books = get_books()
    invoices = invoice_service.list_invoices(
        books,
        status=request.args.get('status'),
        search=request.args.get('q'),
    )
    return ok([i.to_dict() for i in invoices])


@invoices_bp.route('/alerts', methods=['GET'])
def alerts():
    return ok(invoice_service.get_invoice_alert_counts(get_books()))


@invoices_bp.route('/<invoice_id>', methods=['GET'])
def get_invoice(invoice_id):
    return ok(invoice_service.get_invoice(get_books(), invoice_id).to_dict())


@invoices_bp.route('/<invoice_id>/status', methods=['PUT'])
def set_status(invoice_id):
    invoice = invoice_service.set_invoice_status(get_books(), invoice_id, json_body().get('status'))
    return ok(invoice.to_dict())


@invoices_bp.route('/<invoice_id>/payments', methods=['POST'])
def add_payment(invoice_id):
    data = json_body()
    invoice = payment_service.add_payment(
        get_books(),
        invoice_id,
        amount=data.get('amount'),
        payment_date=data.get('payment_date'),
        payment_method=data.get('payment_method'),
        reference_number=data.get('reference_number'),
        notes=data.get('notes'),
    )
    return ok(invoice.to_dict(), status_code=201)


@invoices_bp.route('/<invoice_id>/payments/<payment_id>', methods=['DELETE'])
def remove_payment(invoice_id, payment_id):
    invoice = payment_service.remove_payment(get_books(), invoice_id, payment_id)
    return ok(invoice.to_dict())


@invoices_bp.route('/<invoice_id>', methods=['DELETE'])
def delete_invoice(invoice_id):
    removed = invoice_service.delete_invoice(get_books(), invoice_id)
    return ok(removed_orders=removed)


@invoices_bp.route('/<invoice_id>/pdf', methods=['GET'])
def download_pdf(invoice_id):
    books = get_books()
    invoice = invoice_service.get_invoice(books, invoice_id)
    return pdf_response(render_for_books(books, invoice), f"invoice_{invoice.invoice_number}.pdf")
