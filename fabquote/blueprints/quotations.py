"""Saved quotation endpoints."""
from flask import Blueprint, request

from fabquote.books import get_books
from fabquote.services import quotation_service
from fabquote.services.invoice_service import PromotionSaga
from fabquote.services.render_service import render_for_books
from fabquote.utils.http import json_body, ok, pdf_response

quotations_bp = Blueprint('quotations', __name__, url_prefix='/quotations')


@quotations_bp.route('', methods=['GET'])
def list_quotations():
    """List quotations (?status=Sent&q=acme), newest first."""
    books = get_books()
    quotations = quotation_service.list_quotations(
        books,
        status=request.args.get('status'),
        search=request.args.get('q'),
    )
    return ok([q.to_dict() for q in quotations])


@quotations_bp.route('/<quotation_id>', methods=['GET'])
def get_quotation(quotation_id):
    return ok(quotation_service.get_quotation(get_books(), quotation_id).to_dict())


@quotations_bp.route('/<quotation_id>/status', methods=['PUT'])
def set_status(quotation_id):
    quotation = quotation_service.set_quotation_status(get_books(), quotation_id, json_body().get('status'))
    return ok(quotation.to_dict())


@quotations_bp.route('/<quotation_id>', methods=['DELETE'])
def delete_quotation(quotation_id):
    quotation_service.delete_quotation(get_books(), quotation_id)
    return ok()


@quotations_bp.route('/<quotation_id>/promote', methods=['POST'])
def promote(quotation_id):
    """Convert to invoice + order. 201 when complete, 207 when the cascade stopped after the invoice."""
    result = PromotionSaga(get_books(), quotation_id).run()
    return ok(result.to_dict(), status_code=201 if result.is_complete else 207)


@quotations_bp.route('/<quotation_id>/pdf', methods=['GET'])
def download_pdf(quotation_id):
    books = get_books()
    quotation = quotation_service.get_quotation(books, quotation_id)
    return pdf_response(render_for_books(books, quotation), f"quotation_{quotation.quotation_number}.pdf")
