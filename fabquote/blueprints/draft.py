"""Draft workspace endpoints: the quotation being composed."""
from flask import Blueprint, request

from fabquote.books import get_books
from fabquote.exceptions import ValidationError
from fabquote.services import draft_service
from fabquote.services.bulk_edit_service import resolve_field_update
from fabquote.services.quotation_service import save_quotation
from fabquote.utils.http import json_body, ok

draft_bp = Blueprint('draft', __name__, url_prefix='/draft')


def _draft_payload(books, draft):
    data = draft.to_dict()
    data['totals'] = draft_service.draft_totals(books, draft).to_dict()
    data['has_unsaved_changes'] = draft_service.has_unsaved_changes(draft)
    data['is_editing_mode'] = draft_service.is_editing_mode(draft)
    return data


def _update_from_body(data):
    return resolve_field_update(
        process=data.get('technology') or data.get('process'),
        material=data.get('material'),
        quantity=data.get('quantity'),
    )


@draft_bp.route('', methods=['GET'])
def get_draft():
    books = get_books()
    return ok(_draft_payload(books, draft_service.load_draft(books)))


@draft_bp.route('', methods=['DELETE'])
def clear_draft():
    books = get_books()
    return ok(_draft_payload(books, draft_service.clear_draft(books)))


@draft_bp.route('/customer', methods=['PUT'])
def select_customer():
    books = get_books()
    draft = draft_service.select_customer(books, json_body().get('customer_id'))
    return ok(_draft_payload(books, draft))


@draft_bp.route('/parts/upload', methods=['POST'])
def upload_parts():
    """Add one part per uploaded model file (multipart field 'files')."""
    books = get_books()
    uploads = request.files.getlist('files')
    if not uploads:
        raise ValidationError('No files uploaded')

    files = [(f.filename, f.read()) for f in uploads]
    draft, failures = draft_service.add_uploaded_parts(books, files)
    return ok(_draft_payload(books, draft), failures=failures)


@draft_bp.route('/parts/manual', methods=['POST'])
def add_manual_part():
    books = get_books()
    data = json_body()
    draft = draft_service.add_manual_part(
        books,
        file_name=data.get('file_name', ''),
        volume=data.get('volume'),
        technology=data.get('technology'),
        material=data.get('material'),
        quantity=data.get('quantity', 1),
        comments=data.get('comments', ''),
    )
    return ok(_draft_payload(books, draft), status_code=201)


@draft_bp.route('/parts/<part_id>', methods=['PATCH'])
def update_part(part_id):
    """Apply one of quantity / material / process; comments may come along."""
    books = get_books()
    data = json_body()

    update = None
    if any(data.get(k) not in (None, '') for k in ('quantity', 'material', 'technology', 'process')):
        update = _update_from_body(data)
    comments = (data.get('comments') or '') if 'comments' in data else None
    if update is None and comments is None:
        raise ValidationError('Nothing to update')

    draft = draft_service.update_part(books, part_id, update, comments=comments)
    return ok(_draft_payload(books, draft))


@draft_bp.route('/parts/bulk', methods=['PATCH'])
def update_parts():
    books = get_books()
    data = json_body()
    draft = draft_service.update_parts(books, data.get('part_ids') or [], _update_from_body(data))
    return ok(_draft_payload(books, draft))


@draft_bp.route('/parts/<part_id>', methods=['DELETE'])
def delete_part(part_id):
    books = get_books()
    return ok(_draft_payload(books, draft_service.delete_part(books, part_id)))


@draft_bp.route('/parts', methods=['DELETE'])
def delete_all_parts():
    books = get_books()
    return ok(_draft_payload(books, draft_service.delete_all_parts(books)))


@draft_bp.route('/settings', methods=['PATCH'])
def update_settings():
    """Discount, notes, payment terms, lead time and shipping address choice."""
    books = get_books()
    draft = draft_service.update_settings(books, json_body())
    return ok(_draft_payload(books, draft))


@draft_bp.route('/service-charges', methods=['PUT'])
def set_service_charges():
    books = get_books()
    charges = json_body().get('service_charges') or []
    if not isinstance(charges, list):
        raise ValidationError('service_charges must be a list')
    return ok(_draft_payload(books, draft_service.set_service_charges(books, charges)))


@draft_bp.route('/edit/<quotation_id>', methods=['POST'])
def edit_quotation(quotation_id):
    books = get_books()
    return ok(_draft_payload(books, draft_service.load_quotation_for_editing(books, quotation_id)))


@draft_bp.route('/save', methods=['POST'])
def save():
    books = get_books()
    quotation = save_quotation(books)
    return ok(quotation.to_dict(), status_code=201)
