"""Health and reconciliation endpoints."""
from flask import Blueprint, current_app, jsonify

from fabquote.books import get_books
from fabquote.services.invoice_service import find_cascade_gaps

health_bp = Blueprint('health', __name__, url_prefix='/health')


@health_bp.route('', methods=['GET'])
def health():
    """Liveness plus store reachability for backends that can report it."""
    store = current_app.extensions['store']
    is_available = getattr(store, 'is_available', None)
    store_ok = is_available() if callable(is_available) else True
    status_code = 200 if store_ok else 503
    return jsonify({
        'status': 'ok' if store_ok else 'degraded',
        'store': type(store).__name__,
    }), status_code


@health_bp.route('/reconcile', methods=['GET'])
def reconcile():
    """Leftovers of interrupted promotions; read-only."""
    return jsonify(dict(find_cascade_gaps(get_books()).to_dict(), status='success'))
