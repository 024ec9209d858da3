"""Request/response helpers shared by the JSON blueprints."""
from io import BytesIO
from typing import Any, Dict

from flask import jsonify, request, send_file

from fabquote.exceptions import ValidationError


def json_body() -> Dict[str, Any]:
    """Request JSON object, or {} for an empty body."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def ok(data=None, status_code: int = 200, **extra):
    payload = {'status': 'success'}
    if data is not None:
        payload['data'] = data
    payload.update(extra)
    return jsonify(payload), status_code


def pdf_response(buffer: BytesIO, filename: str):
    return send_file(
        buffer,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=filename
    )
