"""Production order endpoints."""
from flask import Blueprint, request

from fabquote.books import get_books
from fabquote.services import order_service
from fabquote.services.render_service import render_for_books
from fabquote.utils.http import json_body, ok, pdf_response

orders_bp = Blueprint('orders', __name__, url_prefix='/orders')


@orders_bp.route('', methods=['GET'])
def list_orders():
    orders = order_service.list_orders(get_books(), status=request.args.get('status'))
    return ok([o.to_dict() for o in orders])


@orders_bp.route('/<order_id>', methods=['GET'])
def get_order(order_id):
    return ok(order_service.get_order(get_books(), order_id).to_dict())


@orders_bp.route('/<order_id>/status', methods=['PUT'])
def set_status(order_id):
    order = order_service.set_order_status(get_books(), order_id, json_body().get('status'))
    return ok(order.to_dict())


@orders_bp.route('/<order_id>', methods=['DELETE'])
def delete_order(order_id):
    order_service.delete_order(get_books(), order_id)
    return ok()


@orders_bp.route('/<order_id>/pdf', methods=['GET'])
def download_pdf(order_id):
    books = get_books()
    order = order_service.get_order(books, order_id)
    return pdf_response(render_for_books(books, order), f"order_{order.order_number}.pdf")


@orders_bp.route('/<order_id>/manifest.pdf', methods=['GET'])
def download_manifest(order_id):
    books = get_books()
    order = order_service.get_order(books, order_id)
    return pdf_response(render_for_books(books, order, manifest=True), f"parts_{order.order_number}.pdf")
