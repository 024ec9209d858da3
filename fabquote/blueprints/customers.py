"""Customer registry endpoints."""
from flask import Blueprint, request

from fabquote.books import get_books
from fabquote.services import customer_service
from fabquote.utils.http import json_body, ok

customers_bp = Blueprint('customers', __name__, url_prefix='/customers')


@customers_bp.route('', methods=['GET'])
def list_customers():
    customers = customer_service.list_customers(
        get_books(),
        search=request.args.get('q'),
        status=request.args.get('status'),
    )
    return ok([c.to_dict() for c in customers])


@customers_bp.route('/<customer_id>', methods=['GET'])
def get_customer(customer_id):
    return ok(customer_service.get_customer(get_books(), customer_id).to_dict())


@customers_bp.route('', methods=['POST'])
def create_customer():
    customer = customer_service.create_customer(get_books(), json_body())
    return ok(customer.to_dict(), status_code=201)


@customers_bp.route('/<customer_id>', methods=['PUT', 'PATCH'])
def update_customer(customer_id):
    customer = customer_service.update_customer(get_books(), customer_id, json_body())
    return ok(customer.to_dict())


@customers_bp.route('/<customer_id>', methods=['DELETE'])
def delete_customer(customer_id):
    customer_service.delete_customer(get_books(), customer_id)
    return ok()
