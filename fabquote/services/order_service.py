"""Production order service."""
import logging
import uuid
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from fabquote.exceptions import InvalidTransitionError, ValidationError
from fabquote.models import Invoice, Order, OrderStatus

logger = logging.getLogger(__name__)


def create_order_for_invoice(books, invoice: Invoice, now: datetime = None) -> Order:
    """
    Create the production order of an invoice.

    Parts keep production fields only; service charges keep descriptions.
    """
    now = now or datetime.now()
    order = Order(
        id=f"order_{uuid.uuid4().hex[:12]}",
        order_number=books.orders.next_number(now),
        invoice_id=invoice.id,
        invoice_number=invoice.invoice_number,
        customer_id=invoice.customer_id,
        created_at=now,
        updated_at=now,
        parts=[p.to_production_dict() for p in invoice.parts],
        service_charges=[c.to_production_dict() for c in invoice.service_charges],
        status=OrderStatus.NEW,
    )
    books.orders.put(order, now)
    logger.info(f"[ORDER] {order.order_number} created from invoice {invoice.invoice_number}")
    return order


def get_order(books, order_id: str) -> Order:
    return books.orders.require(order_id)


def list_orders(books, status: Optional[str] = None) -> List[Order]:
    orders = books.orders.all()
    if status:
        wanted = _parse_status(status)
        orders = [o for o in orders if o.status == wanted]
    return sorted(orders, key=lambda o: o.created_at, reverse=True)


def _parse_status(value) -> OrderStatus:
    try:
        return value if isinstance(value, OrderStatus) else OrderStatus(value)
    except ValueError:
        valid = ', '.join(s.value for s in OrderStatus)
        raise ValidationError(f"Invalid order status: {value}. Must be one of: {valid}.")


def set_order_status(books, order_id: str, status, now: datetime = None) -> Order:
    """
    Move an order along New -> Produced -> Dispatched (or to Cancelled).

    Raises:
        NotFoundError: If the order does not exist
        InvalidTransitionError: If the move is not allowed
    """
    now = now or datetime.now()
    order = books.orders.require(order_id)
    new_status = _parse_status(status)

    if not order.can_transition_to(new_status):
        raise InvalidTransitionError(order.status.value, new_status.value, kind='order')

    updated = replace(order, status=new_status, updated_at=now)
    books.orders.put(updated, now)
    logger.info(f"[ORDER] {order.order_number}: {order.status.value} -> {new_status.value}")
    return updated


def delete_order(books, order_id: str, now: datetime = None) -> None:
    order = books.orders.require(order_id)
    books.orders.delete(order_id, now)
    logger.info(f"[ORDER] {order.order_number} deleted")
