"""Production order model."""
import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List

from fabquote.utils.serialization import parse_datetime


class OrderStatus(enum.Enum):
    """Order status enum."""
    NEW = "New"
    PRODUCED = "Produced"
    DISPATCHED = "Dispatched"
    CANCELLED = "Cancelled"


# Dispatched and Cancelled are terminal
ORDER_TRANSITIONS = {
    OrderStatus.NEW: {OrderStatus.PRODUCED, OrderStatus.CANCELLED},
    OrderStatus.PRODUCED: {OrderStatus.DISPATCHED, OrderStatus.CANCELLED},
    OrderStatus.DISPATCHED: set(),
    OrderStatus.CANCELLED: set(),
}


@dataclass
class Order:
    """
    Production order, created together with its invoice.

    Parts carry production fields only and service charges only their
    descriptions; pricing stays on the invoice.
    """

    id: str
    order_number: str
    invoice_id: str
    invoice_number: str
    customer_id: str
    created_at: datetime
    updated_at: datetime
    parts: List[Dict[str, Any]] = field(default_factory=list)
    service_charges: List[Dict[str, Any]] = field(default_factory=list)
    status: OrderStatus = OrderStatus.NEW

    @property
    def is_terminal(self) -> bool:
        return not ORDER_TRANSITIONS[self.status]

    def can_transition_to(self, status: OrderStatus) -> bool:
        return status in ORDER_TRANSITIONS[self.status]

    def to_dict(self):
        return {
            'id': self.id,
            'order_number': self.order_number,
            'invoice_id': self.invoice_id,
            'invoice_number': self.invoice_number,
            'customer_id': self.customer_id,
            'parts': [dict(p) for p in self.parts],
            'service_charges': [dict(c) for c in self.service_charges],
            'status': self.status.value,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data['id'],
            order_number=data['order_number'],
            invoice_id=data.get('invoice_id'),
            invoice_number=data.get('invoice_number', ''),
            customer_id=data.get('customer_id'),
            created_at=parse_datetime(data.get('created_at')),
            updated_at=parse_datetime(data.get('updated_at')),
            parts=[dict(p) for p in data.get('parts') or []],
            service_charges=[
                {'id': c.get('id'), 'description': c.get('description', '')}
                for c in data.get('service_charges') or []
            ],
            status=OrderStatus(data.get('status', 'New')),
        )
