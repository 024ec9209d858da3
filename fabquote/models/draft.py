"""Draft workspace state (in-progress quotation)."""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fabquote.models.document import ShippingAddressChoice
from fabquote.models.part import Part
from fabquote.models.service_charge import ServiceCharge
from fabquote.utils.serialization import parse_datetime, to_decimal


@dataclass
class DraftState:
    """
    Working copy of a not-yet-saved quotation.

    One per operator session. Discarded on load when untouched for longer
    than the expiry window, and cleared after a successful save.
    """

    last_updated: datetime
    selected_customer_id: Optional[str] = None
    parts: List[Part] = field(default_factory=list)
    discount: Decimal = Decimal('0')
    notes: str = ''
    payment_terms: Optional[str] = None
    lead_time: Optional[str] = None
    shipping_address_type: ShippingAddressChoice = ShippingAddressChoice.SHIPPING
    service_charges: List[ServiceCharge] = field(default_factory=list)
    editing_quotation_id: Optional[str] = None

    @classmethod
    def empty(cls, now: datetime = None):
        return cls(last_updated=now or datetime.now())

    @property
    def has_content(self) -> bool:
        return self.selected_customer_id is not None or len(self.parts) > 0 or len(self.service_charges) > 0

    @property
    def next_serial_number(self) -> int:
        return max((p.serial_number for p in self.parts), default=0) + 1

    def to_dict(self):
        return {
            'selected_customer_id': self.selected_customer_id,
            'parts': [p.to_dict() for p in self.parts],
            'discount': self.discount,
            'notes': self.notes,
            'payment_terms': self.payment_terms,
            'lead_time': self.lead_time,
            'shipping_address_type': self.shipping_address_type.value,
            'service_charges': [c.to_dict() for c in self.service_charges],
            'editing_quotation_id': self.editing_quotation_id,
            'last_updated': self.last_updated.isoformat(),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            last_updated=parse_datetime(data['last_updated']),
            selected_customer_id=data.get('selected_customer_id'),
            parts=[Part.from_dict(p) for p in data.get('parts') or []],
            discount=to_decimal(data.get('discount')),
            notes=data.get('notes') or '',
            payment_terms=data.get('payment_terms'),
            lead_time=data.get('lead_time'),
            shipping_address_type=ShippingAddressChoice(data.get('shipping_address_type') or 'shipping'),
            service_charges=[ServiceCharge.from_dict(c) for c in data.get('service_charges') or []],
            editing_quotation_id=data.get('editing_quotation_id'),
        )
