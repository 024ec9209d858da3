"""Quotation model."""
import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fabquote.models.document import DocumentTotals, ShippingAddressChoice, TaxMode
from fabquote.models.part import Part
from fabquote.models.service_charge import ServiceCharge
from fabquote.utils.serialization import parse_datetime, to_decimal


class QuotationStatus(enum.Enum):
    """Quotation status enum."""
    DRAFT = "Draft"
    SENT = "Sent"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    EXPIRED = "Expired"


@dataclass
class Quotation:
    """
    Saved quotation.

    Destroyed when promoted to an invoice; re-saving it from the draft
    workspace keeps id and number and resets the status to Draft.
    """

    id: str
    quotation_number: str
    customer_id: str
    customer_name: str
    created_at: datetime
    updated_at: datetime
    valid_until: datetime
    parts: List[Part] = field(default_factory=list)
    service_charges: List[ServiceCharge] = field(default_factory=list)
    discount: Decimal = Decimal('0')
    totals: DocumentTotals = field(default_factory=DocumentTotals)
    tax_mode: TaxMode = TaxMode.DUAL
    status: QuotationStatus = QuotationStatus.DRAFT
    notes: str = ''
    payment_terms: Optional[str] = None
    lead_time: Optional[str] = None
    shipping_address_type: ShippingAddressChoice = ShippingAddressChoice.SHIPPING

    @property
    def final_price(self) -> Decimal:
        return self.totals.final_price

    def is_expired(self, now: datetime = None) -> bool:
        """Check if quotation validity has lapsed (calculated, not stored)."""
        now = now or datetime.now()
        if self.status in (QuotationStatus.DRAFT, QuotationStatus.SENT) and self.valid_until:
            return now > self.valid_until
        return False

    def to_dict(self):
        data = {
            'id': self.id,
            'quotation_number': self.quotation_number,
            'customer_id': self.customer_id,
            'customer_name': self.customer_name,
            'parts': [p.to_dict() for p in self.parts],
            'service_charges': [c.to_dict() for c in self.service_charges],
            'discount': self.discount,
            'tax_mode': self.tax_mode.value,
            'status': self.status.value,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
            'valid_until': self.valid_until.isoformat(),
            'notes': self.notes,
            'payment_terms': self.payment_terms,
            'lead_time': self.lead_time,
            'shipping_address_type': self.shipping_address_type.value,
        }
        data.update(self.totals.to_dict())
        return data

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data['id'],
            quotation_number=data['quotation_number'],
            customer_id=data.get('customer_id'),
            customer_name=data.get('customer_name', ''),
            created_at=parse_datetime(data.get('created_at')),
            updated_at=parse_datetime(data.get('updated_at')),
            valid_until=parse_datetime(data.get('valid_until')),
            parts=[Part.from_dict(p) for p in data.get('parts') or []],
            service_charges=[ServiceCharge.from_dict(c) for c in data.get('service_charges') or []],
            discount=to_decimal(data.get('discount')),
            totals=DocumentTotals.from_dict(data),
            tax_mode=TaxMode(data.get('tax_mode', TaxMode.DUAL.value)),
            status=QuotationStatus(data.get('status', 'Draft')),
            notes=data.get('notes') or '',
            payment_terms=data.get('payment_terms'),
            lead_time=data.get('lead_time'),
            shipping_address_type=ShippingAddressChoice(data.get('shipping_address_type') or 'shipping'),
        )
