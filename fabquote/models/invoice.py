"""Invoice model."""
import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from fabquote.models.document import DocumentTotals, ShippingAddressChoice, TaxMode
from fabquote.models.part import Part
from fabquote.models.payment import Payment
from fabquote.models.service_charge import ServiceCharge
from fabquote.utils.serialization import parse_date, parse_datetime, to_decimal


class InvoiceStatus(enum.Enum):
    """Invoice status enum."""
    DRAFT = "Draft"
    SENT = "Sent"
    PAID = "Paid"
    OVERDUE = "Overdue"
    CANCELLED = "Cancelled"


@dataclass
class Invoice:
    """
    Invoice, created only by promoting a quotation.

    total_paid and remaining_amount are always derived from `payments`;
    see payment_service.recompute_ledger.
    """

    id: str
    invoice_number: str
    quotation_id: str
    quotation_number: str
    customer_id: str
    customer_name: str
    created_at: datetime
    updated_at: datetime
    due_date: date
    parts: List[Part] = field(default_factory=list)
    service_charges: List[ServiceCharge] = field(default_factory=list)
    discount: Decimal = Decimal('0')
    totals: DocumentTotals = field(default_factory=DocumentTotals)
    tax_mode: TaxMode = TaxMode.DUAL
    status: InvoiceStatus = InvoiceStatus.DRAFT
    notes: str = ''
    payment_terms: Optional[str] = None
    lead_time: Optional[str] = None
    shipping_address_type: ShippingAddressChoice = ShippingAddressChoice.SHIPPING
    payments: List[Payment] = field(default_factory=list)
    total_paid: Decimal = Decimal('0')
    remaining_amount: Decimal = Decimal('0')

    @property
    def final_price(self) -> Decimal:
        return self.totals.final_price

    @property
    def is_settled(self) -> bool:
        return self.remaining_amount <= 0

    def is_overdue(self, today: date = None) -> bool:
        """Past due and still open (display check, independent of stored status)."""
        today = today or date.today()
        return (
            self.status not in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED) and
            self.due_date is not None and
            self.due_date < today
        )

    def to_dict(self):
        data = {
            'id': self.id,
            'invoice_number': self.invoice_number,
            'quotation_id': self.quotation_id,
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
            'due_date': self.due_date.isoformat(),
            'notes': self.notes,
            'payment_terms': self.payment_terms,
            'lead_time': self.lead_time,
            'shipping_address_type': self.shipping_address_type.value,
            'payments': [p.to_dict() for p in self.payments],
            'total_paid': self.total_paid,
            'remaining_amount': self.remaining_amount,
        }
        data.update(self.totals.to_dict())
        return data

    @classmethod
    def from_dict(cls, data):
        totals = DocumentTotals.from_dict(data)
        remaining = data.get('remaining_amount')
        return cls(
            id=data['id'],
            invoice_number=data['invoice_number'],
            quotation_id=data.get('quotation_id'),
            quotation_number=data.get('quotation_number', ''),
            customer_id=data.get('customer_id'),
            customer_name=data.get('customer_name', ''),
            created_at=parse_datetime(data.get('created_at')),
            updated_at=parse_datetime(data.get('updated_at')),
            due_date=parse_date(data.get('due_date')),
            parts=[Part.from_dict(p) for p in data.get('parts') or []],
            service_charges=[ServiceCharge.from_dict(c) for c in data.get('service_charges') or []],
            discount=to_decimal(data.get('discount')),
            totals=totals,
            tax_mode=TaxMode(data.get('tax_mode', TaxMode.DUAL.value)),
            status=InvoiceStatus(data.get('status', 'Draft')),
            notes=data.get('notes') or '',
            payment_terms=data.get('payment_terms'),
            lead_time=data.get('lead_time'),
            shipping_address_type=ShippingAddressChoice(data.get('shipping_address_type') or 'shipping'),
            # Older records may predate the ledger fields
            payments=[Payment.from_dict(p) for p in data.get('payments') or []],
            total_paid=to_decimal(data.get('total_paid')),
            remaining_amount=totals.final_price if remaining is None else to_decimal(remaining),
        )
