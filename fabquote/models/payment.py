"""Invoice payment model."""
import enum
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from fabquote.utils.serialization import parse_date, parse_datetime, to_decimal


class PaymentMethod(enum.Enum):
    """Payment method enum."""
    CASH = "Cash"
    BANK_TRANSFER = "Bank Transfer"
    CHEQUE = "Cheque"
    UPI = "UPI"
    CARD = "Card"
    OTHER = "Other"


def normalize_payment_method(value) -> PaymentMethod:
    """
    Normalize a payment method given as enum, label or enum name.

    Args:
        value: None, PaymentMethod, 'Bank Transfer', 'BANK_TRANSFER', 'upi', ...

    Returns:
        PaymentMethod (BANK_TRANSFER when value is None)

    Raises:
        ValueError: If value is not a known method
    """
    if value is None:
        return PaymentMethod.BANK_TRANSFER

    if isinstance(value, PaymentMethod):
        return value

    normalized = str(value).strip()
    for method in PaymentMethod:
        if normalized.lower() == method.value.lower() or normalized.upper() == method.name:
            return method

    valid = ', '.join(m.value for m in PaymentMethod)
    raise ValueError(f"Invalid payment method: {value}. Must be one of: {valid}.")


@dataclass
class Payment:
    """Payment recorded against one invoice."""

    id: str
    amount: Decimal
    payment_date: date
    payment_method: PaymentMethod
    created_at: datetime
    reference_number: Optional[str] = None
    notes: Optional[str] = None

    def to_dict(self):
        return {
            'id': self.id,
            'amount': self.amount,
            'payment_date': self.payment_date.isoformat(),
            'payment_method': self.payment_method.value,
            'reference_number': self.reference_number,
            'notes': self.notes,
            'created_at': self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data['id'],
            amount=to_decimal(data.get('amount')),
            payment_date=parse_date(data.get('payment_date')),
            payment_method=normalize_payment_method(data.get('payment_method')),
            created_at=parse_datetime(data.get('created_at')),
            reference_number=data.get('reference_number') or None,
            notes=data.get('notes') or None,
        )
