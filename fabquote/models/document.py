"""Types shared by quotations, invoices and orders."""
import enum
from dataclasses import dataclass
from decimal import Decimal

from fabquote.utils.serialization import to_decimal

ZERO = Decimal('0')


class TaxMode(enum.Enum):
    """Tax split mode: CGST+SGST inside the home state, IGST across states."""
    DUAL = "INTRASTATE"
    SINGLE = "INTERSTATE"


class ShippingAddressChoice(enum.Enum):
    """Which customer address a document ships to."""
    BILLING = "billing"
    SHIPPING = "shipping"


@dataclass(frozen=True)
class DocumentTotals:
    """
    Aggregate amounts of a priced document.

    total_base_price includes service charges; discount_amount is taken off
    that combined base before tax.
    """

    total_base_price: Decimal = ZERO
    total_service_charges: Decimal = ZERO
    discount_amount: Decimal = ZERO
    total_tax: Decimal = ZERO
    final_price: Decimal = ZERO

    @property
    def taxable_amount(self) -> Decimal:
        return self.total_base_price - self.discount_amount

    def to_dict(self):
        return {
            'total_base_price': self.total_base_price,
            'total_service_charges': self.total_service_charges,
            'discount_amount': self.discount_amount,
            'total_tax': self.total_tax,
            'final_price': self.final_price,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            total_base_price=to_decimal(data.get('total_base_price')),
            total_service_charges=to_decimal(data.get('total_service_charges')),
            discount_amount=to_decimal(data.get('discount_amount')),
            total_tax=to_decimal(data.get('total_tax')),
            final_price=to_decimal(data.get('final_price')),
        )
