"""Customer model."""
import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from fabquote.utils.serialization import to_decimal


class CustomerType(enum.Enum):
    """Customer type enum."""
    BUSINESS = "Business"
    INDIVIDUAL = "Individual"


class CustomerStatus(enum.Enum):
    """Customer status enum."""
    ACTIVE = "Active"
    INACTIVE = "Inactive"


@dataclass
class Address:
    """Postal address. `state` is the tax jurisdiction."""

    street: str = ''
    city: str = ''
    state: str = ''
    pin: str = ''
    country: str = 'India'

    def to_dict(self):
        return {
            'street': self.street,
            'city': self.city,
            'state': self.state,
            'pin': self.pin,
            'country': self.country,
        }

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            street=data.get('street', ''),
            city=data.get('city', ''),
            state=data.get('state', ''),
            pin=data.get('pin', ''),
            country=data.get('country', 'India'),
        )


@dataclass
class Customer:
    """
    Customer (registry entry).

    Documents reference customers by id and keep only a denormalized
    company name snapshot.
    """

    id: str
    company_name: str
    contact_person: str = ''
    email: str = ''
    phone: str = ''
    gstn: Optional[str] = None
    billing_address: Address = field(default_factory=Address)
    shipping_address: Address = field(default_factory=Address)
    customer_type: CustomerType = CustomerType.BUSINESS
    discount_rate: Decimal = Decimal('0')
    payment_terms: str = 'Net 30'
    preferred_technologies: List[str] = field(default_factory=list)
    total_orders: int = 0
    total_spent: Decimal = Decimal('0')
    status: CustomerStatus = CustomerStatus.ACTIVE
    notes: str = ''

    @property
    def display_name(self) -> str:
        """Company name, or the contact person for individuals without one."""
        return self.company_name or self.contact_person

    @property
    def jurisdiction(self) -> str:
        """Delivery jurisdiction used for tax mode selection."""
        return self.shipping_address.state or ''

    def to_dict(self):
        return {
            'id': self.id,
            'company_name': self.company_name,
            'contact_person': self.contact_person,
            'email': self.email,
            'phone': self.phone,
            'gstn': self.gstn,
            'billing_address': self.billing_address.to_dict(),
            'shipping_address': self.shipping_address.to_dict(),
            'customer_type': self.customer_type.value,
            'discount_rate': self.discount_rate,
            'payment_terms': self.payment_terms,
            'preferred_technologies': list(self.preferred_technologies),
            'total_orders': self.total_orders,
            'total_spent': self.total_spent,
            'status': self.status.value,
            'notes': self.notes,
        }

    @classmethod
    def from_dict(cls, data, customer_id=None):
        return cls(
            id=customer_id or data.get('id'),
            company_name=data.get('company_name', ''),
            contact_person=data.get('contact_person', ''),
            email=data.get('email', ''),
            phone=data.get('phone', ''),
            gstn=data.get('gstn') or None,
            billing_address=Address.from_dict(data.get('billing_address')),
            shipping_address=Address.from_dict(data.get('shipping_address')),
            customer_type=CustomerType(data.get('customer_type', 'Business')),
            discount_rate=to_decimal(data.get('discount_rate')),
            payment_terms=data.get('payment_terms') or 'Net 30',
            preferred_technologies=list(data.get('preferred_technologies') or []),
            total_orders=int(data.get('total_orders') or 0),
            total_spent=to_decimal(data.get('total_spent')),
            status=CustomerStatus(data.get('status', 'Active')),
            notes=data.get('notes', ''),
        )
