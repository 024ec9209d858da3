"""Service charge model."""
from dataclasses import dataclass
from decimal import Decimal

from fabquote.utils.serialization import to_decimal


@dataclass
class ServiceCharge:
    """Flat charge (post-processing, packaging, ...) added to a document's base amount."""

    id: str
    description: str
    amount: Decimal = Decimal('0')

    def to_dict(self):
        return {'id': self.id, 'description': self.description, 'amount': self.amount}

    def to_production_dict(self):
        return {'id': self.id, 'description': self.description}

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data['id'],
            description=data.get('description', ''),
            amount=to_decimal(data.get('amount')),
        )
