"""Part (line item) model."""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from fabquote.utils.serialization import to_decimal

ZERO = Decimal('0')


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned extents of a model, in millimetres."""

    x: Decimal
    y: Decimal
    z: Decimal

    def to_dict(self):
        return {'x': self.x, 'y': self.y, 'z': self.z}

    @classmethod
    def from_dict(cls, data):
        if not data:
            return None
        return cls(x=to_decimal(data.get('x')), y=to_decimal(data.get('y')), z=to_decimal(data.get('z')))


@dataclass(frozen=True)
class PricingBlock:
    """Computed prices for one line item."""

    unit_price: Decimal = ZERO
    line_total: Decimal = ZERO
    tax_amount: Decimal = ZERO
    final_price: Decimal = ZERO

    @classmethod
    def zero(cls):
        return cls()

    @property
    def is_zero(self) -> bool:
        return self.unit_price == 0 and self.line_total == 0 and self.tax_amount == 0 and self.final_price == 0


@dataclass
class Part:
    """
    Part (line item) of a quotation or invoice.

    `technology` is the selected process id. Manually entered parts have no
    bounding box. The pricing block is only meaningful when both technology
    and material are set.
    """

    id: str
    serial_number: int
    file_name: str
    file_type: str = ''
    volume: Decimal = ZERO
    bounding_box: Optional[BoundingBox] = None
    technology: Optional[str] = None
    material: Optional[str] = None
    quantity: int = 1
    pricing: PricingBlock = field(default_factory=PricingBlock)
    comments: str = ''

    @property
    def is_priced(self) -> bool:
        return bool(self.technology and self.material)

    def to_dict(self):
        return {
            'id': self.id,
            'serial_number': self.serial_number,
            'file_name': self.file_name,
            'file_type': self.file_type,
            'volume': self.volume,
            'bounding_box': self.bounding_box.to_dict() if self.bounding_box else None,
            'technology': self.technology,
            'material': self.material,
            'quantity': self.quantity,
            'unit_price': self.pricing.unit_price,
            'line_total': self.pricing.line_total,
            'tax_amount': self.pricing.tax_amount,
            'final_price': self.pricing.final_price,
            'comments': self.comments,
        }

    def to_production_dict(self):
        """Fields an order keeps: everything except pricing."""
        data = self.to_dict()
        for key in ('unit_price', 'line_total', 'tax_amount', 'final_price'):
            data.pop(key)
        return data

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data['id'],
            serial_number=int(data.get('serial_number') or 0),
            file_name=data.get('file_name', ''),
            file_type=data.get('file_type', ''),
            volume=to_decimal(data.get('volume')),
            bounding_box=BoundingBox.from_dict(data.get('bounding_box')),
            technology=data.get('technology') or None,
            material=data.get('material') or None,
            quantity=int(data.get('quantity') or 1),
            pricing=PricingBlock(
                unit_price=to_decimal(data.get('unit_price')),
                line_total=to_decimal(data.get('line_total')),
                tax_amount=to_decimal(data.get('tax_amount')),
                final_price=to_decimal(data.get('final_price')),
            ),
            comments=data.get('comments') or '',
        )
