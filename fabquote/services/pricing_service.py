"""
Line item pricing and document totals.

All arithmetic stays in Decimal; nothing is rounded here. Rounding to two
places happens only when amounts are formatted for display.
"""
import logging
from dataclasses import replace
from decimal import Decimal
from typing import Iterable, List, Optional

from fabquote.exceptions import ValidationError
from fabquote.models import DocumentTotals, Part, PricingBlock, ServiceCharge
from fabquote.services.tax_service import HOME_JURISDICTION, compute_tax
from fabquote.utils.serialization import to_decimal

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
HUNDRED = Decimal('100')


def parse_amount(value, field: str = 'Amount') -> Decimal:
    """
    Coerce operator input to Decimal.

    Raises:
        ValidationError: If value is missing or not a number
    """
    try:
        amount = to_decimal(value, default='NaN')
    except ValueError:
        raise ValidationError(f"{field} must be a number, got {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number, got {value!r}")
    return amount


def validate_quantity(quantity) -> int:
    """
    Coerce and validate a part quantity.

    Raises:
        ValidationError: If quantity is not an integer >= 1
    """
    try:
        number = to_decimal(quantity, default='NaN')
    except ValueError:
        raise ValidationError(f"Quantity must be a whole number, got {quantity!r}")
    if not number.is_finite() or number != number.to_integral_value():
        raise ValidationError(f"Quantity must be a whole number, got {quantity!r}")
    value = int(number)
    if value < 1:
        raise ValidationError(f"Quantity must be at least 1, got {value}")
    return value


def price_part(part: Part, material_rate, customer,
               home_jurisdiction: str = HOME_JURISDICTION) -> PricingBlock:
    """
    Compute the pricing block of one part.

    Args:
        part: Part with volume and quantity
        material_rate: Cost per cc of the selected material
        customer: Customer deciding the tax mode, or None
        home_jurisdiction: Seller's state

    Returns:
        New PricingBlock. Without a customer, tax_amount and final_price keep
        the part's previous values.

    Raises:
        ValidationError: If volume < 0, quantity < 1 or rate < 0
    """
    volume = to_decimal(part.volume)
    rate = to_decimal(material_rate)
    quantity = validate_quantity(part.quantity)

    if volume < 0:
        raise ValidationError(f"Part {part.file_name} has a negative volume")
    if rate < 0:
        raise ValidationError(f"Material rate must not be negative, got {rate}")

    unit_price = volume * rate
    line_total = unit_price * quantity
    return _with_tax(part.pricing, unit_price, line_total, customer, home_jurisdiction)


def reprice_quantity(part: Part, quantity, customer,
                     home_jurisdiction: str = HOME_JURISDICTION) -> PricingBlock:
    """Pricing after a quantity change, from the part's existing unit price."""
    quantity = validate_quantity(quantity)
    unit_price = part.pricing.unit_price
    return _with_tax(part.pricing, unit_price, unit_price * quantity, customer, home_jurisdiction)


def _with_tax(previous: PricingBlock, unit_price, line_total, customer, home_jurisdiction) -> PricingBlock:
    if customer is None:
        # Degraded pricing: the operator must pick a customer before tax is known
        return replace(previous, unit_price=unit_price, line_total=line_total)
    tax = compute_tax(line_total, customer, home_jurisdiction).total
    return PricingBlock(
        unit_price=unit_price,
        line_total=line_total,
        tax_amount=tax,
        final_price=line_total + tax,
    )


def reprice_tax_for_customer(parts: Iterable[Part], customer,
                             home_jurisdiction: str = HOME_JURISDICTION) -> List[Part]:
    """
    Re-derive tax after the selected customer changed.

    Parts with a positive line total get tax recomputed for the new customer.
    Clearing the customer sets tax to zero and final price to the line total.
    """
    result = []
    for part in parts:
        pricing = part.pricing
        if customer is None:
            pricing = replace(pricing, tax_amount=ZERO, final_price=pricing.line_total)
        elif pricing.line_total > 0:
            tax = compute_tax(pricing.line_total, customer, home_jurisdiction).total
            pricing = replace(pricing, tax_amount=tax, final_price=pricing.line_total + tax)
        result.append(replace(part, pricing=pricing))
    return result


def compute_document_totals(parts: Iterable[Part], service_charges: Iterable[ServiceCharge],
                            discount_percent, customer,
                            home_jurisdiction: str = HOME_JURISDICTION) -> DocumentTotals:
    """
    Aggregate totals of a quotation or invoice.

    base = sum(line totals) + sum(service charges); the discount percent is
    taken off that combined base, and tax applies to the discounted amount
    when a customer is set and the amount is positive.

    Raises:
        ValidationError: If discount is outside 0..100 or a charge is negative
    """
    discount_percent = to_decimal(discount_percent)
    if discount_percent < 0 or discount_percent > HUNDRED:
        raise ValidationError(f"Discount must be between 0 and 100, got {discount_percent}")

    parts_total = sum((p.pricing.line_total for p in parts), ZERO)
    charges_total = ZERO
    for charge in service_charges:
        if charge.amount < 0:
            raise ValidationError(f"Service charge '{charge.description}' must not be negative")
        charges_total += charge.amount

    base = parts_total + charges_total
    discount_amount = base * discount_percent / HUNDRED
    discounted = base - discount_amount

    total_tax = ZERO
    if customer is not None and discounted > 0:
        total_tax = compute_tax(discounted, customer, home_jurisdiction).total

    return DocumentTotals(
        total_base_price=base,
        total_service_charges=charges_total,
        discount_amount=discount_amount,
        total_tax=total_tax,
        final_price=discounted + total_tax,
    )


def material_rate_for(catalog, part: Part) -> Optional[Decimal]:
    """Rate of the part's selected material, or None when not fully selected."""
    if not part.is_priced:
        return None
    return catalog.material_rate(part.technology, part.material)
