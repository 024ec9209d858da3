"""
Tax service: GST split between CGST+SGST and IGST.

Inside the home state the 18% rate is split into two equal 9% components;
deliveries to any other state carry a single 18% IGST component. The total
never depends on the mode.
"""
from dataclasses import dataclass
from decimal import Decimal

from fabquote.models.document import TaxMode
from fabquote.utils.formatters import money_in
from fabquote.utils.serialization import to_decimal

HOME_JURISDICTION = 'Karnataka'
CGST_RATE = Decimal('0.09')
SGST_RATE = Decimal('0.09')
IGST_RATE = Decimal('0.18')
TOTAL_RATE = CGST_RATE + SGST_RATE


@dataclass(frozen=True)
class TaxBreakdown:
    """Tax components for one amount."""

    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    total: Decimal
    mode: TaxMode

    def to_dict(self):
        return {
            'cgst': self.cgst,
            'sgst': self.sgst,
            'igst': self.igst,
            'total': self.total,
            'mode': self.mode.value,
        }


def is_in_jurisdiction(customer, home_jurisdiction: str = HOME_JURISDICTION) -> bool:
    """
    Check whether a customer ships inside the home jurisdiction.

    Comparison is case-insensitive and exact. A customer without a shipping
    state counts as out of jurisdiction.
    """
    if customer is None:
        return False
    state = (customer.shipping_address.state or '').strip()
    if not state:
        return False
    return state.lower() == (home_jurisdiction or '').strip().lower()


def tax_mode_for(customer, home_jurisdiction: str = HOME_JURISDICTION) -> TaxMode:
    if is_in_jurisdiction(customer, home_jurisdiction):
        return TaxMode.DUAL
    return TaxMode.SINGLE


def compute_tax(amount, customer, home_jurisdiction: str = HOME_JURISDICTION) -> TaxBreakdown:
    """
    Compute the GST split for an amount.

    Args:
        amount: Taxable amount (Decimal or numeric string)
        customer: Customer whose shipping state decides the mode (may be None)
        home_jurisdiction: Seller's state

    Returns:
        TaxBreakdown with total == amount * 0.18 in both modes
    """
    amount = to_decimal(amount)
    mode = tax_mode_for(customer, home_jurisdiction)

    if mode == TaxMode.DUAL:
        cgst = amount * CGST_RATE
        sgst = amount * SGST_RATE
        return TaxBreakdown(cgst=cgst, sgst=sgst, igst=Decimal('0'), total=cgst + sgst, mode=mode)

    igst = amount * IGST_RATE
    return TaxBreakdown(cgst=Decimal('0'), sgst=Decimal('0'), igst=igst, total=igst, mode=mode)


def format_tax_breakdown(breakdown: TaxBreakdown, symbol: str = '₹') -> str:
    """Display line for a breakdown, e.g. 'CGST (9%): ₹90.00, SGST (9%): ₹90.00'."""
    if breakdown.mode == TaxMode.DUAL:
        return (
            f"CGST (9%): {money_in(breakdown.cgst, symbol)}, "
            f"SGST (9%): {money_in(breakdown.sgst, symbol)}"
        )
    return f"IGST (18%): {money_in(breakdown.igst, symbol)}"
