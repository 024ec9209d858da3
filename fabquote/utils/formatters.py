"""
Formatting helpers for rendered documents.
Indian-style grouping (12,34,567.89) and DD/MM/YYYY dates.
"""
from decimal import Decimal, InvalidOperation
from datetime import date, datetime
from typing import Union


def _group_indian(integer_part: str) -> str:
    """Group digits as 3 then 2s from the right: 1234567 -> 12,34,567."""
    if len(integer_part) <= 3:
        return integer_part
    head, tail = integer_part[:-3], integer_part[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ','.join(groups + [tail])


def money_in(value: Union[int, float, Decimal, str, None], symbol: str = '₹') -> str:
    """
    Format a money amount with exactly 2 decimals and Indian grouping.

    Examples:
        money_in(1500) -> "₹1,500.00"
        money_in(1234567.891) -> "₹12,34,567.89"
        money_in(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        num = Decimal(str(value)).quantize(Decimal('0.01'))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    sign = "-" if num < 0 else ""
    integer_part, decimal_part = f"{abs(num):.2f}".split(".")
    return f"{sign}{symbol}{_group_indian(integer_part)}.{decimal_part}"


def volume_cc(value: Union[int, float, Decimal, None]) -> str:
    if value is None:
        return "-"
    num = Decimal(str(value)).normalize()
    # normalize() turns 100 into 1E+2
    text = f"{num:f}"
    return f"{text} cm³"


def date_in(value: Union[date, datetime, None]) -> str:
    """
    Format a date as DD/MM/YYYY.

    Examples:
        date_in(date(2026, 1, 12)) -> "12/01/2026"
    """
    if value is None:
        return "-"

    if isinstance(value, datetime):
        value = value.date()

    if not isinstance(value, date):
        return "-"

    return value.strftime("%d/%m/%Y")
