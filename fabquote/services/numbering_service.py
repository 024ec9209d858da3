"""
Document numbering.

Counters are explicit values: callers pass the current CounterState in and
persist the advanced one they get back. Serials never decrement, so a number
is never reused even after its document is deleted.
"""
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Tuple

QUOTATION_PREFIX = 'QT'
INVOICE_PREFIX = 'INV'
ORDER_PREFIX = 'ORD'
CUSTOMER_PREFIX = 'CUST'


@dataclass(frozen=True)
class CounterState:
    """Next serial of one document family, stored as e.g. 'QT0001'."""

    prefix: str
    serial: int = 1
    width: int = 4

    def __str__(self):
        return f"{self.prefix}{self.serial:0{self.width}d}"

    def advance(self) -> 'CounterState':
        return replace(self, serial=self.serial + 1)

    @classmethod
    def parse(cls, text: str, prefix: str, width: int = 4) -> 'CounterState':
        """
        Parse a stored counter.

        Raises:
            ValueError: If text does not start with prefix or has no serial
        """
        if not text or not text.startswith(prefix):
            raise ValueError(f"Invalid counter '{text}' for prefix {prefix}")
        serial = int(text[len(prefix):])
        if serial < 1:
            raise ValueError(f"Invalid counter '{text}': serial must be positive")
        return cls(prefix=prefix, serial=serial, width=width)


def next_document_number(counter: CounterState, now: datetime = None) -> Tuple[str, CounterState]:
    """
    Issue the next human-readable number of a family.

    Format: prefix + YYMMDD + serial zero-padded to the counter width,
    e.g. QT2610180001. The date part comes from `now`, the serial from the
    counter, so numbers keep increasing across days.

    Returns:
        (number, advanced counter)
    """
    now = now or datetime.now()
    number = f"{counter.prefix}{now:%y%m%d}{counter.serial:0{counter.width}d}"
    return number, counter.advance()


def next_customer_id(counter: CounterState) -> Tuple[str, CounterState]:
    """Issue a customer id (CUST001, CUST002, ...); no date part."""
    return str(counter), counter.advance()


def extract_serial(number: str, prefix: str) -> int:
    """Serial component of a document number (after prefix and YYMMDD)."""
    return int(number[len(prefix) + 6:])
