"""Payment ledger for customer invoices."""
import logging
import uuid
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from fabquote.exceptions import NotFoundError, ValidationError
from fabquote.models import Invoice, InvoiceStatus, Payment, normalize_payment_method
from fabquote.services.pricing_service import parse_amount
from fabquote.utils.formatters import money_in
from fabquote.utils.serialization import parse_date

logger = logging.getLogger(__name__)


def ledger_totals(final_price: Decimal, payments: Iterable[Payment]) -> Tuple[Decimal, Decimal]:
    """(total_paid, remaining) derived from the full payment list."""
    total_paid = sum((p.amount for p in payments), Decimal('0'))
    return total_paid, final_price - total_paid


def derive_status(current: InvoiceStatus, remaining: Decimal, due_date: Optional[date],
                  today: date = None) -> InvoiceStatus:
    """
    Settlement status after a ledger change.

    remaining <= 0 -> Paid. An invoice that was Paid and has a balance again
    becomes Overdue when its due date has passed, otherwise Sent. Any other
    status is left as the operator set it.
    """
    today = today or date.today()
    if remaining <= 0:
        return InvoiceStatus.PAID
    if current == InvoiceStatus.PAID:
        if due_date is not None and due_date < today:
            return InvoiceStatus.OVERDUE
        return InvoiceStatus.SENT
    return current


def recompute_ledger(invoice: Invoice, now: datetime = None) -> Invoice:
    """Copy of the invoice with totals and status re-derived from its payments."""
    now = now or datetime.now()
    total_paid, remaining = ledger_totals(invoice.final_price, invoice.payments)
    return replace(
        invoice,
        total_paid=total_paid,
        remaining_amount=remaining,
        status=derive_status(invoice.status, remaining, invoice.due_date, now.date()),
        updated_at=now,
    )


def add_payment(
    books,
    invoice_id: str,
    amount,
    payment_date=None,
    payment_method=None,
    reference_number: str = None,
    notes: str = None,
    now: datetime = None
) -> Invoice:
    """
    Record a (partial or full) payment against an invoice.

    Args:
        books: Books bundle
        invoice_id: Invoice ID
        amount: Payment amount, 0 < amount <= remaining
        payment_date: Date paid (defaults to today)
        payment_method: 'Cash', 'Bank Transfer', 'Cheque', 'UPI', 'Card', 'Other'
        reference_number: Optional cheque/UTR/transaction reference
        notes: Optional notes
        now: Entry time (defaults to datetime.now())

    Returns:
        Updated Invoice

    Raises:
        NotFoundError: If the invoice does not exist
        ValidationError: If the amount or method is invalid
    """
    now = now or datetime.now()

    # Step 1: Load invoice
    invoice = books.invoices.require(invoice_id)

    # Step 2: Validate amount
    amount = parse_amount(amount, 'Payment amount')
    if amount <= 0:
        raise ValidationError('Payment amount must be greater than 0.')

    if amount > invoice.remaining_amount:
        raise ValidationError(
            f'Payment of {money_in(amount)} exceeds the remaining amount '
            f'of {money_in(invoice.remaining_amount)}.'
        )

    # Step 3: Build payment record
    try:
        method = normalize_payment_method(payment_method)
    except ValueError as e:
        raise ValidationError(str(e))

    try:
        paid_on = parse_date(payment_date) or now.date()
    except ValueError:
        raise ValidationError(f'Invalid payment date: {payment_date}')

    payment = Payment(
        id=f"payment_{uuid.uuid4().hex[:12]}",
        amount=amount,
        payment_date=paid_on,
        payment_method=method,
        created_at=now,
        reference_number=(reference_number or '').strip() or None,
        notes=(notes or '').strip() or None,
    )

    # Step 4: Re-derive totals and status from the full list
    updated = recompute_ledger(replace(invoice, payments=invoice.payments + [payment]), now)
    books.invoices.put(updated, now)

    logger.info(
        f"[LEDGER] {invoice.invoice_number}: +{amount} via {method.value}, "
        f"remaining {updated.remaining_amount}, status {updated.status.value}"
    )
    return updated


def remove_payment(books, invoice_id: str, payment_id: str, now: datetime = None) -> Invoice:
    """
    Remove a payment and re-derive the ledger.

    Raises:
        NotFoundError: If the invoice or payment does not exist
    """
    now = now or datetime.now()
    invoice = books.invoices.require(invoice_id)

    remaining_payments = [p for p in invoice.payments if p.id != payment_id]
    if len(remaining_payments) == len(invoice.payments):
        raise NotFoundError(f'Payment {payment_id} not found on invoice {invoice.invoice_number}')

    updated = recompute_ledger(replace(invoice, payments=remaining_payments), now)
    books.invoices.put(updated, now)

    logger.info(
        f"[LEDGER] {invoice.invoice_number}: payment {payment_id} removed, "
        f"remaining {updated.remaining_amount}, status {updated.status.value}"
    )
    return updated
