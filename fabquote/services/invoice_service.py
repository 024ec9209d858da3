"""
Invoice service: promotion from quotations, status, deletion and
reconciliation.

Promotion writes three collections one after the other (invoices,
quotations, orders) with no transaction across them. A failure after the
invoice is stored leaves partial state behind; find_cascade_gaps reports it.
"""
import logging
import re
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Optional

from fabquote.exceptions import FabQuoteError, InvalidTransitionError, ValidationError
from fabquote.models import Invoice, InvoiceStatus, Order, Quotation
from fabquote.services.order_service import create_order_for_invoice

logger = logging.getLogger(__name__)

ADVANCE_TERMS = ('100% advance', '60% advance and rest upon delivery')
ON_DELIVERY_TERMS = 'Payment on delivery'
ON_DELIVERY_DAYS = 7
DEFAULT_DUE_DAYS = 30
NET_TERMS_RE = re.compile(r'^Net\s+(\d+)', re.IGNORECASE)


def compute_due_date(payment_terms: Optional[str], today: date = None) -> date:
    """
    Due date from payment terms.

    Advance terms are due today, 'Payment on delivery' in 7 days, 'Net N'
    in N days; anything else (or an unparsable Net) in 30 days.
    """
    today = today or date.today()
    terms = (payment_terms or '').strip()

    if terms in ADVANCE_TERMS:
        return today
    if terms == ON_DELIVERY_TERMS:
        return today + timedelta(days=ON_DELIVERY_DAYS)

    match = NET_TERMS_RE.match(terms)
    if match:
        return today + timedelta(days=int(match.group(1)))
    return today + timedelta(days=DEFAULT_DUE_DAYS)


def build_invoice(quotation: Quotation, invoice_number: str, due_date: date, payment_terms: str,
                  now: datetime) -> Invoice:
    """Invoice copying the quotation verbatim, with an empty ledger."""
    return Invoice(
        id=f"inv_{uuid.uuid4().hex[:12]}",
        invoice_number=invoice_number,
        quotation_id=quotation.id,
        quotation_number=quotation.quotation_number,
        customer_id=quotation.customer_id,
        customer_name=quotation.customer_name,
        created_at=now,
        updated_at=now,
        due_date=due_date,
        parts=[replace(p) for p in quotation.parts],
        service_charges=[replace(c) for c in quotation.service_charges],
        discount=quotation.discount,
        totals=quotation.totals,
        tax_mode=quotation.tax_mode,
        status=InvoiceStatus.DRAFT,
        notes=quotation.notes,
        payment_terms=payment_terms,
        lead_time=quotation.lead_time,
        shipping_address_type=quotation.shipping_address_type,
        payments=[],
        total_paid=Decimal('0'),
        remaining_amount=quotation.totals.final_price,
    )


@dataclass
class PromotionResult:
    """Outcome of one promotion; failed_step is set when the cascade stopped short."""

    quotation_id: str
    invoice: Optional[Invoice] = None
    order: Optional[Order] = None
    completed_steps: List[str] = field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[str] = None

    @property
    def invoice_id(self) -> Optional[str]:
        return self.invoice.id if self.invoice else None

    @property
    def is_complete(self) -> bool:
        return self.failed_step is None

    def to_dict(self):
        return {
            'quotation_id': self.quotation_id,
            'invoice_id': self.invoice_id,
            'invoice_number': self.invoice.invoice_number if self.invoice else None,
            'order_id': self.order.id if self.order else None,
            'order_number': self.order.order_number if self.order else None,
            'completed_steps': list(self.completed_steps),
            'failed_step': self.failed_step,
            'error': self.error,
        }


class PromotionSaga:
    """
    Quotation -> Invoice -> Order cascade.

    Steps run in order:
        compute_due_date, allocate_invoice_number, persist_invoice,
        delete_quotation, create_order

    Errors up to and including persist_invoice propagate and leave the
    quotation in place. Once the invoice is stored the saga does not roll
    back: a failing delete_quotation or create_order is logged and recorded
    on the result.
    """

    STEPS = ('compute_due_date', 'allocate_invoice_number', 'persist_invoice',
             'delete_quotation', 'create_order')

    def __init__(self, books, quotation_id: str, now: datetime = None,
                 order_factory: Callable = create_order_for_invoice):
        self.books = books
        self.quotation_id = quotation_id
        self.now = now or datetime.now()
        self.order_factory = order_factory
        self.result = PromotionResult(quotation_id=quotation_id)

    def run(self) -> PromotionResult:
        """
        Raises:
            NotFoundError: If the quotation does not exist
            ValidationError: If the quotation was already promoted
            PersistenceError: If the invoice cannot be stored
        """
        books = self.books
        quotation = books.quotations.require(self.quotation_id)

        existing = books.invoices.by_quotation(quotation.id)
        if existing:
            raise ValidationError(
                f"Quotation {quotation.quotation_number} already has invoice {existing[0].invoice_number}"
            )

        payment_terms = quotation.payment_terms or books.default_payment_terms
        due_date = compute_due_date(payment_terms, self.now.date())
        self._done('compute_due_date')

        invoice_number = books.invoices.next_number(self.now)
        self._done('allocate_invoice_number')

        invoice = build_invoice(quotation, invoice_number, due_date, payment_terms, self.now)
        books.invoices.put(invoice, self.now)
        self.result.invoice = invoice
        self._done('persist_invoice')

        try:
            books.quotations.delete(quotation.id, self.now)
        except FabQuoteError as e:
            return self._fail('delete_quotation', e)
        self._done('delete_quotation')

        try:
            self.result.order = self.order_factory(books, invoice, self.now)
        except FabQuoteError as e:
            return self._fail('create_order', e)
        self._done('create_order')

        logger.info(
            f"[INVOICE] {invoice.invoice_number} created from {quotation.quotation_number}; "
            f"quotation removed, order {self.result.order.order_number} created"
        )
        return self.result

    def _done(self, step: str):
        self.result.completed_steps.append(step)

    def _fail(self, step: str, error: FabQuoteError) -> PromotionResult:
        self.result.failed_step = step
        self.result.error = error.message
        logger.error(
            f"[INVOICE] ✗ Promotion of {self.quotation_id} stopped at {step}: {error.message}. "
            f"Invoice {self.result.invoice_id} is kept."
        )
        return self.result


def promote_quotation(books, quotation_id: str, now: datetime = None) -> str:
    """
    Convert a quotation into an invoice and its production order.

    Returns:
        The new invoice id (also when order creation failed)
    """
    return PromotionSaga(books, quotation_id, now).run().invoice_id


def get_invoice(books, invoice_id: str) -> Invoice:
    return books.invoices.require(invoice_id)


def list_invoices(books, status: Optional[str] = None, search: Optional[str] = None) -> List[Invoice]:
    invoices = books.invoices.all()
    if status:
        wanted = _parse_status(status)
        invoices = [i for i in invoices if i.status == wanted]
    if search:
        term = search.strip().lower()
        invoices = [
            i for i in invoices
            if term in i.invoice_number.lower() or term in (i.customer_name or '').lower()
        ]
    return sorted(invoices, key=lambda i: i.created_at, reverse=True)


def _parse_status(value) -> InvoiceStatus:
    try:
        return value if isinstance(value, InvoiceStatus) else InvoiceStatus(value)
    except ValueError:
        valid = ', '.join(s.value for s in InvoiceStatus)
        raise ValidationError(f"Invalid invoice status: {value}. Must be one of: {valid}.")


def set_invoice_status(books, invoice_id: str, status, now: datetime = None) -> Invoice:
    """
    Operator status change.

    Paid follows the ledger: it cannot be set while a balance remains, and a
    settled invoice can only stay Paid or be Cancelled.

    Raises:
        InvalidTransitionError: If the change contradicts the ledger
    """
    now = now or datetime.now()
    invoice = books.invoices.require(invoice_id)
    new_status = _parse_status(status)

    if new_status == InvoiceStatus.PAID and not invoice.is_settled:
        raise InvalidTransitionError(invoice.status.value, new_status.value, kind='invoice with a balance')
    if invoice.is_settled and new_status not in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED):
        raise InvalidTransitionError(invoice.status.value, new_status.value, kind='settled invoice')

    updated = replace(invoice, status=new_status, updated_at=now)
    books.invoices.put(updated, now)
    logger.info(f"[INVOICE] {invoice.invoice_number}: {invoice.status.value} -> {new_status.value}")
    return updated


def delete_invoice(books, invoice_id: str, now: datetime = None) -> List[str]:
    """
    Delete an invoice together with the order(s) referencing it.

    Orders go first, so a failure leaves at worst an invoice without order.

    Returns:
        Ids of the deleted orders

    Raises:
        NotFoundError: If the invoice does not exist
    """
    invoice = books.invoices.require(invoice_id)

    removed = []
    for order in books.orders.by_invoice(invoice_id):
        books.orders.delete(order.id, now)
        removed.append(order.id)
        logger.info(f"[INVOICE] Deleted order {order.order_number} of {invoice.invoice_number}")

    books.invoices.delete(invoice_id, now)
    logger.info(f"[INVOICE] {invoice.invoice_number} deleted")
    return removed


def get_invoice_alert_counts(books, today: date = None):
    """
    Counts of open invoices due tomorrow or already overdue.

    Returns:
        dict with keys due_tomorrow_count, overdue_count, total_critical
    """
    if today is None:
        today = date.today()
    tomorrow = today + timedelta(days=1)

    open_invoices = [
        i for i in books.invoices.all()
        if not i.is_settled and i.status not in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED)
    ]
    due_tomorrow_count = sum(1 for i in open_invoices if i.due_date == tomorrow)
    overdue_count = sum(1 for i in open_invoices if i.due_date is not None and i.due_date < today)

    return {
        'due_tomorrow_count': due_tomorrow_count,
        'overdue_count': overdue_count,
        'total_critical': due_tomorrow_count + overdue_count
    }


@dataclass
class CascadeReport:
    """Partial-cascade leftovers. Read-only: nothing is repaired."""

    invoices_without_order: List[str] = field(default_factory=list)
    orders_without_invoice: List[str] = field(default_factory=list)
    quotations_with_invoice: List[str] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not (self.invoices_without_order or self.orders_without_invoice or self.quotations_with_invoice)

    def to_dict(self):
        return {
            'consistent': self.is_consistent,
            'invoices_without_order': list(self.invoices_without_order),
            'orders_without_invoice': list(self.orders_without_invoice),
            'quotations_with_invoice': list(self.quotations_with_invoice),
        }


def find_cascade_gaps(books) -> CascadeReport:
    """Report invoices without an order, orphan orders and promoted quotations still stored."""
    invoice_ids = {i.id for i in books.invoices.all()}
    ordered_invoice_ids = {o.invoice_id for o in books.orders.all()}
    promoted_quotation_ids = {i.quotation_id for i in books.invoices.all()}

    report = CascadeReport(
        invoices_without_order=sorted(invoice_ids - ordered_invoice_ids),
        orders_without_invoice=sorted(o.id for o in books.orders.all() if o.invoice_id not in invoice_ids),
        quotations_with_invoice=sorted(q.id for q in books.quotations.all() if q.id in promoted_quotation_ids),
    )
    if not report.is_consistent:
        logger.warning(f"[INVOICE] Cascade gaps found: {report.to_dict()}")
    return report
