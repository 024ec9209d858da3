"""Quotation service: save from the draft workspace, status changes, deletion."""
import logging
import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from typing import List, Optional

from fabquote.exceptions import NotFoundError, PersistenceError, ValidationError
from fabquote.models import Quotation, QuotationStatus
from fabquote.services import draft_service
from fabquote.services.pricing_service import compute_document_totals
from fabquote.services.tax_service import tax_mode_for

logger = logging.getLogger(__name__)


def save_quotation(books, now: datetime = None) -> Quotation:
    """
    Materialize the current draft as a saved quotation.

    A new quotation gets a fresh id and number. In editing mode the
    quotation keeps its id, number and creation time and goes back to
    Draft. Either way valid_until restarts from now and the draft is cleared
    once the quotation is stored.

    Args:
        books: Books bundle
        now: Save time (defaults to datetime.now())

    Returns:
        The saved Quotation

    Raises:
        ValidationError: If no customer is selected or nothing is priced
        NotFoundError: If the customer or the edited quotation no longer exists
        PersistenceError: If the quotation cannot be written (draft is kept).
            A failure to clear the draft afterwards is only logged
    """
    now = now or datetime.now()
    draft = draft_service.load_draft(books, now)

    if not draft.selected_customer_id:
        raise ValidationError("Select a customer before saving the quotation")
    customer = books.customers.require(draft.selected_customer_id)

    if not draft.parts and not draft.service_charges:
        raise ValidationError("Add at least one part before saving the quotation")

    totals = compute_document_totals(
        draft.parts, draft.service_charges, draft.discount, customer, books.home_jurisdiction
    )
    if totals.total_base_price <= 0:
        raise ValidationError("Quotation has no priced parts or service charges")

    existing = None
    if draft.editing_quotation_id:
        existing = books.quotations.get(draft.editing_quotation_id)
        if existing is None:
            raise NotFoundError(f"Quotation {draft.editing_quotation_id} not found for editing")

    fields = dict(
        customer_id=customer.id,
        customer_name=customer.display_name,
        updated_at=now,
        valid_until=now + timedelta(days=books.quotation_valid_days),
        parts=sorted((replace(p) for p in draft.parts), key=lambda p: p.serial_number),
        service_charges=[replace(c) for c in draft.service_charges],
        discount=draft.discount,
        totals=totals,
        tax_mode=tax_mode_for(customer, books.home_jurisdiction),
        status=QuotationStatus.DRAFT,
        notes=draft.notes,
        payment_terms=draft.payment_terms or customer.payment_terms or books.default_payment_terms,
        lead_time=draft.lead_time or books.default_lead_time,
        shipping_address_type=draft.shipping_address_type,
    )

    if existing is not None:
        quotation = replace(existing, **fields)
        action = 'updated'
    else:
        quotation = Quotation(
            id=f"quot_{uuid.uuid4().hex[:12]}",
            quotation_number=books.quotations.next_number(now),
            created_at=now,
            **fields
        )
        action = 'saved'

    books.quotations.put(quotation, now)
    logger.info(f"[QUOTATION] {quotation.quotation_number} {action} for {customer.display_name} "
                f"(final {quotation.final_price})")

    try:
        draft_service.clear_draft(books, now)
    except PersistenceError as e:
        # Quotation is stored; only the stale draft is left in the store
        logger.warning(f"[QUOTATION] ⚠ {quotation.quotation_number} saved but the draft was not cleared: {e.message}")
    return quotation


def get_quotation(books, quotation_id: str) -> Quotation:
    return books.quotations.require(quotation_id)


def list_quotations(books, status: Optional[str] = None, search: Optional[str] = None) -> List[Quotation]:
    """
    Saved quotations, newest first.

    Args:
        status: Optional status value to filter by ('Draft', 'Sent', ...)
        search: Optional text matched against number and customer name
    """
    quotations = books.quotations.all()
    if status:
        wanted = _parse_status(status)
        quotations = [q for q in quotations if q.status == wanted]
    if search:
        term = search.strip().lower()
        quotations = [
            q for q in quotations
            if term in q.quotation_number.lower() or term in (q.customer_name or '').lower()
        ]
    return sorted(quotations, key=lambda q: q.created_at, reverse=True)


def _parse_status(value) -> QuotationStatus:
    try:
        return value if isinstance(value, QuotationStatus) else QuotationStatus(value)
    except ValueError:
        valid = ', '.join(s.value for s in QuotationStatus)
        raise ValidationError(f"Invalid quotation status: {value}. Must be one of: {valid}.")


def set_quotation_status(books, quotation_id: str, status, now: datetime = None) -> Quotation:
    """Quotation statuses move freely; the operator decides."""
    now = now or datetime.now()
    quotation = books.quotations.require(quotation_id)
    new_status = _parse_status(status)

    updated = replace(quotation, status=new_status, updated_at=now)
    books.quotations.put(updated, now)
    logger.info(f"[QUOTATION] {quotation.quotation_number}: {quotation.status.value} -> {new_status.value}")
    return updated


def delete_quotation(books, quotation_id: str, now: datetime = None) -> None:
    """
    Delete a quotation. Invoices and orders are never touched.

    Raises:
        NotFoundError: If the quotation does not exist
    """
    quotation = books.quotations.require(quotation_id)
    books.quotations.delete(quotation_id, now)
    logger.info(f"[QUOTATION] {quotation.quotation_number} deleted")
