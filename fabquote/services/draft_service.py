"""
Draft workspace service.

Every mutation loads the current draft, changes it, stamps last_updated and
autosaves it. A stored draft untouched for longer than the expiry window is
discarded the next time it is loaded; there is no background timer.
"""
import logging
import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from fabquote.exceptions import FabQuoteError, NotFoundError, PersistenceError, ValidationError
from fabquote.models import DocumentTotals, DraftState, Part, ServiceCharge, ShippingAddressChoice
from fabquote.services.bulk_edit_service import PartUpdate, SetMaterial, apply_bulk, apply_update
from fabquote.services.geometry_service import file_extension, parse_geometry
from fabquote.services.pricing_service import (
    compute_document_totals, parse_amount, reprice_tax_for_customer, validate_quantity
)

logger = logging.getLogger(__name__)


def _new_part_id(kind: str = 'part') -> str:
    return f"{kind}_{uuid.uuid4().hex[:12]}"


def is_expired(draft: DraftState, expiry_hours: int, now: datetime = None) -> bool:
    now = now or datetime.now()
    return now - draft.last_updated > timedelta(hours=expiry_hours)


def load_draft(books, now: datetime = None) -> DraftState:
    """
    Current draft, or an empty one.

    An expired stored draft is removed from the store and replaced by an
    empty draft.
    """
    now = now or datetime.now()
    draft = books.draft.load()
    if draft is None:
        return DraftState.empty(now)

    if is_expired(draft, books.draft_expiry_hours, now):
        logger.info(f"[DRAFT] Saved draft from {draft.last_updated.isoformat()} expired, starting fresh")
        try:
            books.draft.clear()
        except PersistenceError as e:
            logger.warning(f"[DRAFT] ⚠ Expired draft left in the store: {e.message}")
        return DraftState.empty(now)

    return draft


def save_draft(books, draft: DraftState, now: datetime = None) -> DraftState:
    """Stamp and autosave the draft. Raises PersistenceError; the draft stays in memory."""
    draft.last_updated = now or datetime.now()
    books.draft.save(draft)
    return draft


def clear_draft(books, now: datetime = None) -> DraftState:
    """Start a new document: drop the stored draft."""
    books.draft.clear()
    logger.info("[DRAFT] Draft cleared")
    return DraftState.empty(now)


def has_unsaved_changes(draft: DraftState) -> bool:
    return draft.has_content


def is_editing_mode(draft: DraftState) -> bool:
    return bool(draft.editing_quotation_id)


def has_saved_draft(books, now: datetime = None) -> bool:
    """True when a stored, unexpired draft with content exists (does not discard it)."""
    draft = books.draft.load()
    if draft is None:
        return False
    return not is_expired(draft, books.draft_expiry_hours, now) and draft.has_content


def selected_customer(books, draft: DraftState):
    """Customer selected in the draft, or None (also when it was deleted meanwhile)."""
    if not draft.selected_customer_id:
        return None
    customer = books.customers.get(draft.selected_customer_id)
    if customer is None:
        logger.warning(f"[DRAFT] Selected customer {draft.selected_customer_id} no longer exists")
    return customer


def draft_totals(books, draft: DraftState) -> DocumentTotals:
    return compute_document_totals(
        draft.parts, draft.service_charges, draft.discount,
        selected_customer(books, draft), books.home_jurisdiction
    )


# -- customer ---------------------------------------------------------------

def select_customer(books, customer_id: Optional[str], now: datetime = None) -> DraftState:
    """
    Select (or clear, with None) the draft's customer and re-derive part tax.

    Raises:
        NotFoundError: If customer_id is not in the registry
    """
    draft = load_draft(books, now)
    customer = None
    if customer_id:
        customer = books.customers.require(customer_id)

    draft.selected_customer_id = customer.id if customer else None
    draft.parts = reprice_tax_for_customer(draft.parts, customer, books.home_jurisdiction)
    return save_draft(books, draft, now)


# -- parts ------------------------------------------------------------------

def add_uploaded_parts(books, files: Iterable[Tuple[str, bytes]], now: datetime = None,
                       parser=parse_geometry) -> Tuple[DraftState, List[dict]]:
    """
    Parse uploaded model files and append one unpriced part per file.

    A file that fails to parse is skipped and reported; the others are
    still added.

    Args:
        files: (file_name, file_bytes) pairs
        parser: Geometry provider, parse_geometry by default

    Returns:
        (draft, failures) where failures are {'file_name', 'message'} dicts
    """
    draft = load_draft(books, now)
    first_serial = serial = draft.next_serial_number
    failures = []

    for file_name, file_bytes in files:
        try:
            geometry = parser(file_bytes, file_name)
        except FabQuoteError as e:
            logger.warning(f"[DRAFT] Skipping {file_name}: {e.message}")
            failures.append({'file_name': file_name, 'message': e.message})
            continue

        draft.parts.append(Part(
            id=_new_part_id(),
            serial_number=serial,
            file_name=file_name,
            file_type=file_extension(file_name),
            volume=geometry.volume,
            bounding_box=geometry.bounding_box,
        ))
        serial += 1

    logger.info(f"[DRAFT] Added {serial - first_serial} uploaded part(s), {len(failures)} failed")
    return save_draft(books, draft, now), failures


def add_manual_part(books, file_name: str, volume, technology: str, material: str,
                    quantity=1, comments: str = '', now: datetime = None) -> DraftState:
    """
    Append a manually entered part, priced immediately.

    Raises:
        ValidationError: If no customer is selected, the name is empty,
            volume <= 0, quantity < 1 or the material is unknown
    """
    draft = load_draft(books, now)
    customer = selected_customer(books, draft)
    if customer is None:
        raise ValidationError("Select a customer before adding parts")
    if not (file_name or '').strip():
        raise ValidationError("Part name is required")

    volume = parse_amount(volume, 'Volume')
    if volume <= 0:
        raise ValidationError("Volume must be greater than 0")

    part = Part(
        id=_new_part_id('manual_part'),
        serial_number=draft.next_serial_number,
        file_name=file_name.strip(),
        file_type='manual',
        volume=volume,
        bounding_box=None,
        quantity=validate_quantity(quantity),
        comments=comments or '',
    )
    part = apply_update(
        part, SetMaterial(material_id=material, process_id=technology),
        books.catalog.get(), customer, books.home_jurisdiction
    )
    draft.parts.append(part)
    return save_draft(books, draft, now)


def _find_part(draft: DraftState, part_id: str) -> Part:
    for part in draft.parts:
        if part.id == part_id:
            return part
    raise NotFoundError(f"Part {part_id} not found in draft")


def update_part(books, part_id: str, update: Optional[PartUpdate], now: datetime = None,
                comments: Optional[str] = None) -> DraftState:
    """
    Apply an update intent and/or new comments to a single draft part.

    Both are applied to a copy of the part first, so a rejected update
    leaves the draft as it was. One autosave covers the whole change.
    """
    draft = load_draft(books, now)
    part = _find_part(draft, part_id)

    updated = part
    if update is not None:
        updated = apply_update(part, update, books.catalog.get(), selected_customer(books, draft),
                               books.home_jurisdiction)
    if comments is not None:
        updated = replace(updated, comments=comments)

    draft.parts = [updated if p.id == part_id else p for p in draft.parts]
    return save_draft(books, draft, now)


def update_parts(books, part_ids: Iterable[str], update: PartUpdate, now: datetime = None) -> DraftState:
    """Apply one update intent to every selected draft part."""
    draft = load_draft(books, now)
    draft.parts = apply_bulk(draft.parts, part_ids, update, books.catalog.get(),
                             selected_customer(books, draft), books.home_jurisdiction)
    return save_draft(books, draft, now)


def delete_part(books, part_id: str, now: datetime = None) -> DraftState:
    """Remove a part and renumber the rest 1..n in their current order."""
    draft = load_draft(books, now)
    _find_part(draft, part_id)
    remaining = [p for p in draft.parts if p.id != part_id]
    draft.parts = [replace(p, serial_number=index) for index, p in enumerate(remaining, start=1)]
    return save_draft(books, draft, now)


def delete_all_parts(books, now: datetime = None) -> DraftState:
    draft = load_draft(books, now)
    draft.parts = []
    return save_draft(books, draft, now)


# -- document fields ----------------------------------------------------------

def _parse_discount(value):
    discount = parse_amount(value, 'Discount')
    if discount < 0 or discount > 100:
        raise ValidationError(f"Discount must be between 0 and 100, got {discount}")
    return discount


def _parse_shipping_choice(value):
    try:
        return ShippingAddressChoice(value)
    except ValueError:
        raise ValidationError(f"Shipping address must be 'billing' or 'shipping', got {value!r}")


def _optional_text(value):
    return value or None


SETTINGS_PARSERS = {
    'discount': _parse_discount,
    'notes': lambda value: value or '',
    'payment_terms': _optional_text,
    'lead_time': _optional_text,
    'shipping_address_type': _parse_shipping_choice,
}


def update_settings(books, changes: dict, now: datetime = None) -> DraftState:
    """
    Set several document fields at once.

    Every value is parsed before any is applied; one invalid field rejects
    the whole change and the draft is left untouched.

    Args:
        changes: field name -> raw value, names from SETTINGS_PARSERS

    Raises:
        ValidationError: On an unknown field or an invalid value
    """
    unknown = set(changes) - set(SETTINGS_PARSERS)
    if unknown:
        raise ValidationError(f"Unknown draft settings: {', '.join(sorted(unknown))}")

    parsed = {name: SETTINGS_PARSERS[name](value) for name, value in changes.items()}

    draft = load_draft(books, now)
    for name, value in parsed.items():
        setattr(draft, name, value)
    return save_draft(books, draft, now)


def set_discount(books, discount, now: datetime = None) -> DraftState:
    return update_settings(books, {'discount': discount}, now)


def set_notes(books, notes: str, now: datetime = None) -> DraftState:
    return update_settings(books, {'notes': notes}, now)


def set_shipping_address_type(books, choice, now: datetime = None) -> DraftState:
    return update_settings(books, {'shipping_address_type': choice}, now)


def set_service_charges(books, charges: Iterable[dict], now: datetime = None) -> DraftState:
    """
    Replace the draft's service charges.

    Args:
        charges: dicts with 'description', 'amount' and optionally 'id'

    Raises:
        ValidationError: If a description is empty or an amount is negative
    """
    parsed = []
    for data in charges:
        description = (data.get('description') or '').strip()
        if not description:
            raise ValidationError("Service charge description is required")
        amount = parse_amount(data.get('amount'), f"Amount of '{description}'")
        if amount < 0:
            raise ValidationError(f"Service charge '{description}' must not be negative")
        parsed.append(ServiceCharge(id=data.get('id') or _new_part_id('charge'),
                                    description=description, amount=amount))

    draft = load_draft(books, now)
    draft.service_charges = parsed
    return save_draft(books, draft, now)


def load_quotation_for_editing(books, quotation_id: str, now: datetime = None) -> DraftState:
    """
    Replace the draft with a copy of a saved quotation in editing mode.

    Raises:
        NotFoundError: If the quotation does not exist
    """
    quotation = books.quotations.require(quotation_id)
    draft = DraftState(
        last_updated=now or datetime.now(),
        selected_customer_id=quotation.customer_id,
        parts=[replace(p) for p in quotation.parts],
        discount=quotation.discount,
        notes=quotation.notes,
        payment_terms=quotation.payment_terms,
        lead_time=quotation.lead_time,
        shipping_address_type=quotation.shipping_address_type,
        service_charges=[replace(c) for c in quotation.service_charges],
        editing_quotation_id=quotation.id,
    )
    logger.info(f"[DRAFT] Editing quotation {quotation.quotation_number}")
    return save_draft(books, draft, now)
