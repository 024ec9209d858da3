"""Customer registry service."""
import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from fabquote.exceptions import ValidationError
from fabquote.models import Address, Customer, CustomerStatus, CustomerType
from fabquote.services.pricing_service import parse_amount

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('contact_person', 'phone')


def _clean(value) -> str:
    return str(value or '').strip()


def _customer_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Extract and sanitize customer fields from request data."""
    fields = {}
    for name in ('company_name', 'contact_person', 'email', 'phone', 'payment_terms', 'notes'):
        if name in data:
            fields[name] = _clean(data.get(name))
    if 'gstn' in data:
        fields['gstn'] = _clean(data.get('gstn')).upper() or None

    for name in ('billing_address', 'shipping_address'):
        if name in data:
            fields[name] = Address.from_dict(data.get(name))

    try:
        if 'customer_type' in data:
            fields['customer_type'] = CustomerType(data.get('customer_type') or 'Business')
        if 'status' in data:
            fields['status'] = CustomerStatus(data.get('status') or 'Active')
    except ValueError as e:
        raise ValidationError(str(e))

    if 'discount_rate' in data:
        rate = parse_amount(data.get('discount_rate') or 0, 'Discount rate')
        if rate < 0 or rate > 100:
            raise ValidationError('Discount rate must be between 0 and 100.')
        fields['discount_rate'] = rate

    if 'preferred_technologies' in data:
        fields['preferred_technologies'] = [t for t in (data.get('preferred_technologies') or []) if t]
    return fields


def _validate_required(customer: Customer):
    missing = [name for name in REQUIRED_FIELDS if not getattr(customer, name)]
    if missing:
        raise ValidationError(f"Missing required customer fields: {', '.join(missing)}",
                              payload={'fields': missing})


def list_customers(books, search: Optional[str] = None, status: Optional[str] = None) -> List[Customer]:
    """
    Registry entries sorted by display name.

    Args:
        search: Optional text matched against company, contact, phone, email and GSTN
        status: Optional 'Active' / 'Inactive' filter
    """
    customers = books.customers.all()
    if status:
        try:
            wanted = CustomerStatus(status)
        except ValueError as e:
            raise ValidationError(str(e))
        customers = [c for c in customers if c.status == wanted]
    if search:
        term = search.strip().lower()
        customers = [
            c for c in customers
            if any(term in (value or '').lower()
                   for value in (c.company_name, c.contact_person, c.phone, c.email, c.gstn))
        ]
    return sorted(customers, key=lambda c: c.display_name.lower())


def get_customer(books, customer_id: str) -> Customer:
    return books.customers.require(customer_id)


def create_customer(books, data: Dict[str, Any], now=None) -> Customer:
    """
    Register a new customer under the next CUST### id.

    Args:
        books: Books bundle
        data: Customer fields; contact_person and phone are required
        now: Write time

    Returns:
        The created Customer

    Raises:
        ValidationError: If required fields are missing or a value is invalid
        PersistenceError: If the registry cannot be written
    """
    fields = _customer_fields(data)
    probe = Customer(id='', company_name=fields.pop('company_name', ''), **fields)
    _validate_required(probe)

    customer = replace(probe, id=books.customers.next_id())
    books.customers.put(customer, now)
    logger.info(f"[CUSTOMER] Created {customer.id} ({customer.display_name})")
    return customer


def update_customer(books, customer_id: str, data: Dict[str, Any], now=None) -> Customer:
    """
    Update registry fields; keys absent from data are left unchanged.

    Saved documents keep their customer name snapshot.

    Raises:
        NotFoundError: If the customer does not exist
        ValidationError: If a required field is cleared or a value is invalid
    """
    customer = books.customers.require(customer_id)
    updated = replace(customer, **_customer_fields(data))
    _validate_required(updated)

    books.customers.put(updated, now)
    logger.info(f"[CUSTOMER] Updated {customer_id}")
    return updated


def delete_customer(books, customer_id: str, now=None) -> None:
    """
    Remove a customer from the registry.

    Documents referencing it stay as they are and render with a placeholder.

    Raises:
        NotFoundError: If the customer does not exist
    """
    customer = books.customers.require(customer_id)
    referenced = [
        doc for repo in (books.quotations, books.invoices, books.orders)
        for doc in repo.all() if doc.customer_id == customer_id
    ]
    books.customers.delete(customer_id, now)
    if referenced:
        logger.warning(f"[CUSTOMER] Deleted {customer_id} ({customer.display_name}) "
                       f"still referenced by {len(referenced)} document(s)")
    else:
        logger.info(f"[CUSTOMER] Deleted {customer_id}")
