"""
Collection repositories over the key-value store.

Every collection is loaded once, kept in memory and written back whole on
each mutation. A failed read starts the collection empty (logged); a failed
write raises PersistenceError but keeps the in-memory state, so the next
successful write carries it.
"""
import logging
from datetime import datetime
from typing import Dict, Generic, List, Optional, TypeVar

from flask import Flask, current_app, has_app_context

from fabquote.exceptions import NotFoundError, PersistenceError
from fabquote.models import Catalog, Customer, DraftState, Invoice, Order, Quotation
from fabquote.services.numbering_service import (
    CounterState, next_document_number, next_customer_id,
    QUOTATION_PREFIX, INVOICE_PREFIX, ORDER_PREFIX, CUSTOMER_PREFIX
)
from fabquote.services.tax_service import HOME_JURISDICTION
from fabquote.utils.serialization import dumps, loads, parse_datetime

logger = logging.getLogger(__name__)

CUSTOMERS_KEY = 'customers'
CATALOG_KEY = 'technologies'
QUOTATIONS_KEY = 'saved_quotations_data'
INVOICES_KEY = 'saved_invoices_data'
ORDERS_KEY = 'orders_data'
DRAFT_KEY = 'current_quotation_state'

T = TypeVar('T')


class CollectionRepository(Generic[T]):
    """Records keyed by id plus an optional numbering counter."""

    key: str = ''
    records_field: str = ''
    counter_field: Optional[str] = None
    counter_prefix: str = ''
    counter_width: int = 4
    label: str = 'record'

    def __init__(self, store):
        self.store = store
        self._records: Optional[Dict[str, T]] = None
        self._counter: Optional[CounterState] = None
        self.last_updated: Optional[datetime] = None

    # -- loading -------------------------------------------------------------

    def _record_from_dict(self, record_id: str, data: dict) -> T:
        raise NotImplementedError

    def _initial_counter(self) -> Optional[CounterState]:
        if not self.counter_field:
            return None
        return CounterState(self.counter_prefix, 1, self.counter_width)

    def _reset(self):
        self._records = {}
        self._counter = self._initial_counter()
        self.last_updated = None

    def _load(self):
        try:
            raw = self.store.get(self.key)
        except PersistenceError as e:
            logger.warning(f"[STORE] ⚠ Could not read '{self.key}': {e.message}. Starting empty.")
            self._reset()
            return

        if raw is None:
            self._reset()
            return

        try:
            data = loads(raw)
            records = {
                record_id: self._record_from_dict(record_id, record_data)
                for record_id, record_data in (data.get(self.records_field) or {}).items()
            }
            counter = self._initial_counter()
            if self.counter_field and data.get(self.counter_field):
                counter = CounterState.parse(data[self.counter_field], self.counter_prefix, self.counter_width)
            last_updated = parse_datetime(data.get('last_updated'))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"[STORE] ⚠ Corrupt value under '{self.key}': {e}. Starting empty.")
            self._reset()
            return

        self._records = records
        self._counter = counter
        self.last_updated = last_updated
        logger.debug(f"[STORE] Loaded {len(records)} {self.label}(s) from '{self.key}'")

    @property
    def records(self) -> Dict[str, T]:
        if self._records is None:
            self._load()
        return self._records

    def reload(self):
        """Drop the in-memory copy; the next access reads the store again."""
        self._records = None
        self._counter = None

    # -- queries -------------------------------------------------------------

    def all(self) -> List[T]:
        return list(self.records.values())

    def get(self, record_id: str) -> Optional[T]:
        return self.records.get(record_id)

    def require(self, record_id: str) -> T:
        record = self.get(record_id)
        if record is None:
            raise NotFoundError(f"{self.label.capitalize()} {record_id} not found")
        return record

    def __contains__(self, record_id):
        return record_id in self.records

    def __len__(self):
        return len(self.records)

    # -- mutations -----------------------------------------------------------

    @property
    def counter(self) -> Optional[CounterState]:
        if self._records is None:
            self._load()
        return self._counter

    def next_number(self, now: datetime = None) -> str:
        """
        Issue the next document number and advance the counter.

        The advanced counter is persisted with the next write; it is never
        rolled back, so a failed write does not cause a number to be reused.
        """
        number, self._counter = next_document_number(self.counter, now)
        return number

    def put(self, record: T, now: datetime = None) -> T:
        self.records[record.id] = record
        self.flush(now)
        return record

    def delete(self, record_id: str, now: datetime = None) -> bool:
        if record_id not in self.records:
            return False
        del self.records[record_id]
        self.flush(now)
        return True

    def to_payload(self) -> dict:
        payload = {
            self.records_field: {rid: record.to_dict() for rid, record in self.records.items()},
            'last_updated': self.last_updated.isoformat() if self.last_updated else None,
        }
        if self.counter_field:
            payload[self.counter_field] = str(self.counter)
        return payload

    def flush(self, now: datetime = None):
        """Write the whole collection to the store."""
        self.last_updated = now or datetime.now()
        try:
            self.store.set(self.key, dumps(self.to_payload()))
        except PersistenceError as e:
            logger.error(f"[STORE] ✗ Write of '{self.key}' failed: {e.message}. In-memory state kept.")
            raise


class CustomerRepository(CollectionRepository[Customer]):
    key = CUSTOMERS_KEY
    records_field = 'customers'
    counter_field = 'next_customer_id'
    counter_prefix = CUSTOMER_PREFIX
    counter_width = 3
    label = 'customer'

    def _record_from_dict(self, record_id, data):
        return Customer.from_dict(data, customer_id=record_id)

    def next_id(self) -> str:
        customer_id, self._counter = next_customer_id(self.counter)
        return customer_id


class QuotationRepository(CollectionRepository[Quotation]):
    key = QUOTATIONS_KEY
    records_field = 'quotations'
    counter_field = 'next_quotation_number'
    counter_prefix = QUOTATION_PREFIX
    label = 'quotation'

    def _record_from_dict(self, record_id, data):
        return Quotation.from_dict(data)


class InvoiceRepository(CollectionRepository[Invoice]):
    key = INVOICES_KEY
    records_field = 'invoices'
    counter_field = 'next_invoice_number'
    counter_prefix = INVOICE_PREFIX
    label = 'invoice'

    def _record_from_dict(self, record_id, data):
        return Invoice.from_dict(data)

    def by_quotation(self, quotation_id: str) -> List[Invoice]:
        return [inv for inv in self.all() if inv.quotation_id == quotation_id]


class OrderRepository(CollectionRepository[Order]):
    key = ORDERS_KEY
    records_field = 'orders'
    counter_field = 'next_order_number'
    counter_prefix = ORDER_PREFIX
    label = 'order'

    def _record_from_dict(self, record_id, data):
        return Order.from_dict(data)

    def by_invoice(self, invoice_id: str) -> List[Order]:
        return [order for order in self.all() if order.invoice_id == invoice_id]


class CatalogRepository:
    """Technology/material catalog, stored as one value."""

    key = CATALOG_KEY

    def __init__(self, store):
        self.store = store
        self._catalog: Optional[Catalog] = None

    def get(self) -> Catalog:
        if self._catalog is None:
            self._catalog = self._load()
        return self._catalog

    def _load(self) -> Catalog:
        try:
            raw = self.store.get(self.key)
        except PersistenceError as e:
            logger.warning(f"[STORE] ⚠ Could not read '{self.key}': {e.message}. Using an empty catalog.")
            return Catalog()
        if raw is None:
            return Catalog()
        try:
            return Catalog.from_dict(loads(raw))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"[STORE] ⚠ Corrupt catalog under '{self.key}': {e}. Using an empty catalog.")
            return Catalog()

    def save(self, catalog: Catalog, now: datetime = None) -> Catalog:
        catalog.last_updated = (now or datetime.now()).isoformat()
        self._catalog = catalog
        try:
            self.store.set(self.key, dumps(catalog.to_dict()))
        except PersistenceError as e:
            logger.error(f"[STORE] ✗ Write of '{self.key}' failed: {e.message}. In-memory state kept.")
            raise
        return catalog

    def reload(self):
        self._catalog = None


class DraftRepository:
    """The single draft workspace of the operator session."""

    key = DRAFT_KEY

    def __init__(self, store):
        self.store = store
        self._current: Optional[DraftState] = None

    def load(self) -> Optional[DraftState]:
        """In-memory draft if any, else the stored one (None when absent or unreadable)."""
        if self._current is not None:
            return self._current
        try:
            raw = self.store.get(self.key)
        except PersistenceError as e:
            logger.warning(f"[DRAFT] ⚠ Could not read saved draft: {e.message}")
            return None
        if raw is None:
            return None
        try:
            self._current = DraftState.from_dict(loads(raw))
            return self._current
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"[DRAFT] ⚠ Discarding corrupt saved draft: {e}")
            return None

    def save(self, draft: DraftState):
        self._current = draft
        try:
            self.store.set(self.key, dumps(draft.to_dict()))
        except PersistenceError as e:
            logger.error(f"[DRAFT] ✗ Autosave failed: {e.message}")
            raise

    def clear(self):
        """
        Remove the stored draft.

        When the remove fails the in-memory draft is still replaced by an
        empty one, so this session does not pick the old draft up again.
        """
        try:
            self.store.remove(self.key)
        except PersistenceError as e:
            logger.error(f"[DRAFT] ✗ Could not remove saved draft: {e.message}")
            self._current = DraftState.empty()
            raise
        self._current = None

    def reload(self):
        self._current = None


class Books:
    """
    All collections of one shop, sharing one store.

    Services take a Books instance the way they would take a database
    session.
    """

    def __init__(self, store, home_jurisdiction: str = HOME_JURISDICTION,
                 quotation_valid_days: int = 30, draft_expiry_hours: int = 24,
                 default_lead_time: str = '3-5 days', default_payment_terms: str = 'Net 30',
                 business: Optional[dict] = None):
        self.store = store
        self.home_jurisdiction = home_jurisdiction
        self.quotation_valid_days = quotation_valid_days
        self.draft_expiry_hours = draft_expiry_hours
        self.default_lead_time = default_lead_time
        self.default_payment_terms = default_payment_terms
        self.business = business or {}

        self.customers = CustomerRepository(store)
        self.catalog = CatalogRepository(store)
        self.quotations = QuotationRepository(store)
        self.invoices = InvoiceRepository(store)
        self.orders = OrderRepository(store)
        self.draft = DraftRepository(store)

    @classmethod
    def from_config(cls, store, config) -> 'Books':
        return cls(
            store,
            home_jurisdiction=config.get('HOME_JURISDICTION', HOME_JURISDICTION),
            quotation_valid_days=int(config.get('QUOTATION_VALID_DAYS', 30)),
            draft_expiry_hours=int(config.get('DRAFT_EXPIRY_HOURS', 24)),
            default_lead_time=config.get('DEFAULT_LEAD_TIME', '3-5 days'),
            default_payment_terms=config.get('DEFAULT_PAYMENT_TERMS', 'Net 30'),
            business={
                'name': config.get('BUSINESS_NAME', ''),
                'gstn': config.get('BUSINESS_GSTN', ''),
                'address': config.get('BUSINESS_ADDRESS', ''),
                'city': config.get('BUSINESS_CITY', ''),
                'state': config.get('BUSINESS_STATE') or config.get('HOME_JURISDICTION', HOME_JURISDICTION),
                'phone': config.get('BUSINESS_PHONE', ''),
                'email': config.get('BUSINESS_EMAIL', ''),
                'currency': config.get('CURRENCY', 'INR'),
            },
        )

    def reload(self):
        """Forget cached collections (e.g. after another process wrote the store)."""
        for repo in (self.customers, self.catalog, self.quotations, self.invoices, self.orders, self.draft):
            repo.reload()


_books: Optional[Books] = None


def init_books(app: Flask, store) -> Books:
    """Initialize books singleton."""
    global _books
    _books = Books.from_config(store, app.config)
    app.extensions['books'] = _books
    return _books


def get_books() -> Books:
    """Get books instance (the current app's when inside an app context)."""
    if has_app_context() and 'books' in current_app.extensions:
        return current_app.extensions['books']
    if _books is None:
        raise RuntimeError("Books not initialized.")
    return _books
