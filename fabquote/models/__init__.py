"""Models package - exports all record types."""
# Reference data
from fabquote.models.customer import Address, Customer, CustomerType, CustomerStatus
from fabquote.models.catalog import Catalog, Technology, Material

# Documents
from fabquote.models.part import Part, PricingBlock, BoundingBox
from fabquote.models.service_charge import ServiceCharge
from fabquote.models.document import DocumentTotals, TaxMode, ShippingAddressChoice
from fabquote.models.quotation import Quotation, QuotationStatus
from fabquote.models.payment import Payment, PaymentMethod, normalize_payment_method
from fabquote.models.invoice import Invoice, InvoiceStatus
from fabquote.models.order import Order, OrderStatus, ORDER_TRANSITIONS
from fabquote.models.draft import DraftState

__all__ = [
    # Reference data
    'Address', 'Customer', 'CustomerType', 'CustomerStatus',
    'Catalog', 'Technology', 'Material',
    # Documents
    'Part', 'PricingBlock', 'BoundingBox', 'ServiceCharge',
    'DocumentTotals', 'TaxMode', 'ShippingAddressChoice',
    'Quotation', 'QuotationStatus',
    'Payment', 'PaymentMethod', 'normalize_payment_method',
    'Invoice', 'InvoiceStatus',
    'Order', 'OrderStatus', 'ORDER_TRANSITIONS',
    'DraftState',
]
