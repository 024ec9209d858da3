import struct
from datetime import datetime
from decimal import Decimal

import pytest

from fabquote import create_app
from fabquote.books import Books
from fabquote.exceptions import PersistenceError
from fabquote.models import Catalog, Material, Technology
from fabquote.services import customer_service, draft_service
from fabquote.services.quotation_service import save_quotation
from fabquote.services.store_service import MemoryStore

NOW = datetime(2026, 3, 10, 10, 30, 0)


class FlakyStore(MemoryStore):
    """MemoryStore whose writes, removes or reads fail for chosen keys."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.failing_writes = set()
        self.failing_removes = set()
        self.failing_reads = set()

    def get(self, key):
        if key in self.failing_reads:
            raise PersistenceError(f"Read of '{key}' failed: connection refused", key=key)
        return super().get(key)

    def set(self, key, value):
        if key in self.failing_writes:
            raise PersistenceError(f"Write of '{key}' failed: disk full", key=key)
        super().set(key, value)

    def remove(self, key):
        if key in self.failing_removes:
            raise PersistenceError(f"Remove of '{key}' failed: connection reset", key=key)
        super().remove(key)


def cube_triangles(size):
    """12 outward-facing triangles of an axis-aligned cube [0, size]^3."""
    s = float(size)
    return [
        ((0, 0, 0), (s, s, 0), (s, 0, 0)), ((0, 0, 0), (0, s, 0), (s, s, 0)),
        ((0, 0, s), (s, 0, s), (s, s, s)), ((0, 0, s), (s, s, s), (0, s, s)),
        ((0, 0, 0), (s, 0, 0), (s, 0, s)), ((0, 0, 0), (s, 0, s), (0, 0, s)),
        ((0, s, 0), (s, s, s), (s, s, 0)), ((0, s, 0), (0, s, s), (s, s, s)),
        ((0, 0, 0), (0, s, s), (0, s, 0)), ((0, 0, 0), (0, 0, s), (0, s, s)),
        ((s, 0, 0), (s, s, 0), (s, s, s)), ((s, 0, 0), (s, s, s), (s, 0, s)),
    ]


def binary_stl(triangles):
    data = bytearray(b'\0' * 80)
    data += struct.pack('<I', len(triangles))
    for a, b, c in triangles:
        data += struct.pack('<12fH', 0.0, 0.0, 0.0, *a, *b, *c, 0)
    return bytes(data)


def ascii_stl(triangles, name='part'):
    lines = [f'solid {name}']
    for triangle in triangles:
        lines.append('  facet normal 0 0 0')
        lines.append('    outer loop')
        for x, y, z in triangle:
            lines.append(f'      vertex {x} {y} {z}')
        lines.append('    endloop')
        lines.append('  endfacet')
    lines.append(f'endsolid {name}')
    return '\n'.join(lines).encode('ascii')


def sample_catalog():
    return Catalog(technologies={
        'FDM': Technology(id='FDM', name='Fused Deposition Modeling', materials={
            'PLA': Material(id='PLA', name='PLA', cost_per_cc=Decimal('3.50'), colors=['Black', 'White']),
            'ABS': Material(id='ABS', name='ABS', cost_per_cc=Decimal('4.00')),
        }),
        'SLA': Technology(id='SLA', name='Stereolithography', materials={
            'STANDARD_RESIN': Material(id='STANDARD_RESIN', name='Standard Resin', cost_per_cc=Decimal('8.00')),
        }),
    })


LOCAL_CUSTOMER = {
    'company_name': 'Bangalore Robotics',
    'contact_person': 'Asha Rao',
    'phone': '9845012345',
    'email': 'asha@blrrobotics.in',
    'gstn': '29abcde1234f1z5',
    'shipping_address': {'street': '12 MG Road', 'city': 'Bengaluru', 'state': 'Karnataka', 'pin': '560001'},
    'billing_address': {'street': '12 MG Road', 'city': 'Bengaluru', 'state': 'Karnataka', 'pin': '560001'},
}

OUTSTATION_CUSTOMER = {
    'company_name': 'Pune Prototypes',
    'contact_person': 'Vikram Joshi',
    'phone': '9822011111',
    'shipping_address': {'city': 'Pune', 'state': 'Maharashtra', 'pin': '411001'},
}


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def books(store):
    """Books over a memory store, with the sample catalog."""
    books = Books(store, home_jurisdiction='Karnataka')
    books.catalog.save(sample_catalog(), NOW)
    return books


@pytest.fixture
def local_customer(books):
    return customer_service.create_customer(books, LOCAL_CUSTOMER, NOW)


@pytest.fixture
def outstation_customer(books):
    return customer_service.create_customer(books, OUTSTATION_CUSTOMER, NOW)


@pytest.fixture
def saved_quotation(books, local_customer):
    """Quotation with one PLA part: 10 cc x 3.50 x 2 = 70, in-state tax 12.60."""
    draft_service.select_customer(books, local_customer.id, NOW)
    draft_service.add_manual_part(books, 'bracket.stl', '10', 'FDM', 'PLA', quantity=2, now=NOW)
    return save_quotation(books, NOW)


@pytest.fixture
def app():
    """Create application instance for testing."""
    app = create_app('config.TestConfig', store=MemoryStore())
    app.extensions['books'].catalog.save(sample_catalog(), NOW)
    return app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def app_books(app):
    return app.extensions['books']
