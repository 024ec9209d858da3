"""
Integration tests for the HTTP API.
"""
from decimal import Decimal
from io import BytesIO

import pytest

from conftest import LOCAL_CUSTOMER, binary_stl, cube_triangles


@pytest.fixture
def customer_id(client):
    response = client.post('/customers', json=LOCAL_CUSTOMER)
    assert response.status_code == 201
    return response.get_json()['data']['id']


@pytest.fixture
def quotation_id(client, customer_id):
    """Quotation with one manual PLA part of 10 cc x 2."""
    client.put('/draft/customer', json={'customer_id': customer_id})
    client.post('/draft/parts/manual', json={
        'file_name': 'bracket', 'volume': '10', 'technology': 'FDM', 'material': 'PLA', 'quantity': 2
    })
    response = client.post('/draft/save')
    assert response.status_code == 201
    return response.get_json()['data']['id']


class TestHealth:
    """Test health endpoints."""

    def test_health(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.get_json() == {'status': 'ok', 'store': 'MemoryStore'}

    def test_reconcile_on_empty_books(self, client):
        data = client.get('/health/reconcile').get_json()
        assert data['consistent'] is True


class TestCustomersApi:
    """Test customer endpoints."""

    def test_create_and_list(self, client, customer_id):
        assert customer_id == 'CUST001'

        data = client.get('/customers?q=asha').get_json()['data']
        assert [c['id'] for c in data] == ['CUST001']

    def test_missing_fields(self, client):
        response = client.post('/customers', json={'company_name': 'Nameless'})

        assert response.status_code == 400
        body = response.get_json()
        assert body['status'] == 'error'
        assert body['fields'] == ['contact_person', 'phone']

    def test_unknown_customer(self, client):
        response = client.get('/customers/CUST404')
        assert response.status_code == 404
        assert response.get_json()['status'] == 'error'

    def test_body_must_be_object(self, client):
        response = client.post('/customers', json=['not', 'an', 'object'])
        assert response.status_code == 400


class TestDraftApi:
    """Test draft endpoints."""

    def test_empty_draft(self, client):
        data = client.get('/draft').get_json()['data']

        assert data['parts'] == []
        assert data['has_unsaved_changes'] is False
        assert data['is_editing_mode'] is False

    def test_upload_reports_failures(self, client):
        response = client.post('/draft/parts/upload', data={
            'files': [
                (BytesIO(binary_stl(cube_triangles(20))), 'cube.stl'),
                (BytesIO(b'solid nothing'), 'sketch.dwg'),
            ]
        }, content_type='multipart/form-data')

        body = response.get_json()
        assert response.status_code == 200
        assert [p['file_name'] for p in body['data']['parts']] == ['cube.stl']
        assert body['failures'][0]['file_name'] == 'sketch.dwg'

    def test_upload_without_files(self, client):
        response = client.post('/draft/parts/upload', data={}, content_type='multipart/form-data')
        assert response.status_code == 400

    def test_manual_part_without_customer(self, client):
        response = client.post('/draft/parts/manual', json={
            'file_name': 'gear', 'volume': '5', 'technology': 'FDM', 'material': 'PLA'
        })
        assert response.status_code == 400

    def test_part_update_and_totals(self, client, customer_id):
        client.put('/draft/customer', json={'customer_id': customer_id})
        data = client.post('/draft/parts/manual', json={
            'file_name': 'gear', 'volume': '10', 'technology': 'FDM', 'material': 'PLA'
        }).get_json()['data']
        part_id = data['parts'][0]['id']

        data = client.patch(f'/draft/parts/{part_id}', json={'quantity': 3, 'comments': 'Matte'}).get_json()['data']

        assert data['parts'][0]['quantity'] == 3
        assert data['parts'][0]['comments'] == 'Matte'
        assert Decimal(data['totals']['total_base_price']) == Decimal('105')
        assert data['has_unsaved_changes'] is True

    def test_unknown_setting(self, client):
        response = client.patch('/draft/settings', json={'colour': 'red'})
        assert response.status_code == 400

    def test_invalid_setting_leaves_draft_unchanged(self, client):
        client.patch('/draft/settings', json={'notes': 'original'})

        response = client.patch('/draft/settings', json={'notes': 'changed', 'shipping_address_type': 'bogus'})

        assert response.status_code == 400
        assert client.get('/draft').get_json()['data']['notes'] == 'original'

    def test_invalid_part_update_keeps_comments(self, client, customer_id):
        client.put('/draft/customer', json={'customer_id': customer_id})
        data = client.post('/draft/parts/manual', json={
            'file_name': 'gear', 'volume': '10', 'technology': 'FDM', 'material': 'PLA', 'comments': 'Old'
        }).get_json()['data']
        part_id = data['parts'][0]['id']

        response = client.patch(f'/draft/parts/{part_id}', json={'quantity': 0, 'comments': 'New'})

        assert response.status_code == 400
        assert client.get('/draft').get_json()['data']['parts'][0]['comments'] == 'Old'

    def test_settings(self, client):
        data = client.patch('/draft/settings', json={'discount': '5', 'notes': 'Rush'}).get_json()['data']
        assert Decimal(data['discount']) == Decimal('5')
        assert data['notes'] == 'Rush'


class TestDocumentFlow:
    """Test the quotation -> invoice -> order flow over HTTP."""

    def test_saved_quotation(self, client, quotation_id):
        data = client.get(f'/quotations/{quotation_id}').get_json()['data']

        assert data['status'] == 'Draft'
        assert Decimal(data['final_price']) == Decimal('82.6')
        assert data['tax_mode'] == 'INTRASTATE'

    def test_full_flow(self, client, quotation_id):
        response = client.post(f'/quotations/{quotation_id}/promote')
        assert response.status_code == 201
        result = response.get_json()['data']
        invoice_id, order_id = result['invoice_id'], result['order_id']

        assert client.get(f'/quotations/{quotation_id}').status_code == 404

        response = client.post(f'/invoices/{invoice_id}/payments', json={'amount': '82.60', 'payment_method': 'UPI'})
        assert response.status_code == 201
        invoice = response.get_json()['data']
        assert invoice['status'] == 'Paid'
        assert Decimal(invoice['remaining_amount']) == 0

        assert client.put(f'/orders/{order_id}/status', json={'status': 'Produced'}).status_code == 200
        assert client.put(f'/orders/{order_id}/status', json={'status': 'Dispatched'}).status_code == 200

        response = client.delete(f'/invoices/{invoice_id}')
        assert response.get_json()['removed_orders'] == [order_id]
        assert client.get('/orders').get_json()['data'] == []

    def test_invalid_order_transition_is_conflict(self, client, quotation_id):
        order_id = client.post(f'/quotations/{quotation_id}/promote').get_json()['data']['order_id']

        response = client.put(f'/orders/{order_id}/status', json={'status': 'Dispatched'})

        assert response.status_code == 409
        assert response.get_json()['current'] == 'New'

    def test_overpayment(self, client, quotation_id):
        invoice_id = client.post(f'/quotations/{quotation_id}/promote').get_json()['data']['invoice_id']

        response = client.post(f'/invoices/{invoice_id}/payments', json={'amount': '1000'})
        assert response.status_code == 400

    def test_quotation_status_moves_freely(self, client, quotation_id):
        client.put(f'/quotations/{quotation_id}/status', json={'status': 'Rejected'})
        response = client.put(f'/quotations/{quotation_id}/status', json={'status': 'Sent'})

        assert response.get_json()['data']['status'] == 'Sent'

    def test_pdf_downloads(self, client, quotation_id):
        response = client.get(f'/quotations/{quotation_id}/pdf')

        assert response.status_code == 200
        assert response.mimetype == 'application/pdf'
        assert response.data.startswith(b'%PDF')

    def test_edit_round_trip(self, client, quotation_id):
        data = client.post(f'/draft/edit/{quotation_id}').get_json()['data']
        assert data['is_editing_mode'] is True

        saved = client.post('/draft/save').get_json()['data']
        assert saved['id'] == quotation_id


class TestCatalogApi:
    """Test catalog endpoints."""

    def test_material_id_preview(self, client):
        data = client.get('/catalog/material-id?name=PLA%2B%20(Matte)').get_json()['data']
        assert data == {'material_id': 'PLA_MATTE'}

    def test_add_material(self, client):
        response = client.post('/catalog/technologies/SLA/materials', json={'name': 'Tough Resin', 'cost_per_cc': '9.5'})

        assert response.status_code == 201
        assert response.get_json()['data']['id'] == 'TOUGH_RESIN'

    def test_add_material_to_unknown_technology(self, client):
        response = client.post('/catalog/technologies/SLS/materials', json={'name': 'PA12', 'cost_per_cc': '9'})
        assert response.status_code == 422

    def test_unknown_route(self, client):
        response = client.get('/nowhere')
        assert response.status_code == 404
        assert response.get_json() == {'status': 'error', 'message': 'Not Found'}
