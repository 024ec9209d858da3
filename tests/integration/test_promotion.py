"""
Integration tests for the quotation -> invoice -> order cascade.
"""
from datetime import date, timedelta
from decimal import Decimal

import pytest

from conftest import NOW
from fabquote.books import Books, INVOICES_KEY, ORDERS_KEY, QUOTATIONS_KEY
from fabquote.exceptions import InvalidTransitionError, NotFoundError, PersistenceError, ValidationError
from fabquote.models import InvoiceStatus, OrderStatus
from fabquote.services import draft_service, invoice_service, order_service, payment_service
from fabquote.services.invoice_service import PromotionSaga, compute_due_date, find_cascade_gaps
from fabquote.services.quotation_service import delete_quotation, save_quotation


class TestComputeDueDate:
    """Test due dates derived from payment terms."""

    @pytest.mark.parametrize('terms, days', [
        ('100% advance', 0),
        ('60% advance and rest upon delivery', 0),
        ('Payment on delivery', 7),
        ('Net 15', 15),
        ('net 45', 45),
        ('Whenever', 30),
        (None, 30),
    ])
    def test_terms(self, terms, days):
        today = date(2026, 3, 10)
        assert compute_due_date(terms, today) == today + timedelta(days=days)


class TestPromotion:
    """Test a complete promotion."""

    def test_promotion_creates_invoice_and_order(self, books, saved_quotation):
        """Quotation is replaced by an invoice and a New order."""
        result = PromotionSaga(books, saved_quotation.id, NOW).run()

        assert result.is_complete
        assert result.completed_steps == list(PromotionSaga.STEPS)
        assert books.quotations.get(saved_quotation.id) is None

        invoice = books.invoices.require(result.invoice_id)
        assert invoice.invoice_number == 'INV2603100001'
        assert invoice.quotation_number == saved_quotation.quotation_number
        assert invoice.final_price == saved_quotation.final_price
        assert invoice.remaining_amount == saved_quotation.final_price
        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.due_date == date(2026, 4, 9)

        order = result.order
        assert order.order_number == 'ORD2603100001'
        assert order.invoice_id == invoice.id
        assert order.status == OrderStatus.NEW

    def test_order_parts_carry_no_prices(self, books, saved_quotation):
        result = PromotionSaga(books, saved_quotation.id, NOW).run()

        [part] = result.order.parts
        assert part['file_name'] == 'bracket.stl'
        assert part['quantity'] == 2
        assert 'pricing' not in part

    def test_promotion_is_consistent(self, books, saved_quotation):
        invoice_service.promote_quotation(books, saved_quotation.id, NOW)
        assert find_cascade_gaps(Books(books.store)).is_consistent

    def test_unknown_quotation(self, books):
        with pytest.raises(NotFoundError):
            PromotionSaga(books, 'quot_missing', NOW).run()

    def test_promoted_quotation_cannot_be_promoted_again(self, books, saved_quotation):
        invoice_service.promote_quotation(books, saved_quotation.id, NOW)
        with pytest.raises(NotFoundError):
            invoice_service.promote_quotation(books, saved_quotation.id, NOW)


class TestPartialPromotion:
    """Test promotions that stop part way."""

    def test_invoice_write_failure_leaves_quotation(self, books, store, saved_quotation):
        """Nothing after persist_invoice runs when the invoice cannot be stored."""
        store.failing_writes.add(INVOICES_KEY)

        with pytest.raises(PersistenceError):
            PromotionSaga(books, saved_quotation.id, NOW).run()

        fresh = Books(store)
        assert fresh.quotations.get(saved_quotation.id) is not None
        assert fresh.invoices.all() == []
        assert fresh.orders.all() == []

    def test_order_failure_keeps_invoice(self, books, store, saved_quotation):
        store.failing_writes.add(ORDERS_KEY)

        result = PromotionSaga(books, saved_quotation.id, NOW).run()

        assert not result.is_complete
        assert result.failed_step == 'create_order'
        assert 'disk full' in result.error
        assert result.to_dict()['order_id'] is None

        report = find_cascade_gaps(Books(store))
        assert report.invoices_without_order == [result.invoice_id]
        assert report.quotations_with_invoice == []

    def test_quotation_delete_failure(self, books, store, saved_quotation):
        store.failing_writes.add(QUOTATIONS_KEY)

        result = PromotionSaga(books, saved_quotation.id, NOW).run()

        assert result.failed_step == 'delete_quotation'
        assert result.completed_steps == ['compute_due_date', 'allocate_invoice_number', 'persist_invoice']

        report = find_cascade_gaps(Books(store))
        assert report.quotations_with_invoice == [saved_quotation.id]
        assert report.invoices_without_order == [result.invoice_id]

    def test_leftover_quotation_is_not_promoted_twice(self, books, store, saved_quotation):
        store.failing_writes.add(QUOTATIONS_KEY)
        PromotionSaga(books, saved_quotation.id, NOW).run()
        store.failing_writes.clear()

        with pytest.raises(ValidationError):
            PromotionSaga(Books(store), saved_quotation.id, NOW).run()

    def test_order_factory_failure_is_recorded(self, books, saved_quotation):
        def failing_factory(books, invoice, now):
            raise PersistenceError('Write of orders failed', key=ORDERS_KEY)

        result = PromotionSaga(books, saved_quotation.id, NOW, order_factory=failing_factory).run()

        assert result.failed_step == 'create_order'
        assert books.invoices.get(result.invoice_id) is not None


class TestDeletion:
    """Test deletion rules across documents."""

    def test_delete_invoice_removes_its_orders(self, books, saved_quotation):
        result = PromotionSaga(books, saved_quotation.id, NOW).run()

        removed = invoice_service.delete_invoice(books, result.invoice_id, NOW)

        assert removed == [result.order.id]
        assert books.invoices.all() == []
        assert books.orders.all() == []

    def test_delete_quotation_leaves_invoices(self, books, local_customer, saved_quotation):
        result = PromotionSaga(books, saved_quotation.id, NOW).run()
        draft_service.select_customer(books, local_customer.id, NOW)
        draft_service.add_manual_part(books, 'cap', '4', 'FDM', 'ABS', now=NOW)
        second = save_quotation(books, NOW)

        delete_quotation(books, second.id, NOW)

        assert books.quotations.all() == []
        assert [i.id for i in books.invoices.all()] == [result.invoice_id]
        assert len(books.orders) == 1

    def test_numbers_are_not_reused(self, books, local_customer, saved_quotation):
        result = PromotionSaga(books, saved_quotation.id, NOW).run()
        invoice_service.delete_invoice(books, result.invoice_id, NOW)

        draft_service.select_customer(books, local_customer.id, NOW)
        draft_service.add_manual_part(books, 'cap', '4', 'FDM', 'ABS', now=NOW)
        second = PromotionSaga(books, save_quotation(books, NOW).id, NOW).run()

        assert second.invoice.invoice_number == 'INV2603100002'
        assert second.order.order_number == 'ORD2603100002'


class TestStatuses:
    """Test invoice and order status rules."""

    def test_order_moves_forward(self, books, saved_quotation):
        order = PromotionSaga(books, saved_quotation.id, NOW).run().order

        order_service.set_order_status(books, order.id, 'Produced', NOW)
        order = order_service.set_order_status(books, order.id, 'Dispatched', NOW)

        assert order.status == OrderStatus.DISPATCHED

    def test_order_cannot_skip_production(self, books, saved_quotation):
        order = PromotionSaga(books, saved_quotation.id, NOW).run().order

        with pytest.raises(InvalidTransitionError) as exc_info:
            order_service.set_order_status(books, order.id, 'Dispatched', NOW)
        assert exc_info.value.status_code == 409

    def test_cancelled_order_is_final(self, books, saved_quotation):
        order = PromotionSaga(books, saved_quotation.id, NOW).run().order
        order_service.set_order_status(books, order.id, 'Cancelled', NOW)

        with pytest.raises(InvalidTransitionError):
            order_service.set_order_status(books, order.id, 'New', NOW)

    def test_invoice_cannot_be_marked_paid_with_balance(self, books, saved_quotation):
        invoice_id = invoice_service.promote_quotation(books, saved_quotation.id, NOW)

        with pytest.raises(InvalidTransitionError):
            invoice_service.set_invoice_status(books, invoice_id, 'Paid', NOW)

    def test_invoice_status_is_validated(self, books, saved_quotation):
        invoice_id = invoice_service.promote_quotation(books, saved_quotation.id, NOW)
        with pytest.raises(ValidationError):
            invoice_service.set_invoice_status(books, invoice_id, 'Lost', NOW)


class TestAlertCounts:
    """Test due-soon and overdue counts."""

    def test_due_tomorrow(self, books, saved_quotation):
        invoice_id = invoice_service.promote_quotation(books, saved_quotation.id, NOW)
        due = books.invoices.require(invoice_id).due_date

        counts = invoice_service.get_invoice_alert_counts(books, today=due - timedelta(days=1))

        assert counts == {'due_tomorrow_count': 1, 'overdue_count': 0, 'total_critical': 1}

    def test_overdue(self, books, saved_quotation):
        invoice_id = invoice_service.promote_quotation(books, saved_quotation.id, NOW)
        due = books.invoices.require(invoice_id).due_date

        counts = invoice_service.get_invoice_alert_counts(books, today=due + timedelta(days=3))

        assert counts['overdue_count'] == 1

    def test_settled_invoices_are_not_counted(self, books, saved_quotation):
        invoice_id = invoice_service.promote_quotation(books, saved_quotation.id, NOW)
        invoice = books.invoices.require(invoice_id)
        payment_service.add_payment(books, invoice_id, invoice.remaining_amount, now=NOW)

        counts = invoice_service.get_invoice_alert_counts(books, today=invoice.due_date + timedelta(days=3))

        assert counts['total_critical'] == 0
        assert books.invoices.require(invoice_id).remaining_amount == Decimal('0')
