"""
Integration tests for the draft workspace and saving quotations.
"""
from datetime import timedelta
from decimal import Decimal

import pytest

from conftest import NOW, ascii_stl, binary_stl, cube_triangles
from fabquote.books import Books, DRAFT_KEY
from fabquote.exceptions import NotFoundError, PersistenceError, ValidationError
from fabquote.models import QuotationStatus, TaxMode
from fabquote.services import draft_service
from fabquote.services.bulk_edit_service import SetMaterial, SetQuantity
from fabquote.services.quotation_service import save_quotation


class TestDraftLifecycle:
    """Test autosave and expiry of the draft."""

    def test_every_change_is_autosaved(self, books, store, local_customer):
        """A fresh Books over the same store sees the draft."""
        draft_service.select_customer(books, local_customer.id, NOW)
        draft_service.set_notes(books, 'Deliver to gate 2', NOW)

        restored = draft_service.load_draft(Books(store), NOW + timedelta(hours=1))

        assert restored.selected_customer_id == local_customer.id
        assert restored.notes == 'Deliver to gate 2'

    def test_draft_expires_after_24_hours(self, books, store, local_customer):
        """An untouched draft is discarded on the next load."""
        draft_service.select_customer(books, local_customer.id, NOW)

        draft = draft_service.load_draft(books, NOW + timedelta(hours=24, minutes=1))

        assert draft.has_content is False
        assert store.get(DRAFT_KEY) is None

    def test_draft_within_window_is_kept(self, books, local_customer):
        draft_service.select_customer(books, local_customer.id, NOW)

        assert draft_service.has_saved_draft(books, NOW + timedelta(hours=23)) is True
        assert draft_service.load_draft(books, NOW + timedelta(hours=23)).selected_customer_id == local_customer.id

    def test_clear_draft(self, books, store, local_customer):
        draft_service.select_customer(books, local_customer.id, NOW)
        draft_service.clear_draft(books, NOW)

        assert store.get(DRAFT_KEY) is None
        assert draft_service.has_saved_draft(books, NOW) is False

    def test_failed_autosave_keeps_draft_in_memory(self, books, store, local_customer):
        store.failing_writes.add(DRAFT_KEY)

        with pytest.raises(PersistenceError):
            draft_service.select_customer(books, local_customer.id, NOW)

        assert draft_service.load_draft(books, NOW).selected_customer_id == local_customer.id

    def test_failed_clear_empties_the_session_draft(self, books, store, local_customer):
        """The old draft must not come back after its removal failed."""
        draft_service.select_customer(books, local_customer.id, NOW)
        store.failing_removes.add(DRAFT_KEY)

        with pytest.raises(PersistenceError):
            draft_service.clear_draft(books, NOW)

        assert draft_service.load_draft(books, NOW).has_content is False
        assert store.get(DRAFT_KEY) is not None

    def test_expired_draft_that_cannot_be_removed(self, books, store, local_customer):
        draft_service.select_customer(books, local_customer.id, NOW)
        store.failing_removes.add(DRAFT_KEY)

        draft = draft_service.load_draft(books, NOW + timedelta(hours=25))

        assert draft.has_content is False

    def test_service_charges_alone_are_content(self, books):
        draft = draft_service.set_service_charges(books, [{'description': 'Painting', 'amount': '50'}], NOW)

        assert draft_service.has_unsaved_changes(draft) is True
        assert draft_service.has_saved_draft(books, NOW) is True

    def test_reload_reads_draft_written_elsewhere(self, books, store):
        """Another Books over the same store replaces the draft; reload picks it up."""
        draft_service.set_notes(books, 'first', NOW)
        other = Books(store)
        draft_service.set_notes(other, 'second', NOW)

        assert draft_service.load_draft(books, NOW).notes == 'first'
        books.reload()
        assert draft_service.load_draft(books, NOW).notes == 'second'


class TestParts:
    """Test adding, editing and removing draft parts."""

    def test_upload_skips_files_that_fail(self, books):
        """Unsupported files are reported, the rest are added."""
        draft, failures = draft_service.add_uploaded_parts(books, [
            ('cube.stl', binary_stl(cube_triangles(20))),
            ('bracket.step', b'ISO-10303-21;'),
            ('small.stl', ascii_stl(cube_triangles(10))),
        ], NOW)

        assert [(p.serial_number, p.file_name, p.volume) for p in draft.parts] == [
            (1, 'cube.stl', Decimal('8')),
            (2, 'small.stl', Decimal('1')),
        ]
        assert [f['file_name'] for f in failures] == ['bracket.step']
        assert all(p.pricing.is_zero for p in draft.parts)

    def test_manual_part_requires_customer(self, books):
        with pytest.raises(ValidationError):
            draft_service.add_manual_part(books, 'gear', '12', 'FDM', 'PLA', now=NOW)

    def test_manual_part_is_priced(self, books, local_customer):
        draft_service.select_customer(books, local_customer.id, NOW)
        draft = draft_service.add_manual_part(books, 'gear', '10.5', 'FDM', 'PLA', quantity=1, now=NOW)

        [part] = draft.parts
        assert part.id.startswith('manual_part_')
        assert part.pricing.unit_price == Decimal('36.75')

    @pytest.mark.parametrize('volume', ['0', '-3', 'big'])
    def test_manual_part_volume_must_be_positive(self, books, local_customer, volume):
        draft_service.select_customer(books, local_customer.id, NOW)
        with pytest.raises(ValidationError):
            draft_service.add_manual_part(books, 'gear', volume, 'FDM', 'PLA', now=NOW)

    def test_delete_part_renumbers(self, books, local_customer):
        draft_service.select_customer(books, local_customer.id, NOW)
        for name in ('a', 'b', 'c'):
            draft = draft_service.add_manual_part(books, name, '5', 'FDM', 'PLA', now=NOW)

        draft = draft_service.delete_part(books, draft.parts[1].id, NOW)

        assert [(p.serial_number, p.file_name) for p in draft.parts] == [(1, 'a'), (2, 'c')]

    def test_delete_unknown_part(self, books):
        with pytest.raises(NotFoundError):
            draft_service.delete_part(books, 'part_missing', NOW)

    def test_bulk_material_then_quantity(self, books, local_customer):
        draft_service.select_customer(books, local_customer.id, NOW)
        draft, _ = draft_service.add_uploaded_parts(books, [
            ('a.stl', binary_stl(cube_triangles(20))),
            ('b.stl', binary_stl(cube_triangles(10))),
        ], NOW)
        ids = [p.id for p in draft.parts]

        draft_service.update_parts(books, ids, SetMaterial('ABS', 'FDM'), NOW)
        draft = draft_service.update_part(books, ids[1], SetQuantity(5), NOW)

        assert [p.pricing.line_total for p in draft.parts] == [Decimal('32.00'), Decimal('20.00')]

    def test_comments_and_update_in_one_change(self, books, store, local_customer):
        draft_service.select_customer(books, local_customer.id, NOW)
        part = draft_service.add_manual_part(books, 'gear', '10', 'FDM', 'PLA', now=NOW).parts[0]

        draft = draft_service.update_part(books, part.id, SetQuantity(3), NOW, comments='Matte')

        assert (draft.parts[0].quantity, draft.parts[0].comments) == (3, 'Matte')
        assert Books(store).draft.load().parts[0].comments == 'Matte'

    def test_rejected_update_keeps_comments(self, books, store, local_customer):
        """Comments sent with an invalid update are not applied either."""
        draft_service.select_customer(books, local_customer.id, NOW)
        part = draft_service.add_manual_part(books, 'gear', '10', 'FDM', 'PLA', comments='Old', now=NOW).parts[0]

        with pytest.raises(ValidationError):
            draft_service.update_part(books, part.id, SetMaterial('UNOBTAINIUM', 'FDM'), NOW, comments='New')

        assert draft_service.load_draft(books, NOW).parts[0].comments == 'Old'
        assert Books(store).draft.load().parts[0].comments == 'Old'

    def test_changing_customer_switches_tax_mode(self, books, local_customer, outstation_customer):
        draft_service.select_customer(books, local_customer.id, NOW)
        draft_service.add_manual_part(books, 'gear', '10', 'FDM', 'PLA', now=NOW)
        draft_service.select_customer(books, outstation_customer.id, NOW)

        quotation = save_quotation(books, NOW)

        assert quotation.tax_mode == TaxMode.SINGLE
        assert quotation.totals.total_tax == Decimal('6.3')

    def test_clearing_customer_zeroes_part_tax(self, books, local_customer):
        draft_service.select_customer(books, local_customer.id, NOW)
        draft_service.add_manual_part(books, 'gear', '10', 'FDM', 'PLA', now=NOW)

        draft = draft_service.select_customer(books, None, NOW)

        assert draft.parts[0].pricing.tax_amount == 0


class TestDocumentFields:
    """Test discount, charges and other draft fields."""

    @pytest.mark.parametrize('discount', ['-5', '150', 'half'])
    def test_invalid_discount(self, books, discount):
        with pytest.raises(ValidationError):
            draft_service.set_discount(books, discount, NOW)

    def test_service_charges_are_replaced(self, books):
        draft_service.set_service_charges(books, [{'description': 'Sanding', 'amount': '150'}], NOW)
        draft = draft_service.set_service_charges(books, [{'description': 'Painting', 'amount': '200'}], NOW)

        assert [c.description for c in draft.service_charges] == ['Painting']
        assert draft.service_charges[0].id.startswith('charge_')

    def test_service_charge_needs_description(self, books):
        with pytest.raises(ValidationError):
            draft_service.set_service_charges(books, [{'description': ' ', 'amount': '10'}], NOW)

    def test_invalid_shipping_choice(self, books):
        with pytest.raises(ValidationError):
            draft_service.set_shipping_address_type(books, 'warehouse', NOW)

    def test_settings_applied_together(self, books, store):
        draft_service.update_settings(books, {'discount': '5', 'notes': 'Rush', 'lead_time': '2 days'}, NOW)

        stored = Books(store).draft.load()
        assert (stored.discount, stored.notes, stored.lead_time) == (Decimal('5'), 'Rush', '2 days')

    def test_one_invalid_setting_rejects_all(self, books, store):
        draft_service.set_notes(books, 'original', NOW)

        with pytest.raises(ValidationError):
            draft_service.update_settings(books, {'notes': 'changed', 'shipping_address_type': 'bogus'}, NOW)

        assert draft_service.load_draft(books, NOW).notes == 'original'
        assert Books(store).draft.load().notes == 'original'

    def test_unknown_setting(self, books):
        with pytest.raises(ValidationError):
            draft_service.update_settings(books, {'colour': 'red'}, NOW)


class TestSaveQuotation:
    """Test materializing the draft as a quotation."""

    def test_saved_quotation_totals(self, saved_quotation):
        assert saved_quotation.quotation_number == 'QT2603100001'
        assert saved_quotation.status == QuotationStatus.DRAFT
        assert saved_quotation.totals.total_base_price == Decimal('70.00')
        assert saved_quotation.totals.total_tax == Decimal('12.6000')
        assert saved_quotation.final_price == Decimal('82.6000')
        assert saved_quotation.tax_mode == TaxMode.DUAL
        assert saved_quotation.valid_until == NOW + timedelta(days=30)

    def test_defaults_for_terms_and_lead_time(self, books, saved_quotation):
        assert saved_quotation.payment_terms == 'Net 30'
        assert saved_quotation.lead_time == books.default_lead_time

    def test_save_clears_the_draft(self, books, store, saved_quotation):
        assert store.get(DRAFT_KEY) is None
        assert draft_service.load_draft(books, NOW).has_content is False

    def test_uncleared_draft_is_not_saved_twice(self, books, store, local_customer):
        """The quotation is stored even when the draft cannot be removed, and a retry has nothing to save."""
        draft_service.select_customer(books, local_customer.id, NOW)
        draft_service.add_manual_part(books, 'bracket', '10', 'FDM', 'PLA', now=NOW)
        store.failing_removes.add(DRAFT_KEY)

        quotation = save_quotation(books, NOW)

        assert books.quotations.require(quotation.id).quotation_number == 'QT2603100001'
        with pytest.raises(ValidationError):
            save_quotation(books, NOW)
        assert len(books.quotations) == 1

    def test_save_requires_customer(self, books):
        draft_service.add_uploaded_parts(books, [('a.stl', binary_stl(cube_triangles(10)))], NOW)
        with pytest.raises(ValidationError):
            save_quotation(books, NOW)

    def test_save_requires_priced_parts(self, books, local_customer):
        """Uploaded parts without material have no price."""
        draft_service.select_customer(books, local_customer.id, NOW)
        draft_service.add_uploaded_parts(books, [('a.stl', binary_stl(cube_triangles(10)))], NOW)

        with pytest.raises(ValidationError):
            save_quotation(books, NOW)

        # Draft is kept for the operator to finish
        assert draft_service.load_draft(books, NOW).has_content is True

    def test_discount_applies_to_parts_and_charges(self, books, local_customer):
        draft_service.select_customer(books, local_customer.id, NOW)
        draft_service.add_manual_part(books, 'plate', '100', 'FDM', 'ABS', now=NOW)
        draft_service.set_service_charges(books, [{'description': 'Painting', 'amount': '600'}], NOW)
        draft_service.set_discount(books, '10', NOW)

        quotation = save_quotation(books, NOW)

        assert quotation.totals.total_base_price == Decimal('1000.00')
        assert quotation.totals.discount_amount == Decimal('100')
        assert quotation.totals.total_tax == Decimal('162')
        assert quotation.final_price == Decimal('1062')

    def test_editing_keeps_identity(self, books, saved_quotation):
        """Re-saving an edited quotation keeps its id and number."""
        draft = draft_service.load_quotation_for_editing(books, saved_quotation.id, NOW)
        assert draft_service.is_editing_mode(draft)

        later = NOW + timedelta(hours=2)
        draft_service.set_discount(books, '50', later)
        updated = save_quotation(books, later)

        assert updated.id == saved_quotation.id
        assert updated.quotation_number == saved_quotation.quotation_number
        assert updated.created_at == saved_quotation.created_at
        assert updated.valid_until == later + timedelta(days=30)
        assert updated.final_price == Decimal('41.3')
        assert len(books.quotations) == 1
        assert str(books.quotations.counter) == 'QT0002'

    def test_editing_a_deleted_quotation(self, books, saved_quotation):
        draft_service.load_quotation_for_editing(books, saved_quotation.id, NOW)
        books.quotations.delete(saved_quotation.id, NOW)

        with pytest.raises(NotFoundError):
            save_quotation(books, NOW)
