"""
Unit tests for document numbering.
"""
from datetime import datetime

import pytest

from fabquote.services.numbering_service import (
    CounterState, extract_serial, next_customer_id, next_document_number
)


class TestCounterState:
    """Tests for counter parsing and formatting."""

    def test_str_pads_to_width(self):
        assert str(CounterState('QT', 1)) == 'QT0001'
        assert str(CounterState('CUST', 7, width=3)) == 'CUST007'

    def test_parse_round_trips(self):
        counter = CounterState.parse('INV0042', 'INV')
        assert counter.serial == 42
        assert str(counter) == 'INV0042'

    def test_parse_rejects_wrong_prefix(self):
        with pytest.raises(ValueError):
            CounterState.parse('QT0001', 'INV')

    def test_parse_rejects_missing_serial(self):
        with pytest.raises(ValueError):
            CounterState.parse('ORD', 'ORD')

    def test_serial_grows_past_width(self):
        assert str(CounterState('QT', 12345)) == 'QT12345'


class TestNextDocumentNumber:
    """Tests for number issuance."""

    def test_number_has_prefix_date_and_serial(self):
        number, advanced = next_document_number(CounterState('QT', 1), datetime(2026, 3, 10))

        assert number == 'QT2603100001'
        assert advanced == CounterState('QT', 2)

    def test_input_counter_is_not_modified(self):
        counter = CounterState('INV', 5)
        next_document_number(counter, datetime(2026, 3, 10))
        assert counter.serial == 5

    def test_serial_continues_across_days(self):
        first, counter = next_document_number(CounterState('ORD', 1), datetime(2026, 3, 10))
        second, counter = next_document_number(counter, datetime(2026, 3, 11))

        assert first == 'ORD2603100001'
        assert second == 'ORD2603110002'
        assert extract_serial(second, 'ORD') == 2

    def test_customer_ids_have_no_date(self):
        customer_id, counter = next_customer_id(CounterState('CUST', 1, width=3))
        assert customer_id == 'CUST001'
        assert str(counter) == 'CUST002'
