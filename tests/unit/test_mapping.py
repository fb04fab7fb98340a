"""
Unit tests for record to object mapping.
"""
import datetime
import decimal
import sqlite3
import uuid

import numpy as np
import pytest
from fixtures.models import Account, Customer, Point, Product, Reading, Status
from sqlbridge import Record, Statement, TypeConversionError, configure
from sqlbridge import map_lenient, map_strict, to_parameters


def test_fields_match_attributes_ignoring_case():
    """Test that field names match attribute names case-insensitively"""
    record = Record.from_pairs(['CUSTOMER_ID', 'Name', 'eMail'], [1, 'Ann', 'ann@example.com'])
    customer = map_strict(record, Customer)
    assert customer == Customer(customer_id=1, name='Ann', email='ann@example.com')


def test_null_fields_leave_defaults():
    """Test that null fields are skipped rather than assigned"""
    record = Record.from_pairs(['sku', 'price', 'quantity'], ['A-1', None, np.nan])
    product = map_strict(record, Product)
    assert product.sku == 'A-1'
    assert product.price == 0.0
    assert product.quantity is None


def test_unmatched_fields_are_ignored():
    """Test that fields without an attribute are skipped"""
    record = Record.from_pairs(['sku', 'warehouse'], ['A-1', 'north'])
    product = map_strict(record, Product)
    assert product.sku == 'A-1'
    assert not hasattr(product, 'warehouse')


def test_display_name_does_not_match():
    """Test that fields match attribute names, not display names"""
    record = Record.from_pairs(['Display Label', 'label'], ['ignored', 'Widget'])
    assert map_strict(record, Product).label == 'Widget'


def test_values_are_coerced_to_attribute_types():
    """Test conversion of common database value shapes"""
    token = uuid.uuid4()
    record = Record.from_pairs(
        ['customer_id', 'balance', 'active', 'status', 'token', 'created_at'],
        [np.int64(5), '12.50', 1, 'A', str(token), '2024-03-01 09:30:00'],
    )
    customer = map_strict(record, Customer)
    assert customer.customer_id == 5
    assert type(customer.customer_id) is int
    assert customer.balance == decimal.Decimal('12.50')
    assert customer.active is True
    assert customer.status is Status.ACTIVE
    assert customer.token == token
    assert customer.created_at == datetime.datetime(2024, 3, 1, 9, 30)


@pytest.mark.parametrize('value', ['ACTIVE', 'A', Status.ACTIVE])
def test_enum_by_name_or_value(value):
    """Test that enums map from member names and member values"""
    customer = map_strict(Record.from_pairs(['status'], [value]), Customer)
    assert customer.status is Status.ACTIVE


def test_strict_fails_whole_call():
    """Test that one unconvertible field fails the strict mapping"""
    record = Record.from_pairs(['name', 'customer_id'], ['Ann', 'abc'])
    with pytest.raises(TypeConversionError) as exc_info:
        map_strict(record, Customer)
    assert exc_info.value.field == 'customer_id'
    assert isinstance(exc_info.value.__cause__, ValueError)


def test_lenient_skips_failed_fields():
    """Test that lenient mapping leaves unconvertible attributes unset"""
    record = Record.from_pairs(['name', 'customer_id', 'email'], ['Ann', 'abc', 'ann@example.com'])
    customer = map_lenient(record, Customer)
    assert customer.customer_id == 0
    assert customer.name == 'Ann'
    assert customer.email == 'ann@example.com'


def test_empty_identifier_fails_conversion():
    """Test that a blank identifier is a conversion failure, never a sentinel"""
    record = Record.from_pairs(['token'], [''])
    with pytest.raises(TypeConversionError):
        map_strict(record, Customer)
    assert map_lenient(record, Customer).token is None


def test_properties_and_read_only_attributes():
    """Test that setters are used and read-only properties are skipped"""
    record = Record.from_pairs(['account_id', 'owner', 'summary'], ['5', 'Bo', 'ignored'])
    account = map_strict(record, Account)
    assert account.account_id == 5
    assert account.owner == 'Bo'
    assert account.summary == '5:Bo'


def test_frozen_dataclass_fields_are_not_written():
    """Test that a frozen target keeps its defaults"""
    assert map_strict(Record.from_pairs(['x', 'y'], [1, 2]), Point) == Point()


def test_annotated_attributes_are_written():
    record = Record.from_pairs(['sensor', 'value'], ['t1', '21.5'])
    reading = map_strict(record, Reading)
    assert reading.sensor == 't1'
    assert reading.value == 21.5


def test_record_length_mismatch():
    """Test that names and values must align"""
    with pytest.raises(ValueError):
        Record.from_pairs(['a', 'b'], [1])


def test_record_keeps_duplicate_names_in_order():
    record = Record.from_pairs(['name', 'name'], ['first', 'second'])
    assert record.names == ['name', 'name']
    assert map_strict(record, Customer).name == 'second'


def test_record_sources():
    raw = sqlite3.connect(':memory:')
    cursor = raw.execute("SELECT 1 AS customer_id, 'Ann' AS name, NULL AS email")
    record = Record.from_cursor(cursor, cursor.fetchone())
    raw.close()
    assert record.names == ['customer_id', 'name', 'email']
    assert [f.is_null for f in record] == [False, False, True]
    assert map_strict(record, Customer) == Customer(customer_id=1, name='Ann')

    assert map_strict(Record.from_mapping({'name': 'Bo'}), Customer).name == 'Bo'


def test_to_parameters():
    """Test mapping an object to parameters keyed by attribute name"""
    product = Product(sku='A-1', price=2.5, quantity=None, label='Widget')
    params = to_parameters(product)
    assert params == {'sku': 'A-1', 'price': 2.5, 'quantity': None, 'label': 'Widget'}

    statement = configure(Statement('INSERT INTO products VALUES (@sku, @price, @quantity, @label)'), params)
    assert sorted(statement.parameters) == ['@label', '@price', '@quantity', '@sku']
    assert statement.parameters['@quantity'].value is None


if __name__ == '__main__':
    __import__('pytest').main([__file__])
