"""
Integration tests for the connection-per-call query helpers against SQLite.
"""
import asyncio
import decimal

import pytest
import sqlalchemy.exc
from fixtures.models import Customer
from sqlbridge import ClassifiedError, ConstraintError, DataReadError
from sqlbridge import TypeConversionError, execute_sql, execute_sql_async, get_record
from sqlbridge import get_record_async, get_records, get_records_async, load_table
from sqlbridge import load_table_async, to_ansi, to_parameters
from sqlbridge.connection import ConnectionWrapper
from sqlbridge.query import ROWCOUNT_FAILED

CUSTOMERS = """
SELECT id AS customer_id, name, email, balance, active
FROM customers
WHERE id >= @min_id
ORDER BY id
"""


def test_get_records(sqlite_db):
    customers = get_records(sqlite_db, CUSTOMERS, Customer, {'min_id': 1})
    assert [c.customer_id for c in customers] == [1, 2, 3]
    alice = customers[0]
    assert alice.name == 'Alice'
    assert alice.balance == decimal.Decimal('10.5')
    assert alice.active is True
    assert customers[2].email is None


def test_get_records_with_ansi_parameter(sqlite_db):
    sql = 'SELECT id AS customer_id, name FROM customers WHERE name = @name'
    customers = get_records(sqlite_db, sql, Customer, {'@name': to_ansi('Bob', 10)})
    assert [c.customer_id for c in customers] == [2]


def test_get_records_strict_mapping(sqlite_db):
    with pytest.raises(TypeConversionError) as exc_info:
        get_records(sqlite_db, "SELECT 'abc' AS customer_id", Customer)
    assert exc_info.value.field == 'customer_id'


def test_get_record(sqlite_db):
    customer = get_record(sqlite_db, CUSTOMERS, Customer, {'min_id': 2})
    assert customer.customer_id == 2
    assert get_record(sqlite_db, CUSTOMERS, Customer, {'min_id': 99}) is None


def test_execute_sql_returns_rowcount(sqlite_db):
    assert execute_sql(sqlite_db, 'UPDATE customers SET active = @active', {'active': 0}) == 3
    assert get_record(sqlite_db, CUSTOMERS, Customer, {'min_id': 1}).active is False


def test_execute_sql_binds_null(sqlite_db):
    execute_sql(sqlite_db, 'UPDATE customers SET email = @email WHERE id = @id', {'email': None, 'id': 1})
    assert get_record(sqlite_db, CUSTOMERS, Customer, {'min_id': 1}).email is None


def test_unreferenced_parameters_are_ignored(sqlite_db):
    assert execute_sql(sqlite_db, 'UPDATE customers SET active = 0', {'unused': 1}) == 3
    customers = get_records(sqlite_db, CUSTOMERS, Customer, {'min_id': 2, 'unused': 1})
    assert [c.customer_id for c in customers] == [2, 3]


def test_execute_sql_with_object_parameters(sqlite_db):
    """Test that an object's parameters bind when the SQL uses only some of them"""
    customer = Customer(customer_id=2, name='Robert', email='bob@example.org')
    sql = 'UPDATE customers SET name = @name WHERE id = @customer_id'
    assert execute_sql(sqlite_db, sql, to_parameters(customer)) == 1
    assert get_record(sqlite_db, CUSTOMERS, Customer, {'min_id': 2}).name == 'Robert'


def test_execute_sql_classifies_vendor_errors(sqlite_db):
    sql = "INSERT INTO customers (id, name, email) VALUES (9, 'Dup', 'alice@example.com')"
    with pytest.raises(ConstraintError) as exc_info:
        execute_sql(sqlite_db, sql)
    assert exc_info.value.category == 'unique-violation'
    assert isinstance(exc_info.value.__cause__, sqlalchemy.exc.IntegrityError)

    with pytest.raises(ClassifiedError):
        execute_sql(sqlite_db, 'DELETE FROM missing_table')


def test_execute_sql_other_failures_return_sentinel(sqlite_db, mocker):
    mocker.patch.object(ConnectionWrapper, 'execute', side_effect=RuntimeError('boom'))
    assert execute_sql(sqlite_db, 'DELETE FROM customers') == ROWCOUNT_FAILED == -1


def test_execute_sql_open_failure_returns_sentinel():
    assert execute_sql(12345, 'SELECT 1') == ROWCOUNT_FAILED


def test_open_failure_is_a_read_error():
    with pytest.raises(DataReadError, match='Unable to open connection'):
        get_records(12345, 'SELECT 1', Customer)


def test_read_failure_is_classified(sqlite_db):
    with pytest.raises(ClassifiedError) as exc_info:
        get_records(sqlite_db, 'SELECT * FROM missing_table', Customer)
    assert 'missing_table' in str(exc_info.value)


def test_load_table(sqlite_db):
    df = load_table(sqlite_db, CUSTOMERS, Customer, {'min_id': 2})
    assert list(df['customer_id']) == [2, 3]
    assert df.attrs['name'] == 'Customer'


def test_load_table_failure_returns_empty_table(sqlite_db):
    df = load_table(sqlite_db, 'SELECT * FROM missing_table', Customer)
    assert len(df) == 0
    assert list(df.columns) == [
        'customer_id', 'name', 'email', 'balance', 'active', 'status', 'token', 'created_at',
    ]


def test_async_helpers(sqlite_db):
    async def run():
        records = await get_records_async(sqlite_db, CUSTOMERS, Customer, {'min_id': 1})
        record = await get_record_async(sqlite_db, CUSTOMERS, Customer, {'min_id': 3})
        updated = await execute_sql_async(sqlite_db, 'UPDATE customers SET active = 1')
        table = await load_table_async(sqlite_db, CUSTOMERS, Customer, {'min_id': 1})
        return records, record, updated, table

    records, record, updated, table = asyncio.run(run())
    assert len(records) == 3
    assert record.name == 'Charlie'
    assert updated == 3
    assert len(table) == 3


if __name__ == '__main__':
    __import__('pytest').main([__file__])
