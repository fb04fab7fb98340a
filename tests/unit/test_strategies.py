"""
Unit tests for dialect strategies.
"""
import pytest
from sqlbridge.strategy import PostgresStrategy, SQLiteStrategy, SQLServerStrategy
from sqlbridge.strategy import get_available_dialects, get_db_strategy, get_strategy
from sqlbridge.strategy import get_strategy_class, is_supported_dialect


def test_registry():
    assert set(get_available_dialects()) == {'mssql', 'postgresql', 'sqlite'}
    assert is_supported_dialect('sqlite')
    assert not is_supported_dialect('oracle')
    assert get_strategy_class('mssql') is SQLServerStrategy
    assert get_strategy('postgresql') is get_strategy('postgresql')
    with pytest.raises(ValueError, match='Unsupported dialect: oracle'):
        get_strategy('oracle')
    with pytest.raises(ValueError):
        get_strategy_class('oracle')


def test_strategy_from_connection(recording_connection, create_simple_mock_connection):
    assert isinstance(get_db_strategy(recording_connection('mssql')), SQLServerStrategy)
    assert isinstance(get_db_strategy(create_simple_mock_connection('postgresql')), PostgresStrategy)
    assert isinstance(get_db_strategy(create_simple_mock_connection('sqlite')), SQLiteStrategy)
    with pytest.raises(AttributeError):
        get_db_strategy(create_simple_mock_connection('unknown'))


@pytest.mark.parametrize(('strategy', 'table', 'expected'), [
    (SQLServerStrategy(), 'dbo.Users', '[dbo].[Users]'),
    (SQLServerStrategy(), '[dbo].[Users]', '[dbo].[Users]'),
    (PostgresStrategy(), 'public.users', '"public"."users"'),
    (SQLiteStrategy(), 'people', '"people"'),
    (SQLiteStrategy(), 'we"ird', '"we""ird"'),
])
def test_quote_table(strategy, table, expected):
    assert strategy.quote_table(table) == expected


def test_diagnostic_queries(recording_connection):
    cn = recording_connection('mssql', results={
        'SELECT @@SERVERNAME': 'SQL01',
        'SELECT DB_NAME()': 'Sales',
        'SELECT SUSER_SNAME()': 'DOMAIN\\alice',
        })
    strategy = SQLServerStrategy()
    assert strategy.server_name(cn) == 'SQL01'
    assert strategy.database_name(cn) == 'Sales'
    assert strategy.principal(cn) == 'DOMAIN\\alice'


def test_diagnostics_fall_back_to_url(recording_connection):
    cn = recording_connection('postgresql', closed=True)
    strategy = PostgresStrategy()
    assert strategy.server_name(cn) == 'dbhost'
    assert strategy.database_name(cn) == 'dbname'
    assert strategy.principal(cn) == 'dbuser'
    assert cn.statements == []


def test_sqlite_has_no_server(recording_connection):
    cn = recording_connection('sqlite')
    assert SQLiteStrategy().server_name(cn) == 'localhost'
    assert SQLiteStrategy().principal(cn) == 'dbuser'


def sqlserver_catalog(triggers, constraints):
    return {
        SQLServerStrategy.enabled_triggers_sql: triggers,
        SQLServerStrategy.enabled_constraints_sql: constraints,
    }


def test_sqlserver_relaxes_constraints_inside_transfer(recording_connection):
    cn = recording_connection('mssql', results=sqlserver_catalog(
        ['trg_audit', 'trg_stamp'], ['CK_Users_Age', 'FK_Users_Team']))
    with SQLServerStrategy().constraint_mode(cn, 'dbo.Users', enforce=False):
        cn.statements.append('<insert>')
    assert cn.statements[2:] == [
        'ALTER TABLE [dbo].[Users] NOCHECK CONSTRAINT [CK_Users_Age], [FK_Users_Team]',
        'DISABLE TRIGGER [trg_audit], [trg_stamp] ON [dbo].[Users]',
        '<insert>',
        'ENABLE TRIGGER [trg_audit], [trg_stamp] ON [dbo].[Users]',
        'ALTER TABLE [dbo].[Users] CHECK CONSTRAINT [CK_Users_Age], [FK_Users_Team]',
    ]
    assert cn.parameters == [('[dbo].[Users]',), ('[dbo].[Users]', '[dbo].[Users]')]


def test_sqlserver_leaves_disabled_objects_alone(recording_connection):
    """Test that only objects enabled before the transfer are toggled"""
    cn = recording_connection('mssql', results=sqlserver_catalog(['trg_audit'], []))
    with SQLServerStrategy().constraint_mode(cn, 'Users', enforce=False):
        pass
    relaxed = cn.statements[2:]
    assert relaxed == [
        'DISABLE TRIGGER [trg_audit] ON [Users]',
        'ENABLE TRIGGER [trg_audit] ON [Users]',
    ]
    assert not any('ALL' in sql for sql in relaxed)


def test_sqlserver_nothing_enabled_issues_no_ddl(recording_connection):
    cn = recording_connection('mssql', results=sqlserver_catalog([], []))
    with SQLServerStrategy().constraint_mode(cn, 'Users', enforce=False):
        pass
    assert cn.statements == [
        SQLServerStrategy.enabled_triggers_sql,
        SQLServerStrategy.enabled_constraints_sql,
    ]


def test_sqlserver_leaves_restore_to_rollback(recording_connection):
    """Test that a failed transfer does not re-enable inside the doomed transaction"""
    cn = recording_connection('mssql', results=sqlserver_catalog(['trg_audit'], ['CK_Users_Age']))
    with pytest.raises(RuntimeError):
        with SQLServerStrategy().constraint_mode(cn, 'Users', enforce=False):
            raise RuntimeError('insert failed')
    assert cn.statements[2:] == [
        'ALTER TABLE [Users] NOCHECK CONSTRAINT [CK_Users_Age]',
        'DISABLE TRIGGER [trg_audit] ON [Users]',
    ]


@pytest.mark.parametrize('strategy', [SQLServerStrategy(), PostgresStrategy(), SQLiteStrategy()])
def test_enforced_constraints_issue_nothing(strategy, recording_connection):
    cn = recording_connection(strategy.dialect)
    with strategy.constraint_mode(cn, 'people', enforce=True):
        pass
    assert cn.statements == []


def test_postgres_disables_enabled_user_triggers(recording_connection):
    cn = recording_connection('postgresql', results={
        PostgresStrategy.enabled_triggers_sql: ['audit_people'],
        })
    with PostgresStrategy().constraint_mode(cn, 'public.people', enforce=False):
        pass
    assert cn.statements == [
        PostgresStrategy.enabled_triggers_sql,
        'ALTER TABLE "public"."people" DISABLE TRIGGER "audit_people"',
        'ALTER TABLE "public"."people" ENABLE TRIGGER "audit_people"',
    ]
    assert cn.parameters == [{'table': '"public"."people"'}]


def test_sqlite_pragma_reset_on_failure(recording_connection):
    cn = recording_connection('sqlite')
    with pytest.raises(RuntimeError):
        with SQLiteStrategy().constraint_mode(cn, 'people', enforce=False):
            raise RuntimeError('insert failed')
    assert cn.statements == [
        'PRAGMA ignore_check_constraints = ON',
        'PRAGMA ignore_check_constraints = OFF',
    ]


def test_transfer_timeouts(recording_connection):
    mssql = recording_connection('mssql')
    SQLServerStrategy().set_transfer_timeout(mssql, 60)
    assert mssql.dbapi_connection.driver_connection.timeout == 60

    pg = recording_connection('postgresql')
    PostgresStrategy().set_transfer_timeout(pg, 60)
    assert pg.statements == ["SET LOCAL statement_timeout = '60s'"]

    lite = recording_connection('sqlite')
    SQLiteStrategy().set_transfer_timeout(lite, 60)
    assert lite.statements == []


def test_engine_kwargs():
    assert SQLServerStrategy().engine_kwargs(None) == {'fast_executemany': True}
    assert SQLiteStrategy().engine_kwargs(None) == {}


if __name__ == '__main__':
    __import__('pytest').main([__file__])
