"""Calls over a caller-owned SQLite connection.
"""
import datetime

import dbcall
from dbcall import DataSourceRegistry, FixedSource, ParameterList, SqlType


def test_connection_stays_open(sqlite_memory_conn):
    db = dbcall.client(sqlite_memory_conn)
    assert db.dialect == 'sqlite'
    assert len(db.select('SELECT * FROM test_table')) == 3
    db.close()

    # the owner can keep using it
    assert sqlite_memory_conn.execute('SELECT count(*) FROM test_table').fetchone()[0] == 3


def test_update_is_committed(sqlite_memory_conn):
    db = dbcall.client(sqlite_memory_conn)
    assert db.update('UPDATE test_table SET value = ? WHERE name = ?', ParameterList.of(11, 'Alice')) == 1
    assert not sqlite_memory_conn.in_transaction


def test_no_commit_without_autocommit(sqlite_memory_conn):
    db = dbcall.client(sqlite_memory_conn, autocommit=False)
    assert db.execute('UPDATE test_table SET value = 0') == 3
    assert sqlite_memory_conn.in_transaction
    sqlite_memory_conn.rollback()
    assert db.select_scalar('SELECT sum(value) FROM test_table') == 60


def test_declared_date_converted(sqlite_memory_conn):
    executor = dbcall.StatementExecutor(FixedSource(sqlite_memory_conn))
    result = executor.query_scalar("SELECT created FROM test_table WHERE name = 'Alice'", None, SqlType.DATE)
    assert result.value == datetime.date(2024, 1, 1)


def test_registry_round_trip(sqlite_file):
    with DataSourceRegistry() as registry:
        registry.register('main', {'drivername': 'sqlite', 'database': sqlite_file})
        assert registry.executor('main').insert(
            'INSERT INTO test_table (name, value) VALUES (?, ?)', ParameterList.of('Henry', 80)) == 1
        result = registry.client('main').select_scalar('SELECT value FROM test_table WHERE name = ?', 'Henry')
        assert result == 80


def test_ddl_reports_success(sqlite_memory_conn):
    db = dbcall.client(sqlite_memory_conn)
    assert db.execute_update('CREATE TABLE extra (a INTEGER)') == dbcall.SUCCESS
    assert db.select('SELECT * FROM extra').column_names == ['a']
