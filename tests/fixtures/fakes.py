"""
Fake DB-API connections for executor and invoker tests.

The fakes record every execute, every input size declaration and every
close, so tests can assert on what reached the driver and that nothing was
left open. A test scripts the driver's answer through `on_execute`.

Usage:
    def test_query(fake_source):
        def answer(cursor, sql, args):
            cursor.set_result(['id'], [(1,)])
        fake_source.connection.on_execute = answer
"""
import pytest
from dbcall.connection import ConnectionSource


def describe(*names):
    """PEP-249 description tuples for plain column names."""
    return [(name, None, None, None, None, None, None) for name in names]


class FakeVar:
    """Stand-in for an oracledb output variable."""

    def __init__(self, type_):
        self.type = type_
        self.value = None

    def getvalue(self):
        return self.value

    def setvalue(self, pos, value):
        self.value = value


class FakeCursor:

    def __init__(self, connection):
        self.connection = connection
        self.description = None
        self.rowcount = -1
        self.closed = False
        self.input_sizes = None
        self.vars = []
        self._rows = []
        self._sets = []

    def set_result(self, columns, rows, rowcount=-1):
        self.description = describe(*columns)
        self._rows = list(rows)
        self.rowcount = rowcount

    def add_set(self, columns, rows):
        """Queue a further result for nextset; no columns means a row count."""
        self._sets.append((describe(*columns) if columns else None, list(rows)))

    def execute(self, sql, args=None):
        self.connection.executed.append((sql, args))
        if self.connection.fail_on_execute is not None:
            raise self.connection.fail_on_execute
        if self.connection.on_execute is not None:
            self.connection.on_execute(self, sql, args)

    def setinputsizes(self, *sizes):
        self.input_sizes = sizes

    def var(self, type_):
        v = FakeVar(type_)
        self.vars.append(v)
        return v

    def fetchone(self):
        return self._rows.pop(0) if self._rows else None

    def fetchall(self):
        rows, self._rows = self._rows, []
        return rows

    def nextset(self):
        if not self._sets:
            return None
        self.description, self._rows = self._sets.pop(0)
        return True

    def close(self):
        self.closed = True
        if self.connection.fail_on_cursor_close is not None:
            raise self.connection.fail_on_cursor_close


class FakeConnection:

    def __init__(self):
        self.cursors = []
        self.executed = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False
        self.on_execute = None
        self.fail_on_execute = None
        self.fail_on_cursor_close = None

    def cursor(self):
        cursor = FakeCursor(self)
        self.cursors.append(cursor)
        return cursor

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True

    @property
    def open_cursors(self):
        return [c for c in self.cursors if not c.closed]


class FakeSource(ConnectionSource):
    """Hands out one FakeConnection and counts acquire/release pairs."""

    def __init__(self, dialect='sqlite', connection=None, fail_on_acquire=None):
        self.dialect = dialect
        self.connection = connection or FakeConnection()
        self.fail_on_acquire = fail_on_acquire
        self.acquired = 0
        self.released = 0

    def acquire(self):
        if self.fail_on_acquire is not None:
            raise self.fail_on_acquire
        self.acquired += 1
        return self.connection

    def release(self, connection):
        assert connection is self.connection
        self.released += 1

    @property
    def outstanding(self):
        return self.acquired - self.released


@pytest.fixture
def fake_source():
    """FakeSource speaking the sqlite dialect."""
    return FakeSource('sqlite')


@pytest.fixture
def make_fake_source():
    """Factory for FakeSources of any registered dialect."""
    return FakeSource


DRIVER_MODULES = {
    'postgresql': 'psycopg',
    'sqlite': 'sqlite3',
    'oracle': 'oracledb',
    'mssql': 'pyodbc',
    'unknown': 'unknown_db',
}


def _create_simple_mock_connection(connection_type='postgresql'):
    """Bare object whose class looks like the named driver's connection.
    """
    class MockConn:
        pass

    MockConn.__module__ = DRIVER_MODULES[connection_type]
    MockConn.__qualname__ = 'Connection'
    MockConn.__name__ = 'Connection'
    return MockConn()


@pytest.fixture
def create_simple_mock_connection():
    """Factory for connections recognised by driver module name.

    Example usage:
        def test_detection(create_simple_mock_connection):
            conn = create_simple_mock_connection('oracle')
    """
    return _create_simple_mock_connection
