"""Unit tests for connection sources, engine creation and the registry.
"""
import sqlite3

import pytest
import sqlalchemy as sa
from dbcall.client import DBClient
from dbcall.connection import ConnectionSource, DataSourceRegistry, FixedSource
from dbcall.connection import PooledSource
from dbcall.connection import check_connection, create_url_from_options
from dbcall.connection import get_engine_for_options
from dbcall.exceptions import ConnectionError
from dbcall.executor import StatementExecutor
from dbcall.options import DatabaseOptions
from dbcall.procedure import ProcedureInvoker
from sqlalchemy.pool import NullPool


@pytest.fixture
def mock_engine(mocker):
    engine = mocker.Mock(spec=sa.engine.Engine)
    engine.dialect = mocker.Mock()
    engine.dialect.name = 'sqlite'
    engine.raw_connection.return_value = mocker.Mock(driver_connection=mocker.Mock())
    return engine


class TestEngineCreation:

    def test_pooled_engine_kwargs(self, mocker):
        factory = mocker.Mock()
        options = DatabaseOptions(drivername='sqlite', database='x.db', pool_max_connections=7,
                                  pool_max_idle_time=60, pool_wait_timeout=5)
        get_engine_for_options(options, engine_factory=factory)
        url, = factory.call_args.args
        kwargs = factory.call_args.kwargs
        assert url.drivername == 'sqlite'
        assert kwargs['pool_size'] == 7
        assert kwargs['pool_recycle'] == 60
        assert kwargs['pool_timeout'] == 5
        assert kwargs['pool_pre_ping'] is True
        assert 'detect_types' in kwargs['connect_args']

    def test_unpooled_engine_uses_null_pool(self, mocker):
        factory = mocker.Mock()
        options = DatabaseOptions(drivername='sqlite', database='x.db', use_pool=False)
        get_engine_for_options(options, engine_factory=factory)
        assert factory.call_args.kwargs['poolclass'] is NullPool

    def test_no_engine_sharing(self, mocker):
        """Each call builds a new engine; sharing is the registry's job."""
        factory = mocker.Mock(side_effect=lambda *a, **k: object())
        options = DatabaseOptions(drivername='sqlite', database='x.db')
        assert get_engine_for_options(options, engine_factory=factory) is not \
            get_engine_for_options(options, engine_factory=factory)

    def test_url_from_options(self):
        options = DatabaseOptions(drivername='postgresql', hostname='h', username='u',
                                  password='p', database='d', port=5432)
        url = create_url_from_options(options)
        assert url.host == 'h'
        assert url.database == 'd'


class TestCheckConnection:

    def test_retries_then_succeeds(self, mocker):
        sleep = mocker.Mock()
        func = mocker.Mock(side_effect=[sqlite3.OperationalError('busy'), 'ok'])
        assert check_connection(func, max_retries=3, retry_delay=0.5, sleep_func=sleep)() == 'ok'
        sleep.assert_called_once_with(0.5)

    def test_gives_up(self, mocker):
        sleep = mocker.Mock()
        func = mocker.Mock(side_effect=sqlite3.OperationalError('down'))
        with pytest.raises(sqlite3.OperationalError):
            check_connection(func, max_retries=3, retry_delay=1, sleep_func=sleep)()
        assert func.call_count == 3
        assert [c.args[0] for c in sleep.call_args_list] == [1, 1.5]

    def test_other_errors_not_retried(self, mocker):
        func = mocker.Mock(side_effect=KeyError('x'))
        with pytest.raises(KeyError):
            check_connection(func, sleep_func=mocker.Mock())()
        assert func.call_count == 1


def test_source_must_implement_acquire_and_release():
    with pytest.raises(TypeError):
        ConnectionSource()

    class AcquireOnly(ConnectionSource):
        dialect = 'sqlite'

        def acquire(self):
            return None

    with pytest.raises(TypeError):
        AcquireOnly()


class TestPooledSource:

    def test_acquire_and_release(self, mock_engine):
        source = PooledSource(mock_engine)
        assert source.dialect == 'sqlite'
        conn = source.acquire()
        source.release(conn)
        conn.close.assert_called_once()

    def test_acquire_retries_and_raises_connection_error(self, mock_engine, mocker):
        mock_engine.raw_connection.side_effect = sqlite3.OperationalError('unable to open')
        sleep = mocker.Mock()
        source = PooledSource(mock_engine, retries=2, retry_delay=0, sleep_func=sleep)
        with pytest.raises(ConnectionError, match='unable to open'):
            source.acquire()
        assert mock_engine.raw_connection.call_count == 2

    def test_dispose(self, mock_engine):
        PooledSource(mock_engine).dispose()
        mock_engine.dispose.assert_called_once()


class TestFixedSource:

    def test_dialect_from_driver(self):
        conn = sqlite3.connect(':memory:')
        try:
            source = FixedSource(conn)
            assert source.dialect == 'sqlite'
            assert source.acquire() is conn
            source.release(conn)
            conn.execute('select 1')
        finally:
            conn.close()

    def test_explicit_dialect(self, create_simple_mock_connection):
        conn = create_simple_mock_connection('unknown')
        assert FixedSource(conn, dialect='oracle').dialect == 'oracle'

    def test_undetectable_dialect(self, create_simple_mock_connection):
        with pytest.raises(AttributeError):
            FixedSource(create_simple_mock_connection('unknown'))


class TestDataSourceRegistry:

    def test_unknown_name(self):
        with pytest.raises(ConnectionError, match='reports'):
            DataSourceRegistry().resolve('reports')

    def test_register_options(self, tmp_path):
        with DataSourceRegistry() as registry:
            source = registry.register('reports', {'drivername': 'sqlite',
                                                   'database': str(tmp_path / 'r.db')})
            assert registry.resolve('reports') is source
            assert 'reports' in registry
            assert registry.names() == ['reports']
        assert 'reports' not in registry

    def test_register_engine(self, mock_engine):
        registry = DataSourceRegistry()
        source = registry.register('main', mock_engine)
        assert source.engine is mock_engine
        registry.dispose()
        mock_engine.dispose.assert_called_once()

    def test_reregister_disposes_previous(self, mocker):
        first = mocker.Mock(spec=sa.engine.Engine, dialect=mocker.Mock())
        first.dialect.name = 'sqlite'
        second = mocker.Mock(spec=sa.engine.Engine, dialect=mocker.Mock())
        second.dialect.name = 'sqlite'
        registry = DataSourceRegistry()
        registry.register('main', first)
        registry.register('main', second)
        first.dispose.assert_called_once()
        assert registry.resolve('main').engine is second

    def test_factories(self, tmp_path):
        registry = DataSourceRegistry()
        registry.register('r', DatabaseOptions(drivername='sqlite', database=str(tmp_path / 'r.db'),
                                               autocommit=False))
        executor = registry.executor('r')
        assert isinstance(executor, StatementExecutor)
        assert executor.autocommit is False
        assert isinstance(registry.invoker('r'), ProcedureInvoker)
        assert isinstance(registry.client('r'), DBClient)
        assert registry.executor('r').source is registry.resolve('r')
        registry.dispose()
