import pytest
from dbcall.options import DatabaseOptions


def test_init_defaults():
    """Test default initialization"""
    options = DatabaseOptions(
        hostname='testhost',
        username='testuser',
        password='testpass',
        database='testdb',
        port=1234,
        timeout=30
    )

    assert options.drivername == 'postgresql'
    assert options.appname is not None
    assert options.odbc_driver is None
    assert options.autocommit is True

    assert options.use_pool is True
    assert options.pool_max_connections == 5
    assert options.pool_max_idle_time == 300
    assert options.pool_wait_timeout == 30

    assert options.connect_retries == 3
    assert options.connect_retry_delay == 1


def test_pooling_options():
    """Test connection pooling options"""
    options = DatabaseOptions(
        drivername='postgresql',
        hostname='testhost',
        username='testuser',
        password='testpass',
        database='testdb',
        port=1234,
        use_pool=False,
        pool_max_connections=10,
        pool_max_idle_time=600,
        pool_wait_timeout=60
    )

    assert options.use_pool is False
    assert options.pool_max_connections == 10
    assert options.pool_max_idle_time == 600
    assert options.pool_wait_timeout == 60


def test_validation():
    """Test validation rules"""
    with pytest.raises(ValueError, match='drivername'):
        DatabaseOptions(
            drivername='invalid',
            hostname='testhost',
            username='testuser',
            password='testpass',
            database='testdb',
            port=1234,
        )

    with pytest.raises(ValueError, match='cannot be None or 0'):
        DatabaseOptions(drivername='postgresql', hostname='testhost')

    with pytest.raises(ValueError, match='connect_retries'):
        DatabaseOptions(drivername='sqlite', database='x.db', connect_retries=0)


def test_sqlite_options():
    """Test SQLite options validation"""
    options = DatabaseOptions(
        drivername='sqlite',
        database='test.db'
    )
    assert options.drivername == 'sqlite'
    assert options.database == 'test.db'

    with pytest.raises(ValueError):
        DatabaseOptions(drivername='sqlite')


def test_oracle_options():
    """Oracle needs a host, a user and a service name"""
    options = DatabaseOptions(drivername='oracle', hostname='h', username='u', database='svc')
    assert options.port == 0

    with pytest.raises(ValueError, match='database'):
        DatabaseOptions(drivername='oracle', hostname='h', username='u')


def test_mssql_requires_odbc_driver():
    with pytest.raises(ValueError, match='odbc_driver'):
        DatabaseOptions(drivername='mssql', hostname='h', username='u', password='p',
                        database='d')


if __name__ == '__main__':
    __import__('pytest').main([__file__])
