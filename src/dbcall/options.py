from dataclasses import dataclass

from dbcall.strategy import get_available_dialects, get_strategy_class
from dbcall.strategy import is_supported_dialect

from libb import ConfigOptions, scriptname

__all__ = ['DatabaseOptions']


@dataclass
class DatabaseOptions(ConfigOptions):
    """Options

    supported driver names: `postgresql`, `oracle`, `mssql`, `sqlite`

    Connection pooling options:
    - use_pool: Whether to use connection pooling (default: True)
    - pool_max_connections: Maximum connections in pool (default: 5)
    - pool_max_idle_time: Maximum seconds a connection can be idle (default: 300)
    - pool_wait_timeout: Maximum seconds to wait for a connection (default: 30)

    Acquisition retry options:
    - connect_retries: Attempts before giving up on a connection (default: 3)
    - connect_retry_delay: Seconds before the first retry (default: 1)

    autocommit commits each successful update or invocation and rolls back
    a failed one.
    """
    drivername: str = 'postgresql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None
    odbc_driver: str = None
    # Connection pooling parameters
    use_pool: bool = True
    pool_max_connections: int = 5
    pool_max_idle_time: int = 300
    pool_wait_timeout: int = 30
    # Acquisition retry
    connect_retries: int = 3
    connect_retry_delay: float = 1
    autocommit: bool = True

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            available = get_available_dialects()
            raise ValueError(f'drivername must be one of: {available}')
        self.appname = self.appname or scriptname() or 'python_console'
        if self.connect_retries < 1:
            raise ValueError('connect_retries must be at least 1')
        strategy_cls = get_strategy_class(self.drivername)
        strategy_cls.validate_options(self)
