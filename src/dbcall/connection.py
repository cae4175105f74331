"""
Connection sources and the named data source registry.

A connection source hands out DB-API connections for the span of one call:

- `PooledSource` borrows connections from a SQLAlchemy engine pool; giving
  one back returns it to the pool.
- `FixedSource` wraps a single caller-owned connection that is never closed.

`DataSourceRegistry` maps names to pooled sources. It is an ordinary object
held by the caller; nothing is registered process-wide.
"""
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from functools import wraps
from typing import TYPE_CHECKING, Any, Self, TypeVar

import sqlalchemy as sa
import sqlalchemy.exc as sa_exc
from dbcall.exceptions import ConnectionError, DbConnectionError
from dbcall.options import DatabaseOptions
from dbcall.strategy import DatabaseStrategy, get_strategy
from dbcall.utils import get_dialect_name, get_raw_connection
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from libb import load_options

if TYPE_CHECKING:
    from dbcall.client import DBClient
    from dbcall.executor import StatementExecutor
    from dbcall.procedure import ProcedureInvoker

logger = logging.getLogger(__name__)

T = TypeVar('T')

ACQUIRE_ERRORS = DbConnectionError + (sa_exc.DBAPIError,)


def create_url_from_options(options: DatabaseOptions) -> sa.URL:
    """Convert DatabaseOptions to SQLAlchemy URL.
    """
    return get_strategy(options.drivername).build_connection_url(options)


def check_connection(func: Callable[..., T] | None = None, *, max_retries: int = 3,
                     retry_delay: float = 1, retry_errors: type | tuple[type, ...] | None = None,
                     retry_backoff: float = 1.5,
                     sleep_func: Callable[[float], None] = time.sleep) -> Callable[..., T]:
    """Connection retry decorator with backoff.

    Decorator that handles connection errors by automatically retrying the operation.
    It has configurable retry parameters and supports exponential backoff.

    Supports both @check_connection and @check_connection() syntax.
    """
    def decorator(f: Callable[..., T]) -> Callable[..., T]:
        @wraps(f)
        def inner(*args: Any, **kwargs: Any) -> T:
            error_types = retry_errors if retry_errors is not None else DbConnectionError

            tries = 0
            delay = retry_delay
            while tries < max_retries:
                try:
                    return f(*args, **kwargs)
                except error_types as err:
                    tries += 1
                    if tries >= max_retries:
                        logger.error(f'Maximum retries ({max_retries}) exceeded: {err}')
                        raise
                    logger.warning(f'Connection error (attempt {tries}/{max_retries}): {err}')
                    sleep_func(delay)
                    delay *= retry_backoff

        return inner

    if func is None:
        return decorator
    return decorator(func)


def get_engine_for_options(options: DatabaseOptions,
                           engine_factory: Callable[..., Engine] = sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Create a SQLAlchemy engine for the given options.

    Every call builds a new engine; callers that want to share one keep it
    in a `DataSourceRegistry`.
    """
    strategy = get_strategy(options.drivername)
    url = create_url_from_options(options)

    engine_kwargs: dict[str, Any] = {'echo': False}
    engine_kwargs.update(strategy.get_engine_kwargs(options))

    if not options.use_pool:
        engine_kwargs['poolclass'] = NullPool
    else:
        engine_kwargs['pool_size'] = options.pool_max_connections
        engine_kwargs['pool_recycle'] = options.pool_max_idle_time
        engine_kwargs['pool_timeout'] = options.pool_wait_timeout
        engine_kwargs['max_overflow'] = 10
        engine_kwargs['pool_pre_ping'] = True
        engine_kwargs['pool_reset_on_return'] = 'rollback'

    engine_kwargs.update(kwargs)

    engine = engine_factory(url, **engine_kwargs)
    logger.debug(f'Created new engine for {options.drivername}')
    return engine


class ConnectionSource(ABC):
    """Where a call gets its connection from and gives it back to.
    """

    dialect: str

    @property
    def strategy(self) -> DatabaseStrategy:
        return get_strategy(self.dialect)

    @abstractmethod
    def acquire(self) -> Any:
        """Hand out a connection for the span of one call."""

    @abstractmethod
    def release(self, connection: Any) -> None:
        """Take back a connection handed out by `acquire`."""

    def dispose(self) -> None:
        """Free anything the source holds; default is nothing."""


class PooledSource(ConnectionSource):
    """Connections borrowed from a SQLAlchemy engine pool.

    Acquisition retries transient connection errors with backoff and raises
    `ConnectionError` once the retries are spent.
    """

    def __init__(self, engine: Engine, retries: int = 3, retry_delay: float = 1,
                 sleep_func: Callable[[float], None] = time.sleep) -> None:
        self.engine = engine
        self.dialect = get_dialect_name(engine)
        self.retries = retries
        self.retry_delay = retry_delay
        self.sleep_func = sleep_func

    @classmethod
    def from_options(cls, options: DatabaseOptions, **kwargs: Any) -> Self:
        engine = get_engine_for_options(options, **kwargs)
        return cls(engine, retries=options.connect_retries,
                   retry_delay=options.connect_retry_delay)

    @property
    def is_pooled(self) -> bool:
        return not isinstance(self.engine.pool, NullPool)

    def acquire(self) -> Any:
        """Borrow a connection, configured for the dialect."""
        connect = check_connection(self.engine.raw_connection,
                                   max_retries=self.retries,
                                   retry_delay=self.retry_delay,
                                   sleep_func=self.sleep_func)
        try:
            connection = connect()
        except ACQUIRE_ERRORS as exc:
            raise ConnectionError(f'Could not acquire {self.dialect} connection: {exc}') from exc
        self.strategy.configure_connection(get_raw_connection(connection))
        return connection

    def release(self, connection: Any) -> None:
        """Return the connection to the pool."""
        connection.close()

    def dispose(self) -> None:
        self.engine.dispose()
        logger.debug(f'Disposed {self.dialect} engine')

    def __repr__(self) -> str:
        return f'PooledSource({self.engine.url!r})'


class FixedSource(ConnectionSource):
    """A single caller-owned connection; releasing it does nothing.
    """

    def __init__(self, connection: Any, dialect: str | None = None) -> None:
        self.connection = connection
        self.dialect = dialect or get_dialect_name(connection)
        self.strategy.configure_connection(get_raw_connection(connection))

    def acquire(self) -> Any:
        return self.connection

    def release(self, connection: Any) -> None:
        """Leave the connection open; its owner closes it."""

    def __repr__(self) -> str:
        return f'FixedSource({self.dialect})'


class DataSourceRegistry:
    """Named pooled sources, resolved on demand.

    Example:
        registry = DataSourceRegistry()
        registry.register('reports', {'drivername': 'sqlite', 'database': 'reports.db'})
        rows = registry.executor('reports').query('select * from t')
    """

    def __init__(self) -> None:
        self._sources: dict[str, PooledSource] = {}
        self._options: dict[str, DatabaseOptions] = {}
        self._lock = threading.RLock()

    def register(self, name: str, target: DatabaseOptions | dict[str, Any] | Engine,
                 **kw: Any) -> PooledSource:
        """Register a source under `name` from options or an existing engine.

        Re-registering a name disposes the source it replaces.
        """
        if isinstance(target, Engine):
            source = PooledSource(target)
            options = None
        else:
            options = _load_options(target, **kw)
            source = PooledSource.from_options(options)
        with self._lock:
            previous = self._sources.pop(name, None)
            self._sources[name] = source
            if options is not None:
                self._options[name] = options
            else:
                self._options.pop(name, None)
        if previous is not None:
            previous.dispose()
        logger.debug(f'Registered data source {name!r} ({source.dialect})')
        return source

    def resolve(self, name: str) -> PooledSource:
        """Look up a source by name.

        Raises
            ConnectionError: No source is registered under the name
        """
        with self._lock:
            try:
                return self._sources[name]
            except KeyError:
                raise ConnectionError(f'No data source registered under {name!r}') from None

    def _autocommit(self, name: str) -> bool:
        options = self._options.get(name)
        return True if options is None else options.autocommit

    def executor(self, name: str) -> 'StatementExecutor':
        from dbcall.executor import StatementExecutor
        return StatementExecutor(self.resolve(name), autocommit=self._autocommit(name))

    def invoker(self, name: str) -> 'ProcedureInvoker':
        from dbcall.procedure import ProcedureInvoker
        return ProcedureInvoker(self.resolve(name), autocommit=self._autocommit(name))

    def client(self, name: str) -> 'DBClient':
        from dbcall.client import DBClient
        return DBClient(self.resolve(name), autocommit=self._autocommit(name))

    def names(self) -> list[str]:
        with self._lock:
            return list(self._sources)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._sources

    def dispose(self) -> None:
        """Dispose every registered engine and forget all names."""
        with self._lock:
            sources = list(self._sources.values())
            self._sources.clear()
            self._options.clear()
        for source in sources:
            source.dispose()
        logger.debug('All data sources disposed')

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any) -> None:
        self.dispose()


def _load_options(options: DatabaseOptions | dict[str, Any] | str,
                  config: Any | None = None, **kw: Any) -> DatabaseOptions:
    """Accept options objects, dicts or config paths the way `connect` does."""
    if isinstance(options, DatabaseOptions):
        return options
    options_func = load_options(cls=DatabaseOptions)(lambda o, c: o)
    return options_func(options, config, **kw)
