"""
Testing notes:

Prefer supplying a fake client when unit-testing business logic so the
test suite remains fast and deterministic.

**Hand-rolled stub**

    class FakeDB:
        def query(self, sql, parameters=None):
            return TabularResult.from_records([Column('id', int)], [(1,)])

    service_under_test(db=FakeDB())

**Fixed connection** - run the real client over an in-memory database

    db = client(sqlite3.connect(':memory:'))
"""
import logging
from collections.abc import Callable, Sequence
from functools import wraps
from typing import Any

from dbcall.connection import ConnectionSource, FixedSource, PooledSource
from dbcall.connection import _load_options
from dbcall.executor import StatementExecutor
from dbcall.options import DatabaseOptions
from dbcall.params import ParameterList
from dbcall.procedure import ProcedureInvoker
from dbcall.types import Parameter, SqlType, TabularResult

from libb import load_options

logger = logging.getLogger(__name__)


def _bind(component: str, op_name: str) -> Callable[..., Any]:
    """Create a method that forwards to the executor or the invoker.
    """
    op = getattr({'executor': StatementExecutor, 'invoker': ProcedureInvoker}[component], op_name)

    @wraps(op)
    def _method(self, *args, **kwargs):
        return getattr(getattr(self, component), op_name)(*args, **kwargs)

    return _method


class DBClient:
    """Light-weight facade over one connection source.

    Exposes the statement verbs (`execute_update`, `insert`, `update`,
    `delete`, `query`, `query_scalar`) and the procedure verbs (`invoke`,
    `call`) as instance methods, plus `select`/`select_scalar` shortcuts
    that take plain positional values.
    """

    __slots__ = ('source', 'executor', 'invoker', '_owns_source')

    execute_update = _bind('executor', 'execute_update')
    insert = _bind('executor', 'insert')
    update = _bind('executor', 'update')
    delete = _bind('executor', 'delete')
    query = _bind('executor', 'query')
    query_scalar = _bind('executor', 'query_scalar')
    invoke = _bind('invoker', 'invoke')
    call = _bind('invoker', 'call')

    def __init__(self, source: ConnectionSource, autocommit: bool = True,
                 owns_source: bool = False) -> None:
        self.source = source
        self.executor = StatementExecutor(source, autocommit=autocommit)
        self.invoker = ProcedureInvoker(source, autocommit=autocommit)
        self._owns_source = owns_source

    @property
    def dialect(self) -> str:
        return self.source.dialect

    def select(self, sql: str, *args: Any) -> TabularResult:
        """Query with plain values; each value's type code is inferred."""
        return self.executor.query(sql, ParameterList.of(*args))

    def select_scalar(self, sql: str, *args: Any,
                      expected_type: SqlType | int = SqlType.OTHER) -> Any:
        """Value of the first column of the first row, None when no rows."""
        return self.executor.query_scalar(sql, ParameterList.of(*args), expected_type).value

    def execute(self, sql: str, *args: Any) -> int:
        """Update with plain values; returns the row count or a sentinel."""
        return self.executor.execute_update(sql, ParameterList.of(*args))

    def procedure(self, name: str, *args: Any,
                  outputs: Sequence[SqlType | int] = ()) -> list[Parameter]:
        """Invoke with plain input values."""
        return self.invoker.invoke(name, ParameterList.of(*args), outputs)

    def close(self) -> None:
        """Dispose the source when this client created it."""
        if self._owns_source:
            self.source.dispose()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f'DBClient({self.source!r})'


@load_options(cls=DatabaseOptions)
def connect(options: DatabaseOptions | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> DBClient:
    """Build a client over a new pooled source.

    Args:
        options: Can be:
                - DatabaseOptions object
                - String path to configuration
                - Dictionary of options
                - Options specified as keyword arguments
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options

    The client owns its engine; close it (or use it as a context manager)
    to dispose the pool.
    """
    options = _load_options(options, config, **kw)
    source = PooledSource.from_options(options)
    return DBClient(source, autocommit=options.autocommit, owns_source=True)


def client(connection: Any, dialect: str | None = None, autocommit: bool = True) -> DBClient:
    """Wrap a caller-owned DB-API connection; it is never closed here.
    """
    return DBClient(FixedSource(connection, dialect), autocommit=autocommit)


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
