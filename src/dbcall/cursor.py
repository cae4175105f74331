"""
Statement wrapper, result materialization and resource release.

A DB-API cursor plays the role of both prepared statement and result set;
`Statement` wraps one for the lifetime of a single call, logging SQL and
timing for every execution.
"""
import logging
import time
from collections.abc import Sequence
from functools import wraps
from typing import Any

from dbcall.exceptions import ResourceReleaseError
from dbcall.types import TabularResult, columns_from_cursor_description

logger = logging.getLogger(__name__)


def dumpsql(func):
    """Decorator for logging SQL statements, arguments and timing."""
    @wraps(func)
    def wrapper(self, operation: str, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{operation}\nargs: {args}')
        try:
            return func(self, operation, *args, **kwargs)
        except Exception:
            logger.error(f'Error with statement:\nSQL:\n{operation}\nargs: {args}')
            raise
        finally:
            elapsed = time.time() - start
            self.elapsed += elapsed
            logger.debug(f'Statement time: {elapsed:.4f}s')
    return wrapper


class Statement:
    """A prepared statement bound to one connection for one call.
    """

    def __init__(self, cursor: Any) -> None:
        self.dbapi_cursor = cursor
        self.elapsed = 0.0

    def __getattr__(self, name: str) -> Any:
        """Delegate members to underlying cursor."""
        return getattr(self.dbapi_cursor, name)

    @property
    def description(self) -> Sequence | None:
        return self.dbapi_cursor.description

    @property
    def rowcount(self) -> int:
        return self.dbapi_cursor.rowcount

    @dumpsql
    def execute(self, operation: str, args: Sequence = ()) -> None:
        """Execute with positional arguments; no arguments means no binding."""
        if args:
            self.dbapi_cursor.execute(operation, list(args))
        else:
            self.dbapi_cursor.execute(operation)

    def fetchone(self) -> Any:
        return self.dbapi_cursor.fetchone()

    def fetchall(self) -> list:
        return self.dbapi_cursor.fetchall()

    def close(self) -> None:
        self.dbapi_cursor.close()


def _record_values(row: Any) -> tuple:
    """Row values in column order for tuple, dict or sqlite3.Row rows."""
    if isinstance(row, dict):
        return tuple(row.values())
    return tuple(row)


def materialize(cursor: Any) -> TabularResult:
    """Read every remaining row of a cursor into a TabularResult.

    Column metadata comes from the cursor description, so an empty result
    still carries its columns.
    """
    columns = columns_from_cursor_description(cursor.description)
    if not columns:
        return TabularResult()
    records = [_record_values(row) for row in cursor.fetchall()]
    result = TabularResult.from_records(columns, records)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(f'Materialized {len(result)} rows with columns:')
        for col in columns:
            logger.debug(f"Name: '{col.name}'; Type: '{col.type_code}'")
    return result


def close_quietly(resource: Any, what: str) -> ResourceReleaseError | None:
    """Close one resource; failures are logged and returned, never raised."""
    if resource is None:
        return None
    try:
        resource.close()
    except Exception as exc:
        err = ResourceReleaseError(f'Error closing {what}: {exc}')
        err.__cause__ = exc
        logger.error(str(err), exc_info=exc)
        return err
    return None


def close_resources(result: Any = None, statement: Any = None,
                    connection: Any = None, release: Any = None) -> list[ResourceReleaseError]:
    """Release call resources innermost first.

    `release` returns the connection to its source; it is only given for
    connections the caller acquired and must give back.
    """
    errors = [
        close_quietly(result, 'result set'),
        close_quietly(statement, 'statement'),
        ]
    if connection is not None and release is not None:
        try:
            release(connection)
        except Exception as exc:
            err = ResourceReleaseError(f'Error closing connection: {exc}')
            err.__cause__ = exc
            logger.error(str(err), exc_info=exc)
            errors.append(err)
    return [e for e in errors if e is not None]


def rollback_quietly(connection: Any) -> None:
    """Roll back after a failed call; a failing rollback is only logged."""
    try:
        connection.rollback()
    except Exception as exc:
        logger.warning(f'Rollback failed: {exc}')
