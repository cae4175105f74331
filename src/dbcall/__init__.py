"""
Typed parameter binding and stored procedure calls over DB-API drivers,
with support for PostgreSQL, Oracle, SQL Server and SQLite.

All operations can be called either as:
- Module functions: dbcall.query(db, sql, parameters)
- DBClient methods: db.query(sql, parameters)

The module functions are facades over the client methods.
"""
__version__ = '0.1.0'

from collections.abc import Iterable, Sequence

from dbcall.client import DBClient, client, connect
from dbcall.connection import DataSourceRegistry, FixedSource, PooledSource
from dbcall.exceptions import DELETE_ERROR, GENERIC_ERROR, INSERT_ERROR
from dbcall.exceptions import NOTHING_CREATED, NOTHING_DELETED
from dbcall.exceptions import NOTHING_UPDATED, SUCCESS, UPDATE_ERROR
from dbcall.exceptions import BindingError, ConnectionError, DatabaseError
from dbcall.exceptions import DbConnectionError, IntegrityError
from dbcall.exceptions import InvocationError, OperationalError
from dbcall.exceptions import ProgrammingError, ResourceReleaseError
from dbcall.exceptions import StatementError, ValidationError
from dbcall.executor import StatementExecutor
from dbcall.options import DatabaseOptions
from dbcall.params import CallSpec, ParameterList
from dbcall.procedure import ProcedureInvoker
from dbcall.types import Column, Parameter, SqlType, TabularResult, type_name


def execute_update(db: DBClient, sql: str, parameters: Iterable[Parameter | None] | None = None) -> int:
    """Execute an update and return the affected row count or a sentinel.
    """
    return db.execute_update(sql, parameters)


def insert(db: DBClient, sql: str, parameters: Iterable[Parameter | None] | None = None) -> int:
    return db.insert(sql, parameters)


def update(db: DBClient, sql: str, parameters: Iterable[Parameter | None] | None = None) -> int:
    return db.update(sql, parameters)


def delete(db: DBClient, sql: str, parameters: Iterable[Parameter | None] | None = None) -> int:
    return db.delete(sql, parameters)


def query(db: DBClient, sql: str, parameters: Iterable[Parameter | None] | None = None) -> TabularResult:
    """Execute a query and return every row.
    """
    return db.query(sql, parameters)


def query_scalar(db: DBClient, sql: str, parameters: Iterable[Parameter | None] | None = None,
                 expected_type: SqlType | int = SqlType.OTHER) -> Parameter:
    """Execute a query and return its first value as a typed Parameter.
    """
    return db.query_scalar(sql, parameters, expected_type)


def invoke(db: DBClient, name: str, inputs: Iterable[Parameter | None] | None = None,
           output_types: Sequence[SqlType | int] = ()) -> list[Parameter]:
    """Invoke a stored procedure and return its outputs.
    """
    return db.invoke(name, inputs, output_types)


__all__ = [
    'connect',
    'client',
    'DBClient',
    'DatabaseOptions',
    'DataSourceRegistry',
    'PooledSource',
    'FixedSource',
    'StatementExecutor',
    'ProcedureInvoker',
    'execute_update',
    'insert',
    'update',
    'delete',
    'query',
    'query_scalar',
    'invoke',
    'Parameter',
    'ParameterList',
    'CallSpec',
    'SqlType',
    'type_name',
    'Column',
    'TabularResult',
    'SUCCESS',
    'GENERIC_ERROR',
    'INSERT_ERROR',
    'UPDATE_ERROR',
    'DELETE_ERROR',
    'NOTHING_CREATED',
    'NOTHING_UPDATED',
    'NOTHING_DELETED',
    'DatabaseError',
    'ValidationError',
    'BindingError',
    'StatementError',
    'InvocationError',
    'ConnectionError',
    'ResourceReleaseError',
    'DbConnectionError',
    'IntegrityError',
    'ProgrammingError',
    'OperationalError',
]
