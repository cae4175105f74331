"""
Database-specific exception classes.
"""
import sqlite3

import oracledb
import psycopg
import sqlalchemy.exc as sa_exc

# Sentinel row counts returned by update operations
SUCCESS = 0
GENERIC_ERROR = -1
INSERT_ERROR = -2
UPDATE_ERROR = -3
DELETE_ERROR = -4
NOTHING_CREATED = -5
NOTHING_UPDATED = -6
NOTHING_DELETED = -7


class DatabaseError(Exception):
    """Base class for all dbcall errors.
    """


class ValidationError(DatabaseError):
    """Error in input validation.
    """


class BindingError(DatabaseError):
    """A parameter value is incompatible with its declared type code.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        super().__init__(message)
        self.position = position


class StatementError(DatabaseError):
    """The driver rejected or failed to execute a statement.
    """

    def __init__(self, message: str, sql: str | None = None) -> None:
        super().__init__(message)
        self.sql = sql


class InvocationError(StatementError):
    """A stored procedure call failed.
    """


class ConnectionError(DatabaseError):
    """Error acquiring a database connection.
    """


class ResourceReleaseError(DatabaseError):
    """Error closing a result set, statement or connection.

    Never raised to callers; logged and swallowed during cleanup.
    """


DbConnectionError = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    oracledb.OperationalError,
    oracledb.InterfaceError,
    sa_exc.OperationalError,
    sa_exc.InterfaceError,
    sa_exc.TimeoutError,
    )

IntegrityError = (
    psycopg.IntegrityError,
    sqlite3.IntegrityError,
    oracledb.IntegrityError,
    )

ProgrammingError = (
    psycopg.ProgrammingError,
    sqlite3.ProgrammingError,
    oracledb.ProgrammingError,
    )

OperationalError = (
    psycopg.OperationalError,
    sqlite3.OperationalError,
    oracledb.OperationalError,
    )
