"""Low-level connection utilities with no internal dependencies.

These utilities work with any connection type (SQLAlchemy engines and
pooled connection proxies, raw DB-API connections) and have no imports from
other dbcall modules, making them safe to import without circular
dependency concerns.
"""
import logging
from typing import Any

logger = logging.getLogger(__name__)

DRIVER_DIALECTS = (
    ('psycopg', 'postgresql'),
    ('sqlite3', 'sqlite'),
    ('oracledb', 'oracle'),
    ('pyodbc', 'mssql'),
)


def get_dialect_name(obj: Any) -> str:
    """Get dialect name for a database connection or engine.
    """
    if hasattr(obj, 'dialect'):
        dialect = obj.dialect
        if isinstance(dialect, str):
            return dialect.lower()
        return str(dialect.name).lower()

    if hasattr(obj, 'engine') and hasattr(obj.engine, 'dialect'):
        return str(obj.engine.dialect.name).lower()

    if hasattr(obj, 'dbapi_connection'):
        return get_dialect_name(obj.dbapi_connection)

    type_name = f'{type(obj).__module__}.{type(obj).__name__}'
    for module, dialect in DRIVER_DIALECTS:
        if module in type_name:
            return dialect

    raise AttributeError(f'Cannot determine dialect for {type(obj)}')


def get_raw_connection(connection: Any) -> Any:
    """Extract the raw DBAPI connection from a pool proxy."""
    raw_conn = connection
    if hasattr(connection, 'driver_connection'):
        raw_conn = connection.driver_connection
    return raw_conn
