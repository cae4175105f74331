"""
Oracle-specific strategy implementation.

Procedures are invoked with a bare `call NAME(:1, ...)` statement through
python-oracledb. Each output slot is registered as a cursor variable of the
matching database type and read back with `getvalue()` after execution;
CURSOR outputs come back as driver cursors and are drained and closed
before the connection is released.
"""
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import oracledb
import sqlalchemy as sa

from dbcall.binding import BoundValue, ValueKind
from dbcall.cursor import close_quietly, materialize
from dbcall.sql import CallSyntax, PlaceholderStyle
from dbcall.strategy.base import DatabaseStrategy, register_strategy
from dbcall.types import SqlType, TabularResult

if TYPE_CHECKING:
    from dbcall.options import DatabaseOptions

logger = logging.getLogger(__name__)

ORACLE_TYPES: dict[SqlType, Any] = {
    SqlType.VARCHAR: oracledb.DB_TYPE_VARCHAR,
    SqlType.NVARCHAR: oracledb.DB_TYPE_NVARCHAR,
    SqlType.LONGVARCHAR: oracledb.DB_TYPE_LONG,
    SqlType.LONGNVARCHAR: oracledb.DB_TYPE_NCLOB,
    SqlType.CHAR: oracledb.DB_TYPE_CHAR,
    SqlType.FIXED_CHAR: oracledb.DB_TYPE_CHAR,
    SqlType.NCHAR: oracledb.DB_TYPE_NCHAR,
    SqlType.BIT: oracledb.DB_TYPE_NUMBER,
    SqlType.TINYINT: oracledb.DB_TYPE_NUMBER,
    SqlType.SMALLINT: oracledb.DB_TYPE_NUMBER,
    SqlType.INTEGER: oracledb.DB_TYPE_NUMBER,
    SqlType.BIGINT: oracledb.DB_TYPE_NUMBER,
    SqlType.NUMERIC: oracledb.DB_TYPE_NUMBER,
    SqlType.DECIMAL: oracledb.DB_TYPE_NUMBER,
    SqlType.FLOAT: oracledb.DB_TYPE_NUMBER,
    SqlType.REAL: oracledb.DB_TYPE_NUMBER,
    SqlType.DOUBLE: oracledb.DB_TYPE_NUMBER,
    SqlType.BINARY_FLOAT: oracledb.DB_TYPE_BINARY_FLOAT,
    SqlType.BINARY_DOUBLE: oracledb.DB_TYPE_BINARY_DOUBLE,
    SqlType.DATE: oracledb.DB_TYPE_DATE,
    SqlType.TIMESTAMP: oracledb.DB_TYPE_TIMESTAMP,
    SqlType.TIMESTAMPTZ: oracledb.DB_TYPE_TIMESTAMP_TZ,
    SqlType.TIMESTAMP_WITH_TIMEZONE: oracledb.DB_TYPE_TIMESTAMP_TZ,
    SqlType.TIMESTAMPLTZ: oracledb.DB_TYPE_TIMESTAMP_LTZ,
    SqlType.INTERVALDS: oracledb.DB_TYPE_INTERVAL_DS,
    SqlType.INTERVALYM: oracledb.DB_TYPE_INTERVAL_YM,
    SqlType.CLOB: oracledb.DB_TYPE_CLOB,
    SqlType.NCLOB: oracledb.DB_TYPE_NCLOB,
    SqlType.BLOB: oracledb.DB_TYPE_BLOB,
    SqlType.BFILE: oracledb.DB_TYPE_BFILE,
    SqlType.ROWID: oracledb.DB_TYPE_ROWID,
    SqlType.BOOLEAN: oracledb.DB_TYPE_BOOLEAN,
    SqlType.BINARY: oracledb.DB_TYPE_RAW,
    SqlType.VARBINARY: oracledb.DB_TYPE_RAW,
    SqlType.LONGVARBINARY: oracledb.DB_TYPE_LONG_RAW,
    SqlType.CURSOR: oracledb.DB_TYPE_CURSOR,
    SqlType.REF_CURSOR: oracledb.DB_TYPE_CURSOR,
}


def oracle_type(sql_type: SqlType) -> Any:
    """Driver type for a code; unmapped codes bind as VARCHAR."""
    return ORACLE_TYPES.get(sql_type, oracledb.DB_TYPE_VARCHAR)


@register_strategy('oracle')
class OracleStrategy(DatabaseStrategy):
    """Oracle-specific operations.
    """

    placeholder_style = PlaceholderStyle.NUMERIC
    call_syntax = CallSyntax.BARE
    supports_cursor_outputs = True

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for Oracle."""
        return 'oracle'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for Oracle.

        The database option names the service.
        """
        return sa.URL.create(
            drivername='oracle+oracledb',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port or 1521,
            query={'service_name': options.database}
        )

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for Oracle."""
        connect_args = {}
        if options.timeout:
            connect_args['tcp_connect_timeout'] = float(options.timeout)
        return {'connect_args': connect_args} if connect_args else {}

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for Oracle connections."""
        return ['hostname', 'username', 'database']

    def apply_input_sizes(self, cursor: Any, bound: Sequence[BoundValue]) -> None:
        """Declare NULL and CHAR inputs so the server sees the declared type.
        """
        sizes = []
        for b in bound:
            if b.kind == ValueKind.NULL:
                sizes.append(oracle_type(b.sql_type))
            elif b.kind == ValueKind.CHAR:
                sizes.append(oracledb.DB_TYPE_CHAR)
            else:
                sizes.append(None)
        if any(s is not None for s in sizes):
            cursor.setinputsizes(*sizes)

    def register_output(self, cursor: Any, position: int, sql_type: SqlType) -> Any:
        logger.debug(f'{position}) Registering output as {oracle_type(sql_type)}')
        return cursor.var(oracle_type(sql_type))

    def fetch_outputs(self, cursor: Any, slots: Sequence[Any],
                      output_types: Sequence[SqlType]) -> list[Any]:
        return [slot.getvalue() for slot in slots]

    def materialize_cursor_output(self, connection: Any, value: Any) -> TabularResult:
        """Drain a returned driver cursor and close it.
        """
        if value is None:
            return TabularResult()
        try:
            return materialize(value)
        finally:
            close_quietly(value, 'cursor output')
