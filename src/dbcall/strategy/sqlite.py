"""
SQLite-specific strategy implementation.

SQLite has no stored procedures, so only the statement surface applies.
The strategy registers adapters for the types the binder produces and
converters so declared DATE, TIMESTAMP and BOOLEAN columns come back as
Python values.
"""
import datetime
import json
import logging
import sqlite3
from typing import TYPE_CHECKING, Any

import dateutil.parser
import sqlalchemy as sa

from dbcall.sql import PlaceholderStyle
from dbcall.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from dbcall.options import DatabaseOptions

logger = logging.getLogger(__name__)


def adapt_date(val: datetime.date) -> str:
    return val.isoformat()


def adapt_datetime(val: datetime.datetime) -> str:
    return val.isoformat(' ')


def convert_date(val: bytes) -> datetime.date:
    """Convert ISO 8601 date string to date object."""
    return dateutil.parser.isoparse(val.decode()).date()


def convert_datetime(val: bytes) -> datetime.datetime:
    """Convert ISO 8601 datetime string to datetime object."""
    return dateutil.parser.isoparse(val.decode())


def convert_boolean(val: bytes) -> bool:
    return val.strip() not in {b'0', b'', b'false', b'FALSE', b'f'}


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations.
    """

    placeholder_style = PlaceholderStyle.QMARK
    supports_procedures = False

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for SQLite."""
        return sa.URL.create(drivername='sqlite', database=options.database)

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite."""
        connect_args = {
            'detect_types': sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES
        }
        if options.timeout:
            connect_args['timeout'] = options.timeout
        return {'connect_args': connect_args}

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQLite connections."""
        return ['database']

    def configure_connection(self, conn: Any) -> None:
        """Register type adapters and converters for SQLite.

        Adapters turn dates, dicts and lists into storable text; converters
        apply to columns declared (or aliased) as date, datetime, timestamp
        or boolean on connections opened with detect_types.
        """
        # Adapters (Python -> SQLite)
        sqlite3.register_adapter(datetime.date, adapt_date)
        sqlite3.register_adapter(datetime.datetime, adapt_datetime)
        sqlite3.register_adapter(dict, json.dumps)
        sqlite3.register_adapter(list, json.dumps)

        # Converters (SQLite -> Python)
        sqlite3.register_converter('date', convert_date)
        sqlite3.register_converter('datetime', convert_datetime)
        sqlite3.register_converter('timestamp', convert_datetime)
        sqlite3.register_converter('boolean', convert_boolean)
