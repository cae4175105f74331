"""
Type codes and value structures shared by every operation.

This module provides:
- SqlType: the closed enumeration of recognized type codes
- type_name: diagnostic lookup from code to symbolic name
- Parameter: an immutable (type code, name, value) triple
- Column / TabularResult: materialized query and cursor results
"""
import datetime
import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Self

import pandas as pd

from dbcall.exceptions import ValidationError
from libb import attrdict

logger = logging.getLogger(__name__)


class SqlType(IntEnum):
    """Relational type codes.

    Standard codes share their values with the ODBC/JDBC type space; the
    vendor extensions follow the Oracle driver numbering.
    """
    # standard
    BIT = -7
    TINYINT = -6
    SMALLINT = 5
    INTEGER = 4
    BIGINT = -5
    FLOAT = 6
    REAL = 7
    DOUBLE = 8
    NUMERIC = 2
    DECIMAL = 3
    CHAR = 1
    VARCHAR = 12
    LONGVARCHAR = -1
    DATE = 91
    TIME = 92
    TIMESTAMP = 93
    BINARY = -2
    VARBINARY = -3
    LONGVARBINARY = -4
    NULL = 0
    OTHER = 1111
    OBJECT = 2000
    DISTINCT = 2001
    STRUCT = 2002
    ARRAY = 2003
    BLOB = 2004
    CLOB = 2005
    REF = 2006
    DATALINK = 70
    BOOLEAN = 16
    ROWID = -8
    NCHAR = -15
    NVARCHAR = -9
    LONGNVARCHAR = -16
    NCLOB = 2011
    SQLXML = 2009
    REF_CURSOR = 2012
    TIME_WITH_TIMEZONE = 2013
    TIMESTAMP_WITH_TIMEZONE = 2014
    # vendor extensions
    CURSOR = -10
    BFILE = -13
    PLSQL_INDEX_TABLE = -14
    TIMESTAMPTZ = -101
    TIMESTAMPLTZ = -102
    INTERVALYM = -103
    INTERVALDS = -104
    BINARY_FLOAT = 100
    BINARY_DOUBLE = 101
    FIXED_CHAR = 999
    OPAQUE = 2007


SQL_TYPES: dict[int, str] = {
    -7: 'BIT',
    -6: 'TINYINT',
    5: 'SMALLINT',
    4: 'INTEGER',
    -5: 'BIGINT',
    6: 'FLOAT',
    7: 'REAL',
    8: 'DOUBLE',
    2: 'NUMERIC',
    3: 'DECIMAL',
    1: 'CHAR',
    12: 'VARCHAR',
    -1: 'LONGVARCHAR',
    91: 'DATE',
    92: 'TIME',
    93: 'TIMESTAMP',
    -2: 'BINARY',
    -3: 'VARBINARY',
    -4: 'LONGVARBINARY',
    0: 'NULL',
    1111: 'OTHER',
    2000: 'OBJECT',
    2001: 'DISTINCT',
    2002: 'STRUCT',
    2003: 'ARRAY',
    2004: 'BLOB',
    2005: 'CLOB',
    2006: 'REF',
    70: 'DATALINK',
    16: 'BOOLEAN',
    -8: 'ROWID',
    -15: 'NCHAR',
    -9: 'NVARCHAR',
    -16: 'LONGNVARCHAR',
    2011: 'NCLOB',
    2009: 'SQLXML',
    2012: 'REF_CURSOR',
    2013: 'TIME_WITH_TIMEZONE',
    2014: 'TIMESTAMP_WITH_TIMEZONE',
    -10: 'CURSOR',
    -13: 'BFILE',
    -14: 'PLSQL_INDEX_TABLE',
    -101: 'TIMESTAMPTZ',
    -102: 'TIMESTAMPLTZ',
    -103: 'INTERVALYM',
    -104: 'INTERVALDS',
    100: 'BINARY_FLOAT',
    101: 'BINARY_DOUBLE',
    999: 'FIXED_CHAR',
    2007: 'OPAQUE',
}

CURSOR_TYPES = frozenset({SqlType.CURSOR, SqlType.REF_CURSOR})


def type_name(type_code: Any) -> str:
    """Return the symbolic name of a type code, or '' when unrecognized.

    >>> type_name(12)
    'VARCHAR'
    >>> type_name(SqlType.CURSOR)
    'CURSOR'
    >>> type_name(424242)
    ''
    """
    try:
        return SQL_TYPES.get(int(type_code), '')
    except (TypeError, ValueError):
        return ''


def to_sql_type(type_code: Any) -> SqlType:
    """Coerce an int or SqlType into the closed enumeration.
    """
    if isinstance(type_code, SqlType):
        return type_code
    if isinstance(type_code, bool):
        raise ValidationError(f'Not a type code: {type_code!r}')
    try:
        return SqlType(type_code)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f'Unrecognized type code: {type_code!r}') from exc


@dataclass(frozen=True, slots=True)
class Parameter:
    """A tagged value used both as call input and call output.
    """
    type_code: SqlType
    value: Any = None
    name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, 'type_code', to_sql_type(self.type_code))

    @property
    def type_name(self) -> str:
        return type_name(self.type_code)

    @property
    def is_null(self) -> bool:
        return self.value is None

    def __str__(self) -> str:
        if self.name:
            return f"'{self.name}': 'Types.{self.type_name}'->'{self.value}'"
        return f"'Types.{self.type_name}'->'{self.value}'"


class Column:
    """Column metadata from a cursor description."""

    def __init__(self,
                 name: str,
                 type_code: Any,
                 display_size: int | None = None,
                 internal_size: int | None = None,
                 precision: int | None = None,
                 scale: int | None = None,
                 nullable: bool | None = None):
        self.name = name
        self.type_code = type_code
        self.display_size = display_size
        self.internal_size = internal_size
        self.precision = precision
        self.scale = scale
        self.nullable = nullable

    @classmethod
    def from_cursor_description(cls, description_item: Sequence) -> Self:
        """Create a Column from one PEP-249 description 7-tuple."""
        item = tuple(description_item) + (None,) * (7 - len(description_item))
        nullable = item[6]
        return cls(
            name=str(item[0]),
            type_code=item[1],
            display_size=item[2],
            internal_size=item[3],
            precision=item[4],
            scale=item[5],
            nullable=bool(nullable) if nullable is not None else None,
        )

    def __repr__(self) -> str:
        return f'Column(name={self.name!r}, type_code={self.type_code!r})'

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'type_code': str(self.type_code) if self.type_code is not None else None,
            'display_size': self.display_size,
            'internal_size': self.internal_size,
            'precision': self.precision,
            'scale': self.scale,
            'nullable': self.nullable
        }

    @staticmethod
    def get_names(columns: list[Self]) -> list[str]:
        return [col.name for col in columns]


def columns_from_cursor_description(description: Sequence | None) -> list[Column]:
    """Create Column objects from a cursor description."""
    if description is None:
        return []
    return [Column.from_cursor_description(desc) for desc in description]


@dataclass
class TabularResult:
    """Rows and columns materialized from a query or cursor.

    Column names and types are fixed for the lifetime of the result; each
    row is an attrdict keyed by column name.
    """
    columns: list[Column] = field(default_factory=list)
    rows: list[attrdict] = field(default_factory=list)

    @classmethod
    def from_records(cls, columns: list[Column], records: Sequence[Sequence]) -> Self:
        names = Column.get_names(columns)
        return cls(columns, [attrdict(zip(names, record)) for record in records])

    @property
    def column_names(self) -> list[str]:
        return Column.get_names(self.columns)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[attrdict]:
        return iter(self.rows)

    def __getitem__(self, index: int) -> attrdict:
        return self.rows[index]

    def first_value(self) -> Any:
        """First column of the first row, None when there are no rows."""
        if not self.rows or not self.columns:
            return None
        return self.rows[0][self.columns[0].name]

    def to_dataframe(self) -> pd.DataFrame:
        """Load the rows into a DataFrame, keeping columns for empty results.
        """
        df = pd.DataFrame.from_records(
            [tuple(row.values()) for row in self.rows],
            columns=self.column_names)
        df.attrs['column_types'] = {col.name: col.to_dict() for col in self.columns}
        return df


PYTHON_TYPE_CODES: tuple[tuple[type, SqlType], ...] = (
    (bool, SqlType.BOOLEAN),
    (int, SqlType.INTEGER),
    (float, SqlType.DOUBLE),
    (str, SqlType.VARCHAR),
    (datetime.datetime, SqlType.TIMESTAMP),
    (datetime.date, SqlType.DATE),
)


def infer_type_code(value: Any) -> SqlType:
    """Pick the type code a Python value binds as by default.

    Order matters: bool before int, datetime before date.
    """
    for python_type, code in PYTHON_TYPE_CODES:
        if isinstance(value, python_type):
            return code
    return SqlType.OTHER


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
