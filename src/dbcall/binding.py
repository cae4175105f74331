"""
Positional parameter binding.

Each Parameter is dispatched on its type code to the narrowest native
binder, producing a BoundValue. The dispatch order is fixed:

    VARCHAR, INTEGER, DATE, BOOLEAN, CHAR, DOUBLE, FLOAT, TIMESTAMP

and any other code falls back to the opaque binder. An absent value always
binds as a NULL tagged with the declared type code.
"""
import datetime
import decimal
import logging
import math
from collections.abc import Callable, Iterable
from enum import Enum, auto
from numbers import Real
from typing import Any, NamedTuple

import dateutil.parser
import numpy as np
import pandas as pd

from dbcall.exceptions import BindingError
from dbcall.types import Parameter, SqlType, type_name

logger = logging.getLogger(__name__)

INT32_MIN = -2**31
INT32_MAX = 2**31 - 1


class ValueKind(Enum):
    """Native value kinds a parameter can bind as."""
    NULL = auto()
    STRING = auto()
    INT32 = auto()
    INT64 = auto()
    DATE = auto()
    BOOLEAN = auto()
    CHAR = auto()
    DOUBLE = auto()
    FLOAT = auto()
    TIMESTAMP = auto()
    OPAQUE = auto()


class BoundValue(NamedTuple):
    """A parameter resolved to its driver position and native kind."""
    position: int
    sql_type: SqlType
    kind: ValueKind
    value: Any


def normalize_value(value: Any) -> Any:
    """Convert NumPy and Pandas scalars to Python natives.

    NaN and NaT are treated as absent values.
    """
    if value is None:
        return None

    if isinstance(value, float) and math.isnan(value):
        return None

    if isinstance(value, type(pd.NaT)):
        return None

    if isinstance(value, np.datetime64):
        if np.isnat(value):
            return None
        return pd.Timestamp(value).to_pydatetime()

    if isinstance(value, np.generic):
        value = value.item()
        if isinstance(value, float) and math.isnan(value):
            return None
        return value

    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()

    return value


def _fail(position: int, sql_type: SqlType, value: Any) -> BindingError:
    return BindingError(
        f'Parameter {position}: {type(value).__name__} value {value!r} '
        f'cannot bind as Types.{type_name(sql_type)}', position)


def _bind_string(position: int, sql_type: SqlType, value: Any) -> BoundValue:
    if not isinstance(value, str):
        raise _fail(position, sql_type, value)
    return BoundValue(position, sql_type, ValueKind.STRING, value)


def _bind_integer(position: int, sql_type: SqlType, value: Any) -> BoundValue:
    if isinstance(value, bool) or not isinstance(value, int):
        raise _fail(position, sql_type, value)
    if INT32_MIN <= value <= INT32_MAX:
        return BoundValue(position, sql_type, ValueKind.INT32, value)
    return BoundValue(position, sql_type, ValueKind.INT64, value)


def _bind_date(position: int, sql_type: SqlType, value: Any) -> BoundValue:
    if isinstance(value, datetime.datetime):
        value = value.date()
    elif isinstance(value, str):
        try:
            value = dateutil.parser.isoparse(value).date()
        except ValueError as exc:
            raise _fail(position, sql_type, value) from exc
    elif not isinstance(value, datetime.date):
        raise _fail(position, sql_type, value)
    return BoundValue(position, sql_type, ValueKind.DATE, value)


def _bind_boolean(position: int, sql_type: SqlType, value: Any) -> BoundValue:
    if not isinstance(value, bool):
        raise _fail(position, sql_type, value)
    return BoundValue(position, sql_type, ValueKind.BOOLEAN, value)


def _bind_char(position: int, sql_type: SqlType, value: Any) -> BoundValue:
    if not isinstance(value, str) or len(value) != 1:
        raise _fail(position, sql_type, value)
    return BoundValue(position, sql_type, ValueKind.CHAR, value)


def _real(position: int, sql_type: SqlType, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, Real | decimal.Decimal):
        raise _fail(position, sql_type, value)
    return float(value)


def _bind_double(position: int, sql_type: SqlType, value: Any) -> BoundValue:
    return BoundValue(position, sql_type, ValueKind.DOUBLE, _real(position, sql_type, value))


def _bind_float(position: int, sql_type: SqlType, value: Any) -> BoundValue:
    single = float(np.float32(_real(position, sql_type, value)))
    return BoundValue(position, sql_type, ValueKind.FLOAT, single)


def _bind_timestamp(position: int, sql_type: SqlType, value: Any) -> BoundValue:
    if isinstance(value, str):
        try:
            value = dateutil.parser.isoparse(value)
        except ValueError as exc:
            raise _fail(position, sql_type, value) from exc
    elif isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
        value = datetime.datetime.combine(value, datetime.time())
    elif not isinstance(value, datetime.datetime):
        raise _fail(position, sql_type, value)
    return BoundValue(position, sql_type, ValueKind.TIMESTAMP, value)


def _bind_opaque(position: int, sql_type: SqlType, value: Any) -> BoundValue:
    return BoundValue(position, sql_type, ValueKind.OPAQUE, value)


Binder = Callable[[int, SqlType, Any], BoundValue]

BINDERS: dict[SqlType, Binder] = {
    SqlType.VARCHAR: _bind_string,
    SqlType.INTEGER: _bind_integer,
    SqlType.DATE: _bind_date,
    SqlType.BOOLEAN: _bind_boolean,
    SqlType.CHAR: _bind_char,
    SqlType.DOUBLE: _bind_double,
    SqlType.FLOAT: _bind_float,
    SqlType.TIMESTAMP: _bind_timestamp,
}


def bind_parameter(position: int, param: Parameter | None) -> BoundValue:
    """Bind one parameter at a 1-based driver position.

    An unfilled slot (None) binds as an untyped NULL.
    """
    if param is None:
        logger.debug(f'{position}) Going to bind unfilled slot as NULL')
        return BoundValue(position, SqlType.NULL, ValueKind.NULL, None)
    if not isinstance(param, Parameter):
        raise BindingError(f'Parameter {position}: expected a Parameter, got {type(param).__name__}', position)

    value = normalize_value(param.value)
    logger.debug(f"{position}) Going to bind 'Types.{param.type_name}'->'{value}'")
    if value is None:
        return BoundValue(position, param.type_code, ValueKind.NULL, None)

    binder = BINDERS.get(param.type_code, _bind_opaque)
    return binder(position, param.type_code, value)


def bind_parameters(params: Iterable[Parameter | None] | None, start: int = 1) -> list[BoundValue]:
    """Bind an ordered parameter list, numbering positions from `start`.
    """
    if params is None:
        logger.debug('Going to bind an empty parameter list.')
        return []
    return [bind_parameter(i, param) for i, param in enumerate(params, start)]


def bound_values(bound: Iterable[BoundValue]) -> list[Any]:
    """Plain positional argument list for a DB-API execute call."""
    return [b.value for b in bound]
