"""
Base strategy interface for vendor-specific call handling.

Defines the abstract base class every vendor strategy inherits from. A
strategy is the dialect capability set of one driver family: its placeholder
style, its stored procedure call syntax, whether it can return cursors as
output parameters or trailing result sets, and the driver primitives used to
register and collect output slots.

The invocation engine in `dbcall.procedure` is written once against this
interface; strategies never duplicate the binding/execute/collect algorithm.
"""
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

from dbcall.binding import BoundValue
from dbcall.cursor import materialize
from dbcall.exceptions import InvocationError
from dbcall.sql import CallSyntax, PlaceholderStyle, build_call
from dbcall.sql import make_placeholders, standardize_placeholders
from dbcall.types import SqlType, TabularResult, type_name

if TYPE_CHECKING:
    from dbcall.options import DatabaseOptions

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('postgresql')
        class PostgresStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for vendor-specific operations.
    """

    placeholder_style: PlaceholderStyle = PlaceholderStyle.QMARK
    call_syntax: CallSyntax = CallSyntax.BARE
    supports_procedures: bool = True
    supports_cursor_outputs: bool = False
    returns_result_sets: bool = False

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier (e.g. 'postgresql')."""

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for this dialect."""

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return dialect-specific SQLAlchemy create_engine kwargs."""
        return {}

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Return list of required option field names for this dialect.

        Returns
            List of field names that must have non-None/non-zero values
        """

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate options for this dialect.

        Raises
            ValueError: If any required field is None or 0
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')

    def configure_connection(self, conn: Any) -> None:
        """Apply driver settings to a freshly acquired DB-API connection."""

    def standardize_sql(self, sql: str, bound: Sequence[BoundValue] = ()) -> str:
        """Convert positional placeholders to this driver's style.

        Each bound value gets its `input_placeholder`, so dialects that type
        NULLs in the statement text do so for plain statements too.
        """
        texts = [self.input_placeholder(b) for b in bound]
        return standardize_placeholders(sql, self.placeholder_style, texts)

    # Binding

    def apply_input_sizes(self, cursor: Any, bound: Sequence[BoundValue]) -> None:
        """Declare native types for bound values where the driver honours it.

        Default is a no-op; PEP-249 drivers may ignore setinputsizes.
        """

    # Stored procedures

    def output_placeholder(self, position: int, sql_type: SqlType) -> str:
        """Placeholder text for an output slot."""
        return make_placeholders(1, self.placeholder_style, start=position)

    def input_placeholder(self, bound: BoundValue) -> str:
        """Placeholder text for an input slot."""
        return make_placeholders(1, self.placeholder_style, start=bound.position)

    def call_string(self, name: str, inputs: Sequence[BoundValue],
                    output_types: Sequence[SqlType]) -> str:
        """Build the call string with one placeholder per input and output.
        """
        if not self.supports_procedures:
            raise InvocationError(f'{self.dialect_name} does not support stored procedures')
        placeholders = [self.input_placeholder(b) for b in inputs]
        offset = len(inputs)
        placeholders += [self.output_placeholder(offset + i, t)
                         for i, t in enumerate(output_types, 1)]
        return build_call(name, placeholders, self.call_syntax)

    def register_output(self, cursor: Any, position: int, sql_type: SqlType) -> Any:
        """Register an output slot and return the argument bound for it.
        """
        raise InvocationError(
            f'{self.dialect_name} driver cannot register output parameter '
            f'{position} (Types.{type_name(sql_type)})')

    def execute_call(self, cursor: Any, sql: str, args: Sequence) -> bool:
        """Execute a call; True when it produced a result set."""
        cursor.execute(sql, args)
        return cursor.description is not None

    def fetch_outputs(self, cursor: Any, slots: Sequence[Any],
                      output_types: Sequence[SqlType]) -> list[Any]:
        """Read back the raw value of every registered output slot."""
        if output_types:
            raise InvocationError(f'{self.dialect_name} driver cannot return output parameters')
        return []

    def materialize_cursor_output(self, connection: Any, value: Any) -> TabularResult:
        """Turn a cursor-typed output value into a TabularResult."""
        raise InvocationError(f'{self.dialect_name} driver does not return cursor outputs')

    def collect_result_set(self, cursor: Any, has_result: bool) -> TabularResult | None:
        """Materialize a result set produced alongside the declared outputs.
        """
        if not has_result:
            return None
        return materialize(cursor)
