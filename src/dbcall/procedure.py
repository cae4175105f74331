"""
Stored procedure invocation.

An invocation walks through the same steps on every dialect:

    build call string -> bind inputs -> register outputs -> execute
    -> collect outputs -> collect result set -> release

The dialect strategy supplies the call syntax and the driver primitives for
each step; the order and the error handling live here.
"""
import logging
from collections.abc import Iterable, Sequence
from typing import Any

from dbcall.binding import bind_parameters, bound_values
from dbcall.connection import ConnectionSource
from dbcall.cursor import Statement, close_resources, rollback_quietly
from dbcall.exceptions import DatabaseError, InvocationError
from dbcall.params import CallSpec
from dbcall.strategy import DatabaseStrategy
from dbcall.types import CURSOR_TYPES, Parameter, SqlType, to_sql_type, type_name

logger = logging.getLogger(__name__)


class ProcedureInvoker:
    """Invokes stored procedures against one connection source.
    """

    def __init__(self, source: ConnectionSource, autocommit: bool = True) -> None:
        self.source = source
        self.autocommit = autocommit

    @property
    def strategy(self) -> DatabaseStrategy:
        return self.source.strategy

    def _collect(self, connection: Any, sql_type: SqlType, value: Any) -> Parameter:
        if sql_type in CURSOR_TYPES and self.strategy.supports_cursor_outputs:
            return Parameter(sql_type, self.strategy.materialize_cursor_output(connection, value))
        return Parameter(sql_type, value)

    def invoke(self, name: str, inputs: Iterable[Parameter | None] | None = None,
               output_types: Sequence[SqlType | int] = ()) -> list[Parameter]:
        """Call procedure `name` and return one Parameter per declared output.

        Inputs occupy the first placeholders of the call and outputs the
        rest, in declaration order. When the dialect returns result sets,
        one is appended as an OBJECT parameter holding a TabularResult.

        Raises
            InvocationError: The call could not be built or the driver failed
            BindingError: An input value does not fit its declared type
            ConnectionError: No connection could be acquired
        """
        strategy = self.strategy
        output_types = [to_sql_type(t) for t in output_types]
        bound = bind_parameters(inputs)
        sql = strategy.call_string(name, bound, output_types)
        logger.debug(f'Call string: {sql}')

        connection = self.source.acquire()
        statement = None
        try:
            statement = Statement(connection.cursor())
            cursor = statement.dbapi_cursor
            strategy.apply_input_sizes(cursor, bound)

            slots = []
            for position, sql_type in enumerate(output_types, len(bound) + 1):
                logger.debug(f"{position}) Going to register output 'Types.{type_name(sql_type)}'")
                slots.append(strategy.register_output(cursor, position, sql_type))

            has_result = strategy.execute_call(statement, sql, bound_values(bound) + slots)

            raw = strategy.fetch_outputs(statement, slots, output_types)
            outputs = [self._collect(connection, t, v) for t, v in zip(output_types, raw)]

            if strategy.returns_result_sets:
                result = strategy.collect_result_set(statement, has_result)
                if result is not None:
                    outputs.append(Parameter(SqlType.OBJECT, result))

            if self.autocommit:
                connection.commit()
            return outputs
        except DatabaseError:
            rollback_quietly(connection)
            raise
        except Exception as exc:
            err = InvocationError(f'Error invoking {name}: {exc}', sql)
            logger.error(str(err))
            rollback_quietly(connection)
            raise err from exc
        finally:
            close_resources(statement=statement, connection=connection,
                            release=self.source.release)

    def call(self, spec: CallSpec) -> list[Parameter]:
        """Invoke the procedure described by a CallSpec."""
        return self.invoke(spec.name, spec.inputs, spec.outputs)
