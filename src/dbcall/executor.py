"""
Parameterized statement execution.

`StatementExecutor` binds a parameter list, runs one statement on a
connection from its source, and releases everything it acquired before
returning. Updates report failure through sentinel return codes; queries
raise.
"""
import logging
from collections.abc import Iterable

from dbcall.binding import BoundValue, bind_parameters, bound_values
from dbcall.connection import ConnectionSource
from dbcall.cursor import Statement, close_resources, materialize
from dbcall.cursor import rollback_quietly
from dbcall.exceptions import DELETE_ERROR, GENERIC_ERROR, INSERT_ERROR
from dbcall.exceptions import UPDATE_ERROR, DatabaseError, IntegrityError
from dbcall.exceptions import StatementError
from dbcall.strategy import DatabaseStrategy
from dbcall.types import Parameter, SqlType, TabularResult

logger = logging.getLogger(__name__)

Parameters = Iterable[Parameter | None] | None


class StatementExecutor:
    """Runs parameterized statements against one connection source.
    """

    def __init__(self, source: ConnectionSource, autocommit: bool = True) -> None:
        self.source = source
        self.autocommit = autocommit

    @property
    def strategy(self) -> DatabaseStrategy:
        return self.source.strategy

    def _prepare(self, sql: str, parameters: Parameters) -> tuple[str, list[BoundValue]]:
        bound = bind_parameters(parameters)
        return self.strategy.standardize_sql(sql, bound), bound

    def _execute(self, statement: Statement, sql: str, bound: list[BoundValue]) -> None:
        self.strategy.apply_input_sizes(statement.dbapi_cursor, bound)
        statement.execute(sql, bound_values(bound))

    def execute_update(self, sql: str, parameters: Parameters = None,
                       error_code: int = GENERIC_ERROR) -> int:
        """Execute an INSERT, UPDATE or DELETE and return the affected rows.

        A statement the driver rejects is logged and rolled back, and
        `error_code` is returned in place of a row count. Binding and
        connection failures raise. Statements without a row count, such as
        DDL, report 0.
        """
        sql, bound = self._prepare(sql, parameters)
        connection = self.source.acquire()
        statement = None
        try:
            statement = Statement(connection.cursor())
            self._execute(statement, sql, bound)
            # -1 means the driver has no count for this statement
            rowcount = max(statement.rowcount, 0)
            if self.autocommit:
                connection.commit()
            return rowcount
        except DatabaseError:
            rollback_quietly(connection)
            raise
        except Exception as exc:
            kind = 'Integrity error' if isinstance(exc, IntegrityError) else 'Error'
            err = StatementError(f'{kind} executing update: {exc}', sql)
            err.__cause__ = exc
            logger.error(str(err))
            rollback_quietly(connection)
            return error_code
        finally:
            close_resources(statement=statement, connection=connection,
                            release=self.source.release)

    def insert(self, sql: str, parameters: Parameters = None) -> int:
        return self.execute_update(sql, parameters, error_code=INSERT_ERROR)

    def update(self, sql: str, parameters: Parameters = None) -> int:
        return self.execute_update(sql, parameters, error_code=UPDATE_ERROR)

    def delete(self, sql: str, parameters: Parameters = None) -> int:
        return self.execute_update(sql, parameters, error_code=DELETE_ERROR)

    def query(self, sql: str, parameters: Parameters = None) -> TabularResult:
        """Run a SELECT and materialize every row before release.

        Raises
            StatementError: The driver rejected the statement
        """
        sql, bound = self._prepare(sql, parameters)
        connection = self.source.acquire()
        statement = None
        try:
            statement = Statement(connection.cursor())
            self._execute(statement, sql, bound)
            return materialize(statement)
        except DatabaseError:
            raise
        except Exception as exc:
            err = StatementError(f'Error executing query: {exc}', sql)
            logger.error(str(err))
            if self.autocommit:
                rollback_quietly(connection)
            raise err from exc
        finally:
            close_resources(statement=statement, connection=connection,
                            release=self.source.release)

    def query_scalar(self, sql: str, parameters: Parameters = None,
                     expected_type: SqlType | int = SqlType.OTHER) -> Parameter:
        """First column of the first row, tagged with `expected_type`.

        No rows is not an error: the result is a NULL of the expected type.
        """
        result = self.query(sql, parameters)
        if not result:
            logger.info(f'Scalar query returned no rows:\n{sql}')
            return Parameter(expected_type, None)
        return Parameter(expected_type, result.first_value())
