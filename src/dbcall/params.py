"""
Fixed-length parameter containers.

`ParameterList` fills the bind slots of a parameterized statement and
`CallSpec` describes a stored procedure call. Slots are addressed 0-based
here; the driver position of slot i is i + 1.
"""
import logging
from collections.abc import Iterator
from typing import Any

from dbcall.exceptions import ValidationError
from dbcall.types import Parameter, SqlType, infer_type_code, to_sql_type

logger = logging.getLogger(__name__)


class ParameterList:
    """Ordered, position-significant input parameters.

    >>> params = ParameterList(2)
    >>> params.add(0, 'x')
    >>> params.add(1, 5)
    >>> [str(p) for p in params]
    ["'Types.VARCHAR'->'x'", "'Types.INTEGER'->'5'"]
    """

    __slots__ = ('_slots',)

    def __init__(self, size: int) -> None:
        if size < 0:
            raise ValidationError(f'Parameter list size must be >= 0, got {size}')
        self._slots: list[Parameter | None] = [None] * size

    @classmethod
    def of(cls, *values: Any) -> 'ParameterList':
        """Build a list from plain values, inferring each type code."""
        params = cls(len(values))
        for pos, value in enumerate(values):
            params.add(pos, value)
        return params

    def _check(self, pos: int) -> None:
        if not 0 <= pos < len(self._slots):
            raise ValidationError(f'Slot {pos} out of range for {len(self._slots)} parameters')

    def add(self, pos: int, value: Any, type_code: SqlType | int | None = None) -> None:
        """Fill slot `pos`, inferring the type code when none is given."""
        self._check(pos)
        if isinstance(value, Parameter):
            self._slots[pos] = value
            return
        code = infer_type_code(value) if type_code is None else to_sql_type(type_code)
        self._slots[pos] = Parameter(code, value)

    def set(self, pos: int, param: Parameter) -> None:
        self._check(pos)
        self._slots[pos] = param

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[Parameter | None]:
        return iter(self._slots)

    def __getitem__(self, pos: int) -> Parameter | None:
        return self._slots[pos]

    def unfilled(self) -> list[int]:
        """Slots still empty; these bind as NULL."""
        return [i for i, p in enumerate(self._slots) if p is None]

    def to_list(self) -> list[Parameter | None]:
        return list(self._slots)


class CallSpec:
    """A stored procedure name with its input values and output types.
    """

    def __init__(self, name: str, input_count: int, output_count: int) -> None:
        if not name:
            raise ValidationError('Procedure name is required')
        self.name = name
        self.inputs = ParameterList(input_count)
        self._outputs: list[SqlType | None] = [None] * output_count

    def add_input(self, pos: int, value: Any, type_code: SqlType | int | None = None) -> None:
        self.inputs.add(pos, value, type_code)

    def add_output(self, pos: int, type_code: SqlType | int) -> None:
        if not 0 <= pos < len(self._outputs):
            raise ValidationError(f'Output slot {pos} out of range for {len(self._outputs)} outputs')
        self._outputs[pos] = to_sql_type(type_code)

    @property
    def outputs(self) -> list[SqlType]:
        """Declared output types; every slot must be filled."""
        missing = [i for i, t in enumerate(self._outputs) if t is None]
        if missing:
            raise ValidationError(f'Output slots {missing} of {self.name} have no declared type')
        return list(self._outputs)

    def __repr__(self) -> str:
        return f'CallSpec({self.name!r}, inputs={len(self.inputs)}, outputs={len(self._outputs)})'


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
