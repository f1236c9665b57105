"""Lookup of local variable types: parameters followed by declared locals."""

from __future__ import annotations

from typing import Iterable, Tuple

from .elements import Local, ValueType
from .errors import ValidationError

_U32_MAX = 0xFFFF_FFFF


class Locals:
    """Parameters and grouped local declarations of one function.

    The total number of locals must fit in 32 bits.
    """

    def __init__(self, params: Iterable[ValueType], local_groups: Iterable[Local]) -> None:
        self._params: Tuple[ValueType, ...] = tuple(params)
        self._groups: Tuple[Local, ...] = tuple(local_groups)
        total = len(self._params)
        for group in self._groups:
            total += group.count
            if total > _U32_MAX:
                raise ValidationError("Locals range not in 32-bit range")
        self._count = total

    @property
    def param_count(self) -> int:
        return len(self._params)

    @property
    def count(self) -> int:
        """Total count of parameters and declared locals."""
        return self._count

    def type_of_local(self, idx: int) -> ValueType:
        """Return the type of the parameter or declared local at `idx`."""
        if 0 <= idx < len(self._params):
            return self._params[idx]

        start = len(self._params)
        for group in self._groups:
            end = start + group.count
            if end > _U32_MAX:
                raise ValidationError("Locals range not in 32-bit range")
            if start <= idx < end:
                return group.value_type
            start = end

        raise ValidationError(
            f"Trying to access local with index {idx} when there are only {start} locals"
        )