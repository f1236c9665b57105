"""A stack that refuses to grow past a fixed limit."""

from __future__ import annotations

from typing import Generic, Iterator, List, TypeVar

from .errors import StackError

T = TypeVar("T")


class StackWithLimit(Generic[T]):
    """LIFO stack holding at most `limit` values."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self._values: List[T] = []

    def is_empty(self) -> bool:
        return not self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[T]:
        """Iterate from the bottom of the stack to the top."""
        return iter(self._values)

    def top(self) -> T:
        """Return the topmost value without removing it."""
        if not self._values:
            raise StackError("non-empty stack expected")
        return self._values[-1]

    def get(self, index: int) -> T:
        """Return the value `index` positions below the top (0 is the top)."""
        size = len(self._values)
        if index < 0 or index >= size:
            raise StackError(
                f"trying to get value at position {index} on stack of size {size}"
            )
        return self._values[size - 1 - index]

    def push(self, value: T) -> None:
        if len(self._values) >= self.limit:
            raise StackError(f"exceeded stack limit {self.limit}")
        self._values.append(value)

    def pop(self) -> T:
        if not self._values:
            raise StackError("non-empty stack expected")
        return self._values.pop()

    def resize(self, new_size: int, dummy: T) -> None:
        """Truncate to `new_size`, or pad with `dummy` if the stack is shorter."""
        if new_size <= len(self._values):
            del self._values[new_size:]
        else:
            self._values.extend([dummy] * (new_size - len(self._values)))