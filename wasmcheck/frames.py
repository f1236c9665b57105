"""Control frames and the operand-stack discipline of function validation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Union

from .elements import BlockType, ValueType
from .errors import ValidationError
from .stack import StackWithLimit


class StartedWith(Enum):
    """The instruction that opened a control frame."""

    BLOCK = "Block"
    IF = "If"
    ELSE = "Else"
    LOOP = "Loop"

    def __repr__(self) -> str:
        return self.value


@dataclass(frozen=True, repr=False)
class StackValueType:
    """Type of an operand on the stack: a concrete value type or any type."""

    value_type: Optional[ValueType] = None

    ANY: ClassVar["StackValueType"]

    @classmethod
    def specific(cls, value_type: ValueType) -> "StackValueType":
        return cls(value_type)

    @classmethod
    def coerce(cls, value: Union["StackValueType", ValueType]) -> "StackValueType":
        if isinstance(value, StackValueType):
            return value
        return cls(value)

    @property
    def is_any(self) -> bool:
        return self.value_type is None

    def matches(self, other: Union["StackValueType", ValueType]) -> bool:
        """True when the types agree; `any` agrees with every type."""
        other = StackValueType.coerce(other)
        if self.is_any or other.is_any:
            return True
        return self.value_type is other.value_type

    def __repr__(self) -> str:
        if self.value_type is None:
            return "Any"
        return f"Specific({self.value_type!r})"


StackValueType.ANY = StackValueType()


@dataclass
class BlockFrame:
    """A control frame of the function being validated."""

    started_with: StartedWith
    block_type: BlockType
    value_stack_len: int
    polymorphic_stack: bool = False


ValueStack = StackWithLimit[StackValueType]
FrameStack = StackWithLimit[BlockFrame]


def top_label(frame_stack: FrameStack) -> BlockFrame:
    """Return the innermost frame; the frame stack must not be empty."""
    if frame_stack.is_empty():
        raise RuntimeError("the frame stack is empty")
    return frame_stack.top()


def require_label(depth: int, frame_stack: FrameStack) -> BlockFrame:
    """Return the frame `depth` levels out from the innermost one."""
    return frame_stack.get(depth)


def make_top_frame_polymorphic(value_stack: ValueStack, frame_stack: FrameStack) -> None:
    """Discard the innermost frame's operands and mark its stack polymorphic."""
    frame = top_label(frame_stack)
    value_stack.resize(frame.value_stack_len, StackValueType.ANY)
    frame.polymorphic_stack = True


def push_value(
    value_stack: ValueStack, value_type: Union[StackValueType, ValueType]
) -> None:
    value_stack.push(StackValueType.coerce(value_type))


def pop_value(
    value_stack: ValueStack,
    frame_stack: FrameStack,
    expected: Union[StackValueType, ValueType],
) -> StackValueType:
    """Pop an operand of the expected type from the innermost frame and return it."""
    expected = StackValueType.coerce(expected)
    frame = top_label(frame_stack)
    if len(value_stack) == frame.value_stack_len and frame.polymorphic_stack:
        actual = StackValueType.ANY
    else:
        if len(value_stack) <= frame.value_stack_len:
            raise ValidationError("Trying to access parent frame stack values.")
        actual = value_stack.pop()
    if not actual.matches(expected):
        raise ValidationError(
            f"Expected value of type {expected!r} on top of stack. Got {actual!r}"
        )
    return actual


def tee_value(
    value_stack: ValueStack,
    frame_stack: FrameStack,
    value_type: Union[StackValueType, ValueType],
) -> None:
    """Check the top operand has `value_type` and leave an operand of that type."""
    value_type = StackValueType.coerce(value_type)
    pop_value(value_stack, frame_stack, value_type)
    push_value(value_stack, value_type)


def push_label(
    started_with: StartedWith,
    block_type: BlockType,
    value_stack: ValueStack,
    frame_stack: FrameStack,
) -> None:
    frame_stack.push(BlockFrame(started_with, block_type, len(value_stack)))


def pop_label(value_stack: ValueStack, frame_stack: FrameStack) -> None:
    """Close the innermost frame, checking its result and the stack height."""
    # The frame stays in place while its result is popped, so that a
    # polymorphic stack is still recognised.
    block_type = frame_stack.top().block_type
    if block_type.value_type is not None:
        pop_value(value_stack, frame_stack, StackValueType.specific(block_type.value_type))

    frame = frame_stack.pop()
    if len(value_stack) != frame.value_stack_len:
        raise ValidationError(
            f"Unexpected stack height {len(value_stack)}, expected {frame.value_stack_len}"
        )