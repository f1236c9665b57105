import pytest

from wasmcheck.elements import BlockType, ValueType
from wasmcheck.errors import StackError, ValidationError
from wasmcheck.frames import (
    BlockFrame,
    StackValueType,
    StartedWith,
    make_top_frame_polymorphic,
    pop_label,
    pop_value,
    push_label,
    push_value,
    require_label,
    tee_value,
    top_label,
)
from wasmcheck.stack import StackWithLimit


def stacks(limit=16):
    values = StackWithLimit(limit)
    frames = StackWithLimit(limit)
    push_label(StartedWith.BLOCK, BlockType.NO_RESULT, values, frames)
    return values, frames


def test_any_matches_everything():
    assert StackValueType.ANY.matches(ValueType.I64)
    assert StackValueType.specific(ValueType.F32).matches(StackValueType.ANY)


def test_specific_matches_only_same_type():
    i32 = StackValueType.specific(ValueType.I32)
    assert i32.matches(ValueType.I32)
    assert not i32.matches(ValueType.F64)
    assert not i32.matches(StackValueType.specific(ValueType.I64))


def test_push_label_records_stack_height():
    values, frames = stacks()
    push_value(values, ValueType.I32)
    push_value(values, ValueType.I64)
    push_label(StartedWith.LOOP, BlockType.of(ValueType.I32), values, frames)
    frame = top_label(frames)
    assert frame == BlockFrame(StartedWith.LOOP, BlockType.of(ValueType.I32), 2, False)


def test_push_then_pop_round_trip():
    values, frames = stacks()
    push_value(values, ValueType.F64)
    assert pop_value(values, frames, ValueType.F64) == StackValueType.specific(ValueType.F64)
    assert len(values) == 0


def test_pop_value_any_returns_actual_type():
    values, frames = stacks()
    push_value(values, ValueType.I64)
    assert pop_value(values, frames, StackValueType.ANY) == StackValueType.specific(ValueType.I64)


def test_pop_value_type_mismatch():
    values, frames = stacks()
    push_value(values, ValueType.I32)
    with pytest.raises(ValidationError, match="Expected value of type Specific\\(I64\\)"):
        pop_value(values, frames, ValueType.I64)


def test_pop_value_cannot_reach_parent_frame():
    values, frames = stacks()
    push_value(values, ValueType.I32)
    push_label(StartedWith.BLOCK, BlockType.NO_RESULT, values, frames)
    with pytest.raises(ValidationError, match="Trying to access parent frame stack values."):
        pop_value(values, frames, ValueType.I32)


def test_polymorphic_frame_yields_any_when_empty():
    values, frames = stacks()
    push_value(values, ValueType.I32)
    push_value(values, ValueType.I32)
    make_top_frame_polymorphic(values, frames)
    assert len(values) == 0
    assert top_label(frames).polymorphic_stack
    assert pop_value(values, frames, ValueType.F32) == StackValueType.ANY
    assert len(values) == 0


def test_make_polymorphic_keeps_parent_values():
    values, frames = stacks()
    push_value(values, ValueType.I64)
    push_label(StartedWith.BLOCK, BlockType.NO_RESULT, values, frames)
    push_value(values, ValueType.I32)
    make_top_frame_polymorphic(values, frames)
    assert len(values) == 1
    assert values.top() == StackValueType.specific(ValueType.I64)


def test_tee_value_keeps_one_value():
    values, frames = stacks()
    push_value(values, ValueType.I32)
    tee_value(values, frames, ValueType.I32)
    assert len(values) == 1
    assert values.top() == StackValueType.specific(ValueType.I32)


def test_tee_value_on_polymorphic_stack_pushes_expected():
    values, frames = stacks()
    make_top_frame_polymorphic(values, frames)
    tee_value(values, frames, ValueType.F64)
    assert values.top() == StackValueType.specific(ValueType.F64)


def test_pop_label_with_result():
    values, frames = stacks()
    push_label(StartedWith.BLOCK, BlockType.of(ValueType.I32), values, frames)
    push_value(values, ValueType.I32)
    pop_label(values, frames)
    assert len(frames) == 1
    assert len(values) == 0


def test_pop_label_with_leftover_values():
    values, frames = stacks()
    push_value(values, ValueType.I32)
    with pytest.raises(ValidationError, match="Unexpected stack height 1, expected 0"):
        pop_label(values, frames)


def test_pop_label_missing_result():
    values, frames = stacks()
    push_label(StartedWith.BLOCK, BlockType.of(ValueType.I32), values, frames)
    with pytest.raises(ValidationError, match="Trying to access parent frame stack values."):
        pop_label(values, frames)


def test_require_label_by_depth():
    values, frames = stacks()
    push_label(StartedWith.LOOP, BlockType.NO_RESULT, values, frames)
    assert require_label(0, frames).started_with is StartedWith.LOOP
    assert require_label(1, frames).started_with is StartedWith.BLOCK
    with pytest.raises(StackError, match="trying to get value at position 2 on stack of size 2"):
        require_label(2, frames)


def test_push_value_over_limit():
    values, frames = stacks(limit=1)
    push_value(values, ValueType.I32)
    with pytest.raises(StackError) as info:
        push_value(values, ValueType.I32)
    assert str(info.value) == "Stack: exceeded stack limit 1"


def test_top_label_on_empty_frame_stack():
    with pytest.raises(RuntimeError):
        top_label(StackWithLimit(4))


def test_stack_value_type_repr():
    assert repr(StackValueType.ANY) == "Any"
    assert repr(StackValueType.specific(ValueType.I32)) == "Specific(I32)"