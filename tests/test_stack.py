import pytest

from wasmcheck.errors import StackError, ValidationError
from wasmcheck.stack import StackWithLimit


def test_push_pop_is_lifo():
    stack = StackWithLimit(10)
    for value in ("a", "b", "c"):
        stack.push(value)
    assert len(stack) == 3
    assert [stack.pop(), stack.pop(), stack.pop()] == ["c", "b", "a"]
    assert stack.is_empty()


def test_push_past_limit_raises():
    stack = StackWithLimit(2)
    stack.push(1)
    stack.push(2)
    with pytest.raises(StackError) as info:
        stack.push(3)
    assert info.value.message == "exceeded stack limit 2"
    assert len(stack) == 2


def test_zero_limit_rejects_everything():
    stack = StackWithLimit(0)
    with pytest.raises(ValidationError):
        stack.push(1)
    assert stack.is_empty()


def test_top_and_pop_on_empty_raise():
    stack = StackWithLimit(4)
    with pytest.raises(StackError, match="non-empty stack expected"):
        stack.top()
    with pytest.raises(StackError, match="non-empty stack expected"):
        stack.pop()


def test_get_counts_from_top():
    stack = StackWithLimit(8)
    for value in (10, 20, 30):
        stack.push(value)
    assert stack.get(0) == 30
    assert stack.get(1) == 20
    assert stack.get(2) == 10
    assert stack.get(0) == stack.top()


def test_get_out_of_range_raises():
    stack = StackWithLimit(8)
    stack.push(1)
    with pytest.raises(StackError) as info:
        stack.get(1)
    assert info.value.message == "trying to get value at position 1 on stack of size 1"


def test_top_returns_the_stored_object():
    stack = StackWithLimit(2)
    stack.push([])
    stack.top().append("x")
    assert stack.pop() == ["x"]


def test_resize_truncates_and_pads():
    stack = StackWithLimit(10)
    for value in range(5):
        stack.push(value)
    stack.resize(2, None)
    assert list(stack) == [0, 1]
    stack.resize(4, "pad")
    assert list(stack) == [0, 1, "pad", "pad"]
    stack.resize(0, None)
    assert stack.is_empty()