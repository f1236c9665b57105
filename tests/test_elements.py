import pytest

from wasmcheck.elements import (
    BlockType,
    ElementSegment,
    FuncBody,
    FunctionType,
    GlobalType,
    InitExpr,
    Instruction,
    Local,
    MemoryType,
    Module,
    Opcode,
    ResizableLimits,
    TableElementType,
    TableType,
    ValueType,
)


def test_instruction_equality_and_hash():
    a = Instruction(Opcode.I32_CONST, 42)
    b = Instruction(Opcode.I32_CONST, 42)
    assert a == b
    assert hash(a) == hash(b)
    assert a != Instruction(Opcode.I32_CONST, 43)
    assert a != Instruction(Opcode.I64_CONST, 42)


def test_instruction_repr_with_immediate():
    assert repr(Instruction(Opcode.I32_CONST, 42)) == "I32Const(42)"


def test_instruction_repr_without_immediates_is_opcode_name():
    assert repr(Instruction(Opcode.END)) == Opcode.END.value
    assert repr(Instruction(Opcode.DROP)) == Opcode.DROP.value


@pytest.mark.parametrize(
    "opcode,args",
    [
        (Opcode.I32_CONST, ()),
        (Opcode.NOP, (1,)),
        (Opcode.I32_LOAD, (2,)),
        (Opcode.BR_TABLE, ((0,),)),
        (Opcode.BLOCK, ()),
    ],
)
def test_instruction_arity_checked(opcode, args):
    with pytest.raises(TypeError):
        Instruction(opcode, *args)


def test_br_table_normalises_targets_to_tuple():
    instr = Instruction(Opcode.BR_TABLE, [1, 2], 0)
    assert instr.args == ((1, 2), 0)
    assert instr == Instruction(Opcode.BR_TABLE, (1, 2), 0)


def test_block_type_forms():
    assert BlockType.NO_RESULT.is_no_result
    typed = BlockType.of(ValueType.I32)
    assert not typed.is_no_result
    assert typed.value_type is ValueType.I32
    assert typed == BlockType(ValueType.I32)
    assert typed != BlockType.NO_RESULT


def test_block_type_repr():
    assert repr(BlockType.NO_RESULT) == "NoResult"
    assert repr(BlockType.of(ValueType.I32)) == "Value(I32)"


@pytest.mark.parametrize(
    "value_type,expected",
    [
        (ValueType.I32, "Value(I32)"),
        (ValueType.I64, "Value(I64)"),
        (ValueType.F32, "Value(F32)"),
        (ValueType.F64, "Value(F64)"),
    ],
)
def test_value_type_repr_is_name(value_type, expected):
    assert repr(BlockType.of(value_type)) == expected


def test_function_type_params_become_tuple():
    ft = FunctionType([ValueType.I32, ValueType.I64], ValueType.F32)
    assert ft.params == (ValueType.I32, ValueType.I64)
    assert ft.return_type is ValueType.F32
    assert ft == FunctionType((ValueType.I32, ValueType.I64), ValueType.F32)


def test_table_and_memory_limits():
    table = TableType(10, 20)
    assert table.limits == ResizableLimits(10, 20)
    assert table.elem_type is TableElementType.ANY_FUNC
    memory = MemoryType(10)
    assert memory.limits == ResizableLimits(10, None)


def test_global_type_defaults_to_immutable():
    gt = GlobalType(ValueType.I64)
    assert gt.is_mutable is False
    assert GlobalType(ValueType.I64, True).is_mutable is True


def test_sequences_are_frozen_as_tuples():
    body = FuncBody([Local(2, ValueType.F32)], [Instruction(Opcode.END)])
    assert body.locals == (Local(2, ValueType.F32),)
    assert body.code == (Instruction(Opcode.END),)
    expr = InitExpr([Instruction(Opcode.I32_CONST, 0), Instruction(Opcode.END)])
    assert len(expr.code) == 2
    seg = ElementSegment(0, expr, [1, 2])
    assert seg.members == (1, 2)


def test_module_defaults_are_empty_and_independent():
    first = Module()
    second = Module()
    first.types.append(FunctionType())
    assert second.types == []
    assert first.start is None
    assert first.functions == [] and first.code == []