"""Type checking of a single function body, one instruction at a time."""

from __future__ import annotations

from typing import Dict, Iterable, Tuple

from .context import ModuleContext
from .elements import BlockType, Instruction, Opcode, TableElementType, ValueType
from .errors import ValidationError
from .frames import (
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
from .locals import Locals
from .stack import StackWithLimit

DEFAULT_MEMORY_INDEX = 0
"""Index of the default linear memory."""
DEFAULT_TABLE_INDEX = 0
"""Index of the default table."""
DEFAULT_VALUE_STACK_LIMIT = 16384
"""Maximum number of entries in the value stack of one function."""
DEFAULT_FRAME_STACK_LIMIT = 16384
"""Maximum number of entries in the frame stack of one function."""

_I32, _I64, _F32, _F64 = ValueType.I32, ValueType.I64, ValueType.F32, ValueType.F64

_CONSTS: Dict[Opcode, ValueType] = {
    Opcode.I32_CONST: _I32,
    Opcode.I64_CONST: _I64,
    Opcode.F32_CONST: _F32,
    Opcode.F64_CONST: _F64,
}

_TESTOPS: Dict[Opcode, ValueType] = {Opcode.I32_EQZ: _I32, Opcode.I64_EQZ: _I64}


def _table(value_type: ValueType, opcodes: Iterable[Opcode]) -> Dict[Opcode, ValueType]:
    return {opcode: value_type for opcode in opcodes}


_RELOPS: Dict[Opcode, ValueType] = {
    **_table(_I32, (
        Opcode.I32_EQ, Opcode.I32_NE, Opcode.I32_LT_S, Opcode.I32_LT_U,
        Opcode.I32_GT_S, Opcode.I32_GT_U, Opcode.I32_LE_S, Opcode.I32_LE_U,
        Opcode.I32_GE_S, Opcode.I32_GE_U,
    )),
    **_table(_I64, (
        Opcode.I64_EQ, Opcode.I64_NE, Opcode.I64_LT_S, Opcode.I64_LT_U,
        Opcode.I64_GT_S, Opcode.I64_GT_U, Opcode.I64_LE_S, Opcode.I64_LE_U,
        Opcode.I64_GE_S, Opcode.I64_GE_U,
    )),
    **_table(_F32, (
        Opcode.F32_EQ, Opcode.F32_NE, Opcode.F32_LT,
        Opcode.F32_GT, Opcode.F32_LE, Opcode.F32_GE,
    )),
    **_table(_F64, (
        Opcode.F64_EQ, Opcode.F64_NE, Opcode.F64_LT,
        Opcode.F64_GT, Opcode.F64_LE, Opcode.F64_GE,
    )),
}

_UNOPS: Dict[Opcode, ValueType] = {
    **_table(_I32, (Opcode.I32_CLZ, Opcode.I32_CTZ, Opcode.I32_POPCNT)),
    **_table(_I64, (Opcode.I64_CLZ, Opcode.I64_CTZ, Opcode.I64_POPCNT)),
    **_table(_F32, (
        Opcode.F32_ABS, Opcode.F32_NEG, Opcode.F32_CEIL, Opcode.F32_FLOOR,
        Opcode.F32_TRUNC, Opcode.F32_NEAREST, Opcode.F32_SQRT,
    )),
    **_table(_F64, (
        Opcode.F64_ABS, Opcode.F64_NEG, Opcode.F64_CEIL, Opcode.F64_FLOOR,
        Opcode.F64_TRUNC, Opcode.F64_NEAREST, Opcode.F64_SQRT,
    )),
}

_BINOPS: Dict[Opcode, ValueType] = {
    **_table(_I32, (
        Opcode.I32_ADD, Opcode.I32_SUB, Opcode.I32_MUL, Opcode.I32_DIV_S,
        Opcode.I32_DIV_U, Opcode.I32_REM_S, Opcode.I32_REM_U, Opcode.I32_AND,
        Opcode.I32_OR, Opcode.I32_XOR, Opcode.I32_SHL, Opcode.I32_SHR_S,
        Opcode.I32_SHR_U, Opcode.I32_ROTL, Opcode.I32_ROTR,
    )),
    **_table(_I64, (
        Opcode.I64_ADD, Opcode.I64_SUB, Opcode.I64_MUL, Opcode.I64_DIV_S,
        Opcode.I64_DIV_U, Opcode.I64_REM_S, Opcode.I64_REM_U, Opcode.I64_AND,
        Opcode.I64_OR, Opcode.I64_XOR, Opcode.I64_SHL, Opcode.I64_SHR_S,
        Opcode.I64_SHR_U, Opcode.I64_ROTL, Opcode.I64_ROTR,
    )),
    **_table(_F32, (
        Opcode.F32_ADD, Opcode.F32_SUB, Opcode.F32_MUL, Opcode.F32_DIV,
        Opcode.F32_MIN, Opcode.F32_MAX, Opcode.F32_COPYSIGN,
    )),
    **_table(_F64, (
        Opcode.F64_ADD, Opcode.F64_SUB, Opcode.F64_MUL, Opcode.F64_DIV,
        Opcode.F64_MIN, Opcode.F64_MAX, Opcode.F64_COPYSIGN,
    )),
}

_CVTOPS: Dict[Opcode, Tuple[ValueType, ValueType]] = {
    Opcode.I32_WRAP_I64: (_I64, _I32),
    Opcode.I32_TRUNC_S_F32: (_F32, _I32),
    Opcode.I32_TRUNC_U_F32: (_F32, _I32),
    Opcode.I32_TRUNC_S_F64: (_F64, _I32),
    Opcode.I32_TRUNC_U_F64: (_F64, _I32),
    Opcode.I64_EXTEND_S_I32: (_I32, _I64),
    Opcode.I64_EXTEND_U_I32: (_I32, _I64),
    Opcode.I64_TRUNC_S_F32: (_F32, _I64),
    Opcode.I64_TRUNC_U_F32: (_F32, _I64),
    Opcode.I64_TRUNC_S_F64: (_F64, _I64),
    Opcode.I64_TRUNC_U_F64: (_F64, _I64),
    Opcode.F32_CONVERT_S_I32: (_I32, _F32),
    Opcode.F32_CONVERT_U_I32: (_I32, _F32),
    Opcode.F32_CONVERT_S_I64: (_I64, _F32),
    Opcode.F32_CONVERT_U_I64: (_I64, _F32),
    Opcode.F32_DEMOTE_F64: (_F64, _F32),
    Opcode.F64_CONVERT_S_I32: (_I32, _F64),
    Opcode.F64_CONVERT_U_I32: (_I32, _F64),
    Opcode.F64_CONVERT_S_I64: (_I64, _F64),
    Opcode.F64_CONVERT_U_I64: (_I64, _F64),
    Opcode.F64_PROMOTE_F32: (_F32, _F64),
    Opcode.I32_REINTERPRET_F32: (_F32, _I32),
    Opcode.I64_REINTERPRET_F64: (_F64, _I64),
    Opcode.F32_REINTERPRET_I32: (_I32, _F32),
    Opcode.F64_REINTERPRET_I64: (_I64, _F64),
}

# Natural alignment in bytes and the value type moved by each memory access.
_LOADS: Dict[Opcode, Tuple[int, ValueType]] = {
    Opcode.I32_LOAD: (4, _I32),
    Opcode.I64_LOAD: (8, _I64),
    Opcode.F32_LOAD: (4, _F32),
    Opcode.F64_LOAD: (8, _F64),
    Opcode.I32_LOAD8_S: (1, _I32),
    Opcode.I32_LOAD8_U: (1, _I32),
    Opcode.I32_LOAD16_S: (2, _I32),
    Opcode.I32_LOAD16_U: (2, _I32),
    Opcode.I64_LOAD8_S: (1, _I64),
    Opcode.I64_LOAD8_U: (1, _I64),
    Opcode.I64_LOAD16_S: (2, _I64),
    Opcode.I64_LOAD16_U: (2, _I64),
    Opcode.I64_LOAD32_S: (4, _I64),
    Opcode.I64_LOAD32_U: (4, _I64),
}

_STORES: Dict[Opcode, Tuple[int, ValueType]] = {
    Opcode.I32_STORE: (4, _I32),
    Opcode.I64_STORE: (8, _I64),
    Opcode.F32_STORE: (4, _F32),
    Opcode.F64_STORE: (8, _F64),
    Opcode.I32_STORE8: (1, _I32),
    Opcode.I32_STORE16: (2, _I32),
    Opcode.I64_STORE8: (1, _I64),
    Opcode.I64_STORE16: (2, _I64),
    Opcode.I64_STORE32: (4, _I64),
}


def _check_alignment(align: int, max_align: int) -> None:
    if (1 << align) > max_align:
        raise ValidationError(
            f"Too large memory alignment 2^{align} (expected at most {max_align})"
        )


def _branch_type(frame: BlockFrame) -> BlockType:
    """The operand a branch to `frame` carries: nothing for a loop."""
    if frame.started_with is StartedWith.LOOP:
        return BlockType.NO_RESULT
    return frame.block_type


class FunctionValidationContext:
    """Operand and control stacks of one function body under validation."""

    def __init__(
        self,
        module: ModuleContext,
        locals_: Locals,
        return_type: BlockType = BlockType.NO_RESULT,
        value_stack_limit: int = DEFAULT_VALUE_STACK_LIMIT,
        frame_stack_limit: int = DEFAULT_FRAME_STACK_LIMIT,
    ) -> None:
        self.module = module
        self.locals = locals_
        self.return_type = return_type
        self.value_stack: StackWithLimit[StackValueType] = StackWithLimit(value_stack_limit)
        self.frame_stack: StackWithLimit[BlockFrame] = StackWithLimit(frame_stack_limit)
        push_label(StartedWith.BLOCK, return_type, self.value_stack, self.frame_stack)

    # Operand-stack shorthands.

    def _pop(self, expected) -> StackValueType:
        return pop_value(self.value_stack, self.frame_stack, expected)

    def _push(self, value_type) -> None:
        push_value(self.value_stack, value_type)

    def _tee(self, value_type) -> None:
        tee_value(self.value_stack, self.frame_stack, value_type)

    def _polymorphic(self) -> None:
        make_top_frame_polymorphic(self.value_stack, self.frame_stack)

    def step(self, instruction: Instruction) -> None:
        """Apply one instruction to the stacks, raising if it is ill-typed."""
        op = instruction.opcode
        args = instruction.args

        if op in _CONSTS:
            self._push(_CONSTS[op])
        elif op in _UNOPS:
            self._pop(_UNOPS[op])
            self._push(_UNOPS[op])
        elif op in _BINOPS:
            self._pop(_BINOPS[op])
            self._pop(_BINOPS[op])
            self._push(_BINOPS[op])
        elif op in _TESTOPS:
            self._pop(_TESTOPS[op])
            self._push(_I32)
        elif op in _RELOPS:
            self._pop(_RELOPS[op])
            self._pop(_RELOPS[op])
            self._push(_I32)
        elif op in _CVTOPS:
            source, target = _CVTOPS[op]
            self._pop(source)
            self._push(target)
        elif op in _LOADS:
            self._load(args[0], *_LOADS[op])
        elif op in _STORES:
            self._store(args[0], *_STORES[op])
        else:
            self._control(op, args)

    def _control(self, op: Opcode, args: tuple) -> None:
        match op:
            case Opcode.NOP:
                pass
            case Opcode.UNREACHABLE:
                self._polymorphic()
            case Opcode.BLOCK:
                push_label(StartedWith.BLOCK, args[0], self.value_stack, self.frame_stack)
            case Opcode.LOOP:
                push_label(StartedWith.LOOP, args[0], self.value_stack, self.frame_stack)
            case Opcode.IF:
                self._pop(_I32)
                push_label(StartedWith.IF, args[0], self.value_stack, self.frame_stack)
            case Opcode.ELSE:
                self._else()
            case Opcode.END:
                self._end()
            case Opcode.BR:
                self._br(args[0])
                self._polymorphic()
            case Opcode.BR_IF:
                self._pop(_I32)
                self._br(args[0])
            case Opcode.BR_TABLE:
                self._br_table(args[0], args[1])
                self._polymorphic()
            case Opcode.RETURN:
                if self.return_type.value_type is not None:
                    self._tee(self.return_type.value_type)
                self._polymorphic()
            case Opcode.CALL:
                self._call(args[0])
            case Opcode.CALL_INDIRECT:
                self._call_indirect(args[0])
            case Opcode.DROP:
                self._pop(StackValueType.ANY)
            case Opcode.SELECT:
                self._pop(_I32)
                select_type = self._pop(StackValueType.ANY)
                self._pop(select_type)
                self._push(select_type)
            case Opcode.GET_LOCAL:
                self._push(self.locals.type_of_local(args[0]))
            case Opcode.SET_LOCAL:
                self._set_local(args[0])
            case Opcode.TEE_LOCAL:
                self._tee(self.locals.type_of_local(args[0]))
            case Opcode.GET_GLOBAL:
                self._push(self.module.require_global(args[0], None).content_type)
            case Opcode.SET_GLOBAL:
                self._set_global(args[0])
            case Opcode.CURRENT_MEMORY:
                self.module.require_memory(DEFAULT_MEMORY_INDEX)
                self._push(_I32)
            case Opcode.GROW_MEMORY:
                self.module.require_memory(DEFAULT_MEMORY_INDEX)
                self._pop(_I32)
                self._push(_I32)
            case _:
                raise ValidationError(f"Unsupported instruction {op!r}")

    def _else(self) -> None:
        top = top_label(self.frame_stack)
        if top.started_with is not StartedWith.IF:
            raise ValidationError("Misplaced else instruction")
        block_type = top.block_type
        # Closing the `if` half discards everything pushed within it.
        pop_label(self.value_stack, self.frame_stack)
        push_label(StartedWith.ELSE, block_type, self.value_stack, self.frame_stack)

    def _end(self) -> None:
        top = top_label(self.frame_stack)
        if top.started_with is StartedWith.IF and not top.block_type.is_no_result:
            raise ValidationError(
                "If block without else required to have NoResult block type. "
                f"But it has {top.block_type!r} type"
            )
        block_type = top.block_type

        if len(self.frame_stack) == 1:
            # Closing the function's own frame.
            if self.return_type.value_type is not None:
                self._tee(self.return_type.value_type)
            pop_label(self.value_stack, self.frame_stack)
        else:
            pop_label(self.value_stack, self.frame_stack)
            if block_type.value_type is not None:
                self._push(block_type.value_type)

    def _br(self, depth: int) -> None:
        frame = require_label(depth, self.frame_stack)
        carried = _branch_type(frame)
        if carried.value_type is not None:
            self._tee(carried.value_type)

    def _br_table(self, table: Iterable[int], default: int) -> None:
        required = _branch_type(require_label(default, self.frame_stack))
        for label in table:
            label_block = require_label(label, self.frame_stack)
            if _branch_type(label_block) != required:
                raise ValidationError(
                    "Labels in br_table points to block of different types: "
                    f"{required!r} and {label_block.block_type!r}"
                )
        self._pop(_I32)
        if required.value_type is not None:
            self._tee(required.value_type)

    def _apply_signature(self, params: Tuple[ValueType, ...], result: BlockType) -> None:
        for param in reversed(params):
            self._pop(param)
        if result.value_type is not None:
            self._push(result.value_type)

    def _call(self, idx: int) -> None:
        self._apply_signature(*self.module.require_function(idx))

    def _call_indirect(self, idx: int) -> None:
        table = self.module.require_table(DEFAULT_TABLE_INDEX)
        if table.elem_type is not TableElementType.ANY_FUNC:
            raise ValidationError(
                f"Table {idx} has element type {table.elem_type!r} while `anyfunc` expected"
            )
        self._pop(_I32)
        self._apply_signature(*self.module.require_function_type(idx))

    def _set_local(self, index: int) -> None:
        local_type = self.locals.type_of_local(index)
        value_type = self._pop(StackValueType.ANY)
        if not StackValueType.specific(local_type).matches(value_type):
            raise ValidationError(
                f"Trying to update local {index} of type {local_type!r} "
                f"with value of type {value_type!r}"
            )

    def _set_global(self, index: int) -> None:
        global_type = StackValueType.specific(
            self.module.require_global(index, True).content_type
        )
        value_type = self._pop(StackValueType.ANY)
        if not global_type.matches(value_type):
            raise ValidationError(
                f"Trying to update global {index} of type {global_type!r} "
                f"with value of type {value_type!r}"
            )

    def _load(self, align: int, max_align: int, value_type: ValueType) -> None:
        _check_alignment(align, max_align)
        self._pop(_I32)
        self.module.require_memory(DEFAULT_MEMORY_INDEX)
        self._push(value_type)

    def _store(self, align: int, max_align: int, value_type: ValueType) -> None:
        _check_alignment(align, max_align)
        self.module.require_memory(DEFAULT_MEMORY_INDEX)
        self._pop(value_type)
        self._pop(_I32)