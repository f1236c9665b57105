"""Structural description of a WebAssembly module, as consumed by the validator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Optional, Tuple, Union


class ValueType(Enum):
    """A value type of the MVP instruction set."""

    I32 = "i32"
    I64 = "i64"
    F32 = "f32"
    F64 = "f64"

    def __repr__(self) -> str:
        return self.name

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, repr=False)
class BlockType:
    """Result signature of a block: either no result or a single value."""

    value_type: Optional[ValueType] = None

    NO_RESULT: ClassVar["BlockType"]

    @classmethod
    def of(cls, value_type: ValueType) -> "BlockType":
        return cls(value_type)

    @property
    def is_no_result(self) -> bool:
        return self.value_type is None

    def __repr__(self) -> str:
        if self.value_type is None:
            return "NoResult"
        return f"Value({self.value_type!r})"


BlockType.NO_RESULT = BlockType()


class Opcode(Enum):
    """Every instruction of the MVP instruction set; the value is its display name."""

    UNREACHABLE = "Unreachable"
    NOP = "Nop"
    BLOCK = "Block"
    LOOP = "Loop"
    IF = "If"
    ELSE = "Else"
    END = "End"
    BR = "Br"
    BR_IF = "BrIf"
    BR_TABLE = "BrTable"
    RETURN = "Return"
    CALL = "Call"
    CALL_INDIRECT = "CallIndirect"
    DROP = "Drop"
    SELECT = "Select"
    GET_LOCAL = "GetLocal"
    SET_LOCAL = "SetLocal"
    TEE_LOCAL = "TeeLocal"
    GET_GLOBAL = "GetGlobal"
    SET_GLOBAL = "SetGlobal"

    I32_LOAD = "I32Load"
    I64_LOAD = "I64Load"
    F32_LOAD = "F32Load"
    F64_LOAD = "F64Load"
    I32_LOAD8_S = "I32Load8S"
    I32_LOAD8_U = "I32Load8U"
    I32_LOAD16_S = "I32Load16S"
    I32_LOAD16_U = "I32Load16U"
    I64_LOAD8_S = "I64Load8S"
    I64_LOAD8_U = "I64Load8U"
    I64_LOAD16_S = "I64Load16S"
    I64_LOAD16_U = "I64Load16U"
    I64_LOAD32_S = "I64Load32S"
    I64_LOAD32_U = "I64Load32U"

    I32_STORE = "I32Store"
    I64_STORE = "I64Store"
    F32_STORE = "F32Store"
    F64_STORE = "F64Store"
    I32_STORE8 = "I32Store8"
    I32_STORE16 = "I32Store16"
    I64_STORE8 = "I64Store8"
    I64_STORE16 = "I64Store16"
    I64_STORE32 = "I64Store32"

    CURRENT_MEMORY = "CurrentMemory"
    GROW_MEMORY = "GrowMemory"

    I32_CONST = "I32Const"
    I64_CONST = "I64Const"
    F32_CONST = "F32Const"
    F64_CONST = "F64Const"

    I32_EQZ = "I32Eqz"
    I32_EQ = "I32Eq"
    I32_NE = "I32Ne"
    I32_LT_S = "I32LtS"
    I32_LT_U = "I32LtU"
    I32_GT_S = "I32GtS"
    I32_GT_U = "I32GtU"
    I32_LE_S = "I32LeS"
    I32_LE_U = "I32LeU"
    I32_GE_S = "I32GeS"
    I32_GE_U = "I32GeU"

    I64_EQZ = "I64Eqz"
    I64_EQ = "I64Eq"
    I64_NE = "I64Ne"
    I64_LT_S = "I64LtS"
    I64_LT_U = "I64LtU"
    I64_GT_S = "I64GtS"
    I64_GT_U = "I64GtU"
    I64_LE_S = "I64LeS"
    I64_LE_U = "I64LeU"
    I64_GE_S = "I64GeS"
    I64_GE_U = "I64GeU"

    F32_EQ = "F32Eq"
    F32_NE = "F32Ne"
    F32_LT = "F32Lt"
    F32_GT = "F32Gt"
    F32_LE = "F32Le"
    F32_GE = "F32Ge"

    F64_EQ = "F64Eq"
    F64_NE = "F64Ne"
    F64_LT = "F64Lt"
    F64_GT = "F64Gt"
    F64_LE = "F64Le"
    F64_GE = "F64Ge"

    I32_CLZ = "I32Clz"
    I32_CTZ = "I32Ctz"
    I32_POPCNT = "I32Popcnt"
    I32_ADD = "I32Add"
    I32_SUB = "I32Sub"
    I32_MUL = "I32Mul"
    I32_DIV_S = "I32DivS"
    I32_DIV_U = "I32DivU"
    I32_REM_S = "I32RemS"
    I32_REM_U = "I32RemU"
    I32_AND = "I32And"
    I32_OR = "I32Or"
    I32_XOR = "I32Xor"
    I32_SHL = "I32Shl"
    I32_SHR_S = "I32ShrS"
    I32_SHR_U = "I32ShrU"
    I32_ROTL = "I32Rotl"
    I32_ROTR = "I32Rotr"

    I64_CLZ = "I64Clz"
    I64_CTZ = "I64Ctz"
    I64_POPCNT = "I64Popcnt"
    I64_ADD = "I64Add"
    I64_SUB = "I64Sub"
    I64_MUL = "I64Mul"
    I64_DIV_S = "I64DivS"
    I64_DIV_U = "I64DivU"
    I64_REM_S = "I64RemS"
    I64_REM_U = "I64RemU"
    I64_AND = "I64And"
    I64_OR = "I64Or"
    I64_XOR = "I64Xor"
    I64_SHL = "I64Shl"
    I64_SHR_S = "I64ShrS"
    I64_SHR_U = "I64ShrU"
    I64_ROTL = "I64Rotl"
    I64_ROTR = "I64Rotr"

    F32_ABS = "F32Abs"
    F32_NEG = "F32Neg"
    F32_CEIL = "F32Ceil"
    F32_FLOOR = "F32Floor"
    F32_TRUNC = "F32Trunc"
    F32_NEAREST = "F32Nearest"
    F32_SQRT = "F32Sqrt"
    F32_ADD = "F32Add"
    F32_SUB = "F32Sub"
    F32_MUL = "F32Mul"
    F32_DIV = "F32Div"
    F32_MIN = "F32Min"
    F32_MAX = "F32Max"
    F32_COPYSIGN = "F32Copysign"

    F64_ABS = "F64Abs"
    F64_NEG = "F64Neg"
    F64_CEIL = "F64Ceil"
    F64_FLOOR = "F64Floor"
    F64_TRUNC = "F64Trunc"
    F64_NEAREST = "F64Nearest"
    F64_SQRT = "F64Sqrt"
    F64_ADD = "F64Add"
    F64_SUB = "F64Sub"
    F64_MUL = "F64Mul"
    F64_DIV = "F64Div"
    F64_MIN = "F64Min"
    F64_MAX = "F64Max"
    F64_COPYSIGN = "F64Copysign"

    I32_WRAP_I64 = "I32WrapI64"
    I32_TRUNC_S_F32 = "I32TruncSF32"
    I32_TRUNC_U_F32 = "I32TruncUF32"
    I32_TRUNC_S_F64 = "I32TruncSF64"
    I32_TRUNC_U_F64 = "I32TruncUF64"
    I64_EXTEND_S_I32 = "I64ExtendSI32"
    I64_EXTEND_U_I32 = "I64ExtendUI32"
    I64_TRUNC_S_F32 = "I64TruncSF32"
    I64_TRUNC_U_F32 = "I64TruncUF32"
    I64_TRUNC_S_F64 = "I64TruncSF64"
    I64_TRUNC_U_F64 = "I64TruncUF64"
    F32_CONVERT_S_I32 = "F32ConvertSI32"
    F32_CONVERT_U_I32 = "F32ConvertUI32"
    F32_CONVERT_S_I64 = "F32ConvertSI64"
    F32_CONVERT_U_I64 = "F32ConvertUI64"
    F32_DEMOTE_F64 = "F32DemoteF64"
    F64_CONVERT_S_I32 = "F64ConvertSI32"
    F64_CONVERT_U_I32 = "F64ConvertUI32"
    F64_CONVERT_S_I64 = "F64ConvertSI64"
    F64_CONVERT_U_I64 = "F64ConvertUI64"
    F64_PROMOTE_F32 = "F64PromoteF32"

    I32_REINTERPRET_F32 = "I32ReinterpretF32"
    I64_REINTERPRET_F64 = "I64ReinterpretF64"
    F32_REINTERPRET_I32 = "F32ReinterpretI32"
    F64_REINTERPRET_I64 = "F64ReinterpretI64"

    def __repr__(self) -> str:
        return self.value


_MEMORY_ACCESS = {
    Opcode.I32_LOAD, Opcode.I64_LOAD, Opcode.F32_LOAD, Opcode.F64_LOAD,
    Opcode.I32_LOAD8_S, Opcode.I32_LOAD8_U, Opcode.I32_LOAD16_S, Opcode.I32_LOAD16_U,
    Opcode.I64_LOAD8_S, Opcode.I64_LOAD8_U, Opcode.I64_LOAD16_S, Opcode.I64_LOAD16_U,
    Opcode.I64_LOAD32_S, Opcode.I64_LOAD32_U,
    Opcode.I32_STORE, Opcode.I64_STORE, Opcode.F32_STORE, Opcode.F64_STORE,
    Opcode.I32_STORE8, Opcode.I32_STORE16,
    Opcode.I64_STORE8, Opcode.I64_STORE16, Opcode.I64_STORE32,
}

# Number of immediates each opcode carries; anything not listed carries none.
_ARITY = {
    Opcode.BLOCK: 1,
    Opcode.LOOP: 1,
    Opcode.IF: 1,
    Opcode.BR: 1,
    Opcode.BR_IF: 1,
    Opcode.BR_TABLE: 2,
    Opcode.CALL: 1,
    Opcode.CALL_INDIRECT: 2,
    Opcode.GET_LOCAL: 1,
    Opcode.SET_LOCAL: 1,
    Opcode.TEE_LOCAL: 1,
    Opcode.GET_GLOBAL: 1,
    Opcode.SET_GLOBAL: 1,
    Opcode.CURRENT_MEMORY: 1,
    Opcode.GROW_MEMORY: 1,
    Opcode.I32_CONST: 1,
    Opcode.I64_CONST: 1,
    Opcode.F32_CONST: 1,
    Opcode.F64_CONST: 1,
    **{opcode: 2 for opcode in _MEMORY_ACCESS},
}


class Instruction:
    """One instruction: an opcode and its immediates.

    Immediates by opcode: block/loop/if take a BlockType; br/br_if a depth;
    br_table a sequence of depths and a default depth; call a function index;
    call_indirect a type index and a reserved byte; local and global access an
    index; loads and stores an alignment exponent and an offset;
    current_memory/grow_memory a reserved byte; constants their value.
    """

    __slots__ = ("opcode", "args")

    def __init__(self, opcode: Opcode, *args: Any) -> None:
        expected = _ARITY.get(opcode, 0)
        if len(args) != expected:
            raise TypeError(
                f"{opcode.value} takes {expected} immediate(s), got {len(args)}"
            )
        if opcode is Opcode.BR_TABLE:
            args = (tuple(args[0]), args[1])
        self.opcode = opcode
        self.args: Tuple[Any, ...] = tuple(args)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Instruction):
            return NotImplemented
        return self.opcode is other.opcode and self.args == other.args

    def __hash__(self) -> int:
        return hash((self.opcode, self.args))

    def __repr__(self) -> str:
        if not self.args:
            return self.opcode.value
        return f"{self.opcode.value}({', '.join(repr(a) for a in self.args)})"


@dataclass(frozen=True)
class FunctionType:
    """A function signature: parameter types and an optional result type."""

    params: Tuple[ValueType, ...] = ()
    return_type: Optional[ValueType] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", tuple(self.params))


@dataclass(frozen=True)
class ResizableLimits:
    """Initial size and optional maximum of a table or memory."""

    initial: int
    maximum: Optional[int] = None


class TableElementType(Enum):
    """Element type of a table."""

    ANY_FUNC = "anyfunc"

    def __repr__(self) -> str:
        return "AnyFunc"


@dataclass(frozen=True)
class TableType:
    """A table declaration."""

    initial: int
    maximum: Optional[int] = None
    elem_type: TableElementType = TableElementType.ANY_FUNC

    @property
    def limits(self) -> ResizableLimits:
        return ResizableLimits(self.initial, self.maximum)


@dataclass(frozen=True)
class MemoryType:
    """A linear memory declaration, sized in pages."""

    initial: int
    maximum: Optional[int] = None

    @property
    def limits(self) -> ResizableLimits:
        return ResizableLimits(self.initial, self.maximum)


@dataclass(frozen=True)
class GlobalType:
    """Type and mutability of a global."""

    content_type: ValueType
    is_mutable: bool = False


@dataclass(frozen=True)
class Local:
    """A group of `count` declared locals sharing one value type."""

    count: int
    value_type: ValueType


@dataclass(frozen=True)
class InitExpr:
    """A constant initialiser expression."""

    code: Tuple[Instruction, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "code", tuple(self.code))


@dataclass(frozen=True)
class Func:
    """An entry of the function section: the index of its signature."""

    type_ref: int


@dataclass(frozen=True)
class FuncBody:
    """A function body: declared local groups and the instruction sequence."""

    locals: Tuple[Local, ...] = ()
    code: Tuple[Instruction, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "locals", tuple(self.locals))
        object.__setattr__(self, "code", tuple(self.code))


@dataclass(frozen=True)
class GlobalEntry:
    """A global defined in the module."""

    global_type: GlobalType
    init_expr: InitExpr


External = Union[int, TableType, MemoryType, GlobalType]


@dataclass(frozen=True)
class ImportEntry:
    """An import; `external` is a function type index or a table, memory or global type."""

    module: str
    field: str
    external: External


class InternalKind(Enum):
    """Kind of item an export refers to."""

    FUNCTION = "function"
    TABLE = "table"
    MEMORY = "memory"
    GLOBAL = "global"


@dataclass(frozen=True)
class ExportEntry:
    """An export of an item by name."""

    field: str
    kind: InternalKind
    index: int


@dataclass(frozen=True)
class DataSegment:
    """A data segment; a missing offset marks a passive segment."""

    index: int
    offset: Optional[InitExpr]
    value: bytes = b""


@dataclass(frozen=True)
class ElementSegment:
    """An element segment; a missing offset marks a passive segment."""

    index: int
    offset: Optional[InitExpr]
    members: Tuple[int, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "members", tuple(self.members))


@dataclass
class Module:
    """A decoded module, section by section."""

    types: list = field(default_factory=list)
    imports: list = field(default_factory=list)
    functions: list = field(default_factory=list)
    tables: list = field(default_factory=list)
    memories: list = field(default_factory=list)
    globals: list = field(default_factory=list)
    exports: list = field(default_factory=list)
    start: Optional[int] = None
    code: list = field(default_factory=list)
    data: list = field(default_factory=list)
    elements: list = field(default_factory=list)