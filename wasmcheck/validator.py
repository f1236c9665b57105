"""Validation of a whole module: index spaces, function bodies and segments."""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Type

from .context import ModuleContext
from .driver import FuncValidator, PlainFuncValidator, drive
from .elements import (
    GlobalEntry,
    GlobalType,
    InitExpr,
    Instruction,
    InternalKind,
    MemoryType,
    Module,
    Opcode,
    ResizableLimits,
    TableType,
    ValueType,
)
from .errors import ValidationError

LINEAR_MEMORY_MAX_PAGES = 65536
"""Maximal number of pages that an instance supports."""

_CONST_TYPES = {
    Opcode.I32_CONST: ValueType.I32,
    Opcode.I64_CONST: ValueType.I64,
    Opcode.F32_CONST: ValueType.F32,
    Opcode.F64_CONST: ValueType.F64,
}

_END = Instruction(Opcode.END)


class Validator:
    """Collects the results of validating a module.

    `func_validator` is the class used for each function body; the output of
    each is handed to `on_function_validated`. The base class records which
    functions were validated and produces no result.
    """

    func_validator: Type[FuncValidator] = PlainFuncValidator

    def __init__(self, module: Module) -> None:
        self.module = module
        self.validated_functions: List[int] = []
        self.finished = False

    def on_function_validated(self, index: int, output: Any) -> None:
        """Record that the function body at `index` passed validation."""
        self.validated_functions.append(index)

    def finish(self) -> Any:
        """Mark the module as fully validated and return the gathered result."""
        self.finished = True
        return None


class PlainValidator(Validator):
    """A module validator that only validates and produces no result."""


def validate_memory(initial: int, maximum: Optional[int]) -> None:
    """Check memory limits, counted in pages."""
    if initial > LINEAR_MEMORY_MAX_PAGES:
        raise ValidationError(
            f"initial memory size must be at most {LINEAR_MEMORY_MAX_PAGES} pages"
        )
    if maximum is not None:
        if initial > maximum:
            raise ValidationError(
                f"maximum limit {maximum} is less than minimum {initial}"
            )
        if maximum > LINEAR_MEMORY_MAX_PAGES:
            raise ValidationError(
                f"maximum memory size must be at most {LINEAR_MEMORY_MAX_PAGES} pages"
            )


def _validate_limits(limits: ResizableLimits) -> None:
    if limits.maximum is not None and limits.initial > limits.maximum:
        raise ValidationError(
            f"maximum limit {limits.maximum} is less than minimum {limits.initial}"
        )


def _validate_memory_type(memory_type: MemoryType) -> None:
    validate_memory(memory_type.initial, memory_type.maximum)


def _validate_table_type(table_type: TableType) -> None:
    _validate_limits(table_type.limits)


def _expr_const_type(init_expr: InitExpr, globals_: Sequence[GlobalType]) -> ValueType:
    """Return the type of a constant expression."""
    code = init_expr.code
    if len(code) != 2:
        raise ValidationError("Init expression should always be with length 2")
    first = code[0]
    if first.opcode in _CONST_TYPES:
        expr_type = _CONST_TYPES[first.opcode]
    elif first.opcode is Opcode.GET_GLOBAL:
        idx = first.args[0]
        if not 0 <= idx < len(globals_):
            raise ValidationError(f"Global {idx} doesn't exists or not yet defined")
        target = globals_[idx]
        if target.is_mutable:
            raise ValidationError(f"Global {idx} is mutable")
        expr_type = target.content_type
    else:
        raise ValidationError("Non constant opcode in init expr")
    if code[1] != _END:
        raise ValidationError("Expression doesn't ends with `end` opcode")
    return expr_type


def _validate_global_entry(entry: GlobalEntry, globals_: Sequence[GlobalType]) -> None:
    init_type = _expr_const_type(entry.init_expr, globals_)
    declared = entry.global_type.content_type
    if init_type is not declared:
        raise ValidationError(
            f"Trying to initialize variable of type {declared!r} "
            f"with value of type {init_type!r}"
        )


def _check_segment_offset(offset: Optional[InitExpr], kind: str, ctx: ModuleContext) -> None:
    if offset is None:
        raise ValidationError(f"passive {kind} segments are not supported")
    if _expr_const_type(offset, ctx.globals) is not ValueType.I32:
        raise ValidationError("segment offset should return I32")


def _build_context(module: Module) -> ModuleContext:
    ctx = ModuleContext(types=list(module.types))
    imported_globals: List[GlobalType] = []

    for entry in module.imports:
        external = entry.external
        if isinstance(external, TableType):
            ctx.tables.append(external)
        elif isinstance(external, MemoryType):
            ctx.memories.append(external)
        elif isinstance(external, GlobalType):
            ctx.globals.append(external)
            imported_globals.append(external)
        else:
            ctx.func_type_indexes.append(external)

    for func in module.functions:
        ctx.func_type_indexes.append(func.type_ref)
    for table in module.tables:
        _validate_table_type(table)
        ctx.tables.append(table)
    for memory in module.memories:
        _validate_memory_type(memory)
        ctx.memories.append(memory)
    for global_entry in module.globals:
        _validate_global_entry(global_entry, imported_globals)
        ctx.globals.append(global_entry.global_type)
    return ctx


def _validate_exports(module: Module, ctx: ModuleContext) -> None:
    names = sorted(export.field for export in module.exports)
    for first, second in zip(names, names[1:]):
        if first == second:
            raise ValidationError(f"duplicate export {first}")

    for export in module.exports:
        if export.kind is InternalKind.FUNCTION:
            ctx.require_function(export.index)
        elif export.kind is InternalKind.GLOBAL:
            ctx.require_global(export.index, None)
        elif export.kind is InternalKind.MEMORY:
            ctx.require_memory(export.index)
        else:
            ctx.require_table(export.index)


def _validate_imports(module: Module, ctx: ModuleContext) -> None:
    for entry in module.imports:
        external = entry.external
        if isinstance(external, MemoryType):
            _validate_memory_type(external)
        elif isinstance(external, TableType):
            _validate_table_type(external)
        elif not isinstance(external, GlobalType):
            ctx.require_function_type(external)


def validate_module(module: Module, validator_cls: Type[Validator] = PlainValidator) -> Any:
    """Validate `module` and return what the validator gathered."""
    validation = validator_cls(module)
    ctx = _build_context(module)

    if len(module.functions) != len(module.code):
        raise ValidationError(
            f"length of function section is {len(module.functions)}, "
            f"while len of code section is {len(module.code)}"
        )

    for index, (function, body) in enumerate(zip(module.functions, module.code)):
        try:
            output = drive(validation.func_validator, ctx, function, body)
        except ValidationError as err:
            raise ValidationError(
                f"Function #{index} reading/validation error: {err}"
            ) from err
        validation.on_function_validated(index, output)

    if module.start is not None:
        params, result = ctx.require_function(module.start)
        if not result.is_no_result or params:
            raise ValidationError("start function expected to have type [] -> []")

    _validate_exports(module, ctx)
    _validate_imports(module, ctx)

    if len(ctx.tables) > 1:
        raise ValidationError(f"too many tables in index space: {len(ctx.tables)}")
    if len(ctx.memories) > 1:
        raise ValidationError(
            f"too many memory regions in index space: {len(ctx.memories)}"
        )

    for segment in module.data:
        ctx.require_memory(segment.index)
        _check_segment_offset(segment.offset, "memory", ctx)

    for segment in module.elements:
        ctx.require_table(segment.index)
        _check_segment_offset(segment.offset, "element", ctx)
        for function_index in segment.members:
            ctx.require_function(function_index)

    return validation.finish()