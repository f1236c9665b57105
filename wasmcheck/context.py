"""Index spaces of a module that function bodies are checked against."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .elements import BlockType, FunctionType, GlobalType, MemoryType, TableType, ValueType
from .errors import ValidationError


def _lookup(items: list, idx: int):
    if 0 <= idx < len(items):
        return items[idx]
    return None


@dataclass
class ModuleContext:
    """Memories, tables, globals, signatures and function signatures of a module."""

    memories: List[MemoryType] = field(default_factory=list)
    tables: List[TableType] = field(default_factory=list)
    globals: List[GlobalType] = field(default_factory=list)
    types: List[FunctionType] = field(default_factory=list)
    func_type_indexes: List[int] = field(default_factory=list)

    def require_memory(self, idx: int) -> MemoryType:
        """Return the memory at `idx`, raising if there is none."""
        memory = _lookup(self.memories, idx)
        if memory is None:
            raise ValidationError(f"Memory at index {idx} doesn't exists")
        return memory

    def require_table(self, idx: int) -> TableType:
        """Return the table at `idx`, raising if there is none."""
        table = _lookup(self.tables, idx)
        if table is None:
            raise ValidationError(f"Table at index {idx} doesn't exists")
        return table

    def require_function(self, idx: int) -> Tuple[Tuple[ValueType, ...], BlockType]:
        """Return parameter types and result of the function at `idx`."""
        type_idx = _lookup(self.func_type_indexes, idx)
        if type_idx is None:
            raise ValidationError(f"Function at index {idx} doesn't exists")
        return self.require_function_type(type_idx)

    def require_function_type(self, idx: int) -> Tuple[Tuple[ValueType, ...], BlockType]:
        """Return parameter types and result of the signature at `idx`."""
        func_type = _lookup(self.types, idx)
        if func_type is None:
            raise ValidationError(f"Type at index {idx} doesn't exists")
        if func_type.return_type is None:
            result = BlockType.NO_RESULT
        else:
            result = BlockType.of(func_type.return_type)
        return tuple(func_type.params), result

    def require_global(self, idx: int, mutability: Optional[bool] = None) -> GlobalType:
        """Return the global at `idx`, checking its mutability when one is expected."""
        global_type = _lookup(self.globals, idx)
        if global_type is None:
            raise ValidationError(f"Global at index {idx} doesn't exists")
        if mutability is not None:
            if mutability and not global_type.is_mutable:
                raise ValidationError(f"Expected global {idx} to be mutable")
            if not mutability and global_type.is_mutable:
                raise ValidationError(f"Expected global {idx} to be immutable")
        return global_type