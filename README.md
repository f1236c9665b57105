# wasmcheck

`wasmcheck` validates WebAssembly (MVP) modules that are described as Python
objects. It type-checks every function body and checks that the module as a
whole is consistent. If a module is invalid, a
`wasmcheck.errors.ValidationError` is raised. Its message says what went
wrong, and for a function body it also says which function and which
instruction.

## What is checked

- **Table limits.** The initial size must not exceed the maximum.
- **Memory limits.** The initial size must not exceed the maximum. Neither
  value may exceed 65536 pages.
- **Global initialisers.** Each one must be a single constant instruction
  followed by `end`, and its type must match the global's declared type.
  - The constant instruction is one of `i32.const`, `i64.const`,
    `f32.const`, `f64.const` or `get_global`.
  - A `get_global` may only read an imported global, and that global must be
    immutable.
- **Function bodies.** The function section and the code section must have
  the same length. Each body must be non-empty and must end exactly with the
  `end` that closes the function.
  - Every instruction is checked against an operand stack and a control-frame
    stack. Each of the two stacks is limited to 16384 entries.
  - The checks cover:
    - blocks, loops and `if`/`else`
    - `br`, `br_if` and `br_table`
    - `return` and `unreachable`
    - direct and indirect calls
    - locals and globals
    - loads and stores, including the rule that alignment may be no larger
      than the natural alignment
    - `current_memory` and `grow_memory`
    - all numeric, comparison and conversion operators
- **Start function.** If there is one, it must exist and have the type
  `[] -> []`.
- **Exports.** Names must be unique, and each export must refer to an
  existing function, table, memory or global.
- **Imports.** A function import must name an existing type. Imported tables
  and memories must have valid limits.
- **Index spaces.** At most one table and at most one memory are allowed,
  counting imported and defined ones together.
- **Data and element segments.**
  - The memory or table each segment refers to must exist.
  - The segment must have an offset. Passive segments are rejected.
  - The offset must be a constant expression of type `i32`.
  - Every member of an element segment must be an existing function.

## Describing a module

A module is built from the classes in `wasmcheck.elements`:

- `Module` has one list per section: `types`, `imports`, `functions`,
  `tables`, `memories`, `globals`, `exports`, `code`, `data` and `elements`.
  It also has an optional `start` function index.
- `FunctionType(params, return_type)` and `Func(type_ref)` describe function
  signatures and the entries of the function section.
- `FuncBody(locals, code)` holds the local declarations as `Local(count,
  value_type)` groups, followed by the instructions.
- `Instruction(opcode, *immediates)` takes an `Opcode` member and its
  immediates. The number of immediates is checked.
  - `block`, `loop` and `if` take a `BlockType`. Use `BlockType.NO_RESULT` or
    `BlockType.of(ValueType.I32)`.
  - `br_table` takes a sequence of depths and a default depth.
  - Loads and stores take an alignment exponent and an offset.
- `TableType`, `MemoryType` and `GlobalType` describe tables, memories and
  globals. `GlobalEntry(global_type, init_expr)` defines a global with an
  `InitExpr` initialiser.
- `ImportEntry(module, field, external)` describes an import. Its `external`
  is one of:
  - a type index, for a function
  - a `TableType`
  - a `MemoryType`
  - a `GlobalType`
- `ExportEntry(field, kind, index)` uses an `InternalKind` for its `kind`.
- `DataSegment(index, offset, value)` and `ElementSegment(index, offset,
  members)` describe the segments.

## Usage

```python
from wasmcheck.elements import (
    Func, FuncBody, FunctionType, Instruction, Module, Opcode, ValueType,
)
from wasmcheck.errors import ValidationError
from wasmcheck.validator import PlainValidator, validate_module

returns_i32 = FunctionType(params=[], return_type=ValueType.I32)

good = Module(
    types=[returns_i32],
    functions=[Func(0)],
    code=[FuncBody(code=[Instruction(Opcode.I32_CONST, 42), Instruction(Opcode.END)])],
)
validate_module(good, PlainValidator)  # passes, returns None

bad = Module(
    types=[returns_i32],
    functions=[Func(0)],
    code=[FuncBody(code=[Instruction(Opcode.END)])],  # no i32 left to return
)
try:
    validate_module(bad, PlainValidator)
except ValidationError as err:
    print(err)  # "Function #0 reading/validation error: At instruction End(@0): ..."
```

If you only need to check memory limits, call
`wasmcheck.validator.validate_memory(initial, maximum)`.

## Custom validators

`validate_module(module, validator_cls)` works as follows:

1. It creates `validator_cls(module)`.
2. For each function body, it runs the class named by the validator's
   `func_validator` attribute. The default is `PlainFuncValidator`.
3. It passes the result of that function validator's `finish()` to
   `on_function_validated(index, output)`.
4. It returns the validator's `finish()`.

The base `FuncValidator.next_instruction(ctx, instruction)` type-checks the
instruction through `ctx.step(instruction)`. When you subclass it, call the
base method. The base classes also keep a few records:

- `FuncValidator.instructions_validated` counts the instructions checked.
- `Validator.validated_functions` lists the indexes of the functions that
  were validated.
- Both classes set `finished` once their `finish()` has run.

This example collects the opcodes of every function:

```python
from wasmcheck.driver import FuncValidator
from wasmcheck.validator import Validator, validate_module


class OpcodeCollector(FuncValidator):
    def __init__(self, ctx, body):
        super().__init__(ctx, body)
        self.opcodes = []

    def next_instruction(self, ctx, instruction):
        super().next_instruction(ctx, instruction)
        self.opcodes.append(instruction.opcode)

    def finish(self):
        super().finish()
        return self.opcodes


class OpcodesPerFunction(Validator):
    func_validator = OpcodeCollector

    def __init__(self, module):
        super().__init__(module)
        self.per_function = {}

    def on_function_validated(self, index, output):
        super().on_function_validated(index, output)
        self.per_function[index] = output

    def finish(self):
        super().finish()
        return self.per_function


opcodes = validate_module(good, OpcodesPerFunction)  # {0: [Opcode.I32_CONST, Opcode.END]}
```

## Lower-level pieces

- `wasmcheck.driver.drive(validator_cls, module_context, func, body)`
  validates a single function body and returns the output of its validator.
- `wasmcheck.func.FunctionValidationContext` holds the operand and frame
  stacks of one body. Its `step(instruction)` method checks one instruction.
- `wasmcheck.frames` provides the stack helpers used by
  `FunctionValidationContext`:
  - `StackValueType`, which can stand for any type
  - `BlockFrame`
  - `push_value`, `pop_value`, `tee_value`
  - `push_label`, `pop_label`
  - `make_top_frame_polymorphic`
- `wasmcheck.context.ModuleContext` holds the module's index spaces. Its
  `require_memory`, `require_table`, `require_function`,
  `require_function_type` and `require_global` methods raise
  `ValidationError` when an index does not exist.
- `wasmcheck.locals.Locals(params, local_groups)` resolves the type of a
  local index with `type_of_local(idx)`.
- `wasmcheck.stack.StackWithLimit(limit)` is a bounded LIFO stack. It raises
  `StackError`, a subclass of `ValidationError`, when it overflows, when it
  is read while empty, or when a position is out of range.

## What it does not do

`wasmcheck` neither reads nor writes the binary or text formats of
WebAssembly. You must supply modules already built from the classes in
`wasmcheck.elements`. It does not instantiate or execute modules, and it has
no command-line interface.