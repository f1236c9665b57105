"""Running a function validator over one function body."""

from __future__ import annotations

from typing import Any, Type

from .context import ModuleContext
from .elements import Func, FuncBody, Instruction
from .errors import ValidationError
from .func import (
    DEFAULT_FRAME_STACK_LIMIT,
    DEFAULT_VALUE_STACK_LIMIT,
    FunctionValidationContext,
)
from .locals import Locals


class FuncValidator:
    """Receives the instructions of one function body as they are validated.

    The base class type-checks each instruction, counts them and produces no
    output; subclasses may gather something along the way and return it from
    `finish`.
    """

    def __init__(self, ctx: FunctionValidationContext, body: FuncBody) -> None:
        self.body = body
        self.instructions_validated = 0
        self.finished = False

    def next_instruction(
        self, ctx: FunctionValidationContext, instruction: Instruction
    ) -> None:
        """Validate one instruction against the function's stacks."""
        ctx.step(instruction)
        self.instructions_validated += 1

    def finish(self) -> Any:
        """Mark the body as fully validated and return the gathered result."""
        self.finished = True
        return None


class PlainFuncValidator(FuncValidator):
    """A function validator that only validates and produces no result."""


def drive(
    validator_cls: Type[FuncValidator],
    module: ModuleContext,
    func: Func,
    body: FuncBody,
) -> Any:
    """Validate `body` as the function `func` of `module` and return the validator's output."""
    params, result_type = module.require_function_type(func.type_ref)

    if not body.code:
        raise ValidationError("Non-empty function body expected")

    context = FunctionValidationContext(
        module,
        Locals(params, body.locals),
        result_type,
        DEFAULT_VALUE_STACK_LIMIT,
        DEFAULT_FRAME_STACK_LIMIT,
    )
    validator = validator_cls(context, body)

    for position, instruction in enumerate(body.code):
        if context.frame_stack.is_empty():
            raise ValidationError(
                f"At instruction {instruction!r}(@{position}): "
                "instruction after the end of the function body"
            )
        try:
            validator.next_instruction(context, instruction)
        except ValidationError as err:
            raise ValidationError(
                f"At instruction {instruction!r}(@{position}): {err}"
            ) from err

    if not context.frame_stack.is_empty():
        raise ValidationError("Function body is not terminated by an `end` instruction")

    return validator.finish()