"""Node evaluation strategies and call-expression synthesis.

A node turns its input expressions into output expressions in one of two ways:

- `FnEvaluator`: a fully typed function definition. The arity is read from the
  signature and the generated code simply calls the function by name.
- `ExprEvaluator`: a generator producing an arbitrary expression from the
  input expressions. Input and output counts are declared explicitly, and no
  types need to be known until the generated program is compiled.
"""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Self

from ._errors import ContractViolationError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

logger = logging.getLogger(__name__)

# Name of the local binding holding a stateful node's state in generated code.
STATE_BINDING = "state"

_U32_MAX = 2**32 - 1
_TUPLE_NAMES = frozenset({"tuple", "Tuple"})


def state_expr() -> ast.Name:
    """Return an expression referencing the reserved state binding."""
    return ast.Name(id=STATE_BINDING, ctx=ast.Load())


def count_fn_inputs(fn: ast.FunctionDef) -> int:
    """Count the positional parameters of a function definition."""
    return len(fn.args.posonlyargs) + len(fn.args.args)


def _is_tuple_type(node: ast.expr) -> bool:
    match node:
        case ast.Name(id=name):
            return name in _TUPLE_NAMES
        case ast.Attribute(value=ast.Name(id="typing"), attr="Tuple"):
            return True
    return False


def count_return_outputs(returns: ast.expr | None) -> int:
    """Count the outputs described by a return annotation.

    `None` (or no annotation) yields 0, a tuple type yields its number of
    elements, and any other type yields 1. A variadic `tuple[T, ...]` is a
    single value.
    """
    match returns:
        case None | ast.Constant(value=None):
            return 0
        case ast.Constant(value=str() as forward_ref):
            try:
                resolved = ast.parse(forward_ref.strip(), mode="eval").body
            except SyntaxError:
                return 1
            return count_return_outputs(resolved)
        case ast.Subscript(value=value, slice=ast.Tuple(elts=elts)) if _is_tuple_type(value):
            match elts:
                case [_, ast.Constant(value=last)] if last is Ellipsis:
                    return 1
            return len(elts)
    return 1


def count_fn_outputs(fn: ast.FunctionDef) -> int:
    """Count the outputs of a function definition from its return annotation."""
    return count_return_outputs(fn.returns)


@dataclass(frozen=True, slots=True)
class FnEvaluator:
    """Evaluate a node by calling a free-standing function.

    Knowing the types of a node's inputs and outputs allows for more modular
    generated code and better error messages, and is what lets a whole graph
    act as a node.

    Attributes:
        fn_item: The function definition, including its name, signature,
            body and decorators.

    """

    fn_item: ast.FunctionDef

    def __post_init__(self) -> None:
        if not isinstance(self.fn_item, ast.FunctionDef):
            msg = f"Function nodes require an ast.FunctionDef, got {type(self.fn_item).__name__}"
            raise TypeError(msg)
        args = self.fn_item.args
        if args.vararg or args.kwonlyargs or args.kwarg:
            msg = (
                f"Function node '{self.fn_item.name}' may only declare positional parameters, "
                "since its inputs are passed by position"
            )
            raise ContractViolationError(msg)

    @classmethod
    def parse(cls, source: str) -> Self:
        """Create an evaluator from the source of a single function definition."""
        module = ast.parse(source)
        if len(module.body) != 1 or not isinstance(module.body[0], ast.FunctionDef):
            msg = "Expected the source of exactly one function definition"
            raise ValueError(msg)
        return cls(module.body[0])

    @property
    def name(self) -> str:
        return self.fn_item.name

    @property
    def n_inputs(self) -> int:
        """The number of inputs to the node."""
        return count_fn_inputs(self.fn_item)

    @property
    def n_outputs(self) -> int:
        """The number of outputs from the node."""
        return count_fn_outputs(self.fn_item)

    def expr(self, args: Sequence[ast.expr], stateful: bool) -> ast.expr:  # noqa: FBT001
        """Synthesize a call of the function with the given argument expressions.

        When `stateful` is true the reserved state binding is appended as a
        trailing argument.

        Raises:
            ContractViolationError: If the number of arguments differs from
                `n_inputs`.

        """
        n_inputs = self.n_inputs
        if len(args) != n_inputs:
            msg = (
                f"The number of args to function node '{self.name}' must match n_inputs "
                f"(expected {n_inputs}, got {len(args)})"
            )
            raise ContractViolationError(msg)
        call_args = list(args)
        if stateful:
            call_args.append(state_expr())
        logger.debug("Synthesized call to %s with %d args (stateful=%s)", self.name, len(call_args), stateful)
        return ast.Call(func=ast.Name(id=self.name, ctx=ast.Load()), args=call_args, keywords=[])


@dataclass(frozen=True, slots=True)
class ExprEvaluator:
    """Evaluate a node by generating an expression from its input expressions.

    The generator is responsible for referencing the state binding itself when
    the node is stateful.

    Attributes:
        gen_expr: Produces the node's expression given the input expressions.
        n_inputs: The number of inputs to the expression.
        n_outputs: The number of outputs of the expression.

    """

    gen_expr: Callable[[list[ast.expr]], ast.expr]
    n_inputs: int
    n_outputs: int

    def __post_init__(self) -> None:
        for field_name in ("n_inputs", "n_outputs"):
            value = getattr(self, field_name)
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _U32_MAX:
                msg = f"{field_name} must be an int in 0..{_U32_MAX}, got {value!r}"
                raise ValueError(msg)

    def expr(self, args: Sequence[ast.expr], stateful: bool) -> ast.expr:  # noqa: ARG002, FBT001
        """Invoke the generator with the given argument expressions."""
        return self.gen_expr(list(args))


Evaluator = FnEvaluator | ExprEvaluator
