"""Descriptors for generated push and pull evaluation entry points.

An `EvalFn` captures only the externally callable shape of an entry point:
its signature and decorators. The body is supplied later by the graph
assembler when it emits the function.
"""

from __future__ import annotations

import ast
from typing import TYPE_CHECKING, Self

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from ._errors import ContractViolationError

if TYPE_CHECKING:
    from collections.abc import Sequence

# Parameter appended to every generated entry point. It carries the states of
# all nodes so they can be passed down the call stack.
NODE_STATES_PARAM = "node_states"


def _canonical_expr(source: str) -> str:
    """Normalise the formatting of an expression by round-tripping it through `ast`."""
    try:
        tree = ast.parse(source.strip(), mode="eval")
    except SyntaxError as e:
        msg = f"Not a valid Python expression: {source!r}"
        raise ValueError(msg) from e
    return ast.unparse(tree.body)


def _unparse(node: ast.expr | None) -> str | None:
    return None if node is None else ast.unparse(node)


def _parse_expr(source: str) -> ast.expr:
    return ast.parse(source, mode="eval").body


class Param(BaseModel):
    """A positional parameter of an entry point.

    Attributes:
        name: The parameter name.
        annotation: The type annotation, or None when it is omitted.
        positional_only: Whether the parameter is declared before a `/` marker.

    """

    model_config = ConfigDict(frozen=True)

    name: str
    annotation: str | None = None
    positional_only: bool = False

    @field_validator("name")
    @classmethod
    def _check_identifier(cls, value: str) -> str:
        if not value.isidentifier():
            msg = f"Parameter name must be an identifier, got {value!r}"
            raise ValueError(msg)
        return value

    @field_validator("annotation")
    @classmethod
    def _canonical_annotation(cls, value: str | None) -> str | None:
        return None if value is None else _canonical_expr(value)


class Signature(BaseModel):
    """The callable shape of an entry point.

    Annotations are stored as canonical source text, so two signatures that
    differ only in formatting compare equal.

    Attributes:
        name: The function name.
        params: Positional parameters, in order.
        returns: The return annotation, or None when it is omitted.
        is_async: Whether the entry point is a coroutine function.

    """

    model_config = ConfigDict(frozen=True)

    name: str
    params: tuple[Param, ...] = ()
    returns: str | None = None
    is_async: bool = False

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not value.isidentifier():
            msg = f"Function name must be an identifier, got {value!r}"
            raise ValueError(msg)
        return value

    @field_validator("returns")
    @classmethod
    def _canonical_returns(cls, value: str | None) -> str | None:
        return None if value is None else _canonical_expr(value)

    @model_validator(mode="after")
    def _check_positional_only_first(self) -> Self:
        kinds = [p.positional_only for p in self.params]
        if kinds != sorted(kinds, reverse=True):
            msg = f"Positional-only parameters of '{self.name}' must precede the others"
            raise ValueError(msg)
        return self

    @property
    def returns_unit(self) -> bool:
        """Whether the declared return type is `None` (the unit type)."""
        if self.returns is None:
            return True
        match _parse_expr(self.returns):
            case ast.Constant(value=None) | ast.Constant(value="None"):
                return True
        return False

    @classmethod
    def from_function_def(cls, fn: ast.FunctionDef | ast.AsyncFunctionDef) -> Self:
        """Extract the signature of a function definition.

        Raises:
            ValueError: If the function declares parameters that cannot be
                passed positionally, or parameters with default values.

        """
        args = fn.args
        if args.vararg or args.kwonlyargs or args.kwarg:
            msg = f"Entry point '{fn.name}' may only declare positional parameters"
            raise ValueError(msg)
        # `node_states` is appended without a default, so none may precede it.
        if args.defaults:
            msg = f"Entry point '{fn.name}' may not declare default parameter values"
            raise ValueError(msg)
        params = (
            *(
                Param(name=arg.arg, annotation=_unparse(arg.annotation), positional_only=True)
                for arg in args.posonlyargs
            ),
            *(Param(name=arg.arg, annotation=_unparse(arg.annotation)) for arg in args.args),
        )
        return cls(
            name=fn.name,
            params=params,
            returns=_unparse(fn.returns),
            is_async=isinstance(fn, ast.AsyncFunctionDef),
        )


class EvalFn(BaseModel):
    """Items needed to generate a push or pull evaluation function for a node.

    Note that every generated function has a single `node_states` parameter
    appended to its parameters so that the state associated with each node
    may be passed down the call stack. Code loading the generated entry point
    must pass the node states as the final argument.
    """

    model_config = ConfigDict(frozen=True)

    signature: Signature
    attributes: tuple[str, ...] = ()

    @field_validator("attributes")
    @classmethod
    def _canonical_attributes(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(_canonical_expr(attr) for attr in value)

    @classmethod
    def from_function_def(cls, fn: ast.FunctionDef | ast.AsyncFunctionDef) -> Self:
        """Build a descriptor from a function definition, discarding its body."""
        return cls(
            signature=Signature.from_function_def(fn),
            attributes=tuple(ast.unparse(dec) for dec in fn.decorator_list),
        )

    @classmethod
    def parse(cls, source: str) -> Self:
        """Build a descriptor from the source of a single function definition.

        Example:
            >>> EvalFn.parse("def push() -> None: ...").signature.returns_unit
            True

        """
        module = ast.parse(source)
        if len(module.body) != 1 or not isinstance(module.body[0], (ast.FunctionDef, ast.AsyncFunctionDef)):
            msg = "Expected the source of exactly one function definition"
            raise ValueError(msg)
        return cls.from_function_def(module.body[0])

    def ensure_unit_return(self) -> None:
        """Check that the entry point returns `None`.

        Raises:
            ContractViolationError: If another return type is declared.

        """
        if not self.signature.returns_unit:
            msg = (
                f"Entry point '{self.signature.name}' must return None, "
                f"but declares a return type of '{self.signature.returns}'"
            )
            raise ContractViolationError(msg)

    def to_function_def(self, body: Sequence[ast.stmt] = ()) -> ast.FunctionDef | ast.AsyncFunctionDef:
        """Emit the entry-point function with the `node_states` parameter appended."""
        self.ensure_unit_return()
        sig = self.signature
        posonly: list[ast.arg] = []
        params: list[ast.arg] = []
        for p in sig.params:
            arg = ast.arg(arg=p.name, annotation=None if p.annotation is None else _parse_expr(p.annotation))
            (posonly if p.positional_only else params).append(arg)
        params.append(ast.arg(arg=NODE_STATES_PARAM))
        arguments = ast.arguments(
            posonlyargs=posonly,
            args=params,
            vararg=None,
            kwonlyargs=[],
            kw_defaults=[],
            kwarg=None,
            defaults=[],
        )
        fn_type = ast.AsyncFunctionDef if sig.is_async else ast.FunctionDef
        fn = fn_type(
            name=sig.name,
            args=arguments,
            body=list(body) or [ast.Pass()],
            decorator_list=[_parse_expr(attr) for attr in self.attributes],
            returns=None if sig.returns is None else _parse_expr(sig.returns),
            type_params=[],
        )
        return ast.fix_missing_locations(fn)
