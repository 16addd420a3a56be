"""Ready-made node kinds backed by a function definition or an expression template."""

from __future__ import annotations

import ast
import copy
import string
from typing import TYPE_CHECKING, Self

from ._deps import CrateDep
from ._errors import ContractViolationError, NewExprError
from ._evaluator import STATE_BINDING, ExprEvaluator, FnEvaluator
from ._node import Node

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ._evaluator import Evaluator


_PLACEHOLDER = "__nodeweave_input_{}__"


def _to_deps(deps: Iterable[CrateDep | str]) -> tuple[CrateDep, ...]:
    return tuple(dep if isinstance(dep, CrateDep) else CrateDep.parse(dep) for dep in deps)


class FnNode(Node):
    """A node evaluated by calling the given function definition."""

    def __init__(self, fn_item: ast.FunctionDef, crate_deps: Iterable[CrateDep | str] = ()) -> None:
        self._evaluator = FnEvaluator(fn_item)
        self._deps = _to_deps(crate_deps)

    @classmethod
    def parse(cls, source: str, crate_deps: Iterable[CrateDep | str] = ()) -> Self:
        return cls(FnEvaluator.parse(source).fn_item, crate_deps)

    @property
    def fn_item(self) -> ast.FunctionDef:
        return self._evaluator.fn_item

    def evaluator(self) -> Evaluator:
        return self._evaluator

    def crate_deps(self) -> list[CrateDep]:
        return list(self._deps)

    def __repr__(self) -> str:
        return f"FnNode({self._evaluator.name!r})"


def _template_fields(template: str) -> list[tuple[str, str | None, str | None, str | None]]:
    try:
        return list(string.Formatter().parse(template))
    except ValueError as e:
        msg = f"Malformed expression template: {template!r}"
        raise NewExprError(msg) from e


class _SubstituteInputs(ast.NodeTransformer):
    def __init__(self, args: list[ast.expr]) -> None:
        self._args = {_PLACEHOLDER.format(i): arg for i, arg in enumerate(args)}

    def visit_Name(self, node: ast.Name) -> ast.expr:  # noqa: N802
        arg = self._args.get(node.id)
        return node if arg is None else copy.deepcopy(arg)


class ExprNode(Node):
    """A node evaluated by substituting its inputs into an expression template.

    Each ``{}`` in the template marks one input, in order, and ``{state}``
    refers to the node's state binding. Literal braces are written ``{{`` and
    ``}}``.

    Example:
        >>> node = ExprNode("{} * {}")
        >>> ast.unparse(node.evaluator().expr([ast.Name("a"), ast.Name("b")], stateful=False))
        'a * b'

    """

    def __init__(self, template: str, n_outputs: int = 1, crate_deps: Iterable[CrateDep | str] = ()) -> None:
        self._template = template
        self._n_inputs = 0
        parts: list[str] = []
        for literal, field_name, format_spec, conversion in _template_fields(template):
            parts.append(literal)
            if field_name is None:
                continue
            if format_spec or conversion:
                msg = f"Format specs and conversions are not supported in expression templates: {template!r}"
                raise NewExprError(msg)
            if field_name == "":
                parts.append(_PLACEHOLDER.format(self._n_inputs))
                self._n_inputs += 1
            elif field_name == STATE_BINDING:
                parts.append(STATE_BINDING)
            else:
                msg = f"Unknown field '{{{field_name}}}' in expression template: {template!r}"
                raise NewExprError(msg)

        try:
            self._tree = ast.parse("".join(parts).strip(), mode="eval").body
        except SyntaxError as e:
            msg = f"Expression template is not a valid Python expression: {template!r}"
            raise NewExprError(msg) from e
        self._evaluator = ExprEvaluator(gen_expr=self._generate, n_inputs=self._n_inputs, n_outputs=n_outputs)
        self._deps = _to_deps(crate_deps)

    @property
    def template(self) -> str:
        return self._template

    def _generate(self, args: list[ast.expr]) -> ast.expr:
        if len(args) != self._n_inputs:
            msg = (
                f"Expression template {self._template!r} expects {self._n_inputs} inputs, got {len(args)}"
            )
            raise ContractViolationError(msg)
        tree = copy.deepcopy(self._tree)
        return _SubstituteInputs(args).visit(tree)

    def evaluator(self) -> Evaluator:
        return self._evaluator

    def crate_deps(self) -> list[CrateDep]:
        return list(self._deps)

    def __repr__(self) -> str:
        return f"ExprNode({self._template!r})"


def expr(template: str) -> ExprNode:
    """Create a node from the given Python expression template.

    Shorthand for `ExprNode(template)`.
    """
    return ExprNode(template)
