"""Nodes that add a single capability to an existing node.

Each wrapper forwards everything to the inner node except the one capability
it provides, so wrappers can be stacked::

    node = Push(WithState(expr("{state}.count + {}"), "Counter"), EvalFn.parse("def tick() -> None: ..."))
"""

from __future__ import annotations

import ast
from typing import TYPE_CHECKING

from ._deps import CrateDep
from ._eval_fn import EvalFn, Signature
from ._node import NodeHandle

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ._node import NodeLike


class Push(NodeHandle):
    """Enable push evaluation from the inner node."""

    __slots__ = ("_eval_fn",)

    def __init__(self, node: NodeLike, eval_fn: EvalFn) -> None:
        super().__init__(node)
        self._eval_fn = eval_fn

    def push_eval(self) -> EvalFn | None:
        return self._eval_fn

    def __repr__(self) -> str:
        return f"Push({self.node!r}, {self._eval_fn.signature.name!r})"


class Pull(NodeHandle):
    """Enable pull evaluation into the inner node."""

    __slots__ = ("_eval_fn",)

    def __init__(self, node: NodeLike, eval_fn: EvalFn) -> None:
        super().__init__(node)
        self._eval_fn = eval_fn

    def pull_eval(self) -> EvalFn | None:
        return self._eval_fn

    def __repr__(self) -> str:
        return f"Pull({self.node!r}, {self._eval_fn.signature.name!r})"


class WithState(NodeHandle):
    """Give the inner node a persistent state of the given type.

    The type may be given as an annotation expression or its source text.
    """

    __slots__ = ("_state_type",)

    def __init__(self, node: NodeLike, state_type: ast.expr | str) -> None:
        super().__init__(node)
        if isinstance(state_type, str):
            state_type = ast.parse(state_type, mode="eval").body
        self._state_type = state_type

    def state_type(self) -> ast.expr | None:
        return self._state_type

    def __repr__(self) -> str:
        return f"WithState({self.node!r}, {ast.unparse(self._state_type)!r})"


class WithDeps(NodeHandle):
    """Add crate dependencies to those of the inner node.

    Dependencies may be given as `CrateDep` values or ``name = source`` text.
    """

    __slots__ = ("_deps",)

    def __init__(self, node: NodeLike, deps: Iterable[CrateDep | str]) -> None:
        super().__init__(node)
        self._deps = tuple(dep if isinstance(dep, CrateDep) else CrateDep.parse(dep) for dep in deps)

    def crate_deps(self) -> list[CrateDep]:
        return [*super().crate_deps(), *self._deps]

    def __repr__(self) -> str:
        return f"WithDeps({self.node!r}, {[str(dep) for dep in self._deps]!r})"


def _unit_eval_fn(name: str) -> EvalFn:
    return EvalFn(signature=Signature(name=name))


def with_push_eval_name(node: NodeLike, name: str) -> Push:
    """Enable push evaluation through a generated `def <name>() -> None` entry point."""
    return Push(node, _unit_eval_fn(name))


def with_pull_eval_name(node: NodeLike, name: str) -> Pull:
    """Enable pull evaluation through a generated `def <name>() -> None` entry point."""
    return Pull(node, _unit_eval_fn(name))
