"""The node contract and the adapters that forward it.

Nodes are the building blocks of a generated program, much like functions are
the building blocks of a hand-written one. Every node is made up of:

- Any number of inputs and outputs, each an expression of some Python type.
- An evaluator that turns the input expressions into the output expressions
  (a tuple in the case of more than one output).
- Optional push and pull entry points, a persistent state type and the
  libraries its generated code requires.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Protocol, TypeVar, runtime_checkable

from ._deps import collect_crate_deps

if TYPE_CHECKING:
    import ast
    from collections.abc import Iterable

    from ._deps import CrateDep
    from ._eval_fn import EvalFn
    from ._evaluator import Evaluator

logger = logging.getLogger(__name__)


class Node(ABC):
    """Abstract interface for a unit of computation in a generated program.

    Only `evaluator` must be implemented. The remaining capabilities default
    to a stateless node without entry points or dependencies.
    """

    @abstractmethod
    def evaluator(self) -> Evaluator:
        """The approach taken for evaluating the node's inputs to its outputs.

        This can either be a function or an expression. Functions know the
        types of their inputs and outputs before code generation begins, while
        expressions are more ergonomic to implement as types are not resolved
        until the generated program is compiled.
        """
        ...

    def push_eval(self) -> EvalFn | None:
        """Whether to generate an entry point pushing evaluation from this node.

        Push evaluation order is a topological ordering of the connected
        component that starts at this node. A function with the returned
        signature is generated for every node that returns a descriptor; the
        signature must return None.
        """
        return None

    def pull_eval(self) -> EvalFn | None:
        """Whether to generate an entry point pulling evaluation into this node.

        Pull evaluation order is a topological ordering of the connected
        component that ends at this node. The signature must return None.
        """
        return None

    def state_type(self) -> ast.expr | None:
        """The type of the persistent state required by this node, if any.

        Code generation binds the state to the name `state` so that it is
        available to the node's expression.
        """
        return None

    def crate_deps(self) -> list[CrateDep]:
        """Libraries that must be available to the code generated for this node.

        Duplicates across nodes are ignored when aggregated.
        """
        return []


@runtime_checkable
class NodeLike(Protocol):
    """Any object providing at least an `evaluator` method."""

    def evaluator(self) -> Evaluator: ...


T = TypeVar("T")


def _forward(target: object, method_name: str, default: T) -> T:
    method = getattr(target, method_name, None)
    if method is None:
        return default
    return method()


class _ForwardingNode(Node):
    """Forward every node capability to a target object."""

    @abstractmethod
    def _target(self) -> NodeLike:
        ...

    def evaluator(self) -> Evaluator:
        return self._target().evaluator()

    def push_eval(self) -> EvalFn | None:
        return _forward(self._target(), "push_eval", None)

    def pull_eval(self) -> EvalFn | None:
        return _forward(self._target(), "pull_eval", None)

    def state_type(self) -> ast.expr | None:
        return _forward(self._target(), "state_type", None)

    def crate_deps(self) -> list[CrateDep]:
        return list(_forward(self._target(), "crate_deps", []))


class NodeHandle(_ForwardingNode):
    """An owning handle to a node.

    Lets a graph store different kinds of nodes behind one type. Objects that
    only implement `evaluator` get the default capabilities.
    """

    __slots__ = ("_node",)

    def __init__(self, node: NodeLike) -> None:
        if not isinstance(node, NodeLike):
            msg = f"Expected an object with an evaluator() method, got {type(node).__name__}"
            raise TypeError(msg)
        self._node = node

    @property
    def node(self) -> NodeLike:
        return self._node

    def _target(self) -> NodeLike:
        return self._node

    def __repr__(self) -> str:
        return f"NodeHandle({self._node!r})"


class NodeRef(_ForwardingNode):
    """A reference to a node owned elsewhere, such as by a graph.

    Wrapping does not transfer ownership. Every capability is forwarded to
    the referenced node.
    """

    __slots__ = ("_node",)

    def __init__(self, node: NodeLike) -> None:
        if not isinstance(node, NodeLike):
            msg = f"Expected an object with an evaluator() method, got {type(node).__name__}"
            raise TypeError(msg)
        self._node = node

    def _target(self) -> NodeLike:
        return self._node

    def __repr__(self) -> str:
        return f"NodeRef({self._node!r})"


def as_node(obj: NodeLike) -> Node:
    """Return `obj` if it is a `Node`, otherwise wrap it in a `NodeHandle`."""
    if isinstance(obj, Node):
        return obj
    return NodeHandle(obj)


def entry_points(node: NodeLike) -> tuple[EvalFn | None, EvalFn | None]:
    """Return the push and pull entry points of a node.

    This must be called before emitting code for the entry points.

    Raises:
        ContractViolationError: If an entry point does not return None.

    """
    handle = as_node(node)
    push, pull = handle.push_eval(), handle.pull_eval()
    for eval_fn in (push, pull):
        if eval_fn is not None:
            eval_fn.ensure_unit_return()
    return push, pull


def collect_node_deps(nodes: Iterable[NodeLike]) -> frozenset[CrateDep]:
    """Aggregate the crate dependencies of many nodes into one set."""
    return collect_crate_deps(as_node(node).crate_deps() for node in nodes)
