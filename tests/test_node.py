"""Tests for the node contract and its forwarding adapters."""

import ast

import pytest

import nodeweave as nw
from nodeweave import (
    ContractViolationError,
    CrateDep,
    EvalFn,
    ExprEvaluator,
    FnEvaluator,
    Node,
    NodeHandle,
    NodeRef,
    as_node,
    collect_node_deps,
    entry_points,
)
from nodeweave._node import _ForwardingNode

# =============================================================================
# Fixtures
# =============================================================================


class MinimalNode(Node):
    """A node that only defines its evaluator."""

    def evaluator(self) -> nw.Evaluator:
        return FnEvaluator.parse("def ident(x: int) -> int:\n    return x")


class FullNode(Node):
    """A node overriding every capability."""

    def evaluator(self) -> nw.Evaluator:
        return ExprEvaluator(gen_expr=lambda args: ast.Tuple(elts=args, ctx=ast.Load()), n_inputs=2, n_outputs=2)

    def push_eval(self) -> EvalFn | None:
        return EvalFn.parse("def push() -> None: ...")

    def pull_eval(self) -> EvalFn | None:
        return EvalFn.parse("def pull() -> None: ...")

    def state_type(self) -> ast.expr | None:
        return ast.parse("dict[str, int]", mode="eval").body

    def crate_deps(self) -> list[CrateDep]:
        return [CrateDep.parse('numpy = "1.26"'), CrateDep.parse('rich = "13"')]


class DuckNode:
    """Not a Node subclass, but provides an evaluator."""

    def evaluator(self) -> nw.Evaluator:
        return FnEvaluator.parse("def duck(): ...")


class SlottedDuckNode:
    """A duck-typed node whose instances do not support weak references."""

    __slots__ = ()

    def evaluator(self) -> nw.Evaluator:
        return FnEvaluator.parse("def slotted(a): ...")


class BadEntryNode(Node):
    def evaluator(self) -> nw.Evaluator:
        return FnEvaluator.parse("def f(): ...")

    def pull_eval(self) -> EvalFn | None:
        return EvalFn.parse("def pull() -> int: ...")


def _snapshot(node: Node) -> tuple[object, ...]:
    """Comparable view of every capability of a node."""
    evaluator = node.evaluator()
    args = [ast.Name(id=f"a{i}", ctx=ast.Load()) for i in range(evaluator.n_inputs)]
    state_type = node.state_type()
    return (
        type(evaluator),
        evaluator.n_inputs,
        evaluator.n_outputs,
        ast.unparse(evaluator.expr(args, stateful=True)),
        node.push_eval(),
        node.pull_eval(),
        None if state_type is None else ast.dump(state_type),
        node.crate_deps(),
    )


# =============================================================================
# Tests for the defaults
# =============================================================================


def test_minimal_node_defaults() -> None:
    node = MinimalNode()
    assert node.push_eval() is None
    assert node.pull_eval() is None
    assert node.state_type() is None
    assert node.crate_deps() == []


def test_evaluator_is_abstract() -> None:
    with pytest.raises(TypeError):
        Node()  # type: ignore[abstract]


def test_forwarding_node_requires_target() -> None:
    class NoTarget(_ForwardingNode):
        pass

    with pytest.raises(TypeError, match="_target"):
        NoTarget()  # type: ignore[abstract]


# =============================================================================
# Tests for forwarding adapters
# =============================================================================


@pytest.mark.parametrize("node_type", [MinimalNode, FullNode])
@pytest.mark.parametrize("adapter", [NodeHandle, NodeRef])
def test_adapters_forward_every_capability(node_type: type[Node], adapter: type[Node]) -> None:
    node = node_type()
    wrapped = adapter(node)  # type: ignore[call-arg]
    assert _snapshot(wrapped) == _snapshot(node)


def test_adapters_nest() -> None:
    node = FullNode()
    handle = NodeHandle(NodeHandle(node))
    assert _snapshot(NodeRef(handle)) == _snapshot(node)


def test_heterogeneous_collection_behind_one_handle_type() -> None:
    handles = [NodeHandle(MinimalNode()), NodeHandle(FullNode()), NodeHandle(DuckNode())]
    assert [h.evaluator().n_inputs for h in handles] == [1, 2, 0]
    assert all(isinstance(h, Node) for h in handles)


def test_handle_fills_defaults_for_duck_typed_nodes() -> None:
    handle = NodeHandle(DuckNode())
    assert handle.push_eval() is None
    assert handle.pull_eval() is None
    assert handle.state_type() is None
    assert handle.crate_deps() == []


def test_handle_rejects_non_nodes() -> None:
    with pytest.raises(TypeError, match="evaluator"):
        NodeHandle(object())  # type: ignore[arg-type]


def test_handle_exposes_node() -> None:
    node = MinimalNode()
    assert NodeHandle(node).node is node


def test_node_ref_wraps_slotted_nodes() -> None:
    node = SlottedDuckNode()
    assert _snapshot(NodeRef(node)) == _snapshot(NodeHandle(node))


def test_node_ref_to_temporary_node() -> None:
    ref = NodeRef(nw.FnNode.parse("def f(a): ..."))
    assert ref.evaluator().n_inputs == 1
    assert ref.crate_deps() == []


def test_as_node() -> None:
    node = MinimalNode()
    assert as_node(node) is node
    duck = as_node(DuckNode())
    assert isinstance(duck, NodeHandle)


# =============================================================================
# Tests for entry points and dependency aggregation
# =============================================================================


def test_entry_points() -> None:
    push, pull = entry_points(FullNode())
    assert push == EvalFn.parse("def push() -> None: ...")
    assert pull == EvalFn.parse("def pull() -> None: ...")


def test_entry_points_absent() -> None:
    assert entry_points(MinimalNode()) == (None, None)


def test_entry_points_enforce_unit_return() -> None:
    with pytest.raises(ContractViolationError, match="must return None"):
        entry_points(BadEntryNode())


def test_collect_node_deps() -> None:
    deps = collect_node_deps([FullNode(), MinimalNode(), NodeHandle(FullNode()), DuckNode()])
    assert deps == frozenset({CrateDep(name="numpy", source='"1.26"'), CrateDep(name="rich", source='"13"')})
