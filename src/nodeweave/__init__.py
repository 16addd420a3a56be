"""Node abstraction layer for composing generated Python programs from graphs of nodes."""

__all__ = [
    "NODE_STATES_PARAM",
    "STATE_BINDING",
    "ContractViolationError",
    "CrateDep",
    "EvalFn",
    "Evaluator",
    "ExprEvaluator",
    "ExprNode",
    "FnEvaluator",
    "FnNode",
    "Input",
    "ManifestError",
    "NewExprError",
    "Node",
    "NodeHandle",
    "NodeLike",
    "NodeRef",
    "Output",
    "Param",
    "ParseCrateDepError",
    "Pull",
    "Push",
    "Signature",
    "WithDeps",
    "WithState",
    "as_node",
    "collect_crate_deps",
    "collect_node_deps",
    "entry_points",
    "expr",
    "render_manifest",
    "with_pull_eval_name",
    "with_push_eval_name",
]

from ._deps import CrateDep, collect_crate_deps, render_manifest
from ._errors import ContractViolationError, ManifestError, NewExprError, ParseCrateDepError
from ._eval_fn import NODE_STATES_PARAM, EvalFn, Param, Signature
from ._evaluator import STATE_BINDING, Evaluator, ExprEvaluator, FnEvaluator
from ._node import Node, NodeHandle, NodeLike, NodeRef, as_node, collect_node_deps, entry_points
from ._nodes import ExprNode, FnNode, expr
from ._ports import Input, Output
from ._wrappers import Pull, Push, WithDeps, WithState, with_pull_eval_name, with_push_eval_name
