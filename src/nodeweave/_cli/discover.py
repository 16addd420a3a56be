"""Utilities to discover nodes in scripts and modules.

This module was adapted from `fastapi_cli.discover` of package `fastapi-cli` version 0.0.8 (77e6d1f).
"""

from __future__ import annotations

import importlib
import logging
import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from nodeweave._node import Node, NodeLike, as_node

if TYPE_CHECKING:
    from pathlib import Path
    from types import ModuleType

    from .config import NodeSource

logger = logging.getLogger(__name__)


@dataclass
class ModuleData:
    """Module data for a Python module."""

    module_import_str: str
    extra_sys_path: Path
    module_paths: list[Path]


def get_module_data_from_path(path: Path) -> ModuleData:
    """Get module data from a file path.

    Args:
        path: Path to a Python file or package

    Returns:
        ModuleData containing module import information

    """
    use_path = path.resolve()
    module_path = use_path
    if use_path.is_file() and use_path.stem == "__init__":
        module_path = use_path.parent
    module_paths = [module_path]
    extra_sys_path = module_path.parent
    for parent in module_path.parents:
        init_path = parent / "__init__.py"
        if init_path.is_file():
            module_paths.insert(0, parent)
            extra_sys_path = parent.parent
        else:
            break

    module_str = ".".join(p.stem for p in module_paths)
    return ModuleData(
        module_import_str=module_str,
        extra_sys_path=extra_sys_path.resolve(),
        module_paths=module_paths,
    )


def _is_node(obj: object) -> bool:
    # Node classes expose `evaluator` too; only instances count.
    return isinstance(obj, NodeLike) and not isinstance(obj, type)


def nodes_from_value(value: object, name: str) -> dict[str, Node]:
    """Collect the nodes held by a variable.

    Args:
        value: A node, a mapping of names to nodes, or an iterable of nodes
        name: The variable name, used to label the nodes

    Returns:
        Mapping from node label to node

    Raises:
        TypeError: If the value (or one of its items) is not a node

    """
    if _is_node(value):
        return {name: as_node(value)}  # type: ignore[arg-type]

    if isinstance(value, Mapping):
        items = [(f"{name}[{key!r}]", item) for key, item in value.items()]
    elif isinstance(value, Iterable) and not isinstance(value, (str, bytes)):
        items = [(f"{name}[{i}]", item) for i, item in enumerate(value)]
    else:
        msg = f"'{name}' is not a node or a collection of nodes"
        raise TypeError(msg)

    nodes: dict[str, Node] = {}
    for label, item in items:
        if not _is_node(item):
            msg = f"'{label}' is not a node (got {type(item).__name__})"
            raise TypeError(msg)
        nodes[label] = as_node(item)
    return nodes


def _nodes_in_module(module: ModuleType) -> dict[str, Node]:
    nodes: dict[str, Node] = {}
    for name in dir(module):
        obj = getattr(module, name)
        if _is_node(obj):
            logger.debug(f"Found node: {name}")
            nodes[name] = as_node(obj)
    return nodes


def load_nodes_from_script(script_path: Path, variable: str | None = None) -> dict[str, Node]:
    """Load nodes from a Python script path.

    Args:
        script_path: Path to the Python script defining the nodes
        variable: Name of the variable holding the nodes. If None, every
            module-level node is collected

    Returns:
        Mapping from node label to node

    Raises:
        ImportError: If the module cannot be imported
        ValueError: If no nodes are found or the variable doesn't exist

    """
    module_data = get_module_data_from_path(script_path)
    sys.path.insert(0, str(module_data.extra_sys_path))

    try:
        module = importlib.import_module(module_data.module_import_str)
    except (ImportError, ValueError):
        logger.exception("Import error")
        logger.warning("Ensure all the package directories have an __init__.py file")
        raise

    if variable:
        if not hasattr(module, variable):
            msg = f"Could not find '{variable}' in {module_data.module_import_str}"
            raise ValueError(msg)
        return nodes_from_value(getattr(module, variable), variable)

    nodes = _nodes_in_module(module)
    if not nodes:
        msg = "Could not find any nodes in module, try using --var"
        raise ValueError(msg)
    return nodes


def load_nodes_from_module_path(module_path: str) -> dict[str, Node]:
    """Load nodes from a module path (e.g., 'examples.counter:nodes').

    Args:
        module_path: Module path in format 'module.path:variable_name'

    Returns:
        Mapping from node label to node

    Raises:
        ValueError: If module path format is invalid

    """
    if ":" not in module_path:
        msg = "Module path must be in format 'module.path:variable_name'"
        raise ValueError(msg)

    module_name, variable = module_path.split(":", 1)
    module = importlib.import_module(module_name)
    return nodes_from_value(getattr(module, variable), variable)


def load_nodes_from_source(source: NodeSource) -> dict[str, Node]:
    """Load nodes from a NodeSource (script or module).

    Args:
        source: NodeSource instance (ScriptSource or ModuleSource)

    Returns:
        Mapping from node label to node

    """
    # Import here to avoid circular imports at module level
    from .config import ModuleSource, ScriptSource  # noqa: PLC0415

    match source:
        case ScriptSource(script=script, name=name):
            return load_nodes_from_script(script, name)
        case ModuleSource(module_path=module_path):
            return load_nodes_from_module_path(module_path)
