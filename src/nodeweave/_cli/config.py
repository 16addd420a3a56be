"""Configuration loading from pyproject.toml."""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import cast

from nodeweave._deps import DEFAULT_MANIFEST_TABLE, CrateDep
from nodeweave._errors import ParseCrateDepError


class ConfigError(Exception):
    """Error in nodeweave configuration."""


@dataclass(slots=True, frozen=True)
class ScriptSource:
    """Script path with optional variable name."""

    script: Path
    name: str | None = None


@dataclass(slots=True, frozen=True)
class ModuleSource:
    """Module path with variable name (e.g., 'examples.counter:nodes')."""

    module_path: str


NodeSource = ScriptSource | ModuleSource


@dataclass(slots=True, frozen=True)
class NodeweaveConfig:
    """Configuration loaded from pyproject.toml.

    All relative paths are resolved from the project root (directory containing pyproject.toml).
    """

    nodes: NodeSource | None = None
    dependencies: tuple[CrateDep, ...] = ()
    manifest: Path | None = None
    manifest_table: str = DEFAULT_MANIFEST_TABLE
    project_root: Path | None = None


def find_pyproject_toml(start_dir: Path | None = None) -> Path | None:
    """Find pyproject.toml by walking up from start_dir.

    Args:
        start_dir: Starting directory. Defaults to current working directory.

    Returns:
        Path to pyproject.toml if found, None otherwise.

    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = start_dir.resolve()

    while True:
        candidate = current / "pyproject.toml"
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            # Reached filesystem root
            return None
        current = parent


def _parse_node_source(value: object, project_root: Path) -> NodeSource:
    """Parse the nodes field from config.

    Args:
        value: The raw value from TOML (string or dict)
        project_root: Project root directory for resolving relative paths

    Returns:
        Parsed NodeSource

    Raises:
        ConfigError: If the value format is invalid

    """
    if isinstance(value, str):
        # Module path format: "module.path:variable"
        if ":" not in value:
            msg = f"Invalid module path '{value}'. Expected format: 'module.path:variable_name'"
            raise ConfigError(msg)
        return ModuleSource(module_path=value)

    if isinstance(value, dict):
        # Script path format: { script = "path.py", name = "nodes" }
        value_dict = cast("dict[str, object]", value)
        if "script" not in value_dict:
            msg = "Invalid [tool.nodeweave].nodes configuration. Expected string or table with 'script' key."
            raise ConfigError(msg)

        script_value = value_dict["script"]
        if not isinstance(script_value, str):
            msg = "Invalid [tool.nodeweave].nodes.script: expected string path"
            raise ConfigError(msg)
        script_path = Path(script_value)
        if not script_path.is_absolute():
            script_path = project_root / script_path

        name = value_dict.get("name")
        if name is not None and not isinstance(name, str):
            msg = "Invalid [tool.nodeweave].nodes.name: expected string"
            raise ConfigError(msg)

        return ScriptSource(script=script_path, name=name)

    msg = "Invalid [tool.nodeweave].nodes configuration. Expected string or table with 'script' key."
    raise ConfigError(msg)


def _parse_dependencies(value: object) -> tuple[CrateDep, ...]:
    if not isinstance(value, list):
        msg = "Invalid [tool.nodeweave].dependencies: expected a list of 'name = source' strings"
        raise ConfigError(msg)
    deps: list[CrateDep] = []
    for entry in cast("list[object]", value):
        if not isinstance(entry, str):
            msg = f"Invalid [tool.nodeweave].dependencies entry {entry!r}: expected string"
            raise ConfigError(msg)
        try:
            deps.append(CrateDep.parse(entry))
        except ParseCrateDepError as e:
            msg = f"Invalid [tool.nodeweave].dependencies entry {entry!r}: expected 'name = source'"
            raise ConfigError(msg) from e
    return tuple(deps)


def load_config(pyproject_path: Path) -> NodeweaveConfig:
    """Load and validate [tool.nodeweave] config from pyproject.toml.

    Args:
        pyproject_path: Path to pyproject.toml

    Returns:
        Parsed NodeweaveConfig

    Raises:
        ConfigError: If the configuration is invalid

    """
    project_root = pyproject_path.parent

    with pyproject_path.open("rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {pyproject_path}: {e}"
            raise ConfigError(msg) from e

    section = data.get("tool", {}).get("nodeweave", {})
    if not section:
        return NodeweaveConfig(project_root=project_root)

    nodes: NodeSource | None = None
    if "nodes" in section:
        nodes = _parse_node_source(section["nodes"], project_root)

    dependencies: tuple[CrateDep, ...] = ()
    if "dependencies" in section:
        dependencies = _parse_dependencies(section["dependencies"])

    manifest: Path | None = None
    if "manifest" in section:
        manifest_value = section["manifest"]
        if not isinstance(manifest_value, str):
            msg = "Invalid [tool.nodeweave].manifest: expected string path"
            raise ConfigError(msg)
        manifest = Path(manifest_value)
        if not manifest.is_absolute():
            manifest = project_root / manifest

    manifest_table = section.get("manifest-table", DEFAULT_MANIFEST_TABLE)
    if not isinstance(manifest_table, str) or not all(manifest_table.split(".")):
        msg = "Invalid [tool.nodeweave].manifest-table: expected a dotted table path"
        raise ConfigError(msg)

    return NodeweaveConfig(
        nodes=nodes,
        dependencies=dependencies,
        manifest=manifest,
        manifest_table=manifest_table,
        project_root=project_root,
    )


def get_config() -> NodeweaveConfig:
    """Get config from pyproject.toml in current directory or parents.

    Returns:
        NodeweaveConfig (may be empty if no pyproject.toml or no [tool.nodeweave] section)

    """
    pyproject_path = find_pyproject_toml()
    if pyproject_path is None:
        return NodeweaveConfig()
    return load_config(pyproject_path)
