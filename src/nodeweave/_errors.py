"""Exception types raised by nodeweave.

Parse failures are recoverable and reported to the caller. Contract violations
signal a bug in a node implementation or in the caller's wiring and are never
caught inside the library.
"""


class ParseCrateDepError(ValueError):
    """Failed to parse a string as a valid `CrateDep`."""

    def __init__(self) -> None:
        super().__init__("failed to parse the string as a valid `CrateDep`")


class NewExprError(ValueError):
    """An expression template is not a valid Python expression."""


class ManifestError(ValueError):
    """Dependencies cannot be written into a manifest document."""


class ContractViolationError(RuntimeError):
    """A node or its caller broke the node contract."""
