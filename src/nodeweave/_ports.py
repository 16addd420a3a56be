"""Index types for node inputs and outputs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Self

_U32_MAX = 2**32 - 1


def _check_u32(kind: str, index: int) -> None:
    if isinstance(index, bool) or not isinstance(index, int):
        msg = f"{kind} index must be an int, got {type(index).__name__}"
        raise TypeError(msg)
    if not 0 <= index <= _U32_MAX:
        msg = f"{kind} index {index} is outside the range 0..{_U32_MAX}"
        raise ValueError(msg)


@dataclass(frozen=True, slots=True, order=True)
class Input:
    """Represents an input of a node via an index."""

    index: int

    def __post_init__(self) -> None:
        _check_u32("Input", self.index)

    @classmethod
    def from_int(cls, index: int) -> Self:
        return cls(index)

    def __int__(self) -> int:
        return self.index


@dataclass(frozen=True, slots=True, order=True)
class Output:
    """Represents an output of a node via an index."""

    index: int

    def __post_init__(self) -> None:
        _check_u32("Output", self.index)

    @classmethod
    def from_int(cls, index: int) -> Self:
        return cls(index)

    def __int__(self) -> int:
        return self.index
