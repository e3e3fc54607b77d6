"""
State models define how a region's state is split and aggregated.

The engine never interprets a state value. Whenever a region is refined it
asks the model for the children's initial states, and whenever a parent must
be brought back in line with its children it asks the model to merge them.

PRIMITIVES vs MODELS:
- A state is any value (int, float, bool, None, numpy array, user object)
- A StateModel supplies subdivide / merge / super_state_at_level for it
- resolve_state_model() picks a ready-made model from the value's type

For summing models, merge(subdivide(s, k)) reconstructs s: exactly for
integers, up to rounding for floats and float arrays.
"""

from __future__ import annotations
from dataclasses import dataclass
from numbers import Integral, Real
from typing import Any, Protocol, Sequence

import numpy as np

from qdfield.core.errors import InvalidFanOutError


class StateModel(Protocol):
    """Protocol for state subdivision and aggregation rules."""

    def subdivide(self, state: Any, subdivisions: int) -> Sequence[Any]:
        """
        Produce the initial state of each child of a region being refined.

        Args:
            state: State of the region being refined
            subdivisions: Number of children (the structure's fan-out)

        Returns:
            Ordered sequence of exactly `subdivisions` states
        """
        ...

    def merge(self, states: Sequence[Any]) -> Any:
        """Aggregate child states into their parent's state."""
        ...


@dataclass(frozen=True)
class UnitState:
    """State model for pure topology work: every state is None."""

    def subdivide(self, state: Any, subdivisions: int) -> list[Any]:
        return [None] * subdivisions

    def merge(self, states: Sequence[Any]) -> Any:
        return None

    def super_state_at_level(self, state: Any, fan_out: int, levels: int) -> Any:
        return None


@dataclass(frozen=True)
class BooleanState:
    """Flags: children inherit the flag, a parent is set if any child is."""

    def subdivide(self, state: bool, subdivisions: int) -> list[bool]:
        return [bool(state)] * subdivisions

    def merge(self, states: Sequence[bool]) -> bool:
        return any(bool(s) for s in states)

    def super_state_at_level(self, state: bool, fan_out: int, levels: int) -> bool:
        return bool(state)


@dataclass(frozen=True)
class IntegerState:
    """
    Integer densities with exact conservation.

    The quotient goes to every child and the remainder is spread one unit at
    a time over the first children, so 10 split three ways is [4, 3, 3].
    """

    def subdivide(self, state: int, subdivisions: int) -> list[int]:
        quotient, remainder = divmod(int(state), subdivisions)
        return [quotient + 1 if i < remainder else quotient for i in range(subdivisions)]

    def merge(self, states: Sequence[int]) -> int:
        return int(sum(int(s) for s in states))

    def super_state_at_level(self, state: int, fan_out: int, levels: int) -> int:
        return int(state) * fan_out ** levels


@dataclass(frozen=True)
class RealState:
    """Floating point densities, split evenly."""

    def subdivide(self, state: float, subdivisions: int) -> list[float]:
        return [float(state) / subdivisions] * subdivisions

    def merge(self, states: Sequence[float]) -> float:
        return float(sum(float(s) for s in states))

    def super_state_at_level(self, state: float, fan_out: int, levels: int) -> float:
        return float(state) * fan_out ** levels


@dataclass(frozen=True)
class ArrayState:
    """
    Vector-valued densities (one numpy array per region).

    Each child gets its own copy so that in-place edits of one child's state
    never leak into a sibling.
    """

    def subdivide(self, state: np.ndarray, subdivisions: int) -> list[np.ndarray]:
        share = np.asarray(state, dtype=np.float64) / subdivisions
        return [share.copy() for _ in range(subdivisions)]

    def merge(self, states: Sequence[np.ndarray]) -> np.ndarray:
        return np.sum(np.stack([np.asarray(s) for s in states]), axis=0)

    def super_state_at_level(self, state: np.ndarray, fan_out: int, levels: int) -> np.ndarray:
        return np.asarray(state, dtype=np.float64) * float(fan_out ** levels)


@dataclass(frozen=True)
class DelegatingState:
    """
    Model for user-defined state objects that carry their own rules.

    The state type must provide `subdivide(self, k)` returning k states and a
    class- or static method `merge(states)`. An optional class- or static
    method `super_state_at_level(state, fan_out, levels)` is used when
    present.
    """

    def subdivide(self, state: Any, subdivisions: int) -> Sequence[Any]:
        return state.subdivide(subdivisions)

    def merge(self, states: Sequence[Any]) -> Any:
        return type(states[0]).merge(states)

    def super_state_at_level(self, state: Any, fan_out: int, levels: int) -> Any:
        rule = getattr(type(state), "super_state_at_level", None)
        if rule is None:
            return _merge_up(self, state, fan_out, levels)
        return rule(state, fan_out, levels)


def _merge_up(model: StateModel, state: Any, fan_out: int, levels: int) -> Any:
    for _ in range(levels):
        state = model.merge([state] * fan_out)
    return state


def resolve_state_model(state: Any) -> StateModel:
    """
    Pick a ready-made model for a state value.

    Raises:
        TypeError: If no ready-made model fits and the value does not carry
                   its own subdivide/merge rules.
    """
    if state is None:
        return UnitState()
    if isinstance(state, (bool, np.bool_)):
        return BooleanState()
    if isinstance(state, Integral):
        return IntegerState()
    if isinstance(state, Real):
        return RealState()
    if isinstance(state, np.ndarray):
        return ArrayState()
    if hasattr(state, "subdivide") and hasattr(type(state), "merge"):
        return DelegatingState()
    raise TypeError(
        f"No state model for {type(state).__name__}; pass model= explicitly "
        "or give the type subdivide() and merge()"
    )


def subdivide_state(model: StateModel, state: Any, subdivisions: int) -> list[Any]:
    """
    Subdivide a state and check the child count.

    Raises:
        InvalidFanOutError: If the model returned a different number of states
    """
    states = list(model.subdivide(state, subdivisions))
    if len(states) != subdivisions:
        raise InvalidFanOutError(len(states), subdivisions)
    return states


def super_state_at_level(model: StateModel, state: Any, fan_out: int, levels: int) -> Any:
    """
    Root state that yields `state` at every leaf after `levels` subdivisions.

    Uses the model's own rule when it has one, otherwise merges `fan_out`
    copies of the state once per level.
    """
    rule = getattr(model, "super_state_at_level", None)
    if rule is None:
        return _merge_up(model, state, fan_out, levels)
    return rule(state, fan_out, levels)
