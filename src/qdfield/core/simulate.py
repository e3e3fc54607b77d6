"""
Simulation rules and the compute phase of a simulation step.

A simulation rule is a pure function of a leaf's state and the states of its
current neighbors. Every leaf of a step reads the same pre-step snapshot and
writes nothing, so the compute phase can be spread over a worker pool with no
synchronization; the write-back that follows is always sequential.
"""

from __future__ import annotations
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
import logging
from typing import Any, Hashable, Literal, Protocol, Sequence

import numpy as np

logger = logging.getLogger("qdfield.simulate")


class Simulate(Protocol):
    """Protocol for per-leaf transition rules."""

    def __call__(self, state: Any, neighbor_states: Sequence[Any]) -> Any:
        """
        Compute a leaf's next state.

        Args:
            state: The leaf's current state
            neighbor_states: Current states of the leaf's neighbors, in
                             adjacency order

        Returns:
            The leaf's state after this step
        """
        ...


def identity_simulation(state: Any, neighbor_states: Sequence[Any]) -> Any:
    """Default rule: nothing changes."""
    return state


@dataclass(frozen=True)
class Diffusion:
    """
    Relax a numeric state toward the mean of its neighbors.

        s_next = s + rate * (mean(neighbors) - s)

    Works for scalars and numpy arrays. Leaves without neighbors keep their
    state.
    """

    rate: float = 0.5  # 0 = frozen, 1 = jump to the neighbor mean

    def __call__(self, state: Any, neighbor_states: Sequence[Any]) -> Any:
        if len(neighbor_states) == 0:
            return state
        mean = np.mean(np.stack([np.asarray(s, dtype=np.float64) for s in neighbor_states]), axis=0)
        result = np.asarray(state, dtype=np.float64) + self.rate * (mean - state)
        if np.ndim(result) == 0:
            return float(result)
        return result


@dataclass
class SimulationConfig:
    """Configuration for the compute phase of a simulation step."""

    parallel: bool = False  # Spread leaves over a worker pool
    max_workers: int | None = None  # Pool size (None = executor default)
    executor: Literal["thread", "process"] = "thread"  # "process" needs picklable states and rules
    chunksize: int = 64  # Leaves per task handed to a process pool

    def __post_init__(self):
        if self.executor not in ("thread", "process"):
            raise ValueError(f"Unknown executor: {self.executor!r} (use 'thread' or 'process')")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.chunksize < 1:
            raise ValueError("chunksize must be at least 1")

    def create_executor(self) -> Executor:
        """Create the worker pool described by this config."""
        if self.executor == "process":
            return ProcessPoolExecutor(max_workers=self.max_workers)
        return ThreadPoolExecutor(max_workers=self.max_workers)


@dataclass(frozen=True)
class LeafTask:
    """Read-only snapshot of one leaf for the compute phase."""

    id: Hashable
    state: Any
    neighbor_states: tuple[Any, ...]


def _run_task(simulate: Simulate, task: LeafTask) -> Any:
    return simulate(task.state, task.neighbor_states)


def compute_next_states(
    tasks: Sequence[LeafTask],
    simulate: Simulate = identity_simulation,
    config: SimulationConfig | None = None,
) -> dict[Hashable, Any]:
    """
    Run the compute phase of a simulation step.

    Args:
        tasks: One snapshot per leaf, in the order results should be reported
        simulate: Transition rule
        config: Serial (default) or parallel execution

    Returns:
        Mapping leaf id -> next state, in task order. Identical for serial and
        parallel runs when `simulate` is deterministic.
    """
    if config is None:
        config = SimulationConfig()

    if not config.parallel or len(tasks) < 2:
        return {task.id: simulate(task.state, task.neighbor_states) for task in tasks}

    logger.info(f"Simulating {len(tasks)} leaves on a {config.executor} pool")
    with config.create_executor() as executor:
        if config.executor == "process":
            results = executor.map(_run_task, [simulate] * len(tasks), tasks, chunksize=config.chunksize)
        else:
            results = executor.map(_run_task, [simulate] * len(tasks), tasks)
        # executor.map yields in submission order
        return {task.id: result for task, result in zip(tasks, results)}
