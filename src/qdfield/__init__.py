"""
qdfield: Quantized Density Fields

An abstract N-dimensional information space modelled as a hierarchically
refinable partition of regions ("spaces").

Core concepts:
- A region can be refined into dimensions+1 mutually adjacent children
- Children that are all leaves can be coarsened back into their parent
- Neighbors of a refined region inherit one child each, by position
- Every region carries a caller-defined state; the caller supplies how it
  subdivides and merges
- Leaves evolve together from their neighbors' states (simulation step)

A second, fixed-depth structure (LevelTree) samples the same kind of space at
several uniform zoom levels at once.
"""

__version__ = "0.1.0"
