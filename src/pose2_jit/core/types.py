# Copyright (c) 2025.
# This file is part of Pose2-JIT, released under the MIT License.
"""
Core typed data structures for Pose2-JIT.

This module defines the small value types that the manifold layer operates on,
plus the constraint container used by the pose-graph cost. All numeric work is
done by JAX functions in `core.math2d`; these classes only hold data.

Classes
-------
Rot2
    Planar rotation stored as the unit complex number (c, s) = (cos θ, sin θ).
    Tangent space: a single scalar (angular increment).

Point2
    Planar point / translation (x, y). Tangent space: R².

Pose2
    Rigid transform made of a `Rot2` and a `Point2`. Tangent space: (ω, vx, vy).

BetweenFactor
    Relative-pose (odometry) constraint between two trajectory entries.

Notes
-----
`Rot2`, `Point2` and `Pose2` are registered as JAX pytrees, so lists of poses
can be passed straight through `jax.jit`, `jax.grad` and `jax.jacrev`. Their
leaves are expected to be JAX scalars; build them with the constructors in
`core.math2d` (`rot2_from_angle`, `point2`, `pose2`, ...) which take care of
the dtype. Equality (`==`) compares leaves exactly and is meant for concrete
values only, never inside traced code.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, NewType, Tuple

import jax

NodeId = NewType("NodeId", int)
FactorId = NewType("FactorId", int)


@jax.tree_util.register_pytree_node_class
@dataclass(frozen=True)
class Rot2:
    """Element of SO(2) as (cos θ, sin θ)."""
    c: Any
    s: Any

    def tree_flatten(self):
        return (self.c, self.s), None

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children)


@jax.tree_util.register_pytree_node_class
@dataclass(frozen=True)
class Point2:
    """Planar point or translation."""
    x: Any
    y: Any

    def tree_flatten(self):
        return (self.x, self.y), None

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children)


@jax.tree_util.register_pytree_node_class
@dataclass(frozen=True)
class Pose2:
    """Element of SE(2): rotation `rot` followed by translation `t`."""
    rot: Rot2
    t: Point2

    def tree_flatten(self):
        return (self.rot, self.t), None

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children)


DEFAULT_POSE2_WEIGHTS: Tuple[float, float, float] = (0.1, 0.3, 0.3)


@dataclass
class BetweenFactor:
    """Odometry constraint: `measurement` relates trajectory entries var_ids[0] -> var_ids[1]."""
    id: FactorId
    var_ids: Tuple[NodeId, NodeId]
    measurement: Pose2
    weights: Tuple[float, float, float] = DEFAULT_POSE2_WEIGHTS  # (theta, x, y)
