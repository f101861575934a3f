# Copyright (c) 2025.
# This file is part of Pose2-JIT, released under the MIT License.
"""
Manifold utilities for SO(2), SE(2) and Euclidean variables in Pose2-JIT.

This module centralizes the *geometric* glue between the group operations in
`core.math2d` and anything that needs derivatives or updates in a tangent
space (the optimizers, the pose-graph cost and the tests):

    • Retraction and local coordinates per variable type
        - `retract(x, delta)`             x ⊕ δ
        - `local_coordinates(a, b)`       δ such that a ⊕ δ = b
    • Tangent bookkeeping
        - `tangent_dim`, `zero_tangent`
    • Tangent-space derivatives
        - `tangent_grad`, `value_and_tangent_grad`   (scalar functions)
        - `tangent_jacobian`                         (manifold -> manifold)

All helpers accept a single `Rot2`, `Point2` or `Pose2`, or a list/tuple of
values of the same type (a trajectory). The tangent of a trajectory is the
stacked array of per-element tangents, shape (N,) for rotations, (N, 2) for
points and (N, 3) for poses.

Tangent convention
------------------
Poses use the right perturbation x ⊕ δ = x ∘ Exp(δ) to first order, with
δ = (ω, vx, vy). Rotations use Rot2(δ) ∘ r (identical to the right
perturbation since SO(2) is commutative). Gradients are taken with
`jax.grad` of δ ↦ f(x ⊕ δ) at δ = 0, so the hand-written VJPs of
`core.math2d` are what actually produce the numbers.

Integration with the Optimizer
------------------------------
`optimization.solvers` consumes the stacked gradients returned by
`value_and_tangent_grad` and feeds `-learning_rate * gradient` back through
`retract`, keeping every pose on the manifold.
"""

from __future__ import annotations

from typing import Any, Callable, Sequence, Union

import jax
import jax.numpy as jnp

from pose2_jit.core.types import Point2, Pose2, Rot2
from pose2_jit.core.math2d import (
    point2_add,
    point2_sub,
    point2_to_array,
    pose2_between,
    pose2_retract,
    rot2_angle,
    rot2_between,
    rot2_retract,
)

ManifoldValue = Union[Rot2, Point2, Pose2]
ManifoldLike = Union[ManifoldValue, Sequence[ManifoldValue]]


def _is_sequence(x: Any) -> bool:
    return isinstance(x, (list, tuple))


def tangent_dim(x: ManifoldValue) -> int:
    """Dimension of the tangent space at a single value."""
    if isinstance(x, Pose2):
        return 3
    if isinstance(x, Point2):
        return 2
    if isinstance(x, Rot2):
        return 1
    raise TypeError(f"Unsupported manifold type: {type(x).__name__}")


def _tangent_shape(x: ManifoldValue) -> tuple:
    # Rot2 tangents are plain scalars.
    if isinstance(x, Rot2):
        return ()
    return (tangent_dim(x),)


def zero_tangent(x: ManifoldLike) -> jnp.ndarray:
    if _is_sequence(x):
        if len(x) == 0:
            raise ValueError("Empty trajectory has no tangent space")
        return jnp.stack([zero_tangent(xi) for xi in x])
    return jnp.zeros(_tangent_shape(x), dtype=float)


def retract(x: ManifoldLike, delta) -> ManifoldLike:
    """
    x ⊕ δ for a single value or element-wise for a trajectory.

    For a trajectory, `delta` must have one row per element; a mismatch raises
    ValueError rather than truncating.
    """
    if _is_sequence(x):
        delta = jnp.asarray(delta)
        if delta.ndim == 0 or delta.shape[0] != len(x):
            raise ValueError(
                f"Tangent has {0 if delta.ndim == 0 else delta.shape[0]} rows "
                f"for a trajectory of length {len(x)}"
            )
        return type(x)(retract(xi, delta[i]) for i, xi in enumerate(x))

    if isinstance(x, Pose2):
        return pose2_retract(x, delta)
    if isinstance(x, Rot2):
        delta = jnp.asarray(delta)
        if delta.size != 1:
            raise ValueError(f"Rot2 tangent must be a scalar, got shape {delta.shape}")
        return rot2_retract(x, delta)
    if isinstance(x, Point2):
        delta = jnp.asarray(delta)
        if delta.shape != (2,):
            raise ValueError(f"Point2 tangent must have shape (2,), got {delta.shape}")
        return point2_add(x, Point2(delta[0], delta[1]))
    raise TypeError(f"Unsupported manifold type: {type(x).__name__}")


def local_coordinates(a: ManifoldLike, b: ManifoldLike) -> jnp.ndarray:
    """
    Tangent vector δ at `a` with a ⊕ δ = b (inverse of `retract`).

    For poses this is (θ, x, y) of between(a, b); for rotations the angle of
    between(a, b); for points the difference b − a.
    """
    if _is_sequence(a):
        if len(a) != len(b):
            raise ValueError(f"Length mismatch: {len(a)} vs {len(b)}")
        return jnp.stack([local_coordinates(ai, bi) for ai, bi in zip(a, b)])

    if isinstance(a, Pose2):
        d = pose2_between(a, b)
        return jnp.stack([rot2_angle(d.rot), d.t.x, d.t.y])
    if isinstance(a, Rot2):
        return rot2_angle(rot2_between(a, b))
    if isinstance(a, Point2):
        return point2_to_array(point2_sub(b, a))
    raise TypeError(f"Unsupported manifold type: {type(a).__name__}")


def tangent_grad(fn: Callable[[Any], jnp.ndarray], x: ManifoldLike) -> jnp.ndarray:
    """Gradient of a scalar function w.r.t. the tangent perturbation at `x`."""
    return value_and_tangent_grad(fn, x)[1]


def value_and_tangent_grad(fn: Callable[[Any], jnp.ndarray], x: ManifoldLike):
    """
    Evaluate f(x) and ∂/∂δ f(x ⊕ δ) at δ = 0.

    Returns:
        (value, grad) with grad shaped like `zero_tangent(x)`.
    """
    def local(delta):
        return fn(retract(x, delta))

    return jax.value_and_grad(local)(zero_tangent(x))


def tangent_jacobian(fn: Callable[[Any], Any], x: ManifoldLike) -> jnp.ndarray:
    """
    Jacobian of a manifold-valued function in local coordinates.

    Computes d/dδ local_coordinates(f(x), f(x ⊕ δ)) at δ = 0 by reverse mode.
    The result is a 2-D matrix (output tangent dim, input tangent dim); a
    sequence input is flattened row-major, so for `x = [a, b]` the columns are
    [∂/∂a | ∂/∂b].
    """
    y0 = fn(x)

    def local(delta):
        return local_coordinates(y0, fn(retract(x, delta)))

    jac = jax.jacrev(local)(zero_tangent(x))
    out_dim = int(jnp.size(zero_tangent(y0)))
    return jnp.reshape(jac, (out_dim, -1))
