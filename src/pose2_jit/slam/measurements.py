# Copyright (c) 2025.
# This file is part of Pose2-JIT, released under the MIT License.
"""
Residual and error models for Pose2-JIT.

Each function here maps poses (and a measurement) to either a residual pose
or a scalar error. They are pure JAX code, so they can be used inside
`jax.jit` / `jax.grad` and are differentiated through the custom rules of
`core.math2d`.

    • `odom_se2_residual`:
        Residual pose of an odometry constraint between pose_i and pose_j:
            between(between(pose_j, pose_i), measurement)
        which is the identity when pose_i⁻¹ ∘ pose_j = measurement⁻¹.

    • `pose2_squared_error`:
        Diagonal-weighted squared error of a residual pose:
            w_θ·θ² + w_x·x² + w_y·y²

    • `odom_se2_error`:
        The two above chained; this is the per-factor term of the pose-graph
        loss.

    • `rot2_squared_error`:
        w·θ² for single-rotation problems.

Weights
-------
Weights are a diagonal approximation of the measurement information matrix.
`weights_from_sigmas` converts per-axis standard deviations into weights
(w = 1 / σ²).
"""

from __future__ import annotations
from typing import Sequence

import jax.numpy as jnp

from pose2_jit.core.types import DEFAULT_POSE2_WEIGHTS, Pose2, Rot2
from pose2_jit.core.math2d import pose2_between, rot2_angle


def weights_from_sigmas(sigmas: Sequence[float]) -> tuple:
    """Diagonal weights (θ, x, y) from standard deviations."""
    if len(sigmas) != 3:
        raise ValueError(f"Expected 3 sigmas (theta, x, y), got {len(sigmas)}")
    if any(s <= 0 for s in sigmas):
        raise ValueError(f"Sigmas must be positive, got {tuple(sigmas)}")
    return tuple(1.0 / (s * s) for s in sigmas)


def pose2_squared_error(pose: Pose2, weights=DEFAULT_POSE2_WEIGHTS) -> jnp.ndarray:
    w = jnp.asarray(weights)
    theta = rot2_angle(pose.rot)
    return w[0] * theta * theta + w[1] * pose.t.x * pose.t.x + w[2] * pose.t.y * pose.t.y


def rot2_squared_error(rot: Rot2, weight=1.0) -> jnp.ndarray:
    theta = rot2_angle(rot)
    return weight * theta * theta


def odom_se2_residual(pose_i: Pose2, pose_j: Pose2, measurement: Pose2) -> Pose2:
    return pose2_between(pose2_between(pose_j, pose_i), measurement)


def odom_se2_error(
    pose_i: Pose2,
    pose_j: Pose2,
    measurement: Pose2,
    weights=DEFAULT_POSE2_WEIGHTS,
) -> jnp.ndarray:
    return pose2_squared_error(odom_se2_residual(pose_i, pose_j, measurement), weights)
