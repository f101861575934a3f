# Copyright (c) 2025.
# This file is part of Pose2-JIT, released under the MIT License.
"""
First-order optimizers for Pose2-JIT.

All optimizers here share one update rule. Given a trajectory and the
gradient of the loss with respect to every element's tangent space (as
returned by `slam.manifold.value_and_tangent_grad`), each element moves by

    x_k  <-  retract(x_k, -learning_rate * gradient[k])

so poses never leave the manifold.

Key Concepts
------------
gradient_descent_step(trajectory, gradient, learning_rate)
    Pure, jitted single step. Returns a new list.

SGD
    Reusable optimizer object holding the learning rate. `update` applies
    the same step and writes the result back into the caller's list.

GDConfig / gradient_descent(objective, trajectory, cfg)
    Fixed-budget loop: evaluate (loss, gradient), step, repeat. There is no
    convergence test; callers check the result (e.g. with
    `core.pose_graph.loop_closure_error`).

Notes
-----
Iterations are strictly sequential: every gradient is evaluated on the
trajectory produced by the previous step.

`SGD.update` and `gradient_descent_step` run the same compiled function, so
for equal learning rates they produce bit-identical trajectories.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Sequence

import jax
import jax.numpy as jnp

from pose2_jit.core.types import Pose2, Rot2
from pose2_jit.core.math2d import rot2_normalize
from pose2_jit.slam.manifold import retract, zero_tangent
from .jit_wrappers import JittedTangentGrad

logger = logging.getLogger(__name__)

ObjectiveFn = Callable[[Sequence], jnp.ndarray]


@dataclass
class GDConfig:
    learning_rate: float = 1.0
    max_iters: int = 1000
    log_every: int = 0          # 0 disables periodic progress logs
    renormalize_every: int = 0  # 0 keeps the raw (c, s) drift


def _check_gradient(trajectory: Sequence, gradient: jnp.ndarray) -> None:
    expected = zero_tangent(trajectory).shape
    if gradient.shape != expected:
        raise ValueError(
            f"Gradient shape {gradient.shape} does not match trajectory "
            f"tangent shape {expected}"
        )


@jax.jit
def gradient_descent_step(trajectory: Sequence, gradient: jnp.ndarray, learning_rate) -> List:
    """
    One gradient-descent step on a trajectory.

    Args:
        trajectory: list of Rot2 / Point2 / Pose2 values
        gradient: stacked tangent gradient, one row per element
        learning_rate: step size

    Returns:
        New list with every element retracted along -learning_rate * gradient.
    """
    gradient = jnp.asarray(gradient)
    _check_gradient(trajectory, gradient)
    return list(retract(list(trajectory), -learning_rate * gradient))


@dataclass
class SGD:
    """
    Stochastic-gradient-descent optimizer object.

    Usage:
        opt = SGD(learning_rate=1.0)
        for _ in range(n):
            loss, grad = value_and_grad(trajectory)
            opt.update(trajectory, grad)
    """
    learning_rate: float = 1.0

    def update(self, trajectory: List, gradient: jnp.ndarray) -> None:
        """Replace the elements of `trajectory` in place."""
        trajectory[:] = gradient_descent_step(trajectory, gradient, self.learning_rate)


def _renormalize(value):
    if isinstance(value, Pose2):
        return Pose2(rot2_normalize(value.rot), value.t)
    if isinstance(value, Rot2):
        return rot2_normalize(value)
    return value


def gradient_descent(objective: ObjectiveFn, trajectory: Sequence, cfg: GDConfig) -> List:
    """
    Run `cfg.max_iters` gradient-descent steps on a trajectory.

    Args:
        objective: f(trajectory) -> scalar loss
        trajectory: initial values (not modified)
        cfg: hyperparameters

    Returns:
        The optimized trajectory as a new list.
    """
    value_and_grad = JittedTangentGrad.from_objective(objective)

    traj = list(trajectory)
    for it in range(cfg.max_iters):
        loss, grad = value_and_grad(traj)
        if it == 0:
            logger.info("gradient descent: %d iters, initial loss %.6e", cfg.max_iters, float(loss))

        traj = gradient_descent_step(traj, grad, cfg.learning_rate)

        if cfg.renormalize_every and (it + 1) % cfg.renormalize_every == 0:
            traj = [_renormalize(x) for x in traj]

        if cfg.log_every and (it + 1) % cfg.log_every == 0:
            logger.debug("iter %d: loss %.6e", it + 1, float(loss))

    if cfg.max_iters > 0:
        final_loss, _ = value_and_grad(traj)
        logger.info("gradient descent: final loss %.6e", float(final_loss))
    return traj
