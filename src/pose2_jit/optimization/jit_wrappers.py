# Copyright (c) 2025.
# This file is part of Pose2-JIT, released under the MIT License.
"""
JIT-friendly wrappers for Pose2-JIT.

The solvers need, once per iteration, the loss value and its gradient with
respect to every pose's tangent space. `JittedTangentGrad` compiles that
pair once for a fixed objective, so an optimization loop only pays the
compilation cost on the first call (and again only if the trajectory length
changes).

Usage:
    objective = graph.build_objective()
    vg = JittedTangentGrad.from_objective(objective)
    loss, grad = vg(trajectory)      # grad.shape == (len(trajectory), 3)

Keep the wrapped objective pure: it is traced, so Python-side mutation or
logging inside it only runs once, at trace time.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Tuple

import jax
import jax.numpy as jnp

from pose2_jit.slam.manifold import value_and_tangent_grad


@dataclass
class JittedTangentGrad:
    """
    Jitted `trajectory -> (loss, tangent_gradient)` for a fixed objective.
    """
    fn: Callable[[Any], Tuple[jnp.ndarray, jnp.ndarray]]
    objective: Callable[[Any], jnp.ndarray]

    def __call__(self, trajectory) -> Tuple[jnp.ndarray, jnp.ndarray]:
        return self.fn(trajectory)

    @staticmethod
    def from_objective(objective: Callable[[Any], jnp.ndarray]) -> "JittedTangentGrad":
        def value_and_grad(trajectory):
            return value_and_tangent_grad(objective, trajectory)

        return JittedTangentGrad(fn=jax.jit(value_and_grad), objective=objective)
