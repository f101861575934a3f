# Copyright (c) 2025.
# This file is part of Pose2-JIT, released under the MIT License.
"""
Pose-graph cost for Pose2-JIT.

A `PoseGraph` is the optimization objective of a planar odometry problem. It
stores only the constraints; the trajectory (a list of `Pose2`) is passed in
explicitly on every evaluation, so nothing outside the call is captured or
mutated.

    loss(trajectory) = scale · Σ_f e_f( between(between(p_j, p_i), z_f) )

where f ranges over the `BetweenFactor`s (i, j, z_f, weights_f) and e_f is the
diagonal-weighted squared error from `slam.measurements`.

Primary Methods
---------------
add_factor(factor) / add_between(i, j, measurement)
    Register a constraint.

odometry_chain(measurements)
    Build the graph of a chain p_0 -> p_1 -> ... -> p_N.

build_objective()
    Jitted scalar function `f(trajectory)`.

build_value_and_grad()
    Jitted `trajectory -> (loss, gradient)` with one tangent row per pose.

Helpers
-------
loop_closure_error(trajectory)
    |between(p_last, p_first).t|, the convergence check used for closed
    trajectories.

stack_poses(trajectory)
    (N, 3) array of [x, y, θ] rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Sequence

import jax
import jax.numpy as jnp

from .types import DEFAULT_POSE2_WEIGHTS, BetweenFactor, FactorId, NodeId, Pose2
from .math2d import point2_norm, pose2_between, pose2_to_xytheta
from pose2_jit.slam.measurements import odom_se2_error
from pose2_jit.optimization.jit_wrappers import JittedTangentGrad

logger = logging.getLogger(__name__)


@dataclass
class PoseGraph:
    """
    Odometry pose graph.

    - factors: mapping FactorId -> BetweenFactor
    - scale: global multiplier applied to the summed error
    """
    factors: Dict[FactorId, BetweenFactor] = field(default_factory=dict)
    scale: float = 1.0

    def add_factor(self, factor: BetweenFactor) -> None:
        if factor.id in self.factors:
            raise ValueError(f"Duplicate factor id {factor.id}")
        if min(factor.var_ids) < 0:
            raise ValueError(f"Factor {factor.id} has negative pose index {factor.var_ids}")
        self.factors[factor.id] = factor

    def add_between(
        self,
        i: int,
        j: int,
        measurement: Pose2,
        weights=DEFAULT_POSE2_WEIGHTS,
    ) -> FactorId:
        fid = FactorId(len(self.factors))
        while fid in self.factors:
            fid = FactorId(fid + 1)
        self.add_factor(
            BetweenFactor(
                id=fid,
                var_ids=(NodeId(i), NodeId(j)),
                measurement=measurement,
                weights=tuple(weights),
            )
        )
        return fid

    @classmethod
    def odometry_chain(
        cls,
        measurements: Sequence[Pose2],
        weights=DEFAULT_POSE2_WEIGHTS,
        scale: float = 1.0,
    ) -> "PoseGraph":
        """Chain graph with measurement k relating poses k and k + 1."""
        graph = cls(scale=scale)
        for k, z in enumerate(measurements):
            graph.add_between(k, k + 1, z, weights)
        return graph

    @property
    def num_poses(self) -> int:
        """Smallest trajectory length that covers every factor."""
        if not self.factors:
            return 0
        return 1 + max(max(f.var_ids) for f in self.factors.values())

    def _check_trajectory(self, trajectory: Sequence[Pose2]) -> None:
        if len(trajectory) < self.num_poses:
            raise ValueError(
                f"Trajectory has {len(trajectory)} poses but factors reference "
                f"{self.num_poses}"
            )

    # --- Objective ---

    def build_objective(self):
        """
        Returns a jitted function f(trajectory) -> scalar loss.

        The factor list is frozen into the closure; adding factors afterwards
        requires building a new objective.
        """
        factors = tuple(sorted(self.factors.values(), key=lambda f: f.id))
        scale = self.scale

        def objective(trajectory: Sequence[Pose2]) -> jnp.ndarray:
            self._check_trajectory(trajectory)
            if not factors:
                return jnp.zeros((), dtype=float)

            total = 0.0
            for f in factors:
                i, j = f.var_ids
                total = total + odom_se2_error(
                    trajectory[i], trajectory[j], f.measurement, f.weights
                )
            return scale * total

        logger.debug("Built pose-graph objective with %d factors", len(factors))
        return jax.jit(objective)

    def build_value_and_grad(self) -> JittedTangentGrad:
        return JittedTangentGrad.from_objective(self.build_objective())


def loop_closure_error(trajectory: Sequence[Pose2]) -> float:
    """Translation magnitude of between(last, first)."""
    if len(trajectory) == 0:
        raise ValueError("Empty trajectory has no loop closure error")
    return float(point2_norm(pose2_between(trajectory[-1], trajectory[0]).t))


def stack_poses(trajectory: Sequence[Pose2]) -> jnp.ndarray:
    return jnp.stack([pose2_to_xytheta(p) for p in trajectory])
