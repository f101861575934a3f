from __future__ import annotations

import math

import jax.numpy as jnp
import pytest

from pose2_jit.core.math2d import pose2, pose2_compose, pose2_identity, pose2_inverse
from pose2_jit.core.pose_graph import PoseGraph, loop_closure_error, stack_poses
from pose2_jit.core.types import BetweenFactor, FactorId, NodeId
from pose2_jit.optimization.jit_wrappers import JittedTangentGrad
from pose2_jit.slam.manifold import retract


def _consistent_chain(measurements, start=None):
    traj = [pose2_identity() if start is None else start]
    for z in measurements:
        traj.append(pose2_compose(traj[-1], pose2_inverse(z)))
    return traj


def test_odometry_chain_structure(pentagon):
    _, measurements = pentagon
    graph = PoseGraph.odometry_chain(measurements)
    assert len(graph.factors) == 4
    assert graph.num_poses == 5
    assert [f.var_ids for f in graph.factors.values()] == [(0, 1), (1, 2), (2, 3), (3, 4)]


def test_empty_graph():
    graph = PoseGraph()
    assert graph.num_poses == 0
    objective = graph.build_objective()
    assert float(objective([pose2_identity()])) == 0.0


def test_duplicate_factor_id_raises():
    graph = PoseGraph()
    factor = BetweenFactor(
        id=FactorId(0),
        var_ids=(NodeId(0), NodeId(1)),
        measurement=pose2(1.0, 0.0, 0.0),
    )
    graph.add_factor(factor)
    with pytest.raises(ValueError):
        graph.add_factor(factor)


def test_negative_pose_index_raises():
    graph = PoseGraph()
    with pytest.raises(ValueError):
        graph.add_between(-1, 0, pose2(1.0, 0.0, 0.0))
    assert graph.factors == {}


def test_add_between_skips_taken_ids():
    graph = PoseGraph()
    graph.add_factor(
        BetweenFactor(id=FactorId(0), var_ids=(NodeId(3), NodeId(4)), measurement=pose2_identity())
    )
    fid = graph.add_between(0, 1, pose2_identity())
    assert fid == 1
    assert graph.num_poses == 5


def test_objective_is_zero_on_consistent_trajectory(pentagon):
    _, measurements = pentagon
    graph = PoseGraph.odometry_chain(measurements)
    traj = _consistent_chain(measurements, start=pose2(1.0, -3.0, 0.4))
    assert float(graph.build_objective()(traj)) == pytest.approx(0.0, abs=1e-20)


def test_objective_sums_factor_errors_with_scale():
    z = pose2(1.0, 0.0, 0.0)
    traj = [pose2_identity(), pose2(1.0, 0.0, 0.0), pose2(2.0, 0.0, 0.0)]
    # Each factor leaves a residual translation of 2 along x: 0.3 * 4 each.
    graph = PoseGraph.odometry_chain([z, z], scale=0.5)
    assert float(graph.build_objective()(traj)) == pytest.approx(0.5 * 2 * 1.2)


def test_objective_rejects_short_trajectory(pentagon):
    initial, measurements = pentagon
    objective = PoseGraph.odometry_chain(measurements).build_objective()
    with pytest.raises(ValueError):
        objective(initial[:3])


def test_value_and_grad_shapes(pentagon):
    initial, measurements = pentagon
    vg = PoseGraph.odometry_chain(measurements).build_value_and_grad()
    assert isinstance(vg, JittedTangentGrad)
    loss, grad = vg(initial)
    assert loss.shape == ()
    assert grad.shape == (5, 3)
    assert bool(jnp.all(jnp.isfinite(grad)))


def test_gradient_matches_directional_finite_difference(pentagon):
    initial, measurements = pentagon
    # With a heading of exactly pi on p3, two residual angles sit on the
    # atan2 branch cut where the error has a kink. Keep them inside it.
    initial = list(initial)
    initial[3] = pose2(4.0, 2.0, 3.0)
    graph = PoseGraph.odometry_chain(measurements)
    objective = graph.build_objective()
    _, grad = graph.build_value_and_grad()(initial)

    direction = jnp.array(
        [
            [0.3, -0.2, 0.5],
            [-0.1, 0.4, 0.0],
            [0.2, 0.1, -0.3],
            [0.0, -0.5, 0.2],
            [-0.4, 0.3, 0.1],
        ]
    )
    eps = 1e-6
    plus = objective(retract(initial, eps * direction))
    minus = objective(retract(initial, -eps * direction))
    fd = (plus - minus) / (2 * eps)
    assert float(jnp.sum(grad * direction)) == pytest.approx(float(fd), rel=1e-6, abs=1e-8)


def test_gradient_vanishes_at_solution(pentagon):
    _, measurements = pentagon
    traj = _consistent_chain(measurements)
    _, grad = PoseGraph.odometry_chain(measurements).build_value_and_grad()(traj)
    assert jnp.allclose(grad, 0.0, atol=1e-12)


def test_loop_closure_error(pentagon):
    _, measurements = pentagon
    closed = _consistent_chain(measurements)
    assert loop_closure_error(closed) == pytest.approx(0.0, abs=1e-12)

    open_traj = [pose2_identity(), pose2(3.0, 4.0, 1.0)]
    assert loop_closure_error(open_traj) == pytest.approx(5.0)

    with pytest.raises(ValueError):
        loop_closure_error([])


def test_stack_poses():
    xyt = stack_poses([pose2(1.0, 2.0, 0.5), pose2(-1.0, 0.0, math.pi / 2)])
    assert xyt.shape == (2, 3)
    assert jnp.allclose(xyt, jnp.array([[1.0, 2.0, 0.5], [-1.0, 0.0, math.pi / 2]]))
