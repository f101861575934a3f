from __future__ import annotations

import logging

import jax.numpy as jnp
import pytest

from pose2_jit.core.math2d import (
    pose2,
    pose2_between,
    pose2_to_xytheta,
    rot2_angle,
    rot2_between,
    rot2_from_angle,
)
from pose2_jit.core.pose_graph import PoseGraph
from pose2_jit.optimization.jit_wrappers import JittedTangentGrad
from pose2_jit.optimization.solvers import SGD, GDConfig, gradient_descent, gradient_descent_step
from pose2_jit.slam.measurements import pose2_squared_error, rot2_squared_error


def _rot2_objective(target):
    def objective(traj):
        return rot2_squared_error(rot2_between(traj[0], target), 0.1)
    return objective


def test_gradient_descent_step_rejects_mismatched_gradient():
    traj = [pose2(0.0, 0.0, 0.0), pose2(1.0, 0.0, 0.0)]
    with pytest.raises(ValueError):
        gradient_descent_step(traj, jnp.zeros((3, 3)), 0.1)
    with pytest.raises(ValueError):
        gradient_descent_step(traj, jnp.zeros((2, 2)), 0.1)
    with pytest.raises(ValueError):
        SGD(learning_rate=0.1).update(traj, jnp.zeros(6))


def test_gradient_descent_step_returns_new_list():
    traj = [pose2(0.0, 0.0, 0.0)]
    out = gradient_descent_step(traj, jnp.array([[0.0, -1.0, 0.0]]), 0.5)
    assert isinstance(out, list)
    assert out is not traj
    assert jnp.allclose(pose2_to_xytheta(out[0]), jnp.array([0.5, 0.0, 0.0]))
    assert traj[0] == pose2(0.0, 0.0, 0.0)


def test_sgd_matches_plain_gradient_descent(pentagon):
    initial, measurements = pentagon
    vg = PoseGraph.odometry_chain(measurements, scale=1.0 / 3.0).build_value_and_grad()
    opt = SGD(learning_rate=0.5)

    plain = list(initial)
    stateful = list(initial)
    for _ in range(25):
        _, g_plain = vg(plain)
        plain = gradient_descent_step(plain, g_plain, 0.5)

        _, g_stateful = vg(stateful)
        opt.update(stateful, g_stateful)

    for a, b in zip(plain, stateful):
        assert a == b


def test_sgd_updates_in_place():
    traj = [rot2_from_angle(0.0)]
    alias = traj
    SGD(learning_rate=1.0).update(traj, jnp.array([-0.25]))
    assert traj is alias
    assert float(rot2_angle(traj[0])) == pytest.approx(0.25, abs=1e-12)


def test_rot2_single_relation_with_sgd():
    target = rot2_from_angle(1.0)
    vg = JittedTangentGrad.from_objective(_rot2_objective(target))
    opt = SGD(learning_rate=1.0)

    traj = [rot2_from_angle(0.0)]
    for _ in range(100):
        _, grad = vg(traj)
        opt.update(traj, grad)

    assert float(rot2_angle(traj[0])) == pytest.approx(1.0, abs=1e-5)


def test_pose2_single_relation_converges():
    """
    pT1 starts at the origin and is pulled onto pT2 = (1, 1, 1) by the
    squared between-error scaled by 1/10.
    """
    target = pose2(1.0, 1.0, 1.0)

    def objective(traj):
        return pose2_squared_error(pose2_between(traj[0], target), (1.0, 1.0, 1.0)) / 10.0

    cfg = GDConfig(learning_rate=1.0, max_iters=100)
    result = gradient_descent(objective, [pose2(1.0, 0.0, 0.0)], cfg)

    assert jnp.allclose(pose2_to_xytheta(result[0]), pose2_to_xytheta(target), atol=1e-5)


def test_gradient_descent_does_not_modify_input():
    target = pose2(1.0, 1.0, 1.0)
    initial = [pose2(0.0, 0.0, 0.0)]

    def objective(traj):
        return pose2_squared_error(pose2_between(traj[0], target))

    gradient_descent(objective, initial, GDConfig(learning_rate=0.5, max_iters=3))
    assert initial[0] == pose2(0.0, 0.0, 0.0)


def test_gradient_descent_zero_iters_returns_copy():
    initial = [pose2(0.5, 0.0, 0.1)]
    result = gradient_descent(lambda t: pose2_squared_error(t[0]), initial, GDConfig(max_iters=0))
    assert result == initial
    assert result is not initial


def test_gradient_descent_renormalizes_rotations():
    target = rot2_from_angle(1.0)
    cfg = GDConfig(learning_rate=1.0, max_iters=50, renormalize_every=10)
    result = gradient_descent(_rot2_objective(target), [rot2_from_angle(0.0)], cfg)

    r = result[0]
    assert float(r.c * r.c + r.s * r.s) == pytest.approx(1.0, abs=1e-15)
    assert float(rot2_angle(r)) == pytest.approx(1.0, abs=1e-4)


def test_gradient_descent_logs_progress(caplog):
    target = rot2_from_angle(1.0)
    cfg = GDConfig(learning_rate=1.0, max_iters=20, log_every=5)
    with caplog.at_level(logging.DEBUG, logger="pose2_jit.optimization.solvers"):
        gradient_descent(_rot2_objective(target), [rot2_from_angle(0.0)], cfg)

    messages = [rec.getMessage() for rec in caplog.records]
    assert any("initial loss" in m for m in messages)
    assert any("final loss" in m for m in messages)
    assert sum(m.startswith("iter ") for m in messages) == 4
