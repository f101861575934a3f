from __future__ import annotations

import math

import jax
import matplotlib
import pytest

# Identity and Jacobian checks are at 1e-10, which needs double precision.
jax.config.update("jax_enable_x64", True)
matplotlib.use("Agg")

from pose2_jit.core.math2d import pose2  # noqa: E402


@pytest.fixture
def random_poses():
    """
    Sampler for property tests: heading uniform in (-pi, pi], translation
    uniform in [-10, 10]^2.
    """
    def sample(n: int, seed: int = 0):
        key = jax.random.PRNGKey(seed)
        k_theta, k_t = jax.random.split(key)
        # uniform() samples [min, max); negating gives (-pi, pi].
        thetas = -jax.random.uniform(k_theta, (n,), minval=-math.pi, maxval=math.pi)
        ts = jax.random.uniform(k_t, (n, 2), minval=-10.0, maxval=10.0)
        return [pose2(ts[k, 0], ts[k, 1], thetas[k]) for k in range(n)]

    return sample


@pytest.fixture
def pentagon():
    """
    Closed Pose2SLAM problem: five poses, four odometry measurements
    ("advance 2, then turn 90 degrees", first one without the turn), and an
    initial estimate that is roughly a forward-driven square.
    """
    initial = [
        pose2(0.5, 0.0, 0.2),
        pose2(2.3, 0.1, -0.2),
        pose2(4.1, 0.1, math.pi / 2),
        pose2(4.0, 2.0, math.pi),
        pose2(2.1, 2.1, -math.pi / 2),
    ]
    measurements = [
        pose2(2.0, 0.0, 0.0),
        pose2(2.0, 0.0, math.pi / 2),
        pose2(2.0, 0.0, math.pi / 2),
        pose2(2.0, 0.0, math.pi / 2),
    ]
    return initial, measurements
