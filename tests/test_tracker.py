from __future__ import annotations

import jax.numpy as jnp

from pose2_jit.core.math2d import pose2, pose2_identity
from pose2_jit.tracking.euclidean_tracker import EuclideanTracker


def test_tracker_returns_identity():
    frames = [jnp.zeros((8, 8)) for _ in range(3)]
    calls = []

    def detector(frame):
        calls.append(frame.shape)
        return jnp.zeros(4)

    tracker = EuclideanTracker(frames=frames, object_detector=detector, patch_size=(4, 4))
    estimate = tracker.run(pose2(1.0, 2.0, 0.3))

    assert estimate == pose2_identity()
    assert calls == []
