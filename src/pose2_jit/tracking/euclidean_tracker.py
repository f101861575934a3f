# Copyright (c) 2025.
# This file is part of Pose2-JIT, released under the MIT License.
"""
Placeholder object tracker.

`EuclideanTracker` fixes the seam between an image-based tracker and the pose
types of this package: it takes a frame sequence, an external object
detector and a patch size, and answers a pose estimate for a starting pose.
No tracking is performed yet; `run` returns the identity pose.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence, Tuple

import jax.numpy as jnp

from pose2_jit.core.types import Pose2
from pose2_jit.core.math2d import pose2_identity

logger = logging.getLogger(__name__)

Detector = Callable[[jnp.ndarray], jnp.ndarray]


@dataclass(frozen=True)
class EuclideanTracker:
    frames: Sequence[jnp.ndarray]
    object_detector: Detector
    patch_size: Tuple[int, int]

    def run(self, start: Pose2) -> Pose2:
        """Estimated pose of the tracked object. Currently always the identity."""
        logger.debug(
            "EuclideanTracker.run on %d frames with patch %s (stub)",
            len(self.frames),
            self.patch_size,
        )
        return pose2_identity()
