# Copyright (c) 2025.
# This file is part of Pose2-JIT, released under the MIT License.
"""
Visualization utilities for Pose2-JIT.

Top-down Matplotlib rendering of planar trajectories, used by the
experiments to compare initial and optimized pose graphs.

    - `plot_trajectory_2d()`: draws poses as points joined in order, with an
      arrow for each heading and optional index labels.

The function returns the Axes so several trajectories can be layered on
one figure.
"""

from __future__ import annotations

from typing import Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np

from pose2_jit.core.types import Pose2
from pose2_jit.core.pose_graph import stack_poses


def plot_trajectory_2d(
    trajectory: Sequence[Pose2],
    ax: Optional[plt.Axes] = None,
    label: Optional[str] = None,
    show_headings: bool = True,
    show_indices: bool = True,
    heading_length: float = 0.4,
    title: Optional[str] = None,
) -> plt.Axes:
    """Plot x–y positions and headings of a trajectory."""
    if ax is None:
        _, ax = plt.subplots(figsize=(6, 6))

    xyt = np.asarray(stack_poses(trajectory))
    xs, ys, thetas = xyt[:, 0], xyt[:, 1], xyt[:, 2]

    line, = ax.plot(xs, ys, "-o", markersize=5, label=label)

    if show_headings:
        ax.quiver(
            xs,
            ys,
            heading_length * np.cos(thetas),
            heading_length * np.sin(thetas),
            color=line.get_color(),
            angles="xy",
            scale_units="xy",
            scale=1.0,
            width=0.004,
        )

    if show_indices:
        for k, (x, y) in enumerate(zip(xs, ys)):
            ax.text(x, y, f" {k}", fontsize=8)

    ax.set_aspect("equal", adjustable="datalim")
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    if title is not None:
        ax.set_title(title)
    if label is not None:
        ax.legend(loc="best")
    return ax
