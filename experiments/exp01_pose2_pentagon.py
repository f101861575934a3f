from __future__ import annotations

import argparse
import logging
import math

import jax
import matplotlib.pyplot as plt

from pose2_jit.core.math2d import pose2, pose2_to_xytheta
from pose2_jit.core.pose_graph import PoseGraph, loop_closure_error
from pose2_jit.optimization.solvers import GDConfig, gradient_descent
from pose2_jit.slam.measurements import weights_from_sigmas
from pose2_jit.world.visualization import plot_trajectory_2d

# Per-axis odometry noise (theta, x, y); gives weights (0.1, 0.3, 0.3).
ODOM_SIGMAS = (math.sqrt(10.0), math.sqrt(10.0 / 3.0), math.sqrt(10.0 / 3.0))


def build_problem():
    """
    Closed Pose2SLAM square:

      - 5 poses, the last one should land back on the first
      - 4 odometry constraints "advance 2.0, turn 90°" (the first without
        the turn)
      - initial estimate: a rough forward-driven guess
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
    weights = weights_from_sigmas(ODOM_SIGMAS)
    graph = PoseGraph.odometry_chain(measurements, weights=weights, scale=1.0 / 3.0)
    return graph, initial


def run_experiment(iters: int = 1500, learning_rate: float = 1.0, plot: bool = False):
    graph, initial = build_problem()
    objective = graph.build_objective()

    print("=== INITIAL TRAJECTORY ===")
    for k, p in enumerate(initial):
        print(f"p{k}: {pose2_to_xytheta(p)}")
    print(f"loss = {float(objective(initial)):.6e}")
    print(f"loop closure error = {loop_closure_error(initial):.6e}")

    cfg = GDConfig(learning_rate=learning_rate, max_iters=iters, log_every=100)
    result = gradient_descent(objective, initial, cfg)

    print("\n=== OPTIMIZED TRAJECTORY ===")
    for k, p in enumerate(result):
        print(f"p{k}: {pose2_to_xytheta(p)}")
    print(f"loss = {float(objective(result)):.6e}")
    print(f"loop closure error = {loop_closure_error(result):.6e}")

    if plot:
        ax = plot_trajectory_2d(initial, label="initial")
        plot_trajectory_2d(result, ax=ax, label="optimized", title="Pose2SLAM pentagon")
        plt.show()

    return result


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Gradient-descent Pose2SLAM on a closed square.")
    parser.add_argument("--iters", type=int, default=1500)
    parser.add_argument("--lr", type=float, default=1.0)
    parser.add_argument("--plot", action="store_true")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    jax.config.update("jax_enable_x64", True)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    run_experiment(iters=args.iters, learning_rate=args.lr, plot=args.plot)
