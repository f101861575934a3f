# Copyright (c) 2025.
# This file is part of Pose2-JIT, released under the MIT License.

import math
import time

import jax

from pose2_jit.core.math2d import pose2, pose2_inverse
from pose2_jit.core.pose_graph import PoseGraph, loop_closure_error
from pose2_jit.optimization.solvers import SGD


def build_circle_problem(num_poses: int = 50, noise: float = 0.05):
    """
    Closed circular odometry chain:
        pose0 --odom--> pose1 --odom--> ... --odom--> pose_{N-1}
    Each measurement is a unit step and a 2π/(N-1) turn. The initial guess
    is the ground-truth circle with a deterministic wobble.
    """
    step_angle = 2.0 * math.pi / (num_poses - 1)
    radius = 0.5 / math.sin(step_angle / 2.0)

    motion = pose2(radius * math.sin(step_angle), radius * (1.0 - math.cos(step_angle)), step_angle)
    # The residual vanishes when between(p_i, p_j) = z⁻¹.
    z = pose2_inverse(motion)

    initial = []
    for i in range(num_poses):
        a = i * step_angle
        initial.append(
            pose2(
                radius * math.sin(a) + noise * math.sin(3.0 * i),
                radius * (1.0 - math.cos(a)) + noise * math.cos(5.0 * i),
                a + noise * math.sin(7.0 * i),
            )
        )

    graph = PoseGraph.odometry_chain([z] * (num_poses - 1), scale=1.0 / 3.0)
    return graph, initial


def run_benchmark(num_poses: int = 50, iters: int = 200, learning_rate: float = 0.5):
    print("=== Pose2 Gradient Descent Benchmark ===")
    print(f"num_poses = {num_poses}, iters = {iters}, learning_rate = {learning_rate}")

    graph, initial = build_circle_problem(num_poses)
    value_and_grad = graph.build_value_and_grad()
    opt = SGD(learning_rate=learning_rate)

    # Warmup: compile value_and_grad and the update step
    traj = list(initial)
    loss, grad = value_and_grad(traj)
    opt.update(traj, grad)
    jax.block_until_ready(traj)

    traj = list(initial)
    t0 = time.time()
    for _ in range(iters):
        loss, grad = value_and_grad(traj)
        opt.update(traj, grad)
    jax.block_until_ready(traj)
    t1 = time.time()

    loss, _ = value_and_grad(traj)

    elapsed = t1 - t0
    print(f"Elapsed time: {elapsed * 1000:.3f} ms ({elapsed * 1e6 / iters:.1f} us / iter)")
    print(f"final loss: {float(loss):.6e}")
    print(f"loop closure error: {loop_closure_error(traj):.6e}")


if __name__ == "__main__":
    jax.config.update("jax_enable_x64", True)
    run_benchmark(num_poses=50, iters=200, learning_rate=0.5)
