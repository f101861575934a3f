# Copyright (c) 2025.
# This file is part of Pose2-JIT, released under the MIT License.
"""
SO(2) and SE(2) group operations for Pose2-JIT.

This module implements the planar Lie-group mathematics required by the
pose-graph optimizer:

    • SO(2) construction, composition, inversion and angle extraction
    • Rotation of points
    • SE(2) composition, inversion, relative pose ("between") and adjoint
    • Retractions (tangent-space updates) for rotations and poses

Every SO(2) primitive that touches the (cos, sin) embedding is a
`jax.custom_vjp` function with a hand-written backward rule. SE(2)
operations are plain compositions of these primitives, so JAX's reverse
mode chains the rules together end-to-end.

Key Functions
-------------
rot2_from_angle(theta)
    Rotation (cos θ, sin θ).

rot2_compose(a, b), rot2_inverse(a), rot2_between(a, b)
    Group product (complex multiplication), inverse (conjugate), a⁻¹ ∘ b.

rot2_angle(r)
    θ = atan2(s, c) in (−π, π].

rot2_retract(r, delta)
    Rot2(delta) ∘ r.

pose2_compose(a, b), pose2_inverse(a), pose2_between(a, b)
    SE(2) product, inverse and a⁻¹ ∘ b.

pose2_adjoint_matrix(p)
    3×3 adjoint for tangent order (ω, vx, vy).

pose2_retract(p, delta)
    Right perturbation: rotation by ω, translation by R·(vx, vy).

Derivative rules
----------------
The backward rules are written in (c, s) coordinates. Restricted to the
unit circle, where a tangent increment δ moves (c, s) along (−s, c)·δ, they
reduce to the usual tangent-space identities:

    compose : v  ->  (v, v)
    inverse : v  ->  −v
    angle   : v  ->  v

The rules do not renormalize. `rot2_compose` of two unit rotations drifts
from the unit circle by a few ULPs per call; `rot2_normalize` is available
for callers that run very long optimizations.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

from .types import Point2, Pose2, Rot2


def _as_float(v) -> jnp.ndarray:
    return jnp.asarray(v, dtype=float)


# --- SO(2) primitives with explicit VJPs ---

@jax.custom_vjp
def _rot2_from_angle(theta: jnp.ndarray) -> Rot2:
    return Rot2(jnp.cos(theta), jnp.sin(theta))


def _rot2_from_angle_fwd(theta):
    r = _rot2_from_angle(theta)
    return r, r


def _rot2_from_angle_bwd(r, g):
    # d(c, s)/dθ = (−s, c)
    return (r.c * g.s - r.s * g.c,)


_rot2_from_angle.defvjp(_rot2_from_angle_fwd, _rot2_from_angle_bwd)


def rot2_from_angle(theta) -> Rot2:
    """Rotation by `theta` radians."""
    return _rot2_from_angle(_as_float(theta))


def rot2(c, s) -> Rot2:
    """Rotation from an explicit (cos, sin) pair. The pair is not normalized."""
    return Rot2(_as_float(c), _as_float(s))


def rot2_identity() -> Rot2:
    return rot2(1.0, 0.0)


@jax.custom_vjp
def rot2_compose(a: Rot2, b: Rot2) -> Rot2:
    """Group product a ∘ b, i.e. the complex product of the two (c, s) pairs."""
    return Rot2(a.c * b.c - a.s * b.s, a.s * b.c + a.c * b.s)


def _rot2_compose_fwd(a, b):
    return rot2_compose(a, b), (a, b)


def _rot2_compose_bwd(res, g):
    a, b = res
    grad_a = Rot2(g.c * b.c + g.s * b.s, g.s * b.c - g.c * b.s)
    grad_b = Rot2(g.c * a.c + g.s * a.s, g.s * a.c - g.c * a.s)
    return grad_a, grad_b


rot2_compose.defvjp(_rot2_compose_fwd, _rot2_compose_bwd)


@jax.custom_vjp
def rot2_inverse(a: Rot2) -> Rot2:
    """Group inverse (rotation by −θ)."""
    return Rot2(a.c, -a.s)


def _rot2_inverse_fwd(a):
    return rot2_inverse(a), None


def _rot2_inverse_bwd(_, g):
    return (Rot2(g.c, -g.s),)


rot2_inverse.defvjp(_rot2_inverse_fwd, _rot2_inverse_bwd)


@jax.custom_vjp
def rot2_angle(r: Rot2) -> jnp.ndarray:
    """Angle θ = atan2(s, c) in (−π, π]."""
    return jnp.arctan2(r.s, r.c)


def _rot2_angle_fwd(r):
    return rot2_angle(r), r


def _rot2_angle_bwd(r, g):
    # Gradient of atan2(s, c); undefined at (0, 0).
    n = r.c * r.c + r.s * r.s
    return (Rot2(-r.s * g / n, r.c * g / n),)


rot2_angle.defvjp(_rot2_angle_fwd, _rot2_angle_bwd)


@jax.custom_vjp
def rot2_rotate(r: Rot2, p: Point2) -> Point2:
    """Apply the rotation to a point: R(θ) · p."""
    return Point2(r.c * p.x - r.s * p.y, r.s * p.x + r.c * p.y)


def _rot2_rotate_fwd(r, p):
    return rot2_rotate(r, p), (r, p)


def _rot2_rotate_bwd(res, g):
    r, p = res
    grad_r = Rot2(g.x * p.x + g.y * p.y, g.y * p.x - g.x * p.y)
    grad_p = Point2(r.c * g.x + r.s * g.y, r.c * g.y - r.s * g.x)
    return grad_r, grad_p


rot2_rotate.defvjp(_rot2_rotate_fwd, _rot2_rotate_bwd)


# --- SO(2) derived operations ---

def rot2_between(a: Rot2, b: Rot2) -> Rot2:
    """Relative rotation carrying `a` to `b`: a⁻¹ ∘ b."""
    return rot2_compose(rot2_inverse(a), b)


def rot2_retract(r: Rot2, delta) -> Rot2:
    """Move `r` along its tangent: Rot2(delta) ∘ r."""
    delta = jnp.reshape(jnp.asarray(delta), ())
    return rot2_compose(rot2_from_angle(delta), r)


def rot2_matrix(r: Rot2) -> jnp.ndarray:
    return jnp.array([[r.c, -r.s], [r.s, r.c]])


def rot2_normalize(r: Rot2) -> Rot2:
    """Project (c, s) back onto the unit circle."""
    n = jnp.sqrt(r.c * r.c + r.s * r.s)
    return Rot2(r.c / n, r.s / n)


# --- Point2 ---

def point2(x, y) -> Point2:
    return Point2(_as_float(x), _as_float(y))


def point2_add(a: Point2, b: Point2) -> Point2:
    return Point2(a.x + b.x, a.y + b.y)


def point2_sub(a: Point2, b: Point2) -> Point2:
    return Point2(a.x - b.x, a.y - b.y)


def point2_neg(a: Point2) -> Point2:
    return Point2(-a.x, -a.y)


def point2_scale(a: Point2, k) -> Point2:
    return Point2(k * a.x, k * a.y)


def point2_norm(a: Point2) -> jnp.ndarray:
    """Euclidean magnitude of the vector."""
    return jnp.sqrt(a.x * a.x + a.y * a.y)


def point2_to_array(a: Point2) -> jnp.ndarray:
    return jnp.stack([a.x, a.y])


# --- SE(2) ---

def pose2(x, y, theta) -> Pose2:
    """Pose at translation (x, y) with heading `theta`."""
    return Pose2(rot2_from_angle(theta), point2(x, y))


def pose2_identity() -> Pose2:
    return Pose2(rot2_identity(), point2(0.0, 0.0))


def pose2_compose(a: Pose2, b: Pose2) -> Pose2:
    """
    SE(2) product a ∘ b.

    The translation of `b` is rotated into `a`'s frame and then offset by
    `a`'s translation.
    """
    rot = rot2_compose(a.rot, b.rot)
    t = point2_add(a.t, rot2_rotate(a.rot, b.t))
    return Pose2(rot, t)


def pose2_inverse(a: Pose2) -> Pose2:
    rot_inv = rot2_inverse(a.rot)
    return Pose2(rot_inv, point2_neg(rot2_rotate(rot_inv, a.t)))


def pose2_between(a: Pose2, b: Pose2) -> Pose2:
    """Relative pose a⁻¹ ∘ b, i.e. `b` expressed in `a`'s frame."""
    return pose2_compose(pose2_inverse(a), b)


def pose2_adjoint_matrix(p: Pose2) -> jnp.ndarray:
    """
    Adjoint of `p` acting on tangent vectors ordered (ω, vx, vy):

        Ad(p) = [ 1     0   0 ]
                [ t_y   c  -s ]
                [ -t_x  s   c ]

    so that p ∘ Exp(ξ) ∘ p⁻¹ = Exp(Ad(p) ξ).
    """
    c, s = p.rot.c, p.rot.s
    x, y = p.t.x, p.t.y
    return jnp.array(
        [
            [1.0, 0.0, 0.0],
            [y, c, -s],
            [-x, s, c],
        ]
    )


def pose2_retract(p: Pose2, delta) -> Pose2:
    """
    Right-perturbation retraction on SE(2).

    delta = [ω, vx, vy]. The rotation moves by `rot2_retract(p.rot, ω)` and
    the translation moves by (vx, vy) expressed in the pose's own frame.
    """
    delta = jnp.asarray(delta)
    if delta.shape != (3,):
        raise ValueError(f"Pose2 tangent must have shape (3,), got {delta.shape}")

    rot = rot2_retract(p.rot, delta[0])
    t = point2_add(p.t, rot2_rotate(p.rot, Point2(delta[1], delta[2])))
    return Pose2(rot, t)


def pose2_to_xytheta(p: Pose2) -> jnp.ndarray:
    """[x, y, θ] vector, handy for printing and plotting."""
    return jnp.stack([p.t.x, p.t.y, rot2_angle(p.rot)])
