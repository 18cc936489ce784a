"""Agent kinematics: correlated random walk inside a walled arena.

Per tick, for one agent:
    1. guard_speed     — repair a stalled or runaway velocity
    2. steer           — occasional small turn with a little speed jitter
    3. clamp_speed     — keep |v| within [min_speed, max_speed]
    4. translate       — x += v × dt
    5. resolve_boundary (per axis) — bounce or leave, then clamp position

Turns happen as a Poisson-like process: probability steering_rate × dt
per tick, angle ~ U(-max_turn_angle, +max_turn_angle).

At a wall the agent flips a coin (bounce_probability): bounce reverses
that velocity component, otherwise the agent has left the arena. Either
way its position is clamped back into [0, extent] so it never renders
outside.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from .config import MovementSection
from .vector import Vector2D

TWO_PI = 2.0 * np.pi


def random_heading(rng: np.random.Generator, speed: float) -> Vector2D:
    """Velocity with a uniform random direction and the given speed."""
    return Vector2D.from_polar(rng.uniform(0.0, TWO_PI), speed)


def guard_speed(
    velocity: Vector2D,
    min_speed: float,
    max_speed: float,
    rng: np.random.Generator,
) -> Vector2D:
    """Top-of-tick repair.

    A velocity slower than min_speed (e.g. zero after a restore) is
    replaced by a fresh random heading at min_speed; one faster than
    max_speed is scaled down.
    """
    speed = velocity.magnitude()
    if speed < min_speed:
        return random_heading(rng, min_speed)
    if speed > max_speed:
        return velocity.scale(max_speed / speed)
    return velocity


def clamp_speed(
    velocity: Vector2D,
    min_speed: float,
    max_speed: float,
    rng: np.random.Generator,
    degenerate_speed: float = 1e-9,
) -> Vector2D:
    """Rescale velocity so that min_speed <= |v| <= max_speed.

    Direction is preserved unless the vector is numerically degenerate,
    in which case a random heading at min_speed is drawn.
    """
    speed = velocity.magnitude()
    if speed < degenerate_speed:
        return random_heading(rng, min_speed)
    if speed < min_speed or speed > max_speed:
        target = min(max(speed, min_speed), max_speed)
        return velocity.scale(target / speed)
    return velocity


def steer(
    velocity: Vector2D,
    dt: float,
    params: MovementSection,
    rng: np.random.Generator,
) -> Tuple[Vector2D, bool]:
    """Maybe turn this tick.

    Returns:
        (new_velocity, turned). The velocity is returned unchanged when
        no turn happens.
    """
    if rng.random() >= params.steering_rate * dt:
        return velocity, False
    turn = rng.uniform(-params.max_turn_angle, params.max_turn_angle)
    jitter = 1.0 + rng.uniform(-params.speed_jitter, params.speed_jitter)
    return velocity.rotate(turn).scale(jitter), True


def translate(position: Vector2D, velocity: Vector2D, dt: float) -> Vector2D:
    return position.add(velocity.scale(dt))


def resolve_boundary(
    coord: float,
    velocity_component: float,
    extent: float,
    rng: np.random.Generator,
    bounce_probability: float = 0.5,
) -> Tuple[float, float, bool]:
    """Resolve one axis against the walls [0, extent].

    Returns:
        (clamped_coord, velocity_component, left_arena). Inside the
        arena nothing changes and no random number is drawn.
    """
    if 0.0 <= coord <= extent:
        return coord, velocity_component, False
    left = True
    if rng.random() < bounce_probability:
        velocity_component = -velocity_component
        left = False
    return min(max(coord, 0.0), float(extent)), velocity_component, left
