"""Individual agents.

An Individual owns its kinematic state, infection state, contact
tracker and infection clock. Only the agent's own `update` (or
construction / restore) writes these fields; other agents see it through
the per-tick neighbour snapshot built by `build_neighbor_snapshot`.
"""

from __future__ import annotations

import warnings
from typing import Dict, Iterable, Optional

import numpy as np

from .config import SimulationConfig
from .movement import (
    clamp_speed,
    guard_speed,
    random_heading,
    resolve_boundary,
    steer,
    translate,
)
from .snapshots import IndividualMemento
from .states import update_state
from .types import InfectionState, allocate_neighbors
from .vector import Vector2D

_DEFAULT_CONFIG = SimulationConfig()


class Individual:
    """One simulated person.

    Attributes:
        id: Unique within a run, assigned sequentially by the engine.
        position: Arena units (px).
        velocity: px/s.
        state: Current InfectionState.
        contact_time: neighbour id → accumulated close-contact seconds.
            Only neighbours in range during the latest evaluation are kept.
        infection_time: Seconds since infection (kept after recovery).
        infection_duration: Seconds until recovery, drawn per agent.
        alive: False once the agent has left the arena.
    """

    __slots__ = (
        'id', 'position', 'velocity', 'state', 'contact_time',
        'infection_time', 'infection_duration', 'alive',
    )

    def __init__(
        self,
        agent_id: int,
        position: Vector2D,
        velocity: Vector2D,
        state: InfectionState = InfectionState.HEALTHY,
        infection_time: float = 0.0,
        infection_duration: float = 25.0,
    ):
        self.id = int(agent_id)
        self.position = position
        self.velocity = velocity
        self.state = InfectionState(state)
        self.contact_time: Dict[int, float] = {}
        self.infection_time = float(infection_time)
        self.infection_duration = float(infection_duration)
        self.alive = True

    @classmethod
    def create(
        cls,
        agent_id: int,
        x: float,
        y: float,
        rng: np.random.Generator,
        config: Optional[SimulationConfig] = None,
        state: InfectionState = InfectionState.HEALTHY,
    ) -> 'Individual':
        """New agent at (x, y) with a random heading, speed and illness length.

        Speed ~ U(min_speed, max_speed); infection_duration ~
        U(infection_duration_min, infection_duration_max).
        """
        config = config or _DEFAULT_CONFIG
        speed = rng.uniform(config.min_speed_px, config.max_speed_px)
        duration = rng.uniform(
            config.disease.infection_duration_min,
            config.disease.infection_duration_max,
        )
        return cls(
            agent_id,
            Vector2D(float(x), float(y)),
            random_heading(rng, speed),
            state=state,
            infection_duration=duration,
        )

    def __repr__(self) -> str:
        return (
            f"Individual(id={self.id}, pos=({self.position.x:.1f}, "
            f"{self.position.y:.1f}), state={self.state.tag}, alive={self.alive})"
        )

    @property
    def is_dead_or_left(self) -> bool:
        return not self.alive

    @property
    def color(self) -> str:
        return self.state.color

    def become_infected(self, symptomatic: bool) -> None:
        """HEALTHY → INFECTED_*; restarts the infection clock."""
        self.state = (
            InfectionState.INFECTED_SYMPTOMATIC if symptomatic
            else InfectionState.INFECTED_ASYMPTOMATIC
        )
        self.infection_time = 0.0
        self.contact_time.clear()

    # ── per-tick update ───────────────────────────────────────────────

    def update(
        self,
        dt: float,
        bounds_width: float,
        bounds_height: float,
        neighbors: np.ndarray,
        rng: np.random.Generator,
        config: Optional[SimulationConfig] = None,
    ) -> bool:
        """Advance this agent by one tick (in place).

        Args:
            dt: Timestep (s).
            bounds_width: Arena width (px).
            bounds_height: Arena height (px).
            neighbors: Snapshot of all agents (NEIGHBOR_DTYPE) taken
                before the tick. May include this agent; it is skipped.
            rng: This agent's private generator.
            config: Simulation parameters (defaults if None).

        Returns:
            Whether the agent is still in the arena.
        """
        if not self.alive:
            return False
        config = config or _DEFAULT_CONFIG
        mv = config.movement
        lo, hi = config.min_speed_px, config.max_speed_px

        velocity = guard_speed(self.velocity, lo, hi, rng)
        velocity, turned = steer(velocity, dt, mv, rng)
        if turned:
            velocity = clamp_speed(velocity, lo, hi, rng, mv.degenerate_speed)

        position = translate(self.position, velocity, dt)

        x, vx, left_x = resolve_boundary(
            position.x, velocity.x, bounds_width, rng, mv.bounce_probability)
        y, vy, left_y = resolve_boundary(
            position.y, velocity.y, bounds_height, rng, mv.bounce_probability)

        self.position = Vector2D(x, y)
        self.velocity = Vector2D(vx, vy)
        if left_x or left_y:
            self.alive = False

        update_state(self, dt, neighbors, rng, config)
        return self.alive

    # ── memento ───────────────────────────────────────────────────────

    def save_state(self) -> IndividualMemento:
        """Flat record of this agent. contact_time is not included."""
        return IndividualMemento(
            id=self.id,
            position_x=self.position.x,
            position_y=self.position.y,
            velocity_x=self.velocity.x,
            velocity_y=self.velocity.y,
            state_name=self.state.tag,
            infection_time=self.infection_time,
            infection_duration=self.infection_duration,
        )

    @classmethod
    def restore_state(cls, memento: IndividualMemento) -> 'Individual':
        """Rebuild an agent from its memento.

        The contact tracker starts empty. An unrecognized state_name
        restores as HEALTHY and issues a UserWarning.
        """
        if not InfectionState.is_known_tag(memento.state_name):
            warnings.warn(
                f"Unknown state '{memento.state_name}' for individual "
                f"{memento.id}; restoring as '{InfectionState.HEALTHY.tag}'.",
                UserWarning,
                stacklevel=2,
            )
        return cls(
            memento.id,
            Vector2D(memento.position_x, memento.position_y),
            Vector2D(memento.velocity_x, memento.velocity_y),
            state=InfectionState.from_tag(memento.state_name),
            infection_time=memento.infection_time,
            infection_duration=memento.infection_duration,
        )


def build_neighbor_snapshot(individuals: Iterable[Individual]) -> np.ndarray:
    """Freeze id, position, state and alive flag of every agent.

    The returned array is what every agent reads during a tick; it is
    never modified by agent updates.
    """
    population = list(individuals)
    snap = allocate_neighbors(len(population))
    for i, ind in enumerate(population):
        snap[i] = (ind.id, ind.position.x, ind.position.y, int(ind.state), ind.alive)
    snap.flags.writeable = False
    return snap
