"""Infection state machine.

One update rule per InfectionState, dispatched through STATE_RULES.
Transmission is evaluated from the susceptible side only:

  HEALTHY
    For each contagious neighbour within infection_distance, accumulate
    dt into contact_time[neighbour_id]. When an entry reaches
    contact_time_required, roll an infection attempt:
        p = p_infect_asymptomatic  (source INFECTED_ASYMPTOMATIC, 0.5)
        p = p_infect_symptomatic   (source INFECTED_SYMPTOMATIC,  1.0)
    Success → INFECTED_SYMPTOMATIC with symptomatic_fraction, else
    INFECTED_ASYMPTOMATIC; infection_time = 0; contact_time cleared;
    scan stops (at most one infection per tick).
    Failure → that entry restarts at 0; scan continues.
    After the scan, entries for neighbours not seen in range are dropped.

  INFECTED_ASYMPTOMATIC / INFECTED_SYMPTOMATIC
    infection_time += dt; IMMUNE once infection_time >= infection_duration.

  IMMUNE
    Terminal.

Neighbours are read from the per-tick snapshot (NEIGHBOR_DTYPE), never
from live agents, so the outcome does not depend on update order.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Dict, Set

import numpy as np

from .config import SimulationConfig
from .types import CONTAGIOUS, InfectionState

if TYPE_CHECKING:
    from .individual import Individual

StateRule = Callable[
    ['Individual', float, np.ndarray, np.random.Generator, SimulationConfig],
    None,
]


def infection_probability(source: InfectionState, config: SimulationConfig) -> float:
    """Per-attempt infection probability for a given source state."""
    if source == InfectionState.INFECTED_SYMPTOMATIC:
        return config.disease.p_infect_symptomatic
    if source == InfectionState.INFECTED_ASYMPTOMATIC:
        return config.disease.p_infect_asymptomatic
    return 0.0


def contagious_in_range(
    me: 'Individual',
    neighbors: np.ndarray,
    radius: float,
) -> np.ndarray:
    """Snapshot indices of alive contagious others within `radius`, in order."""
    if len(neighbors) == 0:
        return np.empty(0, dtype=np.intp)
    dist = np.hypot(neighbors['x'] - me.position.x, neighbors['y'] - me.position.y)
    mask = (
        neighbors['alive']
        & CONTAGIOUS[neighbors['state']]
        & (neighbors['id'] != me.id)
        & (dist <= radius)
    )
    return np.flatnonzero(mask)


# ═══════════════════════════════════════════════════════════════════════
# UPDATE RULES
# ═══════════════════════════════════════════════════════════════════════

def update_healthy(
    me: 'Individual',
    dt: float,
    neighbors: np.ndarray,
    rng: np.random.Generator,
    config: SimulationConfig,
) -> None:
    ds = config.disease
    seen: Set[int] = set()

    for idx in contagious_in_range(me, neighbors, config.infection_distance_px):
        other_id = int(neighbors['id'][idx])
        seen.add(other_id)

        elapsed = me.contact_time.get(other_id, 0.0) + dt
        me.contact_time[other_id] = elapsed
        if elapsed < ds.contact_time_required:
            continue

        source = InfectionState(int(neighbors['state'][idx]))
        if rng.random() < infection_probability(source, config):
            symptomatic = rng.random() < ds.symptomatic_fraction
            me.become_infected(symptomatic)
            return
        # Failed attempt: a fresh contact window is needed for this pair
        me.contact_time[other_id] = 0.0

    stale = [k for k in me.contact_time if k not in seen]
    for k in stale:
        del me.contact_time[k]


def update_infected(
    me: 'Individual',
    dt: float,
    neighbors: np.ndarray,
    rng: np.random.Generator,
    config: SimulationConfig,
) -> None:
    me.infection_time += dt
    if me.infection_time >= me.infection_duration:
        me.state = InfectionState.IMMUNE


def update_immune(
    me: 'Individual',
    dt: float,
    neighbors: np.ndarray,
    rng: np.random.Generator,
    config: SimulationConfig,
) -> None:
    pass


STATE_RULES: Dict[InfectionState, StateRule] = {
    InfectionState.HEALTHY:               update_healthy,
    InfectionState.INFECTED_ASYMPTOMATIC: update_infected,
    InfectionState.INFECTED_SYMPTOMATIC:  update_infected,
    InfectionState.IMMUNE:                update_immune,
}

_missing = set(InfectionState) - set(STATE_RULES)
if _missing:
    raise RuntimeError(f"No update rule for states: {sorted(s.name for s in _missing)}")


def update_state(
    me: 'Individual',
    dt: float,
    neighbors: np.ndarray,
    rng: np.random.Generator,
    config: SimulationConfig,
) -> None:
    """Run the update rule of `me.state` (may change me.state)."""
    STATE_RULES[me.state](me, dt, neighbors, rng, config)
