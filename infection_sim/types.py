"""Core data types for Infection-Sim.

This module is the single place that defines:
  - InfectionState: the closed set of infection variants, with their
    serialization tags and render colours
  - NEIGHBOR_DTYPE: structured dtype of the per-tick neighbour snapshot
  - SimulationStats / AgentView: read-only objects handed to drivers and
    renderers

Other modules import these types from here.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple

import numpy as np


# ═══════════════════════════════════════════════════════════════════════
# INFECTION STATES
# ═══════════════════════════════════════════════════════════════════════

class InfectionState(IntEnum):
    """Infection variants of an individual.

    HEALTHY               → INFECTED_ASYMPTOMATIC | INFECTED_SYMPTOMATIC
                            (close contact with a contagious neighbour)
    INFECTED_ASYMPTOMATIC → IMMUNE (after infection_duration)
    INFECTED_SYMPTOMATIC  → IMMUNE (after infection_duration)
    IMMUNE                  terminal
    """
    HEALTHY               = 0
    INFECTED_ASYMPTOMATIC = 1
    INFECTED_SYMPTOMATIC  = 2
    IMMUNE                = 3

    @property
    def tag(self) -> str:
        """Stable string used in snapshots."""
        return STATE_TAGS[self]

    @property
    def color(self) -> str:
        """Render colour name (presentation hint only)."""
        return STATE_COLORS[self]

    @property
    def rgb(self) -> Tuple[int, int, int]:
        return STATE_RGB[self]

    @property
    def is_contagious(self) -> bool:
        return bool(CONTAGIOUS[self])

    @property
    def is_infected(self) -> bool:
        return self.is_contagious

    @classmethod
    def from_tag(cls, tag: str) -> 'InfectionState':
        """Parse a snapshot tag. Unknown tags map to HEALTHY."""
        return _TAG_TO_STATE.get(tag, cls.HEALTHY)

    @classmethod
    def is_known_tag(cls, tag: str) -> bool:
        return tag in _TAG_TO_STATE


STATE_TAGS = {
    InfectionState.HEALTHY:               'healthy',
    InfectionState.INFECTED_ASYMPTOMATIC: 'infected_asymptomatic',
    InfectionState.INFECTED_SYMPTOMATIC:  'infected_symptomatic',
    InfectionState.IMMUNE:                'immune',
}

STATE_COLORS = {
    InfectionState.HEALTHY:               'green',
    InfectionState.INFECTED_ASYMPTOMATIC: 'yellow',
    InfectionState.INFECTED_SYMPTOMATIC:  'red',
    InfectionState.IMMUNE:                'blue',
}

STATE_RGB = {
    InfectionState.HEALTHY:               (34, 197, 94),
    InfectionState.INFECTED_ASYMPTOMATIC: (255, 255, 0),
    InfectionState.INFECTED_SYMPTOMATIC:  (255, 0, 0),
    InfectionState.IMMUNE:                (59, 130, 246),
}

# Indexed by InfectionState value
CONTAGIOUS = np.array([False, True, True, False])
#                      H      IA    IS    R

_TAG_TO_STATE = {tag: state for state, tag in STATE_TAGS.items()}


# ═══════════════════════════════════════════════════════════════════════
# NEIGHBOUR SNAPSHOT
# ═══════════════════════════════════════════════════════════════════════

NEIGHBOR_DTYPE = np.dtype([
    ('id',     np.int64),     # agent id
    ('x',      np.float64),   # position x (arena units)
    ('y',      np.float64),   # position y (arena units)
    ('state',  np.int8),      # InfectionState value
    ('alive',  np.bool_),     # False once the agent has left the arena
])


def allocate_neighbors(n: int) -> np.ndarray:
    """Allocate a zeroed neighbour snapshot of length n."""
    return np.zeros(n, dtype=NEIGHBOR_DTYPE)


# ═══════════════════════════════════════════════════════════════════════
# READ-ONLY VIEWS
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SimulationStats:
    """Point-in-time counters of the engine."""
    time: float
    population: int
    healthy: int
    infected: int
    immune: int
    asymptomatic: int = 0
    symptomatic: int = 0
    ticks: int = 0


@dataclass(frozen=True)
class AgentView:
    """What a renderer needs to draw one agent."""
    id: int
    x: float
    y: float
    state: InfectionState
    color: str
