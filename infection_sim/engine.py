"""Simulation engine: population ownership and the fixed-timestep tick.

Tick sequence (`update(dt)`):
  1. snapshot    — freeze id/position/state/alive of every agent
  2. agents      — every agent's kinematics + state rule, in parallel
                   on a thread pool, all reading the same snapshot
  3. compaction  — (after all agent updates finished) drop agents that
                   left the arena
  4. spawn       — with probability spawn_chance, and only below
                   max_population, one agent enters at a random edge
  5. clock       — simulation_time += dt

Randomness: each agent draws from its own generator derived from
(master seed, agent id); the engine's spawn decisions use the engine
streams and run only in the sequential phases. With a fixed seed a run
is reproducible and does not depend on the number of worker threads.
"""

from __future__ import annotations

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

from .config import SimulationConfig, default_config
from .individual import Individual, build_neighbor_snapshot
from .perf import PerfMonitor
from .rng import create_agent_rng, create_engine_rngs, master_entropy
from .snapshots import SimulationMemento
from .types import AgentView, InfectionState, SimulationStats


class SimulationEngine:
    """Owns the live population, the random streams and the clock.

    Usage:
        with SimulationEngine(default_config(), seed=7) as engine:
            engine.initialize(immunity_enabled=True)
            for _ in range(250):
                engine.update(0.04)
            print(engine.get_stats())
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        seed: Optional[int] = None,
    ):
        """
        Args:
            config: Simulation parameters (default_config() if None).
            seed: Master seed; overrides config.simulation.seed. If both
                are None, fresh OS entropy is used (see `entropy`).
        """
        self.config = config or default_config()
        if seed is None:
            seed = self.config.simulation.seed
        self.entropy = master_entropy(seed)
        self._rngs = create_engine_rngs(self.entropy)
        self._agent_rngs: Dict[int, np.random.Generator] = {}

        self._individuals: List[Individual] = []
        self._simulation_time = 0.0
        self._ticks = 0
        self._next_id = 0
        self._has_immunity = False

        self.perf = PerfMonitor(enabled=self.config.simulation.profile)
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pool_workers = 0

    # ── read-only state ───────────────────────────────────────────────

    @property
    def individuals(self) -> Tuple[Individual, ...]:
        """Live agents in insertion order (do not mutate)."""
        return tuple(self._individuals)

    @property
    def simulation_time(self) -> float:
        return self._simulation_time

    @property
    def population_count(self) -> int:
        return len(self._individuals)

    @property
    def has_immunity(self) -> bool:
        return self._has_immunity

    @property
    def next_id(self) -> int:
        return self._next_id

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def width(self) -> int:
        return self.config.arena.width

    @property
    def height(self) -> int:
        return self.config.arena.height

    # ── lifecycle ─────────────────────────────────────────────────────

    def initialize(self, immunity_enabled: bool = False) -> None:
        """Clear everything and seed the initial population inside the arena."""
        self._individuals.clear()
        self._agent_rngs.clear()
        self._simulation_time = 0.0
        self._ticks = 0
        self._next_id = 0
        self._has_immunity = bool(immunity_enabled)

        for _ in range(self.config.population.initial_population):
            self.spawn(initial=True)

    def close(self) -> None:
        """Shut down the worker pool (the engine stays usable)."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> 'SimulationEngine':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ── tick ──────────────────────────────────────────────────────────

    def update(self, dt: Optional[float] = None) -> None:
        """Advance the simulation by one tick of `dt` seconds."""
        if dt is None:
            dt = self.config.simulation.dt
        pop = self.config.population

        with self.perf.track("snapshot"):
            neighbors = build_neighbor_snapshot(self._individuals)

        with self.perf.track("agents"):
            self._step_agents(dt, neighbors)

        with self.perf.track("compaction"):
            self._compact()

        with self.perf.track("spawn"):
            if (self._rngs['global'].random() < pop.spawn_chance
                    and len(self._individuals) < pop.max_population):
                self.spawn(initial=False)

        self._simulation_time += dt
        self._ticks += 1

    def _agent_rng(self, agent_id: int) -> np.random.Generator:
        rng = self._agent_rngs.get(agent_id)
        if rng is None:
            rng = create_agent_rng(self.entropy, agent_id)
            self._agent_rngs[agent_id] = rng
        return rng

    def _pool(self) -> ThreadPoolExecutor:
        """Worker pool sized to the current parallel_workers setting."""
        workers = self.config.simulation.parallel_workers
        if self._executor is not None and self._pool_workers != workers:
            self.close()
        if self._executor is None:
            self._pool_workers = workers
            self._executor = ThreadPoolExecutor(
                max_workers=workers,
                thread_name_prefix="infection-sim",
            )
        return self._executor

    def _step_agents(self, dt: float, neighbors: np.ndarray) -> None:
        """Update every agent; returns only after all updates finished."""
        width, height = self.width, self.height
        config = self.config
        # Generators are looked up here so worker threads never touch the dict
        jobs = [(ind, self._agent_rng(ind.id)) for ind in self._individuals]

        def step(job) -> bool:
            ind, rng = job
            return ind.update(dt, width, height, neighbors, rng, config)

        if config.simulation.parallel_workers == 1 or len(jobs) < 2:
            for job in jobs:
                step(job)
        else:
            # list() drains the iterator: barrier + re-raise of worker errors
            list(self._pool().map(step, jobs))

    def _compact(self) -> None:
        survivors = []
        for ind in self._individuals:
            if ind.alive:
                survivors.append(ind)
            else:
                self._agent_rngs.pop(ind.id, None)
        self._individuals = survivors

    # ── spawning ──────────────────────────────────────────────────────

    def spawn(self, initial: bool = False) -> Individual:
        """Create one agent and add it to the population.

        Position is uniform inside the arena when `initial`, otherwise
        uniform along one of the four edges (side chosen uniformly).
        With immunity enabled the agent starts IMMUNE with probability
        immune_fraction; a non-immune agent starts infected with
        probability initial_infected_fraction (asymptomatic/symptomatic
        50/50).
        """
        rng = self._rngs['spawn']
        pop = self.config.population
        w, h = float(self.width), float(self.height)

        if initial:
            x = rng.random() * w
            y = rng.random() * h
        else:
            side = int(rng.integers(4))
            if side == 0:
                x, y = 0.0, rng.random() * h
            elif side == 1:
                x, y = w, rng.random() * h
            elif side == 2:
                x, y = rng.random() * w, 0.0
            else:
                x, y = rng.random() * w, h

        immune = self._has_immunity and rng.random() < pop.immune_fraction

        agent_id = self._next_id
        self._next_id += 1
        ind = Individual.create(agent_id, x, y, self._agent_rng(agent_id), self.config)

        if immune:
            ind.state = InfectionState.IMMUNE
        elif rng.random() < pop.initial_infected_fraction:
            ind.state = (
                InfectionState.INFECTED_ASYMPTOMATIC if rng.random() < 0.5
                else InfectionState.INFECTED_SYMPTOMATIC
            )

        self._individuals.append(ind)
        return ind

    # ── views ─────────────────────────────────────────────────────────

    def get_stats(self) -> SimulationStats:
        """Counters of the current population (pure read)."""
        counts = Counter(ind.state for ind in self._individuals)
        asym = counts[InfectionState.INFECTED_ASYMPTOMATIC]
        sym = counts[InfectionState.INFECTED_SYMPTOMATIC]
        return SimulationStats(
            time=self._simulation_time,
            population=len(self._individuals),
            healthy=counts[InfectionState.HEALTHY],
            infected=asym + sym,
            immune=counts[InfectionState.IMMUNE],
            asymptomatic=asym,
            symptomatic=sym,
            ticks=self._ticks,
        )

    def agent_views(self) -> Iterator[AgentView]:
        """What a renderer needs: id, position and colour of each agent."""
        for ind in self._individuals:
            yield AgentView(
                id=ind.id,
                x=ind.position.x,
                y=ind.position.y,
                state=ind.state,
                color=ind.state.color,
            )

    # ── save / restore ────────────────────────────────────────────────

    def create_snapshot(self) -> SimulationMemento:
        return SimulationMemento(
            individuals=[ind.save_state() for ind in self._individuals],
            simulation_time=self._simulation_time,
            has_immunity=self._has_immunity,
            next_id=self._next_id,
        )

    def restore_snapshot(self, memento: SimulationMemento) -> None:
        """Replace the whole engine state with the snapshot's.

        Prior agents are discarded. Contact trackers start empty and
        per-agent generators are re-derived from the master seed, so a
        restored run does not replay the original's random draws.
        The tick counter restarts at 0.
        """
        self._individuals = [Individual.restore_state(m) for m in memento.individuals]
        self._agent_rngs.clear()
        self._simulation_time = float(memento.simulation_time)
        self._has_immunity = bool(memento.has_immunity)
        self._next_id = int(memento.next_id)
        self._ticks = 0
