"""Optional stats-history recording for headless runs.

Records the engine counters (and optionally every agent's id, x, y and
state) at a fixed tick interval, so a run can be plotted or replayed
offline after it finishes.

Usage:
    recorder = StatsRecorder(enabled=True, interval_ticks=25)

    # In the driver loop, after engine.update():
    recorder.capture(engine)

    # After the run:
    recorder.save("results/stats.npz")
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Union

import numpy as np

from .types import SimulationStats

if TYPE_CHECKING:
    from .engine import SimulationEngine

STAT_FIELDS = tuple(f.name for f in fields(SimulationStats))


@dataclass
class AgentFrame:
    """Positions + states of all live agents at one tick."""
    tick: int
    time: float
    ids: np.ndarray      # int64
    x: np.ndarray        # float32
    y: np.ndarray        # float32
    state: np.ndarray    # int8 (InfectionState values)


class StatsRecorder:
    """Captures SimulationStats every `interval_ticks` ticks.

    When enabled=False, all methods are no-ops.
    """

    def __init__(
        self,
        enabled: bool = False,
        interval_ticks: int = 25,
        record_agents: bool = False,
    ):
        if interval_ticks < 1:
            raise ValueError(f"interval_ticks must be >= 1, got {interval_ticks}")
        self.enabled = enabled
        self.interval_ticks = interval_ticks
        self.record_agents = record_agents
        self.stats: List[SimulationStats] = []
        self.frames: List[AgentFrame] = []

    def should_capture(self, tick: int) -> bool:
        return self.enabled and tick % self.interval_ticks == 0

    def capture(self, engine: 'SimulationEngine', force: bool = False) -> bool:
        """Record the engine's current state if this tick is due.

        Returns:
            Whether anything was recorded.
        """
        if not self.enabled:
            return False
        stats = engine.get_stats()
        if not (force or self.should_capture(stats.ticks)):
            return False
        self.stats.append(stats)
        if self.record_agents:
            population = engine.individuals
            self.frames.append(AgentFrame(
                tick=stats.ticks,
                time=stats.time,
                ids=np.array([ind.id for ind in population], dtype=np.int64),
                x=np.array([ind.position.x for ind in population], dtype=np.float32),
                y=np.array([ind.position.y for ind in population], dtype=np.float32),
                state=np.array([int(ind.state) for ind in population], dtype=np.int8),
            ))
        return True

    def __len__(self) -> int:
        return len(self.stats)

    def times(self) -> np.ndarray:
        return self.series('time')

    def series(self, name: str) -> np.ndarray:
        """One counter over time, e.g. series('infected').

        Raises:
            KeyError: If name is not a SimulationStats field.
        """
        if name not in STAT_FIELDS:
            raise KeyError(f"Unknown stat '{name}'. Available: {STAT_FIELDS}")
        dtype = np.float64 if name == 'time' else np.int64
        return np.array([getattr(s, name) for s in self.stats], dtype=dtype)

    def peak(self, name: str = 'infected') -> Optional[SimulationStats]:
        """Recorded entry with the largest value of `name` (None if empty)."""
        if not self.stats:
            return None
        return max(self.stats, key=lambda s: getattr(s, name))

    def save(self, path: Union[str, Path]) -> None:
        """Save to a compressed npz file.

        Format: one array per stat field (stat_<name>), plus for agent
        frames f{i}_ids / f{i}_x / f{i}_y / f{i}_state and the
        frame_tick / frame_time metadata arrays.
        """
        if not self.stats:
            return
        arrays: Dict[str, np.ndarray] = {
            f"stat_{name}": self.series(name) for name in STAT_FIELDS
        }
        for i, frame in enumerate(self.frames):
            arrays[f"f{i}_ids"] = frame.ids
            arrays[f"f{i}_x"] = frame.x
            arrays[f"f{i}_y"] = frame.y
            arrays[f"f{i}_state"] = frame.state
        arrays['frame_tick'] = np.array([f.tick for f in self.frames], dtype=np.int64)
        arrays['frame_time'] = np.array([f.time for f in self.frames], dtype=np.float64)

        Path(path).parent.mkdir(parents=True, exist_ok=True)
        np.savez_compressed(path, **arrays)

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'StatsRecorder':
        """Load a recording saved by `save()` (returned recorder is disabled)."""
        recorder = cls(enabled=False)
        with np.load(path) as data:
            columns = {name: data[f"stat_{name}"] for name in STAT_FIELDS}
            n = len(columns['time'])
            for i in range(n):
                recorder.stats.append(SimulationStats(**{
                    name: (float(col[i]) if name == 'time' else int(col[i]))
                    for name, col in columns.items()
                }))
            ticks = data['frame_tick']
            times = data['frame_time']
            for i in range(len(ticks)):
                recorder.frames.append(AgentFrame(
                    tick=int(ticks[i]),
                    time=float(times[i]),
                    ids=data[f"f{i}_ids"],
                    x=data[f"f{i}_x"],
                    y=data[f"f{i}_y"],
                    state=data[f"f{i}_state"],
                ))
        recorder.record_agents = bool(recorder.frames)
        return recorder
