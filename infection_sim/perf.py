"""Per-phase timing for the engine tick.

Each tick is split into named phases ("snapshot", "agents",
"compaction", "spawn"); when enabled the engine wraps every phase in
`track()`. Disabled monitors cost one attribute check per phase.

Usage:
    perf = PerfMonitor(enabled=True)
    with perf.track("agents"):
        ...
    print(perf.report())
"""

from __future__ import annotations

import time
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator


@dataclass
class PhaseStats:
    """Accumulated wall-clock time of one phase."""
    total_time: float = 0.0
    call_count: int = 0
    min_time: float = float('inf')
    max_time: float = 0.0

    @property
    def mean_time(self) -> float:
        return self.total_time / self.call_count if self.call_count > 0 else 0.0

    def add(self, elapsed: float) -> None:
        self.total_time += elapsed
        self.call_count += 1
        self.min_time = min(self.min_time, elapsed)
        self.max_time = max(self.max_time, elapsed)


class PerfMonitor:
    """Lightweight phase timer; all methods are no-ops when disabled."""

    def __init__(self, enabled: bool = False):
        self.enabled = enabled
        self._stats: Dict[str, PhaseStats] = defaultdict(PhaseStats)

    @contextmanager
    def track(self, phase: str) -> Iterator[None]:
        if not self.enabled:
            yield
            return
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self._stats[phase].add(time.perf_counter() - t0)

    def get_stats(self) -> Dict[str, PhaseStats]:
        return dict(self._stats)

    def total_time(self) -> float:
        return sum(s.total_time for s in self._stats.values())

    def summary(self) -> dict:
        """Summary dict suitable for JSON serialization."""
        total = self.total_time()
        result = {}
        for name, stats in sorted(self._stats.items(), key=lambda x: -x[1].total_time):
            pct = (stats.total_time / total * 100) if total > 0 else 0
            result[name] = {
                'total_s': round(stats.total_time, 4),
                'calls': stats.call_count,
                'mean_ms': round(stats.mean_time * 1000, 3),
                'pct': round(pct, 1),
            }
        result['_total_s'] = round(total, 4)
        return result

    def report(self, title: str = "Tick Phase Timings") -> str:
        """Human-readable table of phase timings."""
        total = self.total_time()
        lines = [
            f"\n{'='*60}",
            f" {title}",
            f"{'='*60}",
            f"{'Phase':<25} {'Total (s)':>10} {'Calls':>8} {'Mean (ms)':>10} {'%':>6}",
            f"{'-'*25} {'-'*10} {'-'*8} {'-'*10} {'-'*6}",
        ]
        for name, stats in sorted(self._stats.items(), key=lambda x: -x[1].total_time):
            pct = (stats.total_time / total * 100) if total > 0 else 0
            lines.append(
                f"{name:<25} {stats.total_time:>10.4f} {stats.call_count:>8} "
                f"{stats.mean_time*1000:>10.3f} {pct:>5.1f}%"
            )
        lines.append(f"{'-'*25} {'-'*10} {'-'*8} {'-'*10} {'-'*6}")
        lines.append(f"{'TOTAL':<25} {total:>10.4f}")
        lines.append(f"{'='*60}\n")
        return '\n'.join(lines)

    def reset(self) -> None:
        self._stats.clear()
