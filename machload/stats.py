"""Aggregate statistics over a set of request results."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field

from machload.models import Result


@dataclass
class Stats:
    """Summary of a load-test run. Latencies are in milliseconds."""

    total_requests: int = 0
    success: int = 0
    failed: int = 0
    avg_latency: float = 0.0
    min_latency: float = 0.0
    max_latency: float = 0.0
    p50_latency: float = 0.0
    p95_latency: float = 0.0
    p99_latency: float = 0.0
    status_codes: Counter = field(default_factory=Counter)
    rps: float = 0.0
    total_duration_s: float = 0.0

    def success_rate(self) -> float:
        """Percentage of successful requests, 0 when there were none."""
        if self.total_requests <= 0:
            return 0.0
        return self.success / self.total_requests * 100.0


def calculate_stats(results: Iterable[Result], total_duration_s: float) -> Stats:
    """Compute counts, latency percentiles and throughput for ``results``."""
    results = list(results)
    stats = Stats(total_requests=len(results), total_duration_s=total_duration_s)
    if not results:
        return stats

    latencies: list[float] = []
    for res in results:
        if res.ok():
            stats.success += 1
        else:
            stats.failed += 1
        if 0 < res.status_code < 600:
            stats.status_codes[res.status_code] += 1
        if res.duration_ms > 0:
            latencies.append(res.duration_ms)

    if latencies:
        latencies.sort()
        n = len(latencies)
        stats.avg_latency = sum(latencies) / n
        stats.min_latency = latencies[0]
        stats.max_latency = latencies[-1]
        stats.p50_latency = latencies[int(n * 0.50)]
        stats.p95_latency = latencies[int(n * 0.95)]
        stats.p99_latency = latencies[int(n * 0.99)]

    if total_duration_s > 0:
        stats.rps = len(results) / total_duration_s

    return stats