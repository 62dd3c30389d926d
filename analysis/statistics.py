"""Aggregate statistics across repeated runs.

Every function here is pure: inputs are value snapshots and nothing is
shared between calls.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence

import numpy as np

from common.models.comparison import ConfigGroup, RunMetricStats, RunStats
from common.models.run import Run
from common.utils import safe_divide

Z_95 = 1.96


def calculate_metric_stats(values: Sequence[float]) -> RunMetricStats:
    """N, mean, sample stddev (N-1), min and max of one metric."""
    if len(values) == 0:
        return RunMetricStats()

    arr = np.asarray(values, dtype=float)
    n = len(arr)
    return RunMetricStats(
        n=n,
        mean=float(np.mean(arr)),
        stddev=float(np.std(arr, ddof=1)) if n > 1 else 0.0,
        min=float(np.min(arr)),
        max=float(np.max(arr)),
    )


def calculate_run_stats(runs: Sequence[Run]) -> RunStats:
    """Aggregate statistics for the runs of one configuration."""
    if not runs:
        return RunStats()

    total_errors = sum(run.errors for run in runs)
    total_reconnects = sum(run.reconnects for run in runs)

    read = sum(run.read_queries for run in runs)
    write = sum(run.write_queries for run in runs)
    other = sum(run.other_queries for run in runs)
    total = read + write + other

    return RunStats(
        tps=calculate_metric_stats([run.tps for run in runs]),
        qps=calculate_metric_stats([run.qps for run in runs]),
        latency_avg=calculate_metric_stats([run.latency_avg for run in runs]),
        latency_p95=calculate_metric_stats([run.latency_p95 for run in runs]),
        latency_p99=calculate_metric_stats([run.latency_p99 for run in runs]),
        latency_min=min(run.latency_min for run in runs),
        latency_max=max(run.latency_max for run in runs),
        total_errors=total_errors,
        total_reconnects=total_reconnects,
        has_errors=total_errors > 0 or total_reconnects > 0,
        read_pct=safe_divide(read, total) * 100,
        write_pct=safe_divide(write, total) * 100,
        other_pct=safe_divide(other, total) * 100,
        queries_per_tx=float(np.mean([run.queries_per_transaction for run in runs])),
    )


def calculate_cv(stats: RunMetricStats) -> float:
    """Coefficient of variation in percent; 0 when the mean is 0."""
    return safe_divide(stats.stddev, stats.mean) * 100


def calculate_speedup(tps: float, baseline_tps: float) -> float:
    return safe_divide(tps, baseline_tps)


def calculate_efficiency(speedup: float, threads: int, baseline_threads: int = 1) -> float:
    """Speedup normalised by the thread multiple over the baseline."""
    return safe_divide(speedup, safe_divide(threads, baseline_threads))


def calculate_delta(current: float, previous: float) -> tuple[float, float]:
    """Absolute and percentage change from previous to current."""
    delta = current - previous
    return delta, safe_divide(delta, previous) * 100


def aggregate_stats(stats: Iterable[RunMetricStats]) -> RunMetricStats:
    """Pool several metric summaries into one."""
    parts = [s for s in stats if s.n > 0]
    if not parts:
        return RunMetricStats()

    n = sum(s.n for s in parts)
    mean = sum(s.mean * s.n for s in parts) / n
    if n > 1:
        within = sum((s.n - 1) * s.stddev ** 2 for s in parts)
        between = sum(s.n * (s.mean - mean) ** 2 for s in parts)
        stddev = math.sqrt((within + between) / (n - 1))
    else:
        stddev = 0.0
    return RunMetricStats(
        n=n,
        mean=mean,
        stddev=stddev,
        min=min(s.min for s in parts),
        max=max(s.max for s in parts),
    )


def find_best_tps_config(groups: Sequence[ConfigGroup]) -> Optional[str]:
    """Group ID with the highest mean TPS."""
    if not groups:
        return None
    best = max(groups, key=lambda g: g.statistics.tps.mean)
    return best.group_id


def find_worst_latency_config(groups: Sequence[ConfigGroup]) -> Optional[str]:
    """Group ID with the highest mean p95 latency."""
    if not groups:
        return None
    worst = max(groups, key=lambda g: g.statistics.latency_p95.mean)
    return worst.group_id


def find_best_latency_config(groups: Sequence[ConfigGroup]) -> Optional[str]:
    """Group ID with the lowest reported mean p95 latency."""
    reported = [g for g in groups if g.statistics.latency_p95.mean > 0]
    if not reported:
        return None
    best = min(reported, key=lambda g: g.statistics.latency_p95.mean)
    return best.group_id


def calculate_overall_reliability(groups: Sequence[ConfigGroup]) -> float:
    """Percentage of runs finishing without errors or reconnects."""
    runs = [run for group in groups for run in group.runs]
    if not runs:
        return 0.0
    clean = sum(1 for run in runs if run.errors == 0 and run.reconnects == 0)
    return clean / len(runs) * 100


def calculate_confidence_interval(stats: RunMetricStats, z: float = Z_95) -> tuple[float, float]:
    """Normal-approximation confidence interval of the mean."""
    if stats.n < 2:
        return stats.mean, stats.mean
    margin = z * stats.stddev / math.sqrt(stats.n)
    return stats.mean - margin, stats.mean + margin


def get_percentile(values: Sequence[float], percentile: float) -> float:
    """Percentile with linear interpolation; 0 for no values."""
    if len(values) == 0:
        return 0.0
    return float(np.percentile(np.asarray(values, dtype=float), percentile))
