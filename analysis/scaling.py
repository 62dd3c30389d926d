"""Scaling analysis across configuration groups ordered by thread count."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

from common.models.comparison import ConfigGroup, ScalingAnalysis, ScalingMetrics
from analysis.statistics import (
    calculate_delta,
    calculate_efficiency,
    calculate_speedup,
    find_best_tps_config,
    find_worst_latency_config,
)

logger = logging.getLogger(__name__)

# Knee heuristics: the first group below this efficiency, or gaining less
# than this many percent TPS over the previous group.
KNEE_EFFICIENCY_THRESHOLD = 0.70
KNEE_MIN_TPS_GAIN_PCT = 10.0

# Latency penalty divisor for the throughput-vs-latency score.
LATENCY_PENALTY_MS = 10.0

STABILITY_BANDS = (
    (3.0, "Very Stable"),
    (5.0, "Stable"),
    (10.0, "Moderate"),
    (15.0, "Variable"),
)


def order_by_threads(groups: Sequence[ConfigGroup]) -> list[ConfigGroup]:
    return sorted(groups, key=lambda g: g.threads)


def resolve_baseline(
    groups: Sequence[ConfigGroup],
    baseline: Optional[str] = None,
) -> tuple[Optional[ConfigGroup], bool]:
    """Pick the baseline group and report whether it had to be inferred.

    Order of preference: the explicit group ID, the single-thread group, then
    the lowest-thread group (inferred).
    """
    if not groups:
        return None, False

    if baseline:
        for group in groups:
            if group.group_id == baseline:
                return group, False
        raise ValueError(f"Baseline group not found: {baseline}")

    ordered = order_by_threads(groups)
    for group in ordered:
        if group.threads == 1:
            return group, False

    logger.warning(
        f"No single-thread group; using {ordered[0].group_id} "
        f"({ordered[0].threads} threads) as inferred baseline"
    )
    return ordered[0], True


def detect_knee(
    ordered: Sequence[ConfigGroup],
    metrics: dict[str, ScalingMetrics],
    baseline_id: str,
    efficiency_threshold: float = KNEE_EFFICIENCY_THRESHOLD,
    min_tps_gain_pct: float = KNEE_MIN_TPS_GAIN_PCT,
) -> Optional[ConfigGroup]:
    """First group past the point of diminishing returns.

    Falls back to the highest-thread group when none qualifies; None when
    there is nothing but the baseline.
    """
    candidates = [g for g in ordered if g.group_id != baseline_id]
    if not candidates:
        return None

    for group in candidates:
        scaling = metrics[group.group_id]
        if scaling.efficiency < efficiency_threshold:
            return group
        if scaling.delta_tps_pct is not None and scaling.delta_tps_pct < min_tps_gain_pct:
            return group
    return candidates[-1]


def analyze_scaling(
    groups: Sequence[ConfigGroup],
    baseline: Optional[str] = None,
    efficiency_threshold: float = KNEE_EFFICIENCY_THRESHOLD,
    min_tps_gain_pct: float = KNEE_MIN_TPS_GAIN_PCT,
) -> ScalingAnalysis:
    """Speedup, efficiency, deltas and knee for the given groups."""
    base, inferred = resolve_baseline(groups, baseline)
    if base is None:
        return ScalingAnalysis()

    ordered = order_by_threads(groups)
    baseline_tps = base.statistics.tps.mean

    by_group: dict[str, ScalingMetrics] = {}
    previous: Optional[ConfigGroup] = None
    for group in ordered:
        tps = group.statistics.tps.mean
        speedup = calculate_speedup(tps, baseline_tps)
        efficiency = calculate_efficiency(speedup, group.threads, base.threads)

        delta_tps = delta_pct = delta_p95 = None
        if previous is not None and group.group_id != base.group_id:
            delta_tps, delta_pct = calculate_delta(tps, previous.statistics.tps.mean)
            delta_p95 = group.statistics.latency_p95.mean - previous.statistics.latency_p95.mean

        by_group[group.group_id] = ScalingMetrics(
            group_id=group.group_id,
            threads=group.threads,
            tps=tps,
            speedup=speedup,
            efficiency=efficiency,
            delta_tps=delta_tps,
            delta_tps_pct=delta_pct,
            delta_p95=delta_p95,
        )
        previous = group

    knee = detect_knee(ordered, by_group, base.group_id, efficiency_threshold, min_tps_gain_pct)
    if knee is not None:
        logger.info(f"Scaling knee at {knee.group_id} ({knee.threads} threads)")

    return ScalingAnalysis(
        baseline_group=base.group_id,
        baseline_threads=base.threads,
        baseline_tps=baseline_tps,
        baseline_inferred=inferred,
        by_group=tuple(by_group.values()),
        best_tps_config=find_best_tps_config(groups) or "",
        worst_latency_config=find_worst_latency_config(groups) or "",
        scaling_knee=knee.group_id if knee else "",
        scaling_knee_threads=knee.threads if knee else 0,
    )


def score_group(scaling: ScalingMetrics, p95: float) -> float:
    """Throughput-vs-latency score: speedup / (1 + p95 / 10)."""
    return scaling.speedup / (1 + p95 / LATENCY_PENALTY_MS)


def calculate_optimal_thread_count(
    groups: Sequence[ConfigGroup],
    analysis: ScalingAnalysis,
) -> Optional[ConfigGroup]:
    """Recommended group: the one before the knee, else the best score."""
    if not groups:
        return None
    ordered = order_by_threads(groups)

    if analysis.scaling_knee and analysis.scaling_knee != analysis.baseline_group:
        ids = [g.group_id for g in ordered]
        index = ids.index(analysis.scaling_knee)
        if index > 0:
            return ordered[index - 1]

    best: Optional[ConfigGroup] = None
    best_score = -1.0
    for group in ordered:
        scaling = analysis.get_scaling(group.group_id)
        if scaling is None:
            continue
        score = score_group(scaling, group.statistics.latency_p95.mean)
        if score > best_score:
            best, best_score = group, score
    return best


def calculate_linear_scaling_efficiency(analysis: ScalingAnalysis) -> float:
    """Mean efficiency of the non-baseline groups, 0 when there are none."""
    values = [
        m.efficiency for m in analysis.by_group
        if m.group_id != analysis.baseline_group
    ]
    if not values:
        return 0.0
    return float(np.mean(values))


def predict_scaling(groups: Sequence[ConfigGroup], threads: int) -> float:
    """Estimate TPS at a thread count by linear interpolation.

    Beyond the measured range the slope of the two outermost points is
    extended; predictions never go negative.
    """
    if not groups:
        return 0.0
    ordered = order_by_threads(groups)
    xs = np.array([g.threads for g in ordered], dtype=float)
    ys = np.array([g.statistics.tps.mean for g in ordered], dtype=float)

    if len(xs) == 1:
        return float(ys[0] * threads / xs[0])

    if threads < xs[0]:
        slope = (ys[1] - ys[0]) / (xs[1] - xs[0]) if xs[1] != xs[0] else 0.0
        return max(0.0, float(ys[0] + slope * (threads - xs[0])))
    if threads > xs[-1]:
        slope = (ys[-1] - ys[-2]) / (xs[-1] - xs[-2]) if xs[-1] != xs[-2] else 0.0
        return max(0.0, float(ys[-1] + slope * (threads - xs[-1])))
    return float(np.interp(threads, xs, ys))


def get_stability_rating(cv: float) -> str:
    for limit, label in STABILITY_BANDS:
        if cv < limit:
            return label
    return "Highly Variable"
