"""Cross-field sanity checks on aggregated groups.

Failures are reported as data; nothing in here raises for bad numbers.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from common.models.comparison import (
    ConfigGroup,
    RunMetricStats,
    SanityCheck,
    SanityCheckResults,
    ScalingAnalysis,
)
from analysis.statistics import calculate_cv

logger = logging.getLogger(__name__)

LATENCY_EPSILON = 0.01
QPS_TOLERANCE_PCT = 5.0
MAX_REASONABLE_CV = 20.0
MIN_RUNS_FOR_STATISTICS = 3


def check_latency_ordering(group: ConfigGroup, epsilon: float = LATENCY_EPSILON) -> list[SanityCheck]:
    """min <= avg <= p95 <= p99 <= max, one check per figure after min.

    A zero figure above a non-zero one means the tool did not report it; it
    passes with a note and the next figure is compared with the last reported
    one instead.
    """
    stats = group.statistics
    figures = [
        ("min", stats.latency_min),
        ("avg", stats.latency_avg.mean),
        ("p95", stats.latency_p95.mean),
        ("p99", stats.latency_p99.mean),
        ("max", stats.latency_max),
    ]

    checks = []
    lower_name, lower = figures[0]
    for upper_name, upper in figures[1:]:
        name = f"Latency ordering ({lower_name} <= {upper_name})"
        if upper == 0 and lower > 0:
            checks.append(SanityCheck(
                name=name,
                passed=True,
                details=f"{upper_name} not reported",
                group_id=group.group_id,
            ))
            continue
        checks.append(SanityCheck(
            name=name,
            passed=lower <= upper + epsilon,
            details=f"{lower_name}={lower:.2f}ms, {upper_name}={upper:.2f}ms",
            group_id=group.group_id,
        ))
        lower_name, lower = upper_name, upper
    return checks


def check_qps_consistency(group: ConfigGroup, tolerance_pct: float = QPS_TOLERANCE_PCT) -> SanityCheck:
    """Measured QPS against TPS x queries-per-transaction."""
    stats = group.statistics
    expected = stats.tps.mean * stats.queries_per_tx
    actual = stats.qps.mean
    if expected == 0:
        return SanityCheck(
            name="QPS consistency",
            passed=False,
            details="expected QPS is 0 (no transactions or queries reported)",
            group_id=group.group_id,
        )

    deviation = abs(actual - expected) / expected * 100
    return SanityCheck(
        name="QPS consistency",
        passed=deviation <= tolerance_pct,
        details=(
            f"actual={actual:.2f}, expected={expected:.2f} "
            f"({stats.tps.mean:.2f} TPS x {stats.queries_per_tx:.2f} q/tx), "
            f"deviation={deviation:.2f}%"
        ),
        group_id=group.group_id,
    )


def check_sql_totals(group: ConfigGroup) -> SanityCheck:
    """read + write + other == total, using the first run."""
    if not group.runs:
        return SanityCheck(
            name="SQL total consistency",
            passed=False,
            details="no runs in group",
            group_id=group.group_id,
        )
    run = group.runs[0]
    computed = run.read_queries + run.write_queries + run.other_queries
    return SanityCheck(
        name="SQL total consistency",
        passed=computed == run.total_queries,
        details=(
            f"read({run.read_queries}) + write({run.write_queries}) + "
            f"other({run.other_queries}) = {computed}, total={run.total_queries}"
        ),
        group_id=group.group_id,
    )


def check_reliability(group: ConfigGroup) -> SanityCheck:
    stats = group.statistics
    return SanityCheck(
        name="Reliability",
        passed=stats.total_errors == 0 and stats.total_reconnects == 0,
        details=f"errors={stats.total_errors}, reconnects={stats.total_reconnects}",
        group_id=group.group_id,
    )


def check_single_run_stddev(group: ConfigGroup) -> SanityCheck:
    """With a single run every stddev must be 0."""
    stats = group.statistics
    n = stats.tps.n
    if n != 1:
        return SanityCheck(
            name="Single-run stddev",
            passed=True,
            details=f"N={n}, not applicable",
            group_id=group.group_id,
        )
    metrics = {
        "tps": stats.tps,
        "qps": stats.qps,
        "latency_avg": stats.latency_avg,
        "latency_p95": stats.latency_p95,
        "latency_p99": stats.latency_p99,
    }
    nonzero = [name for name, m in metrics.items() if m.stddev != 0]
    return SanityCheck(
        name="Single-run stddev",
        passed=not nonzero,
        details="N=1, all stddev are 0" if not nonzero else f"N=1, nonzero stddev: {', '.join(nonzero)}",
        group_id=group.group_id,
    )


def validate_groups(
    groups: Sequence[ConfigGroup],
    scaling: Optional[ScalingAnalysis] = None,
    epsilon: float = LATENCY_EPSILON,
    qps_tolerance_pct: float = QPS_TOLERANCE_PCT,
) -> SanityCheckResults:
    """Run the full battery; all_passed is the conjunction of every check."""
    checks = [SanityCheck(
        name="Config groups exist",
        passed=len(groups) > 0,
        details=f"{len(groups)} configuration groups",
    )]

    for group in groups:
        checks.extend(check_latency_ordering(group, epsilon))
        checks.append(check_qps_consistency(group, qps_tolerance_pct))
        checks.append(check_sql_totals(group))
        checks.append(check_reliability(group))
        checks.append(check_single_run_stddev(group))

    if scaling is not None:
        if not scaling.baseline_group:
            checks.append(SanityCheck(name="Baseline exists", passed=False, details="no baseline group"))
        elif scaling.baseline_inferred:
            checks.append(SanityCheck(
                name="Baseline exists",
                passed=False,
                details=(
                    f"no single-thread group; inferred {scaling.baseline_group} "
                    f"({scaling.baseline_threads} threads)"
                ),
            ))
        else:
            checks.append(SanityCheck(
                name="Baseline exists",
                passed=True,
                details=f"{scaling.baseline_group} ({scaling.baseline_threads} threads)",
            ))

    all_passed = all(check.passed for check in checks)
    failed = sum(1 for check in checks if not check.passed)
    if failed:
        logger.info(f"Sanity checks: {failed} of {len(checks)} failed")
    return SanityCheckResults(checks=tuple(checks), all_passed=all_passed)


def validate_metric_range(name: str, value: float, minimum: float, maximum: float) -> SanityCheck:
    return SanityCheck(
        name=f"{name} range",
        passed=minimum <= value <= maximum,
        details=f"{name}={value:.2f}, expected [{minimum}, {maximum}]",
    )


def validate_positive(name: str, value: float) -> SanityCheck:
    return SanityCheck(name=f"{name} positive", passed=value > 0, details=f"{name}={value:.2f}")


def validate_monotonic_increase(name: str, values: Sequence[float]) -> SanityCheck:
    """Each value at least as large as the one before it."""
    drops = [i for i in range(1, len(values)) if values[i] < values[i - 1]]
    details = "monotonic" if not drops else f"decreases at positions {', '.join(map(str, drops))}"
    return SanityCheck(name=f"{name} monotonic increase", passed=not drops, details=details)


def validate_stddev_reasonable(name: str, stats: RunMetricStats, max_cv: float = MAX_REASONABLE_CV) -> SanityCheck:
    cv = calculate_cv(stats)
    return SanityCheck(
        name=f"{name} variability",
        passed=cv < max_cv,
        details=f"CV={cv:.2f}% (limit {max_cv:.0f}%)",
    )


def check_data_quality(groups: Sequence[ConfigGroup]) -> list[str]:
    """Human-readable data quality warnings."""
    issues = []
    for group in groups:
        stats = group.statistics
        if stats.tps.n < MIN_RUNS_FOR_STATISTICS:
            issues.append(
                f"{group.group_id}: only {stats.tps.n} run(s); "
                f"at least {MIN_RUNS_FOR_STATISTICS} recommended"
            )
        if stats.tps.mean <= 0:
            issues.append(f"{group.group_id}: no throughput recorded")
        cv = calculate_cv(stats.tps)
        if cv >= MAX_REASONABLE_CV:
            issues.append(f"{group.group_id}: TPS CV {cv:.1f}% exceeds {MAX_REASONABLE_CV:.0f}%")
    return issues
