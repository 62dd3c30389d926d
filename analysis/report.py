"""Report assembly: comparison and simplified reports from run records."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

import numpy as np

from common.errors import InsufficientDataError
from common.models.comparison import (
    ComparisonReport,
    ConfigGroup,
    ReportFindings,
    SanityCheck,
    ScalingAnalysis,
    SimilarityConfig,
    SimplifiedReport,
    SimplifiedRow,
)
from common.models.run import BenchmarkRecord
from common.utils import generate_report_id, safe_divide
from analysis.grouping import group_records_by_config
from analysis.sanity import LATENCY_EPSILON, QPS_TOLERANCE_PCT, validate_groups
from analysis.scaling import (
    KNEE_EFFICIENCY_THRESHOLD,
    analyze_scaling,
    calculate_optimal_thread_count,
    get_stability_rating,
)
from analysis.statistics import calculate_cv, find_best_latency_config

logger = logging.getLogger(__name__)

MIN_RECORDS = 2
CV_INSTABILITY_THRESHOLD = 10.0

# Queries per transaction assumed by the simplified report (sysbench
# oltp_read_write issues 18 statements plus BEGIN/COMMIT).
SIMPLIFIED_QUERIES_PER_TX = 20.0


def _describe(group: ConfigGroup) -> str:
    spec = group.config
    text = f"{spec.threads} threads, {spec.database_type}, {spec.template_name}"
    if spec.connection_name:
        text += f", {spec.connection_name}"
    return text


def _by_id(groups: Sequence[ConfigGroup]) -> dict[str, ConfigGroup]:
    return {group.group_id: group for group in groups}


def build_findings(
    groups: Sequence[ConfigGroup],
    scaling: ScalingAnalysis,
    cv_threshold: float = CV_INSTABILITY_THRESHOLD,
) -> ReportFindings:
    """Derive best configs, knee, stability and a recommendation."""
    if not groups:
        return ReportFindings()
    index = _by_id(groups)

    best = index.get(scaling.best_tps_config)
    best_throughput = ""
    if best is not None:
        best_throughput = (
            f"{best.group_id} ({_describe(best)}): {best.statistics.tps.mean:.2f} TPS"
        )

    best_latency = ""
    best_latency_id = find_best_latency_config(groups)
    if best_latency_id:
        group = index[best_latency_id]
        best_latency = f"{group.group_id} ({_describe(group)}): p95 {group.statistics.latency_p95.mean:.2f}ms"

    knee = index.get(scaling.scaling_knee)
    if knee is not None:
        efficiency = scaling.get_scaling(knee.group_id).efficiency
        scaling_knee = f"{knee.group_id} at {knee.threads} threads (efficiency {efficiency:.0%})"
    else:
        scaling_knee = "not detected (need at least two thread counts)"

    latency_risk = ""
    worst = index.get(scaling.worst_latency_config)
    if worst is not None and worst.statistics.latency_p95.mean > 0:
        latency_risk = f"{worst.group_id} has the highest p95 latency: {worst.statistics.latency_p95.mean:.2f}ms"
        baseline = index.get(scaling.baseline_group)
        if baseline is not None and baseline is not worst and baseline.statistics.latency_p95.mean > 0:
            increase = safe_divide(
                worst.statistics.latency_p95.mean - baseline.statistics.latency_p95.mean,
                baseline.statistics.latency_p95.mean,
            ) * 100
            latency_risk += f" (+{increase:.0f}% vs baseline)"

    stability_concerns = []
    for group in groups:
        cv = calculate_cv(group.statistics.tps)
        if cv > cv_threshold:
            stability_concerns.append(
                f"{group.group_id}: TPS CV {cv:.1f}% ({get_stability_rating(cv)})"
            )

    recommended = calculate_optimal_thread_count(groups, scaling)
    recommendation = ""
    tradeoff = ""
    if recommended is not None:
        stats = recommended.statistics
        recommendation = (
            f"Use {recommended.threads} threads ({recommended.group_id}): "
            f"{stats.tps.mean:.2f} TPS at p95 {stats.latency_p95.mean:.2f}ms"
        )
        if knee is not None and knee is not recommended:
            recommendation += f"; scaling flattens at {knee.threads} threads"

        if best is None or best is recommended:
            tradeoff = "The recommended configuration is also the highest-throughput one"
        else:
            tps_gain = safe_divide(best.statistics.tps.mean - stats.tps.mean, stats.tps.mean) * 100
            p95_cost = safe_divide(
                best.statistics.latency_p95.mean - stats.latency_p95.mean, stats.latency_p95.mean
            ) * 100
            tradeoff = (
                f"{best.group_id} delivers {tps_gain:.1f}% more TPS than {recommended.group_id} "
                f"at {p95_cost:+.1f}% p95 latency"
            )

    return ReportFindings(
        best_throughput=best_throughput,
        best_latency=best_latency,
        scaling_knee=scaling_knee,
        latency_risk=latency_risk,
        stability_concerns=tuple(stability_concerns),
        recommendation=recommendation,
        recommended_group=recommended.group_id if recommended else "",
        tradeoff_statement=tradeoff,
        next_experiment=_next_experiment(groups, knee),
    )


def _next_experiment(groups: Sequence[ConfigGroup], knee: Optional[ConfigGroup]) -> str:
    thin = [g.group_id for g in groups if g.statistics.tps.n < 3]
    if thin:
        return f"Repeat runs for {', '.join(thin)} to at least 3 per configuration"

    ordered = sorted(groups, key=lambda g: g.threads)
    if knee is not None:
        position = ordered.index(knee)
        if position > 0:
            lower = ordered[position - 1].threads
            if knee.threads - lower > 1:
                return f"Test thread counts between {lower} and {knee.threads} to locate the knee precisely"
    return f"Test thread counts above {ordered[-1].threads} to confirm the throughput ceiling"


def compare_records(
    records: Sequence[BenchmarkRecord],
    group_by: str = "threads",
    baseline: Optional[str] = None,
    similarity: Optional[SimilarityConfig] = None,
) -> ComparisonReport:
    """Group, aggregate, analyse and check records into one report."""
    if len(records) < MIN_RECORDS:
        raise InsufficientDataError(MIN_RECORDS, len(records))

    similarity = similarity or SimilarityConfig(group_by=group_by)
    generated_at = datetime.utcnow()

    groups = group_records_by_config(records, group_by, similarity)
    scaling = analyze_scaling(groups, baseline)
    sanity = validate_groups(groups, scaling)
    findings = build_findings(groups, scaling)

    logger.info(
        f"Compared {len(records)} records in {len(groups)} groups "
        f"(sanity {'passed' if sanity.all_passed else 'failed'})"
    )
    return ComparisonReport(
        report_id=generate_report_id(generated_at),
        generated_at=generated_at,
        group_by=group_by,
        similarity=similarity,
        config_groups=tuple(groups),
        scaling=scaling,
        sanity_checks=sanity,
        findings=findings,
    )


def _simplified_row(threads: int, records: Sequence[BenchmarkRecord]) -> SimplifiedRow:
    runs = [record.to_run() for record in records]
    return SimplifiedRow(
        threads=threads,
        runs=len(runs),
        tps=float(np.mean([run.tps for run in runs])),
        qps=float(np.mean([run.qps for run in runs])),
        latency_min=min(run.latency_min for run in runs),
        latency_avg=float(np.mean([run.latency_avg for run in runs])),
        latency_p95=float(np.mean([run.latency_p95 for run in runs])),
        latency_max=max(run.latency_max for run in runs),
        read_queries=sum(run.read_queries for run in runs),
        write_queries=sum(run.write_queries for run in runs),
        other_queries=sum(run.other_queries for run in runs),
        total_queries=sum(run.total_queries for run in runs),
        errors=sum(run.errors for run in runs),
        reconnects=sum(run.reconnects for run in runs),
    )


def _simplified_checks(row: SimplifiedRow, queries_per_tx: float) -> list[SanityCheck]:
    label = f"{row.threads} threads"
    computed = row.read_queries + row.write_queries + row.other_queries

    expected_qps = row.tps * queries_per_tx
    if expected_qps > 0:
        deviation = abs(row.qps - expected_qps) / expected_qps * 100
        qps_check = SanityCheck(
            name=f"QPS ~ TPS x {queries_per_tx:g} ({label})",
            passed=deviation <= QPS_TOLERANCE_PCT,
            details=f"qps={row.qps:.2f}, expected={expected_qps:.2f}, deviation={deviation:.2f}%",
        )
    else:
        qps_check = SanityCheck(
            name=f"QPS ~ TPS x {queries_per_tx:g} ({label})",
            passed=False,
            details="expected QPS is 0",
        )

    ordered = (
        row.latency_min <= row.latency_avg + LATENCY_EPSILON
        and row.latency_avg <= row.latency_p95 + LATENCY_EPSILON
    )
    return [
        SanityCheck(
            name=f"SQL totals ({label})",
            passed=computed == row.total_queries,
            details=f"{computed} vs total {row.total_queries}",
        ),
        qps_check,
        SanityCheck(
            name=f"Latency ordering ({label})",
            passed=ordered,
            details=f"min={row.latency_min:.2f}, avg={row.latency_avg:.2f}, p95={row.latency_p95:.2f}",
        ),
        SanityCheck(
            name=f"No errors ({label})",
            passed=row.errors == 0 and row.reconnects == 0,
            details=f"errors={row.errors}, reconnects={row.reconnects}",
        ),
    ]


def generate_simplified_report(
    records: Sequence[BenchmarkRecord],
    queries_per_tx: float = SIMPLIFIED_QUERIES_PER_TX,
    efficiency_threshold: float = KNEE_EFFICIENCY_THRESHOLD,
) -> SimplifiedReport:
    """Thread-count-only summary with a reduced check battery."""
    if len(records) < MIN_RECORDS:
        raise InsufficientDataError(MIN_RECORDS, len(records))

    by_threads: dict[int, list[BenchmarkRecord]] = {}
    for record in records:
        by_threads.setdefault(record.threads, []).append(record)

    rows = [_simplified_row(threads, by_threads[threads]) for threads in sorted(by_threads)]
    first = rows[0]
    rows = [
        row.model_copy(update={
            "efficiency": safe_divide(safe_divide(row.tps, first.tps), safe_divide(row.threads, first.threads)),
        })
        for row in rows
    ]

    checks = [check for row in rows for check in _simplified_checks(row, queries_per_tx)]

    best_tps = max(rows, key=lambda r: r.tps)
    reported = [r for r in rows if r.latency_p95 > 0]
    best_latency = min(reported, key=lambda r: r.latency_p95) if reported else None

    knee_index = next(
        (i for i, row in enumerate(rows) if i > 0 and row.efficiency < efficiency_threshold),
        None,
    )
    if knee_index is not None:
        knee = rows[knee_index]
        previous = rows[knee_index - 1]
        recommendation = (
            f"Use {previous.threads} threads; efficiency drops to "
            f"{knee.efficiency:.0%} at {knee.threads} threads"
        )
    else:
        knee = None
        recommendation = (
            f"Use {best_tps.threads} threads for maximum throughput ({best_tps.tps:.2f} TPS)"
        )

    generated_at = datetime.utcnow()
    return SimplifiedReport(
        report_id=generate_report_id(generated_at),
        generated_at=generated_at,
        rows=tuple(rows),
        checks=tuple(checks),
        all_passed=all(check.passed for check in checks),
        best_tps_threads=best_tps.threads,
        best_latency_threads=best_latency.threads if best_latency else 0,
        knee_threads=knee.threads if knee else 0,
        recommendation=recommendation,
    )
