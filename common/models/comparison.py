"""Comparison report models."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from common.models.run import ConfigSpec, Run


class SimilarityConfig(BaseModel):
    """How records are judged to belong to the same configuration."""
    model_config = ConfigDict(frozen=True)

    time_window_minutes: int = Field(default=5, ge=0)
    require_exact_match: bool = True
    group_by: str = "threads"
    consider_connection: bool = False


class RunMetricStats(BaseModel):
    """Aggregate of one metric across the runs of a group."""
    model_config = ConfigDict(frozen=True)

    n: int = 0
    mean: float = 0
    stddev: float = 0
    min: float = 0
    max: float = 0


class RunStats(BaseModel):
    """Aggregated statistics for a configuration group."""
    model_config = ConfigDict(frozen=True)

    tps: RunMetricStats = Field(default_factory=RunMetricStats)
    qps: RunMetricStats = Field(default_factory=RunMetricStats)
    latency_avg: RunMetricStats = Field(default_factory=RunMetricStats)
    latency_p95: RunMetricStats = Field(default_factory=RunMetricStats)
    latency_p99: RunMetricStats = Field(default_factory=RunMetricStats)
    latency_min: float = Field(default=0, description="Min of per-run minimum latency")
    latency_max: float = Field(default=0, description="Max of per-run maximum latency")

    total_errors: int = 0
    total_reconnects: int = 0
    has_errors: bool = False

    read_pct: float = 0
    write_pct: float = 0
    other_pct: float = 0
    queries_per_tx: float = 0


class ConfigGroup(BaseModel):
    """Runs sharing one configuration, with derived statistics."""
    model_config = ConfigDict(frozen=True)

    group_id: str
    config: ConfigSpec
    runs: tuple[Run, ...] = ()
    statistics: RunStats = Field(default_factory=RunStats)
    tags: tuple[str, ...] = ()

    @property
    def threads(self) -> int:
        return self.config.threads


class ScalingMetrics(BaseModel):
    """Scaling figures of one group against the baseline."""
    model_config = ConfigDict(frozen=True)

    group_id: str
    threads: int
    tps: float = 0
    speedup: float = 0
    efficiency: float = 0
    delta_tps: Optional[float] = Field(default=None, description="None for the baseline")
    delta_tps_pct: Optional[float] = None
    delta_p95: Optional[float] = None


class ScalingAnalysis(BaseModel):
    """Cross-group scaling analysis."""
    model_config = ConfigDict(frozen=True)

    baseline_group: str = ""
    baseline_threads: int = 0
    baseline_tps: float = 0
    baseline_inferred: bool = Field(
        default=False,
        description="True when no explicit or single-thread baseline existed",
    )
    by_group: tuple[ScalingMetrics, ...] = Field(default=(), description="Ordered by threads")
    best_tps_config: str = ""
    worst_latency_config: str = ""
    scaling_knee: str = ""
    scaling_knee_threads: int = 0

    def get_scaling(self, group_id: str) -> Optional[ScalingMetrics]:
        for metrics in self.by_group:
            if metrics.group_id == group_id:
                return metrics
        return None


class SanityCheck(BaseModel):
    """Result of one invariant check."""
    model_config = ConfigDict(frozen=True)

    name: str
    passed: bool
    details: str = ""
    group_id: Optional[str] = None


class SanityCheckResults(BaseModel):
    """All sanity checks of a report."""
    model_config = ConfigDict(frozen=True)

    checks: tuple[SanityCheck, ...] = ()
    all_passed: bool = True

    @property
    def failed(self) -> list[SanityCheck]:
        return [check for check in self.checks if not check.passed]


class ReportFindings(BaseModel):
    """Automatically generated conclusions."""
    model_config = ConfigDict(frozen=True)

    best_throughput: str = ""
    best_latency: str = ""
    scaling_knee: str = ""
    latency_risk: str = ""
    stability_concerns: tuple[str, ...] = ()
    recommendation: str = ""
    recommended_group: str = ""
    tradeoff_statement: str = ""
    next_experiment: str = ""


class ComparisonReport(BaseModel):
    """Immutable result of a multi-configuration comparison."""
    model_config = ConfigDict(frozen=True)

    report_id: str
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    group_by: str = "threads"
    similarity: SimilarityConfig = Field(default_factory=SimilarityConfig)
    config_groups: tuple[ConfigGroup, ...] = ()
    scaling: ScalingAnalysis = Field(default_factory=ScalingAnalysis)
    sanity_checks: SanityCheckResults = Field(default_factory=SanityCheckResults)
    findings: ReportFindings = Field(default_factory=ReportFindings)

    def get_group(self, group_id: str) -> Optional[ConfigGroup]:
        for group in self.config_groups:
            if group.group_id == group_id:
                return group
        return None


class SimplifiedRow(BaseModel):
    """One thread-count row of a simplified report."""
    model_config = ConfigDict(frozen=True)

    threads: int
    runs: int
    tps: float = 0
    qps: float = 0
    latency_min: float = 0
    latency_avg: float = 0
    latency_p95: float = 0
    latency_max: float = 0
    read_queries: int = 0
    write_queries: int = 0
    other_queries: int = 0
    total_queries: int = 0
    errors: int = 0
    reconnects: int = 0
    efficiency: float = 0


class SimplifiedReport(BaseModel):
    """Thread-grouped summary with a reduced check battery."""
    model_config = ConfigDict(frozen=True)

    report_id: str
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    rows: tuple[SimplifiedRow, ...] = ()
    checks: tuple[SanityCheck, ...] = ()
    all_passed: bool = True
    best_tps_threads: int = 0
    best_latency_threads: int = 0
    knee_threads: int = 0
    recommendation: str = ""
