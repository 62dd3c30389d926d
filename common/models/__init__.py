"""Common data models for benchmark execution and comparison."""

from common.models.connection import ConnectionInfo, DatabaseType
from common.models.benchmark import (
    AdapterType,
    BenchmarkConfig,
    Command,
    ExecutionOptions,
    Phase,
    Template,
)
from common.models.metrics import FinalResult, Sample
from common.models.run import BenchmarkRecord, ConfigSpec, Run
from common.models.comparison import (
    ComparisonReport,
    ConfigGroup,
    ReportFindings,
    RunMetricStats,
    RunStats,
    SanityCheck,
    SanityCheckResults,
    ScalingAnalysis,
    ScalingMetrics,
    SimilarityConfig,
    SimplifiedReport,
    SimplifiedRow,
)

__all__ = [
    "ConnectionInfo",
    "DatabaseType",
    "AdapterType",
    "BenchmarkConfig",
    "Command",
    "ExecutionOptions",
    "Phase",
    "Template",
    "FinalResult",
    "Sample",
    "BenchmarkRecord",
    "ConfigSpec",
    "Run",
    "ComparisonReport",
    "ConfigGroup",
    "ReportFindings",
    "RunMetricStats",
    "RunStats",
    "SanityCheck",
    "SanityCheckResults",
    "ScalingAnalysis",
    "ScalingMetrics",
    "SimilarityConfig",
    "SimplifiedReport",
    "SimplifiedRow",
]
