"""Common models, errors and settings shared by adapters and analysis."""

from common.models.connection import ConnectionInfo, DatabaseType
from common.models.benchmark import AdapterType, BenchmarkConfig, Command, Phase
from common.models.metrics import FinalResult, Sample
from common.models.run import BenchmarkRecord, Run

__all__ = [
    "ConnectionInfo",
    "DatabaseType",
    "AdapterType",
    "BenchmarkConfig",
    "Command",
    "Phase",
    "FinalResult",
    "Sample",
    "BenchmarkRecord",
    "Run",
]
