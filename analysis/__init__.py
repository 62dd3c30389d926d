"""Statistics, scaling and sanity analysis over benchmark runs."""

from analysis.grouping import group_records_by_config
from analysis.report import build_findings, compare_records, generate_simplified_report
from analysis.sanity import validate_groups
from analysis.scaling import analyze_scaling
from analysis.statistics import calculate_run_stats

__all__ = [
    "group_records_by_config",
    "build_findings",
    "compare_records",
    "generate_simplified_report",
    "validate_groups",
    "analyze_scaling",
    "calculate_run_stats",
]
