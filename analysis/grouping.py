"""Group run records into configuration groups."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional, Sequence

from common.models.comparison import ConfigGroup, SimilarityConfig
from common.models.run import BenchmarkRecord, ConfigSpec
from analysis.statistics import calculate_run_stats

logger = logging.getLogger(__name__)

GROUP_BY_FIELDS = ("threads", "database_type", "template", "connection")


def _sort_key(spec: ConfigSpec, group_by: str) -> tuple:
    primary = {
        "threads": spec.threads,
        "database_type": spec.database_type,
        "template": spec.template_name,
        "connection": spec.connection_name or "",
    }[group_by]
    return (primary, spec.threads, spec.key())


def filter_records_by_time_window(
    records: Sequence[BenchmarkRecord],
    window_minutes: int,
    reference: Optional[datetime] = None,
) -> list[BenchmarkRecord]:
    """Records started within the window ending at the reference time.

    The reference defaults to the newest record's start time; a window of 0
    keeps everything.
    """
    if not records or window_minutes <= 0:
        return list(records)
    reference = reference or max(record.start_time for record in records)
    earliest = reference - timedelta(minutes=window_minutes)
    return [r for r in records if earliest <= r.start_time <= reference]


def group_records_by_config(
    records: Sequence[BenchmarkRecord],
    group_by: str = "threads",
    similarity: Optional[SimilarityConfig] = None,
) -> list[ConfigGroup]:
    """Build ConfigGroups ordered by the group_by dimension, IDs C1..Cn."""
    if group_by not in GROUP_BY_FIELDS:
        raise ValueError(f"Invalid group_by: {group_by} (expected one of {', '.join(GROUP_BY_FIELDS)})")
    similarity = similarity or SimilarityConfig(group_by=group_by)

    buckets: dict[ConfigSpec, list[BenchmarkRecord]] = {}
    for record in records:
        spec = record.config_spec(similarity.consider_connection)
        buckets.setdefault(spec, []).append(record)

    groups = []
    for index, spec in enumerate(sorted(buckets, key=lambda s: _sort_key(s, group_by)), start=1):
        members = sorted(buckets[spec], key=lambda r: r.start_time)
        runs = [record.to_run() for record in members]
        groups.append(ConfigGroup(
            group_id=f"C{index}",
            config=spec,
            runs=tuple(runs),
            statistics=calculate_run_stats(runs),
            tags=(f"threads={spec.threads}", spec.database_type, spec.template_name),
        ))

    logger.debug(f"Grouped {len(records)} records into {len(groups)} configurations")
    return groups
