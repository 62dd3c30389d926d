"""Realtime and final benchmark metrics models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Sample(BaseModel):
    """Point-in-time telemetry parsed from one output line."""
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    tps: float = Field(default=0, description="Transactions per second")
    qps: float = Field(default=0, description="Queries per second")
    latency_avg: float = Field(default=0, description="Average latency (ms)")
    latency_p95: float = Field(default=0, description="95th percentile latency (ms)")
    latency_p99: float = Field(default=0, description="99th percentile latency (ms)")
    error_rate: float = Field(default=0, description="Errors per second")
    thread_count: int = Field(default=0, description="Active threads / users")
    raw_line: str = Field(default="", description="Original output line")


class FinalResult(BaseModel):
    """Authoritative end-of-run aggregate extracted from tool output."""
    model_config = ConfigDict(frozen=True)

    # SQL statistics
    total_transactions: int = 0
    transactions_per_sec: float = 0
    total_queries: int = 0
    queries_per_sec: float = 0
    read_queries: int = 0
    write_queries: int = 0
    other_queries: int = 0
    ignored_errors: int = 0
    reconnects: int = 0

    # Latency (ms)
    latency_min: float = 0
    latency_avg: float = 0
    latency_max: float = 0
    latency_p95: float = 0
    latency_p99: float = 0
    latency_sum: float = 0

    # General statistics
    total_time: float = Field(default=0, description="Total time in seconds")
    total_events: int = 0

    # Threads fairness
    events_avg: float = 0
    events_stddev: float = 0
    exec_time_avg: float = 0
    exec_time_stddev: float = 0
