"""Run records used as the unit of statistical aggregation."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from common.models.metrics import FinalResult
from common.utils import generate_run_id, safe_divide


class ConfigSpec(BaseModel):
    """Equivalence key for "same configuration"."""
    model_config = ConfigDict(frozen=True)

    threads: int
    database_type: str
    template_name: str
    connection_name: Optional[str] = None

    def key(self) -> str:
        key = f"threads={self.threads}|db={self.database_type}|template={self.template_name}"
        if self.connection_name:
            key += f"|conn={self.connection_name}"
        return key


class Run(BaseModel):
    """One completed run within a configuration group."""
    run_id: str
    start_time: datetime
    duration: float = Field(default=0, description="Run duration in seconds")

    tps: float = 0
    qps: float = 0
    latency_min: float = 0
    latency_avg: float = 0
    latency_max: float = 0
    latency_p95: float = 0
    latency_p99: float = 0

    read_queries: int = 0
    write_queries: int = 0
    other_queries: int = 0
    total_queries: int = 0
    total_transactions: int = 0

    errors: int = 0
    reconnects: int = 0

    queries_per_transaction: float = 0

    @classmethod
    def from_final_result(
        cls,
        result: FinalResult,
        run_id: Optional[str] = None,
        start_time: Optional[datetime] = None,
        duration: Optional[float] = None,
    ) -> "Run":
        """Project a final result onto a run.

        QPS is recomputed from total queries over the run duration so that
        runs from tools reporting different rates are comparable.
        """
        if duration is None:
            duration = result.total_time
        if duration and result.total_queries:
            qps = result.total_queries / duration
        else:
            qps = result.queries_per_sec
        return cls(
            run_id=run_id or generate_run_id(),
            start_time=start_time or datetime.utcnow(),
            duration=duration,
            tps=result.transactions_per_sec,
            qps=qps,
            latency_min=result.latency_min,
            latency_avg=result.latency_avg,
            latency_max=result.latency_max,
            latency_p95=result.latency_p95,
            latency_p99=result.latency_p99,
            read_queries=result.read_queries,
            write_queries=result.write_queries,
            other_queries=result.other_queries,
            total_queries=result.total_queries,
            total_transactions=result.total_transactions,
            errors=result.ignored_errors,
            reconnects=result.reconnects,
            queries_per_transaction=safe_divide(result.total_queries, result.total_transactions),
        )


class BenchmarkRecord(BaseModel):
    """A completed run as kept in run history."""
    run_id: str = Field(default_factory=generate_run_id)
    template_name: str
    database_type: str
    threads: int = Field(..., ge=1)
    connection_name: Optional[str] = None
    start_time: datetime = Field(default_factory=datetime.utcnow)
    duration: float = Field(default=0, description="Duration in seconds")
    result: FinalResult = Field(default_factory=FinalResult)

    @classmethod
    def from_final_result(
        cls,
        result: FinalResult,
        *,
        template_name: str,
        database_type: str,
        threads: int,
        **kwargs,
    ) -> "BenchmarkRecord":
        kwargs.setdefault("duration", result.total_time)
        return cls(
            template_name=template_name,
            database_type=database_type,
            threads=threads,
            result=result,
            **kwargs,
        )

    def config_spec(self, consider_connection: bool = False) -> ConfigSpec:
        return ConfigSpec(
            threads=self.threads,
            database_type=self.database_type,
            template_name=self.template_name,
            connection_name=self.connection_name if consider_connection else None,
        )

    def to_run(self) -> Run:
        return Run.from_final_result(
            self.result,
            run_id=self.run_id,
            start_time=self.start_time,
            duration=self.duration,
        )
