"""Unit tests for run statistics."""

import math

import pytest

from common.models.comparison import RunMetricStats
from analysis.statistics import (
    aggregate_stats,
    calculate_confidence_interval,
    calculate_cv,
    calculate_delta,
    calculate_efficiency,
    calculate_metric_stats,
    calculate_run_stats,
    calculate_speedup,
    get_percentile,
)


class TestMetricStats:
    """Tests for per-metric aggregation."""

    def test_single_value(self):
        stats = calculate_metric_stats([42.5])

        assert stats.n == 1
        assert stats.stddev == 0
        assert stats.min == stats.max == stats.mean == 42.5

    def test_sample_stddev(self):
        stats = calculate_metric_stats([2, 4, 4, 4, 5, 5, 7, 9])

        assert stats.mean == 5
        assert stats.stddev == pytest.approx(math.sqrt(32 / 7))
        assert stats.min == 2
        assert stats.max == 9

    def test_empty(self):
        assert calculate_metric_stats([]) == RunMetricStats()

    def test_cv(self):
        assert calculate_cv(RunMetricStats(n=3, mean=200, stddev=10)) == pytest.approx(5.0)
        assert calculate_cv(RunMetricStats(n=3, mean=0, stddev=10)) == 0


class TestRunStats:
    """Tests for group aggregation of runs."""

    def test_aggregates_runs(self, make_record):
        runs = [make_record(4, tps).to_run() for tps in (100, 110, 120)]
        stats = calculate_run_stats(runs)

        assert stats.tps.n == 3
        assert stats.tps.mean == pytest.approx(110)
        assert stats.qps.mean == pytest.approx(2200)
        assert stats.queries_per_tx == pytest.approx(20)
        assert stats.latency_min == 1.0
        assert stats.latency_max == 40.0
        assert stats.read_pct == pytest.approx(70, abs=0.01)
        assert not stats.has_errors

    def test_errors_flagged(self, make_record):
        stats = calculate_run_stats([make_record(4, 100, reconnects=1).to_run()])

        assert stats.total_reconnects == 1
        assert stats.has_errors


class TestScalingArithmetic:
    """Tests for speedup, efficiency and deltas."""

    def test_speedup_and_efficiency(self):
        speedup = calculate_speedup(750, 100)

        assert speedup == 7.5
        assert calculate_efficiency(speedup, 8) == pytest.approx(0.9375)
        assert calculate_efficiency(2.0, 8, baseline_threads=2) == pytest.approx(0.5)

    def test_zero_baseline(self):
        assert calculate_speedup(100, 0) == 0

    def test_delta(self):
        assert calculate_delta(150, 100) == (50, 50)
        assert calculate_delta(5, 0) == (5, 0)


class TestHelpers:
    """Tests for pooled stats, intervals and percentiles."""

    def test_aggregate_matches_direct(self):
        pooled = aggregate_stats([
            calculate_metric_stats([1, 2, 3]),
            calculate_metric_stats([4, 5]),
        ])
        direct = calculate_metric_stats([1, 2, 3, 4, 5])

        assert pooled.n == 5
        assert pooled.mean == pytest.approx(direct.mean)
        assert pooled.stddev == pytest.approx(direct.stddev)
        assert (pooled.min, pooled.max) == (1, 5)

    def test_confidence_interval(self):
        low, high = calculate_confidence_interval(RunMetricStats(n=4, mean=10, stddev=2))

        assert low == pytest.approx(8.04)
        assert high == pytest.approx(11.96)

    def test_confidence_interval_single_run(self):
        assert calculate_confidence_interval(RunMetricStats(n=1, mean=10)) == (10, 10)

    def test_percentile(self):
        assert get_percentile([1, 2, 3, 4], 50) == 2.5
        assert get_percentile([], 95) == 0
