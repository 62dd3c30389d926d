"""Unit tests for the tpcc-mysql adapter."""

import pytest

from adapters.tpcc import TpccAdapter, TpccLineParser
from common.errors import OutOfRangeError, UnparsableOutputError, UnsupportedDatabaseError


@pytest.fixture
def adapter(settings):
    return TpccAdapter(settings)


class TestTpccCommands:
    """Tests for tpcc_load / tpcc_start commands."""

    def test_run_command(self, adapter, make_config, mysql_connection):
        config = make_config(
            mysql_connection,
            {"threads": 8, "time": 600, "warehouses": 10, "db_name": "tpcc10"},
            warmup_time=30,
            sample_interval=10,
        )
        command = adapter.build_run_command(config)

        assert command.cmd_line.startswith("tpcc_start -h db.example.com -P 3306 -d tpcc10 -u bench")
        assert "-w 10" in command.cmd_line
        assert "-c 8" in command.cmd_line
        assert "-r 30" in command.cmd_line
        assert "-l 600" in command.cmd_line
        assert "-i 10" in command.cmd_line

    def test_password_reference_only(self, adapter, make_config, mysql_connection):
        command = adapter.build_run_command(make_config(mysql_connection, {"threads": 2, "time": 60}))

        assert "s3cr3t-pw" not in command.cmd_line
        assert '-p "$MYSQL_PWD"' in command.cmd_line
        assert command.env == {"MYSQL_PWD": "s3cr3t-pw"}

    def test_prepare_chain(self, adapter, make_config, mysql_connection):
        command = adapter.build_prepare_command(make_config(mysql_connection, {"warehouses": 2}))
        steps = command.cmd_line.split(" && ")

        assert len(steps) == 3
        assert "CREATE DATABASE IF NOT EXISTS" in steps[0]
        assert steps[1].endswith("< /opt/tpcc-mysql/create_table.sql")
        assert steps[2].startswith("tpcc_load")
        assert steps[2].endswith("-w 2")

    def test_cleanup_drops_database(self, adapter, make_config, mysql_connection):
        command = adapter.build_cleanup_command(make_config(mysql_connection))

        assert "DROP DATABASE IF EXISTS `sbtest`;" in command.cmd_line

    def test_postgres_unsupported(self, adapter, make_config, postgres_connection):
        with pytest.raises(UnsupportedDatabaseError):
            adapter.build_prepare_command(make_config(postgres_connection))

    def test_warehouses_validated(self, adapter, make_config, mysql_connection):
        with pytest.raises(OutOfRangeError):
            adapter.validate_config(make_config(mysql_connection, {"warehouses": 0}, skip_cleanup=True))


class TestTpccParsing:
    """Tests for tpcc_start output parsing."""

    def test_interval_lines(self):
        parser = TpccLineParser()
        first = parser.parse_line("  10, trx: 1000, 95%: 9.483, 99%: 18.738, max_rt: 213.169, 999|98.778")
        second = parser.parse_line("  20, trx: 1200, 95%: 8.517, 99%: 16.262, max_rt: 180.002, 1199|88.100")

        assert first.tps == 100
        assert first.latency_p95 == 9.483
        assert first.latency_p99 == 18.738
        assert second.tps == 120

    def test_non_interval_lines_ignored(self):
        parser = TpccLineParser()

        assert parser.parse_line("MEASURING START.") is None
        assert parser.parse_line("  [0] sc:2100 lt:100  rt:0  fl:0 avg_rt: 4.0 (5)") is None

    def test_final_results(self, adapter, tpcc_output):
        result = adapter.parse_final_results(tpcc_output)

        assert result.total_transactions == 5060
        assert result.total_time == 20
        assert result.transactions_per_sec == pytest.approx(253.0)
        assert result.ignored_errors == 1
        assert result.latency_p95 == pytest.approx(9.0)
        assert result.latency_max == 213.169

    def test_tpmc_only(self, adapter):
        result = adapter.parse_final_results("<TpmC>\n                 600.000 TpmC\n")

        assert result.transactions_per_sec == pytest.approx(10.0)

    def test_unparsable(self, adapter):
        with pytest.raises(UnparsableOutputError):
            adapter.parse_final_results("error: Can't connect to MySQL server\n")
