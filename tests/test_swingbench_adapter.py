"""Unit tests for the Swingbench adapter."""

import pytest

from adapters.swingbench import PASSWORD_ENV, SwingbenchAdapter, SwingbenchLineParser
from common.errors import UnparsableOutputError, UnsupportedDatabaseError
from common.models.benchmark import Phase


@pytest.fixture
def adapter(settings):
    return SwingbenchAdapter(settings)


class TestSwingbenchCommands:
    """Tests for charbench / oewizard commands."""

    def test_run_command(self, adapter, make_config, oracle_connection):
        config = make_config(oracle_connection, {"threads": 16, "time": 600})
        command = adapter.build_run_command(config)

        assert command.cmd_line.startswith("/opt/benchtools/swingbench/bin/charbench")
        assert "-c /opt/benchtools/swingbench/configs/SOE_Server_Side_V2.xml" in command.cmd_line
        assert "-cs //ora.example.com:1521/ORCLPDB1" in command.cmd_line
        assert "-u soe" in command.cmd_line
        assert "-uc 16" in command.cmd_line
        assert "-rt 0:10" in command.cmd_line
        assert "-v users,tpm,tps,errs" in command.cmd_line

    def test_password_via_environment(self, adapter, make_config, oracle_connection):
        config = make_config(oracle_connection, {"threads": 4, "time": 60})

        for phase in Phase:
            command = adapter.build_command(config, phase)
            assert "s3cr3t-pw" not in command.cmd_line
            assert f'-p "${PASSWORD_ENV}"' in command.cmd_line
            assert command.env[PASSWORD_ENV] == "s3cr3t-pw"

    def test_dba_password_via_environment(self, adapter, make_config, oracle_connection):
        config = make_config(oracle_connection, {"dba_user": "system", "dba_password": "dba-pw"})
        command = adapter.build_prepare_command(config)

        assert "-dba system" in command.cmd_line
        assert "dba-pw" not in command.cmd_line
        assert command.env["SWINGBENCH_DBA_PASSWORD"] == "dba-pw"

    def test_prepare_and_cleanup(self, adapter, make_config, oracle_connection):
        prepare = adapter.build_prepare_command(make_config(oracle_connection, {"scale": 2}))
        cleanup = adapter.build_cleanup_command(make_config(oracle_connection))

        assert "oewizard -cl -create" in prepare.cmd_line
        assert "-scale 2" in prepare.cmd_line
        assert "oewizard -cl -drop" in cleanup.cmd_line

    def test_connect_string_variants(self, oracle_connection):
        sid = oracle_connection.model_copy(update={"service_name": "", "sid": "ORA1"})
        bare = oracle_connection.model_copy(update={"service_name": ""})

        assert SwingbenchAdapter.connect_string(oracle_connection) == "//ora.example.com:1521/ORCLPDB1"
        assert SwingbenchAdapter.connect_string(sid) == "ora.example.com:1521:ORA1"
        assert SwingbenchAdapter.connect_string(bare) == "//ora.example.com:1521/ORCL"

    def test_format_runtime(self):
        assert SwingbenchAdapter.format_runtime(10) == "0:01"
        assert SwingbenchAdapter.format_runtime(60) == "0:01"
        assert SwingbenchAdapter.format_runtime(90) == "0:02"
        assert SwingbenchAdapter.format_runtime(7200) == "2:00"

    def test_explicit_config_file(self, adapter, make_config, oracle_connection):
        config = make_config(oracle_connection, {"config_file": "/srv/soe.xml"})

        assert adapter.resolve_config_file(config) == "/srv/soe.xml"

    def test_mysql_unsupported(self, adapter, make_config, mysql_connection):
        with pytest.raises(UnsupportedDatabaseError):
            adapter.build_run_command(make_config(mysql_connection, {"threads": 4, "time": 60}))


class TestSwingbenchParsing:
    """Tests for charbench output parsing."""

    def test_rows_follow_header(self):
        parser = SwingbenchLineParser()

        assert parser.parse_line("Time     Users       TPM      TPS     Errors") is None
        sample = parser.parse_line("10:58:47 [4/4]       5400     90      2")

        assert sample.tps == 90
        assert sample.thread_count == 4
        assert sample.error_rate == 2

    def test_reordered_header(self):
        parser = SwingbenchLineParser()
        parser.parse_line("Time TPS Users")
        sample = parser.parse_line("11:00:00 75 [8/8]")

        assert sample.tps == 75
        assert sample.thread_count == 8

    def test_malformed_row_ignored(self):
        parser = SwingbenchLineParser()

        assert parser.parse_line("10:58:47 [4/4] n/a n/a 0") is None
        assert parser.parse_line("Completed Run.") is None

    def test_final_results_overview(self, adapter, swingbench_output):
        result = adapter.parse_final_results(swingbench_output)

        assert result.total_transactions == 12000
        assert result.ignored_errors == 3
        assert result.transactions_per_sec == 100.50

    def test_final_results_from_rows(self, adapter):
        output = "Time Users TPM TPS Errors\n10:00:00 [2/2] 600 10 0\n10:00:10 [2/2] 1800 30 0\n"
        result = adapter.parse_final_results(output)

        assert result.transactions_per_sec == 20

    def test_unparsable(self, adapter):
        with pytest.raises(UnparsableOutputError):
            adapter.parse_final_results("ORA-12541: TNS:no listener\n")
