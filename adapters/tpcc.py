"""tpcc-mysql adapter."""

from __future__ import annotations

import logging
import re
import shlex
from typing import Optional

from common.errors import OutOfRangeError, UnparsableOutputError
from common.models.benchmark import AdapterType, BenchmarkConfig, Command, Phase
from common.models.connection import ConnectionInfo, DatabaseType
from common.models.metrics import FinalResult, Sample
from common.utils import safe_divide
from adapters.base import BenchmarkAdapter
from adapters.stream import LineParser

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "tpcc"
MAX_WAREHOUSES = 100000

#   10, trx: 12920, 95%: 9.483, 99%: 18.738, max_rt: 213.169, 12919|98.778, ...
_INTERVAL = re.compile(
    r"^\s*(\d+),\s*trx:\s*(\d+),\s*95%:\s*(\d+(?:\.\d+)?),\s*99%:\s*(\d+(?:\.\d+)?),"
    r"\s*max_rt:\s*(\d+(?:\.\d+)?)"
)
#   [0] sc:1195  lt:0  rt:0  fl:0 avg_rt: 4.0 (5)
_RAW_RESULT = re.compile(r"^\s*\[(\d)\]\s*sc:(\d+)\s+lt:(\d+)\s+rt:(\d+)\s+fl:(\d+)")
_MEASURE_TIME = re.compile(r"^\s*in\s+(\d+)\s+sec\.")
_TPMC = re.compile(r"(\d+(?:\.\d+)?)\s+TpmC")


class TpccLineParser(LineParser):
    """Parses tpcc_start interval lines; TPS uses the gap since the previous line."""

    def __init__(self):
        self.last_elapsed = 0

    def parse_line(self, line: str) -> Optional[Sample]:
        match = _INTERVAL.match(line)
        if not match:
            return None

        elapsed = int(match.group(1))
        interval = elapsed - self.last_elapsed
        self.last_elapsed = elapsed

        return Sample(
            tps=safe_divide(int(match.group(2)), interval) if interval > 0 else 0,
            latency_p95=float(match.group(3)),
            latency_p99=float(match.group(4)),
            raw_line=line,
        )


class TpccAdapter(BenchmarkAdapter):
    """Adapter for Percona's tpcc-mysql (tpcc_load / tpcc_start)."""

    tool = AdapterType.TPCC
    supported_databases = (DatabaseType.MYSQL,)

    def build_prepare_command(self, config: BenchmarkConfig) -> Command:
        connection = self._require_connection(config)
        database = self._database_name(config, connection)
        env = self._password_env(connection)
        sql_dir = self.settings.tpcc_sql_dir.rstrip("/")

        steps = [
            self._mysql_command(connection, f"CREATE DATABASE IF NOT EXISTS `{database}`;"),
            " ".join([
                self._mysql_base(connection),
                shlex.quote(database),
                f"< {shlex.quote(sql_dir + '/create_table.sql')}",
            ]),
            " ".join(self._tpcc_args(self.settings.tpcc_load_path, connection, database) + [
                f"-w {config.get_int_param('warehouses', 1)}",
            ]),
        ]
        return self._make_command(config, Phase.PREPARE, " && ".join(steps), env)

    def build_run_command(self, config: BenchmarkConfig) -> Command:
        connection = self._require_connection(config)
        database = self._database_name(config, connection)
        env = self._password_env(connection)

        args = self._tpcc_args(self.settings.tpcc_start_path, connection, database)
        args += [
            f"-w {config.get_int_param('warehouses', 1)}",
            f"-c {config.get_int_param('threads', 1)}",
            f"-r {config.options.warmup_time}",
            f"-l {config.get_int_param('time', 60)}",
            f"-i {config.options.sample_interval}",
        ]
        return self._make_command(config, Phase.RUN, " ".join(args), env)

    def build_cleanup_command(self, config: BenchmarkConfig) -> Command:
        connection = self._require_connection(config)
        database = self._database_name(config, connection)
        cmd_line = self._mysql_command(connection, f"DROP DATABASE IF EXISTS `{database}`;")
        return self._make_command(config, Phase.CLEANUP, cmd_line, self._password_env(connection))

    def _validate_tool_parameters(self, config: BenchmarkConfig, phase: Phase) -> None:
        if config.has_param("warehouses"):
            warehouses = config.get_int_param("warehouses")
            if warehouses < 1 or warehouses > MAX_WAREHOUSES:
                raise OutOfRangeError("warehouses", warehouses, 1, MAX_WAREHOUSES)

    @staticmethod
    def _database_name(config: BenchmarkConfig, connection: ConnectionInfo) -> str:
        return config.get_string_param("db_name") or connection.database or DEFAULT_DATABASE

    @staticmethod
    def _password_env(connection: ConnectionInfo) -> dict[str, str]:
        if connection.has_password:
            return {"MYSQL_PWD": connection.password.get_secret_value()}
        return {}

    def _mysql_base(self, connection: ConnectionInfo) -> str:
        return " ".join([
            self.settings.mysql_client_path,
            f"-h {shlex.quote(connection.host)}",
            f"-P {connection.effective_port}",
            f"-u {shlex.quote(connection.username)}",
        ])

    def _mysql_command(self, connection: ConnectionInfo, sql: str) -> str:
        return f"{self._mysql_base(connection)} -e {shlex.quote(sql)}"

    @staticmethod
    def _tpcc_args(executable: str, connection: ConnectionInfo, database: str) -> list[str]:
        args = [
            executable,
            f"-h {shlex.quote(connection.host)}",
            f"-P {connection.effective_port}",
            f"-d {shlex.quote(database)}",
            f"-u {shlex.quote(connection.username)}",
        ]
        if connection.has_password:
            # expanded by the shell from the environment override
            args.append('-p "$MYSQL_PWD"')
        return args

    def create_line_parser(self) -> LineParser:
        return TpccLineParser()

    def parse_final_results(self, output: str) -> FinalResult:
        lines = output.splitlines()
        tpmc = None
        for line in lines:
            match = _TPMC.search(line)
            if match:
                tpmc = float(match.group(1))

        successes = late = failures = 0
        measured_seconds = 0
        found_raw = False
        in_raw_block = False
        for line in lines:
            stripped = line.strip()
            if stripped == "<Raw Results>":
                in_raw_block = not found_raw
                found_raw = True
                continue
            if not in_raw_block:
                continue
            match = _RAW_RESULT.match(line)
            if match:
                successes += int(match.group(2))
                late += int(match.group(3))
                failures += int(match.group(5))
                continue
            match = _MEASURE_TIME.match(line)
            if match:
                measured_seconds = int(match.group(1))
                in_raw_block = False

        if tpmc is None and not found_raw:
            raise UnparsableOutputError(self.name, "no <TpmC> or <Raw Results> section found")

        total = successes + late
        if measured_seconds > 0 and total > 0:
            tps = total / measured_seconds
        else:
            tps = (tpmc or 0) / 60

        fields = {
            "total_transactions": total,
            "transactions_per_sec": tps,
            "ignored_errors": failures,
            "total_time": float(measured_seconds),
        }

        intervals = [m for m in (_INTERVAL.match(line) for line in lines) if m]
        if intervals:
            fields["latency_p95"] = sum(float(m.group(3)) for m in intervals) / len(intervals)
            fields["latency_p99"] = sum(float(m.group(4)) for m in intervals) / len(intervals)
            fields["latency_max"] = max(float(m.group(5)) for m in intervals)

        return FinalResult(**fields)
