"""Sysbench OLTP adapter (MySQL and PostgreSQL)."""

from __future__ import annotations

import logging
import re
import shlex
from typing import Optional

from common.errors import UnparsableOutputError
from common.models.benchmark import AdapterType, BenchmarkConfig, Command, Phase
from common.models.connection import ConnectionInfo, DatabaseType
from common.models.metrics import FinalResult, Sample
from common.utils import parse_number
from adapters.base import BenchmarkAdapter
from adapters.stream import LineParser

logger = logging.getLogger(__name__)

DEFAULT_SCRIPT = "oltp_read_write.lua"
DEFAULT_TABLES = 10
DEFAULT_TABLE_SIZE = 100000

# Checked in order; more specific phrases first.
SCRIPT_KEYWORDS = [
    ("read write", "oltp_read_write.lua"),
    ("read only", "oltp_read_only.lua"),
    ("write only", "oltp_write_only.lua"),
    ("point select", "oltp_point_select.lua"),
    ("update non index", "oltp_update_non_index.lua"),
    ("update index", "oltp_update_index.lua"),
    ("bulk insert", "bulk_insert.lua"),
    ("insert", "oltp_insert.lua"),
    ("delete", "oltp_delete.lua"),
]

_NUM = r"(\d+(?:\.\d+)?)"

# Realtime: [ 10s ] thds: 4 tps: 342.03 qps: 6846.39 (r/w/o: ...) lat (ms,95%): 13.46 err/s: 0.00 reconn/s: 0.00
_INTERVAL_MARKER = re.compile(r"^\s*\[\s*\d+(?:\.\d+)?s\s*\]")
_TPS = re.compile(r"\btps:\s*" + _NUM)
_QPS = re.compile(r"\bqps:\s*" + _NUM)
_THREADS = re.compile(r"\bthds:\s*(\d+)")
_LAT_PCT = re.compile(r"lat\s*\(ms,\s*" + _NUM + r"%\):\s*" + _NUM)
_ERR_RATE = re.compile(r"err/s:\s*" + _NUM)

# Final summary
_TRANSACTIONS = re.compile(r"transactions:\s*(\d+)\s*\(\s*" + _NUM + r"\s*per sec\.\)")
_QUERIES = re.compile(r"^\s*queries:\s*(\d+)\s*\(\s*" + _NUM + r"\s*per sec\.\)")
_READ = re.compile(r"^\s*read:\s*(\d+)")
_WRITE = re.compile(r"^\s*write:\s*(\d+)")
_OTHER = re.compile(r"^\s*other:\s*(\d+)")
_IGNORED_ERRORS = re.compile(r"ignored errors:\s*(\d+)")
_RECONNECTS = re.compile(r"reconnects:\s*(\d+)")
_TOTAL_TIME = re.compile(r"total time:\s*" + _NUM + r"s")
_TOTAL_EVENTS = re.compile(r"total number of events:\s*(\d+)")
_EVENTS_FAIRNESS = re.compile(r"events \(avg/stddev\):\s*" + _NUM + r"/" + _NUM)
_EXEC_FAIRNESS = re.compile(r"execution time \(avg/stddev\):\s*" + _NUM + r"/" + _NUM)

_LATENCY_FIELDS = {
    "min": re.compile(r"\bmin:\s*" + _NUM),
    "avg": re.compile(r"\bavg:\s*" + _NUM),
    "max": re.compile(r"\bmax:\s*" + _NUM),
    "sum": re.compile(r"\bsum:\s*" + _NUM),
}
_LATENCY_PERCENTILE = re.compile(r"(\d+)(?:th|st|nd|rd)? percentile:\s*" + _NUM)
_LATENCY_BLOCK_LINES = 10

_SUMMARY_MARKERS = ("SQL statistics:", "General statistics:")


class SysbenchLineParser(LineParser):
    """Parses sysbench --report-interval lines."""

    def parse_line(self, line: str) -> Optional[Sample]:
        if not _INTERVAL_MARKER.search(line):
            return None
        tps = _TPS.search(line)
        if not tps:
            return None

        sample = Sample(tps=float(tps.group(1)), raw_line=line)

        match = _QPS.search(line)
        if match:
            sample.qps = float(match.group(1))

        match = _THREADS.search(line)
        if match:
            sample.thread_count = int(match.group(1))

        for match in _LAT_PCT.finditer(line):
            percentile, value = float(match.group(1)), float(match.group(2))
            if percentile == 95:
                sample.latency_p95 = value
            elif percentile == 99:
                sample.latency_p99 = value

        match = _ERR_RATE.search(line)
        if match:
            sample.error_rate = float(match.group(1))

        return sample


class SysbenchAdapter(BenchmarkAdapter):
    """Adapter for sysbench OLTP Lua workloads."""

    tool = AdapterType.SYSBENCH
    supported_databases = (DatabaseType.MYSQL, DatabaseType.POSTGRESQL)

    def build_prepare_command(self, config: BenchmarkConfig) -> Command:
        args, env = self._base_args(config)
        args.append(f"--tables={config.get_int_param('tables', DEFAULT_TABLES)}")
        args.append(f"--table-size={config.get_int_param('table_size', DEFAULT_TABLE_SIZE)}")
        args.append("prepare")
        return self._make_command(config, Phase.PREPARE, " ".join(args), env)

    def build_run_command(self, config: BenchmarkConfig) -> Command:
        args, env = self._base_args(config)
        args.append(f"--tables={config.get_int_param('tables', DEFAULT_TABLES)}")
        args.append(f"--table-size={config.get_int_param('table_size', DEFAULT_TABLE_SIZE)}")
        args.append(f"--threads={config.get_int_param('threads', 1)}")
        args.append(f"--time={config.get_int_param('time', 60)}")

        rate = config.get_int_param("rate")
        if rate > 0:
            args.append(f"--rate={rate}")

        if config.options.warmup_time > 0:
            args.append(f"--warmup-time={config.options.warmup_time}")

        args.append(f"--report-interval={config.options.sample_interval}")

        percentile = config.get_int_param("percentile")
        if percentile > 0:
            args.append(f"--percentile={percentile}")

        args.append("run")
        return self._make_command(config, Phase.RUN, " ".join(args), env)

    def build_cleanup_command(self, config: BenchmarkConfig) -> Command:
        args, env = self._base_args(config)
        args.append(f"--tables={config.get_int_param('tables', DEFAULT_TABLES)}")
        args.append("cleanup")
        return self._make_command(config, Phase.CLEANUP, " ".join(args), env)

    def build_create_database_command(self, config: BenchmarkConfig) -> Command:
        """Command creating the target database ahead of prepare."""
        connection = self._require_connection(config)
        database = self._database_name(config, connection)
        env = self._password_env(connection)

        if connection.database_type == DatabaseType.MYSQL:
            sql = f"CREATE DATABASE IF NOT EXISTS `{database}`;"
            args = [
                self.settings.mysql_client_path,
                f"-h {shlex.quote(connection.host)}",
                f"-P {connection.effective_port}",
                f"-u {shlex.quote(connection.username)}",
                f"-e {shlex.quote(sql)}",
            ]
        else:
            sql = f'CREATE DATABASE "{database}";'
            args = [
                self.settings.psql_client_path,
                f"-h {shlex.quote(connection.host)}",
                f"-p {connection.effective_port}",
                f"-U {shlex.quote(connection.username)}",
                "-d postgres",
                f"-c {shlex.quote(sql)}",
            ]
        return self._make_command(config, Phase.PREPARE, " ".join(args), env)

    def resolve_script(self, config: BenchmarkConfig) -> str:
        """Pick the Lua script from an explicit parameter or the template."""
        explicit = config.get_string_param("script")
        if explicit:
            return explicit if "/" in explicit else self._script_path(explicit)

        script = DEFAULT_SCRIPT
        if config.template is not None:
            text = f"{config.template.id} {config.template.name}".lower()
            text = re.sub(r"[-_]+", " ", text)
            for keyword, candidate in SCRIPT_KEYWORDS:
                if keyword in text:
                    script = candidate
                    break
        return self._script_path(script)

    def _script_path(self, script: str) -> str:
        if not script.endswith(".lua"):
            script += ".lua"
        return f"{self.settings.sysbench_script_dir.rstrip('/')}/{script}"

    def _database_name(self, config: BenchmarkConfig, connection: ConnectionInfo) -> str:
        default = "sbtest" if connection.database_type == DatabaseType.MYSQL else "postgres"
        return config.get_string_param("db_name") or connection.database or default

    def _password_env(self, connection: ConnectionInfo) -> dict[str, str]:
        env = {}
        if connection.has_password:
            key = "MYSQL_PWD" if connection.database_type == DatabaseType.MYSQL else "PGPASSWORD"
            env[key] = connection.password.get_secret_value()
        return env

    def _base_args(self, config: BenchmarkConfig) -> tuple[list[str], dict[str, str]]:
        connection = self._require_connection(config)
        database = self._database_name(config, connection)
        env = self._password_env(connection)

        args = [self.settings.sysbench_path, self.resolve_script(config)]
        if connection.database_type == DatabaseType.MYSQL:
            args += [
                "--db-driver=mysql",
                f"--mysql-host={shlex.quote(connection.host)}",
                f"--mysql-port={connection.effective_port}",
                f"--mysql-user={shlex.quote(connection.username)}",
                f"--mysql-db={shlex.quote(database)}",
            ]
            if connection.ssl_enabled():
                args.append("--mysql-ssl=on")
        else:
            args += [
                "--db-driver=pgsql",
                f"--pgsql-host={shlex.quote(connection.host)}",
                f"--pgsql-port={connection.effective_port}",
                f"--pgsql-user={shlex.quote(connection.username)}",
                f"--pgsql-db={shlex.quote(database)}",
            ]
            if connection.ssl_enabled():
                # libpq reads the SSL mode from the environment
                env["PGSSLMODE"] = connection.ssl_mode
        return args, env

    def create_line_parser(self) -> LineParser:
        return SysbenchLineParser()

    def parse_final_results(self, output: str) -> FinalResult:
        if not any(marker in output for marker in _SUMMARY_MARKERS) and not _TRANSACTIONS.search(output):
            raise UnparsableOutputError(self.name)

        fields: dict = {}
        lines = output.splitlines()
        for index, line in enumerate(lines):
            match = _TRANSACTIONS.search(line)
            if match:
                fields["total_transactions"] = int(match.group(1))
                fields["transactions_per_sec"] = float(match.group(2))
                continue

            match = _QUERIES.search(line)
            if match:
                fields["total_queries"] = int(match.group(1))
                fields["queries_per_sec"] = float(match.group(2))
                continue

            for pattern, key in (
                (_READ, "read_queries"),
                (_WRITE, "write_queries"),
                (_OTHER, "other_queries"),
                (_IGNORED_ERRORS, "ignored_errors"),
                (_RECONNECTS, "reconnects"),
                (_TOTAL_EVENTS, "total_events"),
            ):
                match = pattern.search(line)
                if match:
                    fields[key] = int(match.group(1))
                    break

            match = _TOTAL_TIME.search(line)
            if match:
                fields["total_time"] = parse_number(match.group(1))

            if line.strip().startswith("Latency (ms):"):
                fields.update(self._parse_latency_block(lines[index + 1:index + 1 + _LATENCY_BLOCK_LINES]))

            match = _EVENTS_FAIRNESS.search(line)
            if match:
                fields["events_avg"] = float(match.group(1))
                fields["events_stddev"] = float(match.group(2))

            match = _EXEC_FAIRNESS.search(line)
            if match:
                fields["exec_time_avg"] = float(match.group(1))
                fields["exec_time_stddev"] = float(match.group(2))

        return FinalResult(**fields)

    @staticmethod
    def _parse_latency_block(lines: list[str]) -> dict:
        fields = {}
        for line in lines:
            if line.strip().endswith(":") and not line.startswith((" ", "\t")):
                break
            for key, pattern in _LATENCY_FIELDS.items():
                match = pattern.search(line)
                if match:
                    fields[f"latency_{key}"] = float(match.group(1))
            for match in _LATENCY_PERCENTILE.finditer(line):
                percentile = int(match.group(1))
                if percentile == 95:
                    fields["latency_p95"] = float(match.group(2))
                elif percentile == 99:
                    fields["latency_p99"] = float(match.group(2))
        return fields
