"""HammerDB TPC-C adapter driven through hammerdbcli."""

from __future__ import annotations

import logging
import math
import re
import shlex
from typing import NamedTuple, Optional

from common.errors import UnparsableOutputError
from common.models.benchmark import AdapterType, BenchmarkConfig, Command, Phase
from common.models.connection import ConnectionInfo, DatabaseType
from common.models.metrics import FinalResult, Sample
from common.utils import parse_number
from adapters.base import BenchmarkAdapter
from adapters.stream import LineParser

logger = logging.getLogger(__name__)

PASSWORD_ENV = "HAMMERDB_PASSWORD"
DEFAULT_BENCHMARK = "TPC-C"


class _TpccKeys(NamedTuple):
    """hammerdbcli dictionary keys for one database (None when not applicable)."""
    db: str
    host: Optional[str]
    port: Optional[str]
    user: str
    password: str
    database: Optional[str]
    warehouses: str
    build_vu: str
    driver: str
    rampup: str
    duration: str
    allwarehouse: str
    timeprofile: str


_KEYS = {
    DatabaseType.MYSQL: _TpccKeys(
        db="mysql",
        host="connection mysql_host",
        port="connection mysql_port",
        user="tpcc mysql_user",
        password="tpcc mysql_pass",
        database="tpcc mysql_dbase",
        warehouses="tpcc mysql_count_ware",
        build_vu="tpcc mysql_num_vu",
        driver="tpcc mysql_driver",
        rampup="tpcc mysql_rampup",
        duration="tpcc mysql_duration",
        allwarehouse="tpcc mysql_allwarehouse",
        timeprofile="tpcc mysql_timeprofile",
    ),
    DatabaseType.POSTGRESQL: _TpccKeys(
        db="pg",
        host="connection pg_host",
        port="connection pg_port",
        user="tpcc pg_user",
        password="tpcc pg_pass",
        database="tpcc pg_dbase",
        warehouses="tpcc pg_count_ware",
        build_vu="tpcc pg_num_vu",
        driver="tpcc pg_driver",
        rampup="tpcc pg_rampup",
        duration="tpcc pg_duration",
        allwarehouse="tpcc pg_allwarehouse",
        timeprofile="tpcc pg_timeprofile",
    ),
    DatabaseType.ORACLE: _TpccKeys(
        db="ora",
        host=None,
        port=None,
        user="tpcc tpcc_user",
        password="tpcc tpcc_pass",
        database=None,
        warehouses="tpcc count_ware",
        build_vu="tpcc num_vu",
        driver="tpcc ora_driver",
        rampup="tpcc rampup",
        duration="tpcc duration",
        allwarehouse="tpcc allwarehouse",
        timeprofile="tpcc ora_timeprofile",
    ),
    DatabaseType.SQLSERVER: _TpccKeys(
        db="mssqls",
        host="connection mssqls_server",
        port="connection mssqls_port",
        user="connection mssqls_uid",
        password="connection mssqls_pass",
        database="tpcc mssqls_dbase",
        warehouses="tpcc mssqls_count_ware",
        build_vu="tpcc mssqls_num_vu",
        driver="tpcc mssqls_driver",
        rampup="tpcc mssqls_rampup",
        duration="tpcc mssqls_duration",
        allwarehouse="tpcc mssqls_allwarehouse",
        timeprofile="tpcc mssqls_timeprofile",
    ),
}

_VIRTUAL_USERS = re.compile(r"(\d+)\s+Virtual\s+Users?", re.IGNORECASE)
_TPM = re.compile(r"(\d+(?:\.\d+)?)\s+(?:[A-Za-z]+\s+)*?tpm\b", re.IGNORECASE)
_NOPM = re.compile(r"(\d+(?:\.\d+)?)\s+NOPM\b")
_TEST_RESULT = re.compile(
    r"TEST RESULT\s*:\s*System achieved\s+([\d,]+)\s+NOPM\s+from\s+([\d,]+)\s+(.+?)\s+TPM",
    re.IGNORECASE,
)
_TIMEPROFILE_FIELDS = {
    "latency_min": re.compile(r"\bmin\s*[-:]\s*(\d+(?:\.\d+)?)", re.IGNORECASE),
    "latency_avg": re.compile(r"\bavg\s*[-:]\s*(\d+(?:\.\d+)?)", re.IGNORECASE),
    "latency_max": re.compile(r"\bmax\s*[-:]\s*(\d+(?:\.\d+)?)", re.IGNORECASE),
    "latency_p95": re.compile(r"\bp95%?\s*[-:]\s*(\d+(?:\.\d+)?)", re.IGNORECASE),
    "latency_p99": re.compile(r"\bp99%?\s*[-:]\s*(\d+(?:\.\d+)?)", re.IGNORECASE),
}


class HammerDBLineParser(LineParser):
    """Parses transaction counter output; tracks the virtual user count."""

    def __init__(self):
        self.virtual_users = 0

    def parse_line(self, line: str) -> Optional[Sample]:
        match = _VIRTUAL_USERS.search(line)
        if match:
            self.virtual_users = int(match.group(1))
            return None

        if _TEST_RESULT.search(line):
            return None

        match = _TPM.search(line) or _NOPM.search(line)
        if not match:
            return None

        return Sample(
            tps=float(match.group(1)) / 60,
            thread_count=self.virtual_users,
            raw_line=line,
        )


class HammerDBAdapter(BenchmarkAdapter):
    """Adapter for HammerDB TPC-C through a piped hammerdbcli script."""

    tool = AdapterType.HAMMERDB
    supported_databases = (
        DatabaseType.MYSQL,
        DatabaseType.ORACLE,
        DatabaseType.SQLSERVER,
        DatabaseType.POSTGRESQL,
    )

    def build_prepare_command(self, config: BenchmarkConfig) -> Command:
        lines, env = self._connection_script(config)
        keys = _KEYS[config.database_type]
        lines.append(f"diset {keys.warehouses} {config.get_int_param('warehouses', 1)}")
        lines.append(f"diset {keys.build_vu} {config.get_int_param('build_threads', 1)}")
        lines.append("buildschema")
        return self._script_command(config, Phase.PREPARE, lines, env)

    def build_run_command(self, config: BenchmarkConfig) -> Command:
        lines, env = self._connection_script(config)
        keys = _KEYS[config.database_type]
        duration_minutes = max(1, math.ceil(config.get_int_param("time", 60) / 60))

        lines.append(f"diset {keys.warehouses} {config.get_int_param('warehouses', 1)}")
        lines.append(f"diset {keys.driver} timed")
        lines.append(f"diset {keys.rampup} {config.get_int_param('rampup', 0)}")
        lines.append(f"diset {keys.duration} {duration_minutes}")
        lines.append(f"diset {keys.allwarehouse} {self._tcl_bool(config.get_bool_param('all_warehouses'))}")
        lines.append(f"diset {keys.timeprofile} {self._tcl_bool(config.get_bool_param('time_profile', True))}")
        lines.append("loadscript")
        lines.append(f"vuset vu {config.get_int_param('threads', 1)}")
        lines.append("vuset logtotemp 1")
        lines.append("vucreate")
        lines.append("tcstart")
        lines.append("vurun")
        lines.append("tcstop")
        lines.append("vudestroy")
        return self._script_command(config, Phase.RUN, lines, env)

    def build_cleanup_command(self, config: BenchmarkConfig) -> Command:
        lines, env = self._connection_script(config)
        lines.append("deleteschema")
        return self._script_command(config, Phase.CLEANUP, lines, env)

    def _connection_script(self, config: BenchmarkConfig) -> tuple[list[str], dict[str, str]]:
        connection = self._require_connection(config)
        keys = _KEYS[connection.database_type]
        benchmark = config.get_string_param("benchmark", DEFAULT_BENCHMARK)

        lines = [
            f"dbset db {keys.db}",
            f"dbset bm {benchmark}",
        ]
        if keys.host:
            lines.append(f"diset {keys.host} {connection.host}")
        if keys.port:
            lines.append(f"diset {keys.port} {connection.effective_port}")
        if connection.database_type == DatabaseType.ORACLE:
            lines.append(f"diset connection instance {self._oracle_instance(connection)}")
        lines.append(f"diset {keys.user} {connection.username}")

        env = {}
        if connection.has_password:
            lines.append(f"diset {keys.password} $::env({PASSWORD_ENV})")
            env[PASSWORD_ENV] = connection.password.get_secret_value()

        database = config.get_string_param("db_name") or connection.database or "tpcc"
        if keys.database:
            lines.append(f"diset {keys.database} {database}")
        return lines, env

    @staticmethod
    def _oracle_instance(connection: ConnectionInfo) -> str:
        return connection.service_name or connection.sid or connection.database or "ORCL"

    @staticmethod
    def _tcl_bool(value: bool) -> str:
        return "true" if value else "false"

    def _script_command(self, config: BenchmarkConfig, phase: Phase,
                        lines: list[str], env: dict[str, str]) -> Command:
        script = "\n".join(lines)
        cmd_line = f"printf '%s\\n' {shlex.quote(script)} | {self.settings.hammerdb_path}"
        return self._make_command(config, phase, cmd_line, env)

    def create_line_parser(self) -> LineParser:
        return HammerDBLineParser()

    def parse_final_results(self, output: str) -> FinalResult:
        results = list(_TEST_RESULT.finditer(output))
        if not results:
            raise UnparsableOutputError(self.name, "no TEST RESULT line found")

        last = results[-1]
        nopm = parse_number(last.group(1))
        tpm = parse_number(last.group(2))
        logger.debug(f"HammerDB result: {nopm} NOPM, {tpm} TPM ({last.group(3)})")

        fields = {"transactions_per_sec": tpm / 60}

        profile_lines = [line for line in output.splitlines() if "neword" in line.lower()]
        if profile_lines:
            for key, pattern in _TIMEPROFILE_FIELDS.items():
                match = pattern.search(profile_lines[-1])
                if match:
                    fields[key] = float(match.group(1))

        return FinalResult(**fields)
