"""Swingbench adapter (Oracle): oewizard for schema setup, charbench for runs."""

from __future__ import annotations

import logging
import math
import posixpath
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

PASSWORD_ENV = "SWINGBENCH_PASSWORD"
DBA_PASSWORD_ENV = "SWINGBENCH_DBA_PASSWORD"

DEFAULT_CONFIG_FILE = "SOE_Server_Side_V2.xml"
CONFIG_KEYWORDS = [
    ("sales history", "SH_Server_Side_V2.xml"),
    ("stress", "Stress_Test.xml"),
    ("order entry", DEFAULT_CONFIG_FILE),
]

REALTIME_COLUMNS = "users,tpm,tps,errs"
DEFAULT_COLUMNS = ["TIME", "USERS", "TPM", "TPS", "ERRORS"]

_ROW = re.compile(r"^\s*\d{1,2}:\d{2}:\d{2}\s")
_USERS = re.compile(r"\[?\s*(\d+)\s*(?:/\s*\d+)?\s*\]?")

_OVERVIEW_FIELDS = {
    "completed": re.compile(r"Total\s*Completed\s*Transactions\s*[>:=]?\s*([\d,]+)", re.IGNORECASE),
    "failed": re.compile(r"Total\s*Failed\s*Transactions\s*[>:=]?\s*([\d,]+)", re.IGNORECASE),
    "tps": re.compile(r"Average\s*Transactions\s*Per\s*Second\s*[>:=]?\s*([\d,.]+)", re.IGNORECASE),
}
_AVERAGE_RESPONSE = re.compile(r"Average\s*Response(?:\s*Time)?\s*[>:=]?\s*([\d,.]+)", re.IGNORECASE)
_MAXIMUM_RESPONSE = re.compile(r"Maximum\s*Response(?:\s*Time)?\s*[>:=]?\s*([\d,.]+)", re.IGNORECASE)
_MINIMUM_RESPONSE = re.compile(r"Minimum\s*Response(?:\s*Time)?\s*[>:=]?\s*([\d,.]+)", re.IGNORECASE)


class SwingbenchLineParser(LineParser):
    """Parses charbench -v rows; column order comes from the last header."""

    def __init__(self):
        self.columns = list(DEFAULT_COLUMNS)

    def parse_line(self, line: str) -> Optional[Sample]:
        tokens = line.split()
        if not tokens:
            return None

        if tokens[0].lower() == "time" and len(tokens) > 1:
            self.columns = [token.upper() for token in tokens]
            return None

        if not _ROW.match(line):
            return None

        values = dict(zip(self.columns, tokens))
        try:
            tps = parse_number(values["TPS"]) if "TPS" in values else None
            if tps is None and "TPM" in values:
                tps = parse_number(values["TPM"]) / 60
            if tps is None:
                return None

            sample = Sample(tps=tps, raw_line=line)
            if "USERS" in values:
                users = _USERS.match(values["USERS"])
                if users:
                    sample.thread_count = int(users.group(1))
            if "ERRORS" in values:
                sample.error_rate = parse_number(values["ERRORS"])
            if "RESP" in values:
                sample.latency_avg = parse_number(values["RESP"])
        except ValueError:
            logger.debug(f"Skipping malformed charbench row: {line}")
            return None
        return sample


class SwingbenchAdapter(BenchmarkAdapter):
    """Adapter for Swingbench Order Entry style workloads."""

    tool = AdapterType.SWINGBENCH
    supported_databases = (DatabaseType.ORACLE,)

    def build_prepare_command(self, config: BenchmarkConfig) -> Command:
        args, env = self._oewizard_args(config, "-create")
        args.append(f"-scale {config.get_int_param('scale', 1)}")
        args.append(f"-tc {config.get_int_param('build_threads', 32)}")
        return self._make_command(config, Phase.PREPARE, " ".join(args), env)

    def build_run_command(self, config: BenchmarkConfig) -> Command:
        connection = self._require_connection(config)
        env = self._password_env(connection)
        users = config.get_int_param("threads", 1)

        args = [
            self.settings.charbench_path,
            f"-c {shlex.quote(self.resolve_config_file(config))}",
            f"-cs {shlex.quote(self.connect_string(connection))}",
            f"-u {shlex.quote(connection.username)}",
        ]
        if PASSWORD_ENV in env:
            args.append(f'-p "${PASSWORD_ENV}"')
        args += [
            f"-uc {users}",
            f"-rt {self.format_runtime(config.get_int_param('time', 60))}",
            f"-v {REALTIME_COLUMNS}",
        ]
        return self._make_command(config, Phase.RUN, " ".join(args), env)

    def build_cleanup_command(self, config: BenchmarkConfig) -> Command:
        args, env = self._oewizard_args(config, "-drop")
        return self._make_command(config, Phase.CLEANUP, " ".join(args), env)

    def _oewizard_args(self, config: BenchmarkConfig, action: str) -> tuple[list[str], dict[str, str]]:
        connection = self._require_connection(config)
        env = self._password_env(connection)

        args = [
            self.settings.oewizard_path,
            "-cl",
            action,
        ]
        if action == "-create":
            args.append("-generate")
        args += [
            f"-cs {shlex.quote(self.connect_string(connection))}",
            f"-u {shlex.quote(connection.username)}",
        ]
        if PASSWORD_ENV in env:
            args.append(f'-p "${PASSWORD_ENV}"')

        dba_user = config.get_string_param("dba_user")
        if dba_user:
            args.append(f"-dba {shlex.quote(dba_user)}")
            dba_password = config.get_string_param("dba_password")
            if dba_password:
                args.append(f'-dbap "${DBA_PASSWORD_ENV}"')
                env[DBA_PASSWORD_ENV] = dba_password
        return args, env

    @staticmethod
    def _password_env(connection: ConnectionInfo) -> dict[str, str]:
        if connection.has_password:
            return {PASSWORD_ENV: connection.password.get_secret_value()}
        return {}

    @staticmethod
    def connect_string(connection: ConnectionInfo) -> str:
        """EZConnect string for the service name, SID or the ORCL default."""
        port = connection.effective_port
        if connection.service_name:
            return f"//{connection.host}:{port}/{connection.service_name}"
        if connection.sid:
            return f"{connection.host}:{port}:{connection.sid}"
        return f"//{connection.host}:{port}/ORCL"

    @staticmethod
    def format_runtime(seconds: int) -> str:
        """charbench -rt takes hh:mm; partial minutes round up."""
        minutes = max(1, math.ceil(seconds / 60))
        return f"{minutes // 60}:{minutes % 60:02d}"

    def resolve_config_file(self, config: BenchmarkConfig) -> str:
        config_file = config.get_string_param("config_file")
        if not config_file:
            config_file = DEFAULT_CONFIG_FILE
            if config.template is not None:
                text = f"{config.template.id} {config.template.name}".lower().replace("-", " ")
                for keyword, candidate in CONFIG_KEYWORDS:
                    if keyword in text:
                        config_file = candidate
                        break
        if "/" in config_file:
            return config_file
        configs_dir = posixpath.join(posixpath.dirname(self.settings.swingbench_bin_dir.rstrip("/")), "configs")
        return posixpath.join(configs_dir, config_file)

    def create_line_parser(self) -> LineParser:
        return SwingbenchLineParser()

    def parse_final_results(self, output: str) -> FinalResult:
        overview = {}
        for key, pattern in _OVERVIEW_FIELDS.items():
            match = pattern.search(output)
            if match:
                overview[key] = parse_number(match.group(1))

        samples = self.parse_run_output(output)
        if not overview and not samples:
            raise UnparsableOutputError(self.name, "no overview or realtime rows found")

        fields: dict = {}
        if "tps" in overview:
            fields["transactions_per_sec"] = overview["tps"]
        elif samples:
            fields["transactions_per_sec"] = sum(s.tps for s in samples) / len(samples)

        if "completed" in overview:
            fields["total_transactions"] = int(overview["completed"])
        if "failed" in overview:
            fields["ignored_errors"] = int(overview["failed"])

        responses = [parse_number(m.group(1)) for m in _AVERAGE_RESPONSE.finditer(output)]
        if responses:
            fields["latency_avg"] = sum(responses) / len(responses)
        maximums = [parse_number(m.group(1)) for m in _MAXIMUM_RESPONSE.finditer(output)]
        if maximums:
            fields["latency_max"] = max(maximums)
        minimums = [parse_number(m.group(1)) for m in _MINIMUM_RESPONSE.finditer(output)]
        if minimums:
            fields["latency_min"] = min(minimums)

        return FinalResult(**fields)
