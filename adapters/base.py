"""Base class shared by all benchmark tool adapters."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

from common.config import Settings, load_settings
from common.errors import (
    MissingParameterError,
    OutOfRangeError,
    UnsupportedDatabaseError,
)
from common.models.benchmark import (
    AdapterType,
    BenchmarkConfig,
    Command,
    ExecutionOptions,
    Phase,
)
from common.models.connection import ConnectionInfo, DatabaseType
from common.models.metrics import FinalResult, Sample
from adapters.stream import LineParser, StreamCollection, StreamCollector

logger = logging.getLogger(__name__)

MIN_THREADS = 1
MAX_THREADS = 1024
MIN_DURATION = 10
MAX_DURATION = 86400


def resolve_phase(options: ExecutionOptions) -> Phase:
    """Infer the phase being validated from the skip flags."""
    if options.skip_cleanup and not options.skip_prepare:
        return Phase.PREPARE
    if options.skip_prepare and not options.skip_cleanup:
        return Phase.CLEANUP
    return Phase.RUN


class BenchmarkAdapter(ABC):
    """Command building, validation and output parsing for one tool."""

    tool: AdapterType
    supported_databases: tuple[DatabaseType, ...] = ()

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or load_settings()

    @property
    def name(self) -> str:
        return self.tool.value

    def supports_database(self, database_type: DatabaseType | str) -> bool:
        try:
            return DatabaseType(database_type) in self.supported_databases
        except ValueError:
            return False

    # Command building

    def build_command(self, config: BenchmarkConfig, phase: Phase) -> Command:
        """Build the command for a phase."""
        builders = {
            Phase.PREPARE: self.build_prepare_command,
            Phase.RUN: self.build_run_command,
            Phase.CLEANUP: self.build_cleanup_command,
        }
        return builders[Phase(phase)](config)

    @abstractmethod
    def build_prepare_command(self, config: BenchmarkConfig) -> Command:
        ...

    @abstractmethod
    def build_run_command(self, config: BenchmarkConfig) -> Command:
        ...

    @abstractmethod
    def build_cleanup_command(self, config: BenchmarkConfig) -> Command:
        ...

    # Validation

    def validate_config(self, config: BenchmarkConfig, phase: Optional[Phase] = None) -> None:
        """Pre-flight checks; raises a ValidationError subclass on failure."""
        phase = Phase(phase) if phase is not None else resolve_phase(config.options)
        self._require_connection(config)

        if phase == Phase.RUN:
            self._validate_run_parameters(config)

        self._validate_tool_parameters(config, phase)

    def _validate_run_parameters(self, config: BenchmarkConfig) -> None:
        for name in ("threads", "time"):
            if not config.has_param(name):
                raise MissingParameterError(name, Phase.RUN.value)

        threads = config.get_int_param("threads")
        if threads < MIN_THREADS or threads > MAX_THREADS:
            raise OutOfRangeError("threads", threads, MIN_THREADS, MAX_THREADS)

        duration = config.get_int_param("time")
        if duration < MIN_DURATION or duration > MAX_DURATION:
            raise OutOfRangeError("time", duration, MIN_DURATION, MAX_DURATION)

    def _validate_tool_parameters(self, config: BenchmarkConfig, phase: Phase) -> None:
        """Hook for tool-specific checks."""

    def _require_connection(self, config: BenchmarkConfig) -> ConnectionInfo:
        """Return the connection, checking it is present and supported."""
        if config.connection is None:
            raise MissingParameterError("connection")
        connection = config.connection
        if not self.supports_database(connection.database_type):
            raise UnsupportedDatabaseError(
                self.name, connection.database_type, self.supported_databases
            )
        return connection

    def _make_command(self, config: BenchmarkConfig, phase: Phase, cmd_line: str,
                      env: Optional[dict[str, str]] = None) -> Command:
        command = Command(cmd_line=cmd_line, work_dir=config.work_dir, env=env or {})
        logger.info(f"[{self.name}] {phase.value} command: {command.describe()}")
        return command

    # Output parsing

    @abstractmethod
    def create_line_parser(self) -> LineParser:
        """Create a fresh realtime line parser for one run."""

    def start_realtime_collection(
        self,
        stream: asyncio.StreamReader,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> StreamCollection:
        """Start collecting samples from a running process's output."""
        collector = StreamCollector(
            self.create_line_parser(),
            queue_size=self.settings.sample_queue_size,
            tool=self.name,
        )
        return collector.start(stream, cancel_event)

    def parse_run_output(self, output: str) -> list[Sample]:
        """Parse samples from already captured output."""
        parser = self.create_line_parser()
        samples = []
        for line in output.splitlines():
            sample = parser.parse_line(line)
            if sample is not None:
                samples.append(sample)
        return samples

    @abstractmethod
    def parse_final_results(self, output: str) -> FinalResult:
        """Extract the final result; raises UnparsableOutputError."""
