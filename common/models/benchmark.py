"""Benchmark configuration and command models."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from common.models.connection import ConnectionInfo, DatabaseType
from common.utils import to_bool, to_float, to_int, truncate


class AdapterType(str, Enum):
    """Supported benchmark tools."""
    SYSBENCH = "sysbench"
    HAMMERDB = "hammerdb"
    SWINGBENCH = "swingbench"
    TPCC = "tpcc"


class Phase(str, Enum):
    """Benchmark phase a command is built for."""
    PREPARE = "prepare"
    RUN = "run"
    CLEANUP = "cleanup"


class Template(BaseModel):
    """Benchmark template selected for an execution."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default="", description="Template identifier")
    name: str = Field(default="", description="Display name")
    tool: Optional[AdapterType] = Field(default=None)
    database_types: list[DatabaseType] = Field(default_factory=list)
    parameters: dict[str, Any] = Field(default_factory=dict, description="Default parameters")


class ExecutionOptions(BaseModel):
    """Execution options for a benchmark task."""
    model_config = ConfigDict(frozen=True)

    skip_prepare: bool = False
    skip_cleanup: bool = False
    warmup_time: int = Field(default=0, ge=0, description="Warm-up seconds")
    sample_interval: int = Field(default=1, ge=1, description="Realtime report interval seconds")
    dry_run: bool = False
    prepare_timeout: int = Field(default=30 * 60, ge=1, description="Prepare timeout seconds")
    run_timeout: int = Field(default=24 * 60 * 60, ge=1, description="Run timeout seconds")


class BenchmarkConfig(BaseModel):
    """Everything a builder needs to render a command.

    Frozen so an execution can share it with the adapter without copying.
    Explicit parameters win over the template's defaults.
    """
    model_config = ConfigDict(frozen=True)

    connection: Optional[ConnectionInfo] = None
    template: Optional[Template] = None
    parameters: dict[str, Any] = Field(default_factory=dict)
    options: ExecutionOptions = Field(default_factory=ExecutionOptions)
    work_dir: Optional[str] = None

    @property
    def database_type(self) -> Optional[DatabaseType]:
        if self.connection is None:
            return None
        return self.connection.database_type

    def get_param(self, name: str) -> Any:
        """Look up a parameter, falling back to the template default."""
        if name in self.parameters:
            return self.parameters[name]
        if self.template is not None:
            return self.template.parameters.get(name)
        return None

    def has_param(self, name: str) -> bool:
        value = self.get_param(name)
        return value is not None and value != ""

    def get_int_param(self, name: str, default: int = 0) -> int:
        value = to_int(self.get_param(name))
        return default if value is None else value

    def get_float_param(self, name: str, default: float = 0.0) -> float:
        value = to_float(self.get_param(name))
        return default if value is None else value

    def get_string_param(self, name: str, default: str = "") -> str:
        value = self.get_param(name)
        if value is None or value == "":
            return default
        return str(value)

    def get_bool_param(self, name: str, default: bool = False) -> bool:
        value = to_bool(self.get_param(name))
        return default if value is None else value


class Command(BaseModel):
    """A resolved command line plus environment overrides.

    Secrets live only in ``env``; ``cmd_line`` is safe to log.
    """
    model_config = ConfigDict(frozen=True)

    cmd_line: str
    work_dir: Optional[str] = None
    env: dict[str, str] = Field(default_factory=dict)

    def env_list(self) -> list[str]:
        """Render environment overrides as KEY=VALUE entries."""
        return [f"{key}={value}" for key, value in self.env.items()]

    def describe(self) -> str:
        """Log-safe description: truncated command and env names only."""
        text = truncate(self.cmd_line)
        if self.env:
            text += f" [env: {', '.join(sorted(self.env))}]"
        return text
