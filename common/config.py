"""Configuration settings."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Settings loaded from environment variables.

    Instances are built with :func:`load_settings` and passed explicitly to the
    adapter registry and stream collectors.
    """

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Streaming
    sample_queue_size: int = Field(default=10, ge=1, description="Realtime sample buffer capacity")

    # Tool executables
    sysbench_path: str = "sysbench"
    sysbench_script_dir: str = "/usr/share/sysbench"
    hammerdb_path: str = "hammerdbcli"
    swingbench_bin_dir: str = "/opt/benchtools/swingbench/bin"
    tpcc_load_path: str = "tpcc_load"
    tpcc_start_path: str = "tpcc_start"
    tpcc_sql_dir: str = "/opt/tpcc-mysql"
    mysql_client_path: str = "mysql"
    psql_client_path: str = "psql"

    # Connection profiles
    profiles_path: Path = Field(default=Path("./data/connections.yaml"))

    class Config:
        env_prefix = "BENCHFORGE_"
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def charbench_path(self) -> str:
        return f"{self.swingbench_bin_dir.rstrip('/')}/charbench"

    @property
    def oewizard_path(self) -> str:
        return f"{self.swingbench_bin_dir.rstrip('/')}/oewizard"


def load_settings(**overrides) -> Settings:
    """Build a fresh settings instance, applying explicit overrides."""
    return Settings(**overrides)


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging from settings."""
    settings = settings or load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=settings.log_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
