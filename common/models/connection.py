"""Database connection models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class DatabaseType(str, Enum):
    """Database engines a benchmark tool can target."""
    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    ORACLE = "oracle"
    SQLSERVER = "sqlserver"


DEFAULT_PORTS = {
    DatabaseType.MYSQL: 3306,
    DatabaseType.POSTGRESQL: 5432,
    DatabaseType.ORACLE: 1521,
    DatabaseType.SQLSERVER: 1433,
}


class ConnectionInfo(BaseModel):
    """Connection details handed to a command builder.

    The password is a ``SecretStr`` so it is masked in reprs and dumps; builders
    reveal it only when filling environment overrides.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(default="", description="Connection profile name")
    database_type: DatabaseType = Field(..., description="Target database engine")
    host: str = Field(default="localhost")
    port: int = Field(default=0, ge=0, le=65535, description="0 means engine default")
    username: str = Field(default="")
    password: SecretStr = Field(default=SecretStr(""))
    database: str = Field(default="", description="Database / schema name")
    service_name: str = Field(default="", description="Oracle service name")
    sid: str = Field(default="", description="Oracle SID")
    ssl_mode: str = Field(default="", description="SSL mode, empty when unset")

    @property
    def effective_port(self) -> int:
        return self.port or DEFAULT_PORTS[self.database_type]

    @property
    def has_password(self) -> bool:
        return bool(self.password.get_secret_value())

    def ssl_enabled(self) -> bool:
        """Whether an SSL mode other than disabled was requested."""
        mode = self.ssl_mode.strip().lower()
        return bool(mode) and mode not in ("disable", "disabled", "off", "false")
