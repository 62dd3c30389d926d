"""Common utility functions."""

from __future__ import annotations

import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import yaml


def generate_id(prefix: str = "") -> str:
    """Generate a unique identifier."""
    timestamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
    short_uuid = uuid.uuid4().hex[:8]
    if prefix:
        return f"{prefix}_{timestamp}_{short_uuid}"
    return f"{timestamp}_{short_uuid}"


def generate_run_id() -> str:
    """Generate a run ID."""
    return generate_id("run")


def generate_report_id(now: Optional[datetime] = None) -> str:
    """Generate a comparison report ID (report-YYYYMMDD-HHMMSS)."""
    now = now or datetime.utcnow()
    return f"report-{now.strftime('%Y%m%d-%H%M%S')}"


def safe_divide(numerator: float, denominator: float) -> float:
    """Divide, returning 0 when the denominator is 0."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


def truncate(text: str, limit: int = 200) -> str:
    """Shorten text for log output."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def parse_number(text: str) -> float:
    """Parse a numeric token that may carry thousands separators."""
    return float(text.replace(",", "").strip())


def to_int(value: Any) -> Optional[int]:
    """Coerce a scalar parameter to int, or None if it cannot be."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value.strip()))
        except ValueError:
            return None
    return None


def to_float(value: Any) -> Optional[float]:
    """Coerce a scalar parameter to float, or None if it cannot be."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def to_bool(value: Any) -> Optional[bool]:
    """Coerce a scalar parameter to bool, or None if it cannot be."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "on", "1"):
            return True
        if lowered in ("false", "no", "off", "0"):
            return False
    return None


def load_yaml(path: str | Path) -> dict:
    """Load a YAML file."""
    with open(path, 'r') as f:
        return yaml.safe_load(f) or {}


def save_yaml(path: str | Path, data: dict) -> None:
    """Save data to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
