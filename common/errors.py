"""Error taxonomy for benchmark adapters and comparison analysis."""

from __future__ import annotations

from typing import Any, Iterable, Optional


class BenchmarkError(Exception):
    """Base class for all benchmark errors."""


class ValidationError(BenchmarkError):
    """Configuration rejected before any process is spawned."""


class MissingParameterError(ValidationError):
    """A parameter required for the phase is absent."""

    def __init__(self, parameter: str, phase: Optional[str] = None):
        self.parameter = parameter
        self.phase = phase
        if phase:
            message = f"{parameter} is required for the {phase} phase"
        else:
            message = f"{parameter} is required"
        super().__init__(message)


class OutOfRangeError(ValidationError):
    """A numeric parameter falls outside its allowed bounds."""

    def __init__(self, parameter: str, value: Any, minimum: Any, maximum: Any):
        self.parameter = parameter
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(
            f"{parameter} must be between {minimum} and {maximum}, got {value}"
        )


class UnsupportedDatabaseError(ValidationError):
    """The tool cannot drive the target database type."""

    def __init__(self, tool: str, database_type: Any, supported: Iterable[Any] = ()):
        self.tool = tool
        self.database_type = getattr(database_type, "value", database_type)
        self.supported = [getattr(s, "value", s) for s in supported]
        message = f"{tool} does not support database type: {self.database_type}"
        if self.supported:
            message += f" (supported: {', '.join(self.supported)})"
        super().__init__(message)


class StreamReadError(BenchmarkError):
    """Reading the tool's output stream failed."""


class UnparsableOutputError(BenchmarkError):
    """No recognizable summary section in the captured output."""

    def __init__(self, tool: str, reason: str = "no recognizable summary found"):
        self.tool = tool
        super().__init__(f"failed to parse {tool} output: {reason}")


class InsufficientDataError(BenchmarkError):
    """Too few records supplied for a comparison."""

    def __init__(self, required: int, actual: int):
        self.required = required
        self.actual = actual
        super().__init__(
            f"at least {required} records are required for comparison, got {actual}"
        )


class UnknownAdapterError(BenchmarkError, KeyError):
    """No adapter registered under the requested tool identifier."""

    def __init__(self, tool: str):
        self.tool = tool
        super().__init__(f"adapter not found: {tool}")

    def __str__(self) -> str:
        return self.args[0]
