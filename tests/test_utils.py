"""Unit tests for common utility functions."""

from datetime import datetime
from pathlib import Path

import pytest

from common.utils import (
    generate_id,
    generate_report_id,
    generate_run_id,
    load_yaml,
    parse_number,
    safe_divide,
    save_yaml,
    to_bool,
    to_float,
    to_int,
    truncate,
)


class TestGenerateID:
    """Tests for ID generation functions."""

    def test_generate_id_no_prefix(self):
        """Test generating ID without prefix."""
        id1 = generate_id()
        id2 = generate_id()

        assert id1 != id2
        assert "_" in id1

    def test_generate_run_id(self):
        assert generate_run_id().startswith("run_")

    def test_generate_report_id(self):
        report_id = generate_report_id(datetime(2024, 3, 5, 14, 7, 9))

        assert report_id == "report-20240305-140709"


class TestNumbers:
    """Tests for numeric helpers."""

    def test_safe_divide(self):
        assert safe_divide(10, 4) == 2.5
        assert safe_divide(10, 0) == 0.0

    def test_parse_number(self):
        assert parse_number("1,234.5") == 1234.5
        assert parse_number(" 42 ") == 42.0

        with pytest.raises(ValueError):
            parse_number("n/a")

    def test_to_int(self):
        assert to_int(8) == 8
        assert to_int(8.9) == 8
        assert to_int("16") == 16
        assert to_int("16.0") == 16
        assert to_int("abc") is None
        assert to_int(True) is None
        assert to_int(None) is None

    def test_to_float(self):
        assert to_float("1.5") == 1.5
        assert to_float(2) == 2.0
        assert to_float("x") is None

    def test_to_bool(self):
        assert to_bool(True) is True
        assert to_bool("yes") is True
        assert to_bool("0") is False
        assert to_bool(0) is False
        assert to_bool("maybe") is None


class TestTruncate:
    """Tests for log truncation."""

    def test_short_text_unchanged(self):
        assert truncate("sysbench run") == "sysbench run"

    def test_long_text(self):
        text = "x" * 250

        assert truncate(text) == "x" * 200 + "..."


class TestYAML:
    """Tests for YAML helpers."""

    def test_round_trip(self, temp_dir: Path):
        path = temp_dir / "nested" / "data.yaml"
        save_yaml(path, {"default": "a", "connections": {"a": {"host": "h"}}})

        assert load_yaml(path) == {"default": "a", "connections": {"a": {"host": "h"}}}

    def test_empty_file(self, temp_dir: Path):
        path = temp_dir / "empty.yaml"
        path.write_text("")

        assert load_yaml(path) == {}
