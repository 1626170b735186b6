"""
Tests for BaseCommand class.

This module tests how the BaseCommand class reads and writes Java files.
"""

from pathlib import Path

import pytest

from innerbuilder.commands.base import BaseCommand


class ConcreteCommand(BaseCommand):
    """Concrete implementation of BaseCommand for testing."""

    name = "test-command"

    def execute(self) -> None:
        """Execute the command (no-op for testing)."""
        pass

    def validate(self) -> None:
        """Validate parameters (no-op for testing)."""
        pass


class TestParseAndWriteUnit:
    """Tests for BaseCommand.parse_unit() and BaseCommand.write_unit()."""

    def test_parse_missing_file(self, tmp_path: Path) -> None:
        """Should raise ValueError for a file that does not exist."""
        cmd = ConcreteCommand(tmp_path / "Missing.java")

        with pytest.raises(ValueError, match="File does not exist"):
            cmd.parse_unit()

    def test_parse_invalid_java(self, java_file) -> None:
        """Should raise ValueError naming the file for invalid Java."""
        path = java_file("class {\n")

        with pytest.raises(ValueError, match="Point.java"):
            ConcreteCommand(path).parse_unit()

    def test_unchanged_unit_is_not_written(self, java_file) -> None:
        """Should leave the file alone when nothing changed."""
        path = java_file("class Point {\n}\n")
        cmd = ConcreteCommand(path)
        unit = cmd.parse_unit()
        before = path.stat().st_mtime_ns

        assert cmd.write_unit(unit) is False
        assert path.stat().st_mtime_ns == before

    def test_changed_unit_is_written(self, java_file) -> None:
        """Should write the rendered unit back to the file."""
        path = java_file("class Point {\n}\n")
        cmd = ConcreteCommand(path)
        unit = cmd.parse_unit()
        unit.add_import("java.util.List")

        assert cmd.write_unit(unit) is True
        assert path.read_text() == "import java.util.List;\n\nclass Point {\n}\n"
