"""Pytest configuration and shared fixtures for innerbuilder tests."""

import difflib
import shutil
from pathlib import Path
from typing import Any, Optional

import javalang
import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class BuilderTestBase:
    """Base class for generation tests with automatic fixture management.

    Usage:
        class TestDefaults(BuilderTestBase):
            fixture_category = "generation/defaults"

            def test_point(self):
                self.generate(target="Point")

    Convention:
        - Test method name (minus 'test_' prefix) maps to fixture directory name
        - Single-file: Fixture directory contains input.java and expected.java
        - Multi-file: Fixture directory contains input/ and expected/ directories
        - Example: test_point() -> fixtures/generation/defaults/point/
    """

    fixture_category: Optional[str] = None  # Must be set in subclass

    @pytest.fixture(autouse=True)
    def _setup_fixture(self, tmp_path: Path, request: pytest.FixtureRequest) -> None:  # type: ignore[misc]
        """Copy the fixture's input files into a temporary directory.

        Creates:
            self.tmp_path: Temporary directory for this test
            self.test_file: Path to the copied input.java - single-file mode
            self.expected_file: Path to expected.java (in fixtures) - single-file mode
            self.test_files: Dict of filename -> Path (copied to tmp_path) - multi-file mode
            self.expected_files: Dict of filename -> Path (in fixtures) - multi-file mode
        """
        self.tmp_path = tmp_path
        self.is_multi_file = False
        self.test_files: dict[str, Path] = {}
        self.expected_files: dict[str, Path] = {}
        self.test_file: Optional[Path] = None
        self.expected_file: Optional[Path] = None

        test_name = request.function.__name__
        fixture_name = test_name[5:] if test_name.startswith("test_") else test_name

        if self.fixture_category is None:
            raise ValueError(f"{self.__class__.__name__} must set fixture_category class attribute")

        fixture_dir = FIXTURES_DIR / self.fixture_category / fixture_name
        if fixture_dir.exists():
            input_dir = fixture_dir / "input"
            expected_dir = fixture_dir / "expected"
            input_file = fixture_dir / "input.java"
            expected_file = fixture_dir / "expected.java"

            if input_dir.exists() and expected_dir.exists():
                self._setup_multi_file_fixture(input_dir, expected_dir)
            elif input_file.exists() and expected_file.exists():
                self.test_file = self.tmp_path / "input.java"
                self.expected_file = expected_file
                shutil.copy(input_file, self.test_file)
            else:
                raise FileNotFoundError(
                    f"Fixture directory {fixture_dir} must contain either "
                    "(input.java + expected.java) or (input/ + expected/ directories)"
                )

        yield

    def _setup_multi_file_fixture(self, input_dir: Path, expected_dir: Path) -> None:
        """Copy all .java (and option) files from input/ and record expected/ paths."""
        self.is_multi_file = True
        for input_file in input_dir.iterdir():
            if input_file.suffix in (".java", ".toml"):
                dest_file = self.tmp_path / input_file.name
                shutil.copy(input_file, dest_file)
                if input_file.suffix == ".java":
                    self.test_files[input_file.name] = dest_file
        for expected_file in expected_dir.glob("*.java"):
            self.expected_files[expected_file.name] = expected_file

        if set(self.test_files) != set(self.expected_files):
            raise FileNotFoundError(
                f"Fixture file mismatch: inputs {sorted(self.test_files)}, "
                f"expected {sorted(self.expected_files)}"
            )

    def generate(self, exact: bool = False, **params: Any) -> None:
        """Run builder generation and assert the result matches the expected output.

        Args:
            exact: Compare text exactly instead of by Java tokens
            **params: Parameters of the generate-builder command. For
                multi-file fixtures, ``target_file`` names the file to edit.
        """
        # Import here to avoid registering commands during test collection
        from innerbuilder.cli import generate_builder

        if self.is_multi_file:
            target_file_name = params.pop("target_file", None)
            if target_file_name not in self.test_files:
                raise ValueError(
                    f"Multi-file fixtures require a valid 'target_file' "
                    f"(available: {sorted(self.test_files)})"
                )
            generate_builder(self.test_files[target_file_name], **params)
        else:
            if self.test_file is None:
                raise RuntimeError("No fixture loaded. Ensure fixture directory exists for this test.")
            generate_builder(self.test_file, **params)

        self.assert_matches_expected(exact=exact)

    def assert_matches_expected(self, exact: bool = False) -> None:
        """Assert that the edited file(s) match the expected file(s).

        Args:
            exact: If True, compare text exactly. Otherwise compare the Java
                token streams, ignoring whitespace and comments.
        """
        if self.is_multi_file:
            pairs = [(self.test_files[name], self.expected_files[name]) for name in sorted(self.test_files)]
        else:
            if self.test_file is None or self.expected_file is None:
                raise RuntimeError("No fixture loaded")
            pairs = [(self.test_file, self.expected_file)]

        for test_file, expected_file in pairs:
            actual = test_file.read_text()
            expected = expected_file.read_text()
            if exact:
                assert actual == expected, format_diff(actual, expected, expected_file.name)
            elif java_tokens(actual) != java_tokens(expected):
                pytest.fail(
                    f"Token mismatch in {expected_file.name}:\n\n"
                    f"{format_diff(actual, expected, expected_file.name)}"
                )


def java_tokens(source: str) -> list[str]:
    """Token values of Java source, ignoring whitespace and comments."""
    return [token.value for token in javalang.tokenizer.tokenize(source)]


def format_diff(actual: str, expected: str, name: str = "expected.java") -> str:
    """Format a readable diff between actual and expected."""
    diff = difflib.unified_diff(
        expected.splitlines(keepends=True),
        actual.splitlines(keepends=True),
        fromfile=name,
        tofile="actual",
        lineterm="",
    )
    return "".join(diff)


@pytest.fixture
def java_file(tmp_path: Path):
    """Factory writing a Java source file into a temporary directory."""

    def _write(source: str, name: str = "Point.java") -> Path:
        path = tmp_path / name
        path.write_text(source)
        return path

    return _write
