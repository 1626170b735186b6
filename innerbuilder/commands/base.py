"""Base class for all code generation commands."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from innerbuilder.core.declarations import CompilationUnit, parse_file

logger = logging.getLogger(__name__)


class BaseCommand(ABC):
    """Base class for all code generation commands."""

    name: str  # e.g., "generate-builder"

    def __init__(self, file_path: Path, **params: Any):
        """Initialize the command.

        Args:
            file_path: Path to the Java file to edit
            **params: Additional parameters for the command
        """
        self.file_path = file_path
        self.params = params

    @abstractmethod
    def execute(self) -> None:
        """Execute the command and modify the file in place.

        Raises:
            ValueError: If the command cannot be applied
        """
        pass

    @abstractmethod
    def validate(self) -> None:
        """Validate parameters before execution.

        Raises:
            ValueError: If parameters are invalid
        """
        pass

    def parse_unit(self) -> CompilationUnit:
        """Parse the command's Java file.

        Raises:
            ValueError: If the file does not exist or is not valid Java
        """
        if not self.file_path.is_file():
            raise ValueError(f"File does not exist: {self.file_path}")
        return parse_file(self.file_path)

    def write_unit(self, unit: CompilationUnit) -> bool:
        """Write a (modified) compilation unit back to the command's file.

        Returns:
            True if the file content changed and was written
        """
        rendered = unit.render()
        if rendered == unit.original_text:
            logger.info("%s is already up to date", self.file_path)
            return False
        with self.file_path.open("w", encoding="utf-8", newline="") as f:
            f.write(rendered)
        logger.info("Wrote %s", self.file_path)
        return True
