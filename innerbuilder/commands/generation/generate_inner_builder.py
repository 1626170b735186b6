"""Generate Inner Builder command."""

import logging
from pathlib import Path
from typing import Any

from innerbuilder.commands.base import BaseCommand
from innerbuilder.commands.registry import register_command
from innerbuilder.core.builder_generator import BUILDER_CLASS_NAME, generate
from innerbuilder.core.class_resolver import ClassResolver
from innerbuilder.core.config import OptionStore, default_config_path
from innerbuilder.core.declarations import ClassDecl, CompilationUnit
from innerbuilder.core.field_collector import FieldMember, collect_fields
from innerbuilder.core.options import BuilderOption, GenerationOptions
from innerbuilder.core.selector import select_fields_and_options

logger = logging.getLogger(__name__)


def resolve_target(
    unit: CompilationUnit,
    target: str | None = None,
    line: int | None = None,
    column: int | None = None,
) -> tuple[ClassDecl | None, int | None]:
    """Find the class to generate the builder for.

    Args:
        unit: The parsed Java file
        target: Class name, e.g. ``Point`` or ``Outer.Inner``
        line: 1-based cursor line; the innermost class around the cursor is
            used, and a cursor inside a ``Builder`` selects its owner class
        column: 1-based cursor column (defaults to 1)

    Returns:
        The target class (None when the cursor is outside any class) and the
        cursor offset (None without a cursor)

    Raises:
        ValueError: If the named class does not exist or the cursor is outside the file
    """
    if target is not None:
        found = unit.find_class(target)
        if found is None:
            raise ValueError(f"Class '{target}' not found in {unit.path or 'source'}")
        return found, None
    if line is not None:
        offset = unit.offset_of(line, column or 1)
        found = unit.class_at(offset)
        if found is not None and found.name == BUILDER_CLASS_NAME and found.parent is not None:
            found = found.parent
        return found, offset
    classes = [member for member in unit.types if isinstance(member, ClassDecl)]
    if unit.path is not None:
        for declaration in classes:
            if declaration.name == unit.path.stem:
                return declaration, None
    return (classes[0] if classes else None), None


@register_command
class GenerateInnerBuilderCommand(BaseCommand):
    """Command to generate or update the inner Builder class of a Java class.

    Parameters:
        target: Class name (``Outer.Inner`` for nested classes)
        line, column: Cursor position used instead of ``target``
        fields: Names of the fields to include (default: all collected fields)
        options: Per-invocation option overrides, ``BuilderOption`` -> value
        config: Option file (default: ``innerbuilder.toml`` next to the Java file)
        interactive: Prompt for fields and options
    """

    name = "generate-builder"

    def validate(self) -> None:
        """Validate the target selection parameters.

        Raises:
            ValueError: If parameters are invalid
        """
        target = self.params.get("target")
        line = self.params.get("line")
        column = self.params.get("column")
        if target is not None and line is not None:
            raise ValueError("Use either a target class name or a cursor line, not both")
        if column is not None and line is None:
            raise ValueError("A cursor column requires a cursor line")
        for name, value in (("line", line), ("column", column)):
            if value is not None and value < 1:
                raise ValueError(f"Invalid {name}: {value} (must be >= 1)")
        if target is not None and not all(part.isidentifier() for part in target.split(".")):
            raise ValueError(f"Invalid class name: {target}")
        for option in (self.params.get("options") or {}):
            if not isinstance(option, BuilderOption):
                raise ValueError(f"Unknown option: {option}")

    def execute(self) -> None:
        """Collect, select and generate, then write the file once.

        Raises:
            ValueError: If the target class is not found or the file is not valid Java
        """
        unit = self.parse_unit()
        resolver = ClassResolver(unit)
        target, cursor = resolve_target(
            unit, self.params.get("target"), self.params.get("line"), self.params.get("column")
        )

        members = collect_fields(target, resolver, cursor)
        if not members:
            logger.info("No builder generated for %s: no eligible fields", self.file_path)
            return
        assert target is not None

        store = self._load_store()
        interactive = bool(self.params.get("interactive"))
        selected = select_fields_and_options(members, store, self.params.get("fields"), interactive)
        if selected is None:
            logger.info("Builder generation cancelled")
            return
        if interactive:
            store.save()

        options = GenerationOptions.from_store(store, self.params.get("options"))
        logger.debug("Generating with %r", options)
        generate(target, selected, options, resolver)
        self.write_unit(unit)

    def collect(self) -> list[FieldMember] | None:
        """Collect the eligible fields of the target without generating anything."""
        unit = self.parse_unit()
        target, cursor = resolve_target(
            unit, self.params.get("target"), self.params.get("line"), self.params.get("column")
        )
        return collect_fields(target, ClassResolver(unit), cursor)

    def _load_store(self) -> OptionStore:
        config: Any = self.params.get("config")
        path = Path(config) if config is not None else default_config_path(self.file_path)
        return OptionStore.load(path)
