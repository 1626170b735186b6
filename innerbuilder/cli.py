"""CLI entry point for innerbuilder."""

import logging
from pathlib import Path
from typing import Any

import click

from innerbuilder import __version__
from innerbuilder.commands.registry import apply_command, discover_and_register_commands, get_command
from innerbuilder.core.options import BuilderOption
from innerbuilder.logging_config import configure_logging

# Dynamically discover and import all command modules
discover_and_register_commands()

GENERATE_COMMAND = "generate-builder"

# CLI flag name -> option, for the boolean toggles
OPTION_FLAGS = {
    "final_setters": BuilderOption.FINAL_SETTERS,
    "new_builder_method": BuilderOption.NEW_BUILDER_METHOD,
    "copy_constructor": BuilderOption.COPY_CONSTRUCTOR,
    "with_notation": BuilderOption.WITH_NOTATION,
    "jsr305": BuilderOption.JSR305_ANNOTATIONS,
    "findbugs": BuilderOption.FINDBUGS_ANNOTATION,
    "javadoc": BuilderOption.WITH_JAVADOC,
    "field_names": BuilderOption.FIELD_NAMES,
}


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Log debug messages.")
def main(verbose: bool) -> None:
    """Innerbuilder - generate inner Builder classes for Java classes.

    Adds (or updates) a static nested Builder with one fluent setter per
    field, merging with any builder generated before.
    """
    configure_logging(logging.DEBUG if verbose else logging.INFO)


def generate_builder(file_path: Path, **params: Any) -> None:
    """Generate the inner builder for a class in a Java file.

    Args:
        file_path: Path to the Java file
        **params: Parameters of the generate-builder command

    Raises:
        ValueError: If the target cannot be found or parameters are invalid
    """
    apply_command(GENERATE_COMMAND, file_path, **params)


def _split_names(value: str | None) -> list[str] | None:
    if value is None:
        return None
    return [name.strip() for name in value.split(",") if name.strip()]


def target_options(function: Any) -> Any:
    """Options selecting the target class, shared by all subcommands."""
    function = click.option("--column", type=int, help="1-based cursor column.")(function)
    function = click.option(
        "--line", type=int, help="1-based cursor line; the class around it is used."
    )(function)
    function = click.option(
        "--target", "-t", help="Class to generate the builder for, e.g. Point or Outer.Inner."
    )(function)
    return function


@main.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@target_options
@click.option("--fields", "-f", help="Comma-separated fields to include (default: all).")
@click.option("--final-setters/--no-final-setters", default=None, help="Generate setters for final fields.")
@click.option(
    "--new-builder-method/--no-new-builder-method",
    default=None,
    help="Generate a static newBuilder() method.",
)
@click.option(
    "--copy-constructor/--no-copy-constructor", default=None, help="Generate a builder copy constructor."
)
@click.option("--with-notation/--no-with-notation", default=None, help="Use 'with...' setter names.")
@click.option("--with-prefix", help="Prefix for 'with...' setter names (enables with-notation).")
@click.option("--jsr305/--no-jsr305", default=None, help="Add JSR-305 @Nonnull annotations.")
@click.option("--findbugs/--no-findbugs", default=None, help="Add Findbugs @NonNull annotations.")
@click.option("--javadoc/--no-javadoc", default=None, help="Add Javadoc comments.")
@click.option("--field-names/--no-field-names", default=None, help="Use field names as setter parameters.")
@click.option(
    "--config",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Option file (default: innerbuilder.toml next to FILE_PATH).",
)
@click.option("--interactive", "-i", is_flag=True, help="Choose fields and options interactively.")
def generate(
    file_path: Path,
    target: str | None,
    line: int | None,
    column: int | None,
    fields: str | None,
    with_prefix: str | None,
    config: Path | None,
    interactive: bool,
    **flags: bool | None,
) -> None:
    """Generate or update the inner Builder of a class in FILE_PATH."""
    overrides: dict[BuilderOption, object] = {
        OPTION_FLAGS[name]: value for name, value in flags.items() if value is not None
    }
    if with_prefix is not None and overrides.get(BuilderOption.WITH_NOTATION) is not False:
        overrides[BuilderOption.WITH_NOTATION] = with_prefix
    try:
        generate_builder(
            file_path,
            target=target,
            line=line,
            column=column,
            fields=_split_names(fields),
            options=overrides,
            config=config,
            interactive=interactive,
        )
    except ValueError as e:
        raise click.ClickException(str(e)) from e


@main.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@target_options
def fields(file_path: Path, target: str | None, line: int | None, column: int | None) -> None:
    """List the fields of a class a builder can be generated for."""
    command = get_command(GENERATE_COMMAND)(file_path, target=target, line=line, column=column)
    try:
        command.validate()
        members = command.collect()  # type: ignore[attr-defined]
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    if not members:
        click.echo("No eligible fields.")
        return
    for member in members:
        click.echo(str(member))


if __name__ == "__main__":
    main()
