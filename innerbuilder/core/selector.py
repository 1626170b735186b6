"""Field and option selection before generation.

Without interaction the selection is decided by the caller: all collected
fields, or a named subset. With ``interactive=True`` the user picks the
fields and toggles the options through click prompts; toggled options are
written back to the option store.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import click

from innerbuilder.core.config import OptionStore
from innerbuilder.core.field_collector import FieldMember
from innerbuilder.core.options import DEFAULT_WITH_PREFIX, BuilderOption

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectorOption:
    option: BuilderOption
    caption: str
    tooltip: str


OPTIONS = (
    SelectorOption(
        BuilderOption.FINAL_SETTERS,
        "Generate builder methods for final fields",
        "Generate builder methods for fields that are declared final",
    ),
    SelectorOption(
        BuilderOption.NEW_BUILDER_METHOD,
        "Generate static newBuilder() method",
        "Generate a static newBuilder() method in the class and make the Builder constructor private",
    ),
    SelectorOption(
        BuilderOption.COPY_CONSTRUCTOR,
        "Generate builder copy constructor",
        "Generate a builder copy constructor (or a static copy method with newBuilder())",
    ),
    SelectorOption(
        BuilderOption.WITH_NOTATION,
        "Use 'with...' notation",
        "Generate builder methods named with<Field>, using the given prefix",
    ),
    SelectorOption(
        BuilderOption.JSR305_ANNOTATIONS,
        "Add JSR-305 @Nonnull annotation",
        "Add @Nonnull annotations to generated methods and parameters",
    ),
    SelectorOption(
        BuilderOption.FINDBUGS_ANNOTATION,
        "Add Findbugs @NonNull annotation",
        "Add @NonNull annotations to generated methods and parameters",
    ),
    SelectorOption(
        BuilderOption.WITH_JAVADOC,
        "Add Javadoc",
        "Add Javadoc to the generated builder class and methods",
    ),
    SelectorOption(
        BuilderOption.FIELD_NAMES,
        "Use field names in setter",
        "Name builder method parameters after the fields",
    ),
)


def select_by_name(members: Sequence[FieldMember], field_names: Sequence[str]) -> List[FieldMember]:
    """Select the named fields, keeping the collected order.

    Raises:
        ValueError: If a name does not match any collected field
    """
    available = {member.name for member in members}
    unknown = [name for name in field_names if name not in available]
    if unknown:
        raise ValueError(
            f"Unknown field(s): {', '.join(unknown)} (available: {', '.join(m.name for m in members)})"
        )
    wanted = set(field_names)
    return [member for member in members if member.name in wanted]


def select_fields_and_options(
    members: Sequence[FieldMember],
    store: OptionStore,
    field_names: Optional[Sequence[str]] = None,
    interactive: bool = False,
) -> Optional[List[FieldMember]]:
    """Pick the fields to generate the builder for.

    Args:
        members: Collected fields
        store: Option store; updated with the user's choices in interactive mode
        field_names: Names of the fields to select; all fields when None
        interactive: Prompt for fields and options

    Returns:
        The selected fields in collected order, or None if the selection was
        cancelled or is empty
    """
    if field_names is not None:
        selected = select_by_name(members, field_names)
    elif interactive:
        try:
            selected = _prompt_fields(members)
            _prompt_options(store)
        except click.Abort:
            logger.info("Selection aborted")
            return None
    else:
        selected = list(members)
    if not selected:
        logger.info("No fields selected")
        return None
    return selected


def _prompt_fields(members: Sequence[FieldMember]) -> List[FieldMember]:
    for index, member in enumerate(members, 1):
        click.echo(f"  {index}. {member}")
    answer = click.prompt(
        "Fields to include (comma-separated names or numbers)", default="all", show_default=True
    )
    answer = answer.strip()
    if answer.lower() == "all":
        return list(members)
    names = []
    for token in (part.strip() for part in answer.split(",")):
        if not token:
            continue
        if token.isdigit() and 1 <= int(token) <= len(members):
            names.append(members[int(token) - 1].name)
        else:
            names.append(token)
    try:
        return select_by_name(members, names)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


def _prompt_options(store: OptionStore) -> None:
    for entry in OPTIONS:
        key = entry.option.property_name
        if entry.option.is_textfield:
            current = str(store.get_value(key, "")).strip()
            enabled = click.confirm(entry.caption, default=bool(current) and current.lower() != "false")
            if enabled:
                default = current if current and current.lower() != "true" else DEFAULT_WITH_PREFIX
                store.set_value(key, click.prompt("Prefix", default=default))
            else:
                store.set_value(key, "")
        else:
            store.set_value(key, click.confirm(entry.caption, default=store.get_boolean(key, False)))
