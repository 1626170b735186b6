"""Command registry for dynamic dispatch of generation commands."""

import importlib
import pkgutil
from pathlib import Path
from typing import Any, Dict, Type, TypeVar

from innerbuilder.commands.base import BaseCommand

_registry: Dict[str, Type[BaseCommand]] = {}

CommandType = TypeVar("CommandType", bound=Type[BaseCommand])


def register_command(command_class: CommandType) -> CommandType:
    """Register a command class; usable as a class decorator.

    Args:
        command_class: The command class to register

    Returns:
        The command class, unchanged

    Raises:
        ValueError: If command_class doesn't have a name attribute
    """
    if not hasattr(command_class, "name"):
        raise ValueError(f"Command class {command_class.__name__} must have a 'name' attribute")
    _registry[command_class.name] = command_class
    return command_class


def get_command(name: str) -> Type[BaseCommand]:
    """Get a command class by name.

    Args:
        name: The name of the command

    Returns:
        The command class

    Raises:
        ValueError: If command is not registered
    """
    if name not in _registry:
        available = ", ".join(registered_commands()) or "none"
        raise ValueError(f"Unknown command: {name} (available: {available})")
    return _registry[name]


def registered_commands() -> list[str]:
    """Names of all registered commands, sorted."""
    return sorted(_registry)


def discover_and_register_commands() -> None:
    """Import every command module below the commands package.

    Each module registers its command with the ``register_command`` decorator
    when it is imported.
    """
    commands_dir = Path(__file__).parent

    for category_dir in commands_dir.iterdir():
        if category_dir.is_dir() and not category_dir.name.startswith("_"):
            package_name = f"innerbuilder.commands.{category_dir.name}"
            for module_info in pkgutil.iter_modules([str(category_dir)]):
                if not module_info.name.startswith("_"):
                    importlib.import_module(f"{package_name}.{module_info.name}")


def apply_command(command_name: str, file_path: Path, **params: Any) -> None:
    """Run a command using the registry.

    Args:
        command_name: Name of the command to run
        file_path: Path to the Java file to edit
        **params: Additional parameters for the command

    Raises:
        ValueError: If the command is unknown or parameters are invalid
    """
    command_class = get_command(command_name)
    command = command_class(file_path, **params)
    command.validate()
    command.execute()
