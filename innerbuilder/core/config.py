"""Persisted option defaults, stored as a TOML table.

Option values live in the ``[GenerateInnerBuilder]`` table of
``innerbuilder.toml``::

    [GenerateInnerBuilder]
    newBuilderMethod = true
    withNotation = "with"

Keys are addressed by their full property name (``GenerateInnerBuilder.newBuilderMethod``).
"""

import json
import logging
import tomllib
from pathlib import Path
from typing import Dict, Optional, Union

from innerbuilder.core.options import PROPERTY_PREFIX, BuilderOption

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "innerbuilder.toml"
PROPERTY_NAMESPACE = PROPERTY_PREFIX.rstrip(".")

StoreValue = Union[str, bool]


def _load_toml(path: Path) -> dict:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as e:
        logger.warning("Cannot read %s: %s", path, e)
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as e:
        logger.warning("Ignoring invalid configuration file %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def default_config_path(java_file: Path) -> Path:
    """Configuration file looked up next to a Java source file."""
    return java_file.parent / DEFAULT_CONFIG_NAME


class OptionStore:
    """Key/value store of option properties backed by a TOML file."""

    def __init__(self, values: Optional[Dict[str, StoreValue]] = None, path: Optional[Path] = None) -> None:
        self._values: Dict[str, StoreValue] = dict(values or {})
        self.path = path

    @classmethod
    def load(cls, path: Path) -> "OptionStore":
        """Load the store from a TOML file; a missing or invalid file yields an empty store."""
        section = _load_toml(path).get(PROPERTY_NAMESPACE, {})
        values: Dict[str, StoreValue] = {}
        if isinstance(section, dict):
            for key, value in section.items():
                try:
                    BuilderOption.from_property(key)
                except ValueError:
                    logger.warning("Ignoring unknown option %s in %s", key, path)
                    continue
                if isinstance(value, (str, bool)):
                    values[f"{PROPERTY_NAMESPACE}.{key}"] = value
                else:
                    logger.warning("Ignoring option %s in %s: unsupported value %r", key, path, value)
        logger.debug("Loaded %d option(s) from %s", len(values), path)
        return cls(values, path)

    def get_value(self, key: str, default: StoreValue = "") -> StoreValue:
        return self._values.get(key, default)

    def get_boolean(self, key: str, default: bool = False) -> bool:
        """Read a boolean property; the string ``true`` counts as true."""
        if key not in self._values:
            return default
        return self.is_true_value(self._values[key])

    @staticmethod
    def is_true_value(value: StoreValue) -> bool:
        if isinstance(value, bool):
            return value
        return value.strip().lower() == "true"

    def set_value(self, key: str, value: StoreValue) -> None:
        self._values[key] = value

    def save(self, path: Optional[Path] = None) -> Path:
        """Write the store back as a TOML file.

        Args:
            path: Target file; defaults to the file the store was loaded from

        Returns:
            The path written to
        """
        target = path or self.path
        if target is None:
            raise ValueError("No path to save the options to")
        lines = [f"[{PROPERTY_NAMESPACE}]"]
        prefix = PROPERTY_NAMESPACE + "."
        for key in sorted(self._values):
            if not key.startswith(prefix):
                continue
            value = self._values[key]
            # JSON string escapes are valid TOML basic strings
            rendered = ("true" if value else "false") if isinstance(value, bool) else json.dumps(value)
            lines.append(f"{key[len(prefix):]} = {rendered}")
        target.write_text("\n".join(lines) + "\n", encoding="utf-8")
        logger.debug("Saved options to %s", target)
        self.path = target
        return target
