"""Generation options and the immutable option snapshot used by one generation pass."""

from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, Iterator, Mapping, Optional

if TYPE_CHECKING:
    from innerbuilder.core.config import OptionStore

PROPERTY_PREFIX = "GenerateInnerBuilder."
DEFAULT_WITH_PREFIX = "with"
TRUE_VALUE = "true"


class BuilderOption(Enum):
    """The closed set of generation toggles, valued by their property name."""

    FINAL_SETTERS = "finalSetters"
    NEW_BUILDER_METHOD = "newBuilderMethod"
    COPY_CONSTRUCTOR = "copyConstructor"
    WITH_NOTATION = "withNotation"
    JSR305_ANNOTATIONS = "useJSR305Annotations"
    FINDBUGS_ANNOTATION = "useFindbugsAnnotation"
    WITH_JAVADOC = "withJavadoc"
    FIELD_NAMES = "fieldNames"

    @property
    def property_name(self) -> str:
        """Key of the option in the option store."""
        return PROPERTY_PREFIX + self.value

    @property
    def is_textfield(self) -> bool:
        """Whether the option carries a text value instead of a boolean."""
        return self is BuilderOption.WITH_NOTATION

    @classmethod
    def from_property(cls, name: str) -> "BuilderOption":
        """Look an option up by its property name, with or without prefix."""
        if name.startswith(PROPERTY_PREFIX):
            name = name[len(PROPERTY_PREFIX) :]
        return cls(name)


class GenerationOptions(Mapping[BuilderOption, str]):
    """Immutable snapshot of the enabled options.

    Boolean options are present (with value ``"true"``) only when enabled.
    ``WITH_NOTATION`` is present when enabled and maps to the setter prefix.
    """

    def __init__(self, values: Optional[Mapping[BuilderOption, str]] = None) -> None:
        self._values: Mapping[BuilderOption, str] = MappingProxyType(dict(values or {}))

    def __getitem__(self, option: BuilderOption) -> str:
        return self._values[option]

    def __iter__(self) -> Iterator[BuilderOption]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        enabled = ", ".join(f"{option.name}={value!r}" for option, value in self._values.items())
        return f"GenerationOptions({enabled})"

    @property
    def with_prefix(self) -> Optional[str]:
        """The setter prefix, or None if with-notation is disabled."""
        return self._values.get(BuilderOption.WITH_NOTATION)

    @classmethod
    def of(cls, *options: BuilderOption, with_prefix: Optional[str] = None) -> "GenerationOptions":
        """Create a snapshot from enabled options.

        Examples:
            >>> GenerationOptions.of(BuilderOption.NEW_BUILDER_METHOD).with_prefix is None
            True
            >>> GenerationOptions.of(BuilderOption.WITH_NOTATION).with_prefix
            'with'
        """
        values: Dict[BuilderOption, str] = {}
        for option in options:
            if option.is_textfield:
                values[option] = with_prefix or DEFAULT_WITH_PREFIX
            else:
                values[option] = TRUE_VALUE
        if with_prefix and BuilderOption.WITH_NOTATION not in values:
            values[BuilderOption.WITH_NOTATION] = with_prefix
        return cls(values)

    @classmethod
    def from_store(
        cls, store: "OptionStore", overrides: Optional[Mapping[BuilderOption, object]] = None
    ) -> "GenerationOptions":
        """Resolve the options from the store, applying per-invocation overrides.

        Args:
            store: The persisted option values
            overrides: Option values that take precedence over the store. A
                boolean enables or disables the option; a string sets the
                with-notation prefix (and enables it). ``True`` for with-notation
                keeps a stored prefix. None values are ignored.

        Returns:
            The resolved snapshot
        """
        overrides = {option: value for option, value in (overrides or {}).items() if value is not None}
        values: Dict[BuilderOption, str] = {}
        for option in BuilderOption:
            if option in overrides:
                override = overrides[option]
                if option.is_textfield:
                    value = _text_value(override)
                    if override is True:
                        value = _text_value(store.get_value(option.property_name, "")) or value
                else:
                    value = TRUE_VALUE if override else None
            elif option.is_textfield:
                value = _text_value(store.get_value(option.property_name, ""))
            else:
                value = TRUE_VALUE if store.get_boolean(option.property_name, False) else None
            if value is not None:
                values[option] = value
        return cls(values)


def _text_value(value: object) -> Optional[str]:
    """Interpret a with-notation value: a prefix, ``true``/``false`` or blank."""
    if value is True:
        return DEFAULT_WITH_PREFIX
    if value is False or value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() == "false":
        return None
    if text.lower() == TRUE_VALUE:
        return DEFAULT_WITH_PREFIX
    return text
