"""Stateless helpers shared by the field collector and the builder generator.

Types are handled as source text throughout innerbuilder. Two type texts are
considered the same when their presentable forms match: whitespace is
normalized and class references are reduced to their simple names, so
``java.lang.String`` and ``String`` compare equal, as do ``Point.Builder`` and
``Builder``.
"""

import re
from typing import TYPE_CHECKING, Mapping, Optional, Sequence

if TYPE_CHECKING:
    from innerbuilder.core.declarations import Parameter

JAVA_DOT_LANG = "java.lang."

PRIMITIVE_TYPES = frozenset(
    {"boolean", "byte", "char", "short", "int", "long", "float", "double"}
)

_IDENTIFIER_RE = re.compile(r"(?<![\w$.])([A-Za-z_$][\w$]*)(?![\w$])")
_QUALIFIED_NAME_RE = re.compile(r"[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)+")
_PUNCTUATION_SPACE_RE = re.compile(r"\s*([<>,\[\].&])\s*")
_WHITESPACE_RE = re.compile(r"\s+")


def has_lower_case_char(text: str) -> bool:
    """Check whether a string contains at least one lowercase character.

    Args:
        text: The string to test

    Returns:
        True if the string has a lowercase character, False if not
    """
    return any(char.islower() for char in text)


def capitalize(text: str) -> str:
    """Uppercase the first character of a name, leaving the rest untouched."""
    return text[:1].upper() + text[1:]


def strip_java_lang(type_text: str) -> str:
    """Drop a leading ``java.lang.`` qualifier from a type text."""
    if type_text.startswith(JAVA_DOT_LANG):
        return type_text[len(JAVA_DOT_LANG) :]
    return type_text


def normalize_type_text(type_text: str) -> str:
    """Normalize whitespace in a type text.

    Whitespace around type punctuation is removed and any other run of
    whitespace collapses to a single space (``? extends Number`` keeps its
    spaces).

    Args:
        type_text: Type as written in source, e.g. ``Map< String , Integer >``

    Returns:
        The normalized text, e.g. ``Map<String,Integer>``
    """
    collapsed = _WHITESPACE_RE.sub(" ", type_text.strip())
    return _PUNCTUATION_SPACE_RE.sub(r"\1", collapsed)


def presentable_type_text(type_text: str) -> str:
    """Return the short, presentable form of a type text.

    Every class reference is reduced to its simple name while type arguments
    are kept: ``java.util.Map.Entry<java.lang.String, V>`` becomes
    ``Entry<String,V>`` and ``Point.Builder`` becomes ``Builder``.

    Args:
        type_text: Type as written in source

    Returns:
        The presentable type text
    """
    return _QUALIFIED_NAME_RE.sub(
        lambda match: match.group(0).rsplit(".", 1)[1], normalize_type_text(type_text)
    )


def are_types_presentable_equal(type1: Optional[str], type2: Optional[str]) -> bool:
    """Compare two type texts by their presentable form.

    Args:
        type1: First type text
        type2: Second type text

    Returns:
        True if both types are present and render the same presentable text
    """
    if type1 is None or type2 is None:
        return False
    canonical1 = strip_java_lang(presentable_type_text(type1))
    canonical2 = strip_java_lang(presentable_type_text(type2))
    return canonical1 == canonical2


def are_parameter_lists_equal(
    parameters1: Sequence["Parameter"], parameters2: Sequence["Parameter"]
) -> bool:
    """Check that two parameter lists have pairwise presentably-equal types.

    Parameter names and annotations are ignored.
    """
    if len(parameters1) != len(parameters2):
        return False
    return all(
        are_types_presentable_equal(first.type_text, second.type_text)
        for first, second in zip(parameters1, parameters2)
    )


def is_primitive(type_text: str) -> bool:
    """Check whether a type text names a primitive type (arrays are not primitive)."""
    return normalize_type_text(type_text) in PRIMITIVE_TYPES


def erase_type(type_text: str) -> str:
    """Strip type arguments and array dimensions: ``List<String>[]`` -> ``List``."""
    text = normalize_type_text(type_text)
    depth = 0
    erased = []
    for char in text:
        if char == "<":
            depth += 1
        elif char == ">":
            depth -= 1
        elif depth == 0:
            erased.append(char)
    return "".join(erased).replace("[]", "").replace("...", "")


def setter_name(field_name: str, type_text: str) -> str:
    """Return the conventional setter name for a field.

    Boolean fields following the ``isFoo`` convention map to ``setFoo``.

    Examples:
        >>> setter_name("name", "String")
        'setName'
        >>> setter_name("isActive", "boolean")
        'setActive'
    """
    if (
        normalize_type_text(type_text) == "boolean"
        and field_name.startswith("is")
        and len(field_name) > 2
        and field_name[2].isupper()
    ):
        return f"set{field_name[2:]}"
    return f"set{capitalize(field_name)}"


def apply_substitution(type_text: str, substitution: Mapping[str, str]) -> str:
    """Replace type-variable names in a type text.

    Args:
        type_text: Type as declared, e.g. ``List<T>``
        substitution: Mapping of type-variable names to actual type texts

    Returns:
        The substituted type text, e.g. ``List<String>`` for ``{"T": "String"}``
    """
    if not substitution:
        return type_text
    return _IDENTIFIER_RE.sub(
        lambda match: substitution.get(match.group(1), match.group(1)), type_text
    )
