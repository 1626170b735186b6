"""Collection of the fields a builder can be generated for.

The collector walks the superclass chain of the target class, collecting the
eligible fields of every class it visits. Base-class fields come first in the
result. Eligibility is decided by ``EXCLUSION_RULES``, an ordered chain of
predicates that is evaluated short-circuit for every field.
"""

import logging
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from innerbuilder.core.builder_utils import (
    apply_substitution,
    has_lower_case_char,
    is_primitive,
    normalize_type_text,
)
from innerbuilder.core.class_resolver import ClassResolver
from innerbuilder.core.declarations import ClassDecl, CompilationUnit, FieldDecl

logger = logging.getLogger(__name__)

LOGGER_TYPES = frozenset(
    {
        "org.apache.log4j.Logger",
        "org.apache.logging.log4j.Logger",
        "java.util.logging.Logger",
        "org.slf4j.Logger",
        "ch.qos.logback.classic.Logger",
        "net.sf.microlog.core.Logger",
        "org.apache.commons.logging.Log",
        "org.pmw.tinylog.Logger",
        "org.jboss.logging.Logger",
        "jodd.log.Logger",
    }
)

OBJECT_TYPE = "Object"


@dataclass(frozen=True)
class Field:
    """A field declared by a class in the target's inheritance chain."""

    name: str
    declared_type: str
    owner: ClassDecl
    modifiers: Tuple[str, ...]
    has_initializer: bool
    declaration: FieldDecl

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers

    @property
    def is_final(self) -> bool:
        return "final" in self.modifiers

    @property
    def visibility(self) -> str:
        """One of ``public``, ``protected``, ``private`` or ``package``."""
        for modifier in ("public", "protected", "private"):
            if modifier in self.modifiers:
                return modifier
        return "package"


@dataclass(frozen=True)
class FieldMember:
    """A collected field plus the type substitution from its declaring class
    to the target class."""

    field: Field
    substitution: Mapping[str, str] = dataclass_field(default_factory=dict, hash=False)

    @property
    def name(self) -> str:
        return self.field.name

    @property
    def type_text(self) -> str:
        """The field type as seen from the target class."""
        return apply_substitution(self.field.declared_type, self.substitution)

    @property
    def is_final(self) -> bool:
        return self.field.is_final

    @property
    def is_primitive(self) -> bool:
        return is_primitive(self.type_text)

    def __str__(self) -> str:
        return f"{self.name}:{self.type_text}"


@dataclass(frozen=True)
class CollectionContext:
    """What the exclusion rules need to know besides the field itself.

    Attributes:
        accessor: The target class the builder is generated for
        resolver: Resolves superclasses for the protected-access check
        cursor: Cursor offset in ``cursor_unit``, if generation was started
            from a cursor position
        cursor_unit: The compilation unit the cursor offset refers to
    """

    accessor: ClassDecl
    resolver: ClassResolver
    cursor: Optional[int] = None
    cursor_unit: Optional[CompilationUnit] = None


def _package_of(declaration: ClassDecl) -> Optional[str]:
    unit = declaration.unit
    return unit.package if unit is not None else None


def is_accessible(candidate: Field, context: CollectionContext) -> bool:
    """Check Java visibility of a field from the accessor class."""
    accessor = context.accessor
    owner = candidate.owner
    visibility = candidate.visibility
    if visibility == "public":
        return True
    if visibility == "private":
        return owner.top_level() is accessor.top_level()
    same_package = _package_of(owner) == _package_of(accessor)
    if visibility == "package":
        return same_package
    return same_package or owner is accessor or context.resolver.is_subclass(accessor, owner)


def _is_inaccessible(candidate: Field, context: CollectionContext) -> bool:
    return not is_accessible(candidate, context)


def _is_under_cursor(candidate: Field, context: CollectionContext) -> bool:
    if context.cursor is None or candidate.owner.unit is not context.cursor_unit:
        return False
    return candidate.declaration.variable_contains(candidate.name, context.cursor)


def _is_static(candidate: Field, context: CollectionContext) -> bool:
    return candidate.is_static


def _has_constant_name(candidate: Field, context: CollectionContext) -> bool:
    return not has_lower_case_char(candidate.name)


def _is_logger(candidate: Field, context: CollectionContext) -> bool:
    type_text = normalize_type_text(candidate.declared_type)
    if "[" in type_text or "<" in type_text:
        return False
    unit = candidate.owner.unit
    if unit is None:
        return type_text in LOGGER_TYPES
    return any(name in LOGGER_TYPES for name in unit.candidate_names(type_text))


def _is_initialized_final(candidate: Field, context: CollectionContext) -> bool:
    return candidate.is_final and candidate.has_initializer


def _is_inherited_final(candidate: Field, context: CollectionContext) -> bool:
    return candidate.is_final and candidate.owner is not context.accessor


ExclusionRule = Callable[[Field, CollectionContext], bool]

EXCLUSION_RULES: Tuple[Tuple[str, ExclusionRule], ...] = (
    ("inaccessible", _is_inaccessible),
    ("under cursor", _is_under_cursor),
    ("static", _is_static),
    ("constant name", _has_constant_name),
    ("logger", _is_logger),
    ("final with initializer", _is_initialized_final),
    ("inherited final", _is_inherited_final),
)


def exclusion_reason(candidate: Field, context: CollectionContext) -> Optional[str]:
    """Return the name of the first exclusion rule matching a field, or None
    if the field is eligible."""
    for name, rule in EXCLUSION_RULES:
        if rule(candidate, context):
            return name
    return None


def fields_of(declaration: ClassDecl) -> List[Field]:
    """List the fields declared directly in a class, one per variable."""
    fields = []
    for field_declaration in declaration.fields():
        for variable in field_declaration.variables:
            fields.append(
                Field(
                    name=variable.name,
                    declared_type=variable.type_text,
                    owner=declaration,
                    modifiers=tuple(field_declaration.modifiers),
                    has_initializer=variable.has_initializer,
                    declaration=field_declaration,
                )
            )
    return fields


def collect_fields(
    target: Optional[ClassDecl],
    resolver: Optional[ClassResolver] = None,
    cursor: Optional[int] = None,
) -> Optional[List[FieldMember]]:
    """Collect the fields eligible for the builder of a class.

    Args:
        target: The class to generate the builder for
        resolver: Resolver used to walk the superclass chain; one is created
            for the target's compilation unit if not given
        cursor: Cursor offset in the target's compilation unit; the field
            declaration containing it is not collected

    Returns:
        Eligible fields, base-class fields first, or None when no builder can
        be generated for the target (no class, or an abstract class)
    """
    if target is None:
        logger.info("No class found to generate a builder for")
        return None
    if target.is_abstract:
        logger.info("Class %s is abstract, no builder generated", target.qualified_name)
        return None

    unit = target.unit
    if resolver is None:
        assert unit is not None
        resolver = ClassResolver(unit)
    context = CollectionContext(target, resolver, cursor, unit)

    collected: List[FieldMember] = []
    substitution: Dict[str, str] = {}
    visited = set()
    current: Optional[ClassDecl] = target
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        collected[0:0] = _collect_in_class(current, substitution, context)
        if current.is_static:
            logger.debug("Stopping at static class %s", current.qualified_name)
            break
        superclass = resolver.superclass(current)
        if superclass is None:
            break
        substitution = superclass_substitution(current, superclass, substitution)
        current = superclass
    return collected


def _collect_in_class(
    declaration: ClassDecl, substitution: Mapping[str, str], context: CollectionContext
) -> List[FieldMember]:
    members = []
    for candidate in fields_of(declaration):
        reason = exclusion_reason(candidate, context)
        if reason is not None:
            logger.debug(
                "Excluding field %s.%s: %s", declaration.qualified_name, candidate.name, reason
            )
            continue
        members.append(FieldMember(candidate, dict(substitution)))
    return members


def superclass_substitution(
    subclass: ClassDecl, superclass: ClassDecl, substitution: Mapping[str, str]
) -> Dict[str, str]:
    """Map the superclass's type parameters to type texts valid in the target class.

    Args:
        subclass: The class whose ``extends`` clause is evaluated
        superclass: The resolved superclass
        substitution: Substitution from the subclass to the target class

    Returns:
        Substitution from the superclass to the target class
    """
    assert subclass.superclass is not None
    arguments = subclass.superclass.arguments
    result = {}
    for index, parameter in enumerate(superclass.type_parameters):
        fallback = parameter.bound or OBJECT_TYPE
        if not arguments or index >= len(arguments):
            # raw supertype
            result[parameter.name] = fallback
            continue
        argument = arguments[index]
        if argument.startswith("? extends "):
            argument = argument[len("? extends ") :]
        elif argument == "?" or argument.startswith("? super "):
            argument = fallback
        result[parameter.name] = apply_substitution(argument, substitution)
    return result
