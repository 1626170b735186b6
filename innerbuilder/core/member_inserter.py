"""Signature-based merging of generated members into a class body.

A generated member is the same as an existing one when it has the same name
and a parameter list of presentably equal types. Constructors have no name of
their own, so any constructor with an equal parameter list matches.
"""

import logging

from innerbuilder.core.builder_utils import are_parameter_lists_equal, are_types_presentable_equal
from innerbuilder.core.declarations import ClassDecl, FieldDecl, Member, MethodDecl
from innerbuilder.core.element_factory import create_field
from innerbuilder.core.field_collector import FieldMember

logger = logging.getLogger(__name__)


def find_existing_member(target: ClassDecl, new_method: MethodDecl) -> MethodDecl | None:
    """Find a member of the target with the same signature as a new method.

    Args:
        target: The class to search (its own members only)
        new_method: The generated method or constructor

    Returns:
        The matching existing method or constructor, or None
    """
    if new_method.is_constructor:
        candidates = target.constructors()
    else:
        candidates = [method for method in target.methods() if method.name == new_method.name]
    for candidate in candidates:
        if are_parameter_lists_equal(candidate.parameters, new_method.parameters):
            return candidate
    return None


def add_member(target: ClassDecl, after: Member | None, new_method: MethodDecl, replace: bool) -> Member:
    """Merge a generated method or constructor into a class.

    Args:
        target: The class receiving the member
        after: Anchor to insert after when no matching member exists;
            appended in its member group when None
        new_method: The generated member
        replace: Replace a matching existing member instead of keeping it

    Returns:
        The member now representing the generated one: the kept existing
        member, the replacement, or the inserted member. Use it as the anchor
        for the next insertion.
    """
    existing = find_existing_member(target, new_method)
    if existing is None:
        logger.debug("Adding %s to %s", _describe(new_method), target.qualified_name)
        if after is not None:
            return target.add_after(new_method, after)
        return target.add(new_method)
    if replace:
        logger.debug("Replacing %s in %s", _describe(new_method), target.qualified_name)
        return target.replace(existing, new_method)
    logger.debug("Keeping existing %s in %s", _describe(existing), target.qualified_name)
    return existing


def find_or_create_field(builder: ClassDecl, member: FieldMember, last: Member | None) -> FieldDecl:
    """Ensure the builder declares a field mirroring a selected field.

    An existing field of the same name is kept when its type matches;
    otherwise it is deleted and a new field is created after ``last`` (or
    appended after the builder's fields).

    Returns:
        The builder field declaration
    """
    existing = builder.find_field(member.name)
    if existing is not None:
        variable = existing.variable(member.name)
        assert variable is not None
        if are_types_presentable_equal(variable.type_text, member.type_text):
            return existing
        logger.debug(
            "Recreating builder field %s: type changed from %s to %s",
            member.name,
            variable.type_text,
            member.type_text,
        )
        builder.delete_variable(existing, member.name)
    new_field = create_field(member.name, member.type_text)
    if last is not None and last.parent is builder:
        return builder.add_after(new_field, last)
    return builder.add(new_field)


def _describe(method: MethodDecl) -> str:
    parameters = ", ".join(parameter.type_text for parameter in method.parameters)
    return f"{method.name}({parameters})"
