"""Final clean-up of generated code: import shortening and builder reformatting."""

import logging

from innerbuilder.core.declarations import ClassDecl, CompilationUnit, MethodDecl

logger = logging.getLogger(__name__)


def shorten_reference(unit: CompilationUnit, qualified_name: str) -> str:
    """Return the name to use for a fully-qualified type in the unit.

    The simple name is used when the type is already imported (or in the same
    package), or when an import can be added without clashing with another
    type of the same simple name; otherwise the qualified name is kept.
    """
    if "." not in qualified_name:
        return qualified_name
    simple_name = qualified_name.rpartition(".")[2]
    if unit.imports_type(qualified_name):
        return simple_name
    if unit.claims_simple_name(simple_name, qualified_name):
        logger.debug("Keeping %s qualified: simple name already in use", qualified_name)
        return qualified_name
    unit.add_import(qualified_name)
    return simple_name


def shorten_class_references(unit: CompilationUnit, classes: list[ClassDecl]) -> None:
    """Shorten qualified annotation names in the generated members of the given classes."""
    for declaration in classes:
        for member in declaration.members:
            if not member.synthesized or not isinstance(member, MethodDecl):
                continue
            member.annotations = [shorten_reference(unit, name) for name in member.annotations]
            for parameter in member.parameters:
                parameter.annotations = [shorten_reference(unit, name) for name in parameter.annotations]


def reformat_class(declaration: ClassDecl) -> None:
    """Normalize the blank lines between the members of a class.

    Consecutive fields are separated by a line break, all other members by a
    blank line. Leading trivia holding comments and the text of the members
    themselves are left alone.
    """
    previous = None
    for member in declaration.members:
        if not member.leading.strip():
            member.leading = declaration.leading_for(previous, member)
        previous = member
    if not declaration.trailer.strip():
        declaration.trailer = "\n" + declaration.indent
