"""Lossless declaration tree for Java compilation units.

A compilation unit is parsed twice from the same text: javalang's parser
supplies the semantic view of every declaration (modifiers, types, parameters,
type parameters) and javalang's token stream is used to find the exact source
span of every class member. Untouched members keep their original text,
leading comments, Javadoc and same-line trailing comments, so rendering an
unmodified tree reproduces the input exactly. Synthesized members are rendered
from their structured fields.

The mutation primitives (``add``, ``add_after``, ``replace``, ``delete``,
``set_final``, ``add_import``) are what the builder generator is written
against.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import javalang

from innerbuilder.core.builder_utils import erase_type

logger = logging.getLogger(__name__)

DEFAULT_INDENT_UNIT = "    "

CRLF = "\r\n"

TYPE_KEYWORDS = frozenset({"class", "interface", "enum"})

# JLS recommended modifier order
MODIFIER_ORDER = (
    "public",
    "protected",
    "private",
    "abstract",
    "static",
    "final",
    "transient",
    "volatile",
    "synchronized",
    "native",
    "strictfp",
)
MODIFIER_KEYWORDS = frozenset(MODIFIER_ORDER)

_INDENT_RE = re.compile(r"[ \t]*")


class StructuralInconsistencyError(ValueError):
    """Raised when the member spans found in the token stream do not line up
    with the declarations reported by javalang."""


class MemberKind(Enum):
    """Kinds of class body members."""

    FIELD = "field"
    INITIALIZER = "initializer"
    CONSTRUCTOR = "constructor"
    METHOD = "method"
    CLASS = "class"
    TYPE = "type"  # nested interface, enum or annotation type


# Conventional member grouping used when appending without an anchor
_KIND_GROUP = {
    MemberKind.FIELD: 0,
    MemberKind.INITIALIZER: 0,
    MemberKind.CONSTRUCTOR: 1,
    MemberKind.METHOD: 2,
    MemberKind.CLASS: 3,
    MemberKind.TYPE: 3,
}


def order_modifiers(modifiers: Sequence[str]) -> List[str]:
    """Sort modifiers into JLS order, dropping duplicates."""
    return [modifier for modifier in MODIFIER_ORDER if modifier in modifiers]


def type_to_text(node: Any) -> str:
    """Render a javalang type node as Java source text.

    Args:
        node: A ``BasicType`` or ``ReferenceType`` node

    Returns:
        Type text such as ``int[]`` or ``java.util.Map<String, List<T>>``
    """
    dimensions = "[]" * len(getattr(node, "dimensions", None) or [])
    return _reference_to_text(node) + dimensions


def _reference_to_text(node: Any) -> str:
    text = node.name
    arguments = getattr(node, "arguments", None)
    if arguments:
        text += "<" + ", ".join(type_argument_to_text(arg) for arg in arguments) + ">"
    sub_type = getattr(node, "sub_type", None)
    if sub_type is not None:
        text += "." + _reference_to_text(sub_type)
    return text


def type_argument_to_text(argument: Any) -> str:
    """Render a javalang ``TypeArgument`` (including wildcards) as source text."""
    pattern = getattr(argument, "pattern_type", None)
    if argument.type is None:
        return "?"
    inner = type_to_text(argument.type)
    if pattern in ("extends", "super"):
        return f"? {pattern} {inner}"
    return inner


@dataclass(frozen=True)
class TypeRef:
    """A reference to a class type: dotted name plus the type arguments of its
    last segment."""

    name: str
    arguments: Tuple[str, ...] = ()

    @classmethod
    def from_node(cls, node: Any) -> "TypeRef":
        """Build a reference from a javalang ``ReferenceType``."""
        names = []
        arguments: Tuple[str, ...] = ()
        current = node
        while current is not None:
            names.append(current.name)
            arguments = tuple(
                type_argument_to_text(arg) for arg in (getattr(current, "arguments", None) or [])
            )
            current = getattr(current, "sub_type", None)
        return cls(".".join(names), arguments)

    def __str__(self) -> str:
        if self.arguments:
            return f"{self.name}<{', '.join(self.arguments)}>"
        return self.name


@dataclass(frozen=True)
class TypeParameter:
    """A class type parameter and its first bound, if any."""

    name: str
    bound: Optional[str] = None


@dataclass(frozen=True)
class ImportDecl:
    """A single import declaration."""

    path: str
    static: bool = False
    wildcard: bool = False


@dataclass
class Parameter:
    """A formal parameter of a method or constructor.

    Annotations are stored as (possibly qualified) names without the ``@``.
    """

    name: str
    type_text: str
    annotations: List[str] = field(default_factory=list)

    def render(self) -> str:
        """Render the parameter as ``@Ann Type name``."""
        return " ".join([*(f"@{annotation}" for annotation in self.annotations), self.type_text, self.name])


@dataclass
class Variable:
    """One variable of a field declaration (``int a, b;`` declares two)."""

    name: str
    type_text: str
    has_initializer: bool = False


class Member:
    """A member of a class body, either parsed from source or synthesized.

    Parsed members keep their verbatim text; the surrounding trivia is split
    into ``leading`` (whitespace and comments before the member), ``doc`` (its
    Javadoc comment), ``gap`` (between the Javadoc and the declaration) and
    ``trailing`` (a comment on the same line after the declaration).
    """

    kind: MemberKind

    def __init__(self, name: str, modifiers: Sequence[str] = (), synthesized: bool = True) -> None:
        self.name = name
        self.modifiers: List[str] = list(modifiers)
        self.synthesized = synthesized
        self.parent: Optional["ClassDecl"] = None
        self.leading = ""
        self.doc: Optional[str] = None
        self.doc_lines: Optional[List[str]] = None
        self.gap = ""
        self.trailing = ""
        self.source_range: Optional[Tuple[int, int]] = None
        self._text: Optional[str] = None

    def has_modifier(self, modifier: str) -> bool:
        """Check whether the member carries a modifier keyword."""
        return modifier in self.modifiers

    @property
    def indent(self) -> str:
        """Indentation of the member's first line."""
        if self.parent is not None:
            return self.parent.member_indent
        return ""

    @property
    def indent_unit(self) -> str:
        """Indentation unit of the enclosing compilation unit."""
        if self.parent is not None:
            return self.parent.indent_unit
        return DEFAULT_INDENT_UNIT

    def contains(self, offset: int) -> bool:
        """Check whether an offset of the original source lies inside this member."""
        if self.source_range is None:
            return False
        start, end = self.source_range
        return start <= offset < end

    def set_doc_lines(self, lines: Optional[Sequence[str]]) -> None:
        """Replace the Javadoc comment with generated lines (None removes it)."""
        self.doc = None
        self.doc_lines = list(lines) if lines is not None else None
        self.gap = ""

    def render(self) -> str:
        """Render Javadoc and declaration; surrounding trivia is not included."""
        declaration = self._text if self._text is not None else self.render_declaration()
        if self.doc is not None:
            return self.doc + self.gap + declaration
        if self.doc_lines is not None:
            return self._render_doc_lines() + "\n" + self.indent + declaration
        return declaration

    def render_declaration(self) -> str:
        """Render a synthesized declaration (no Javadoc, no trivia)."""
        raise NotImplementedError

    def _render_doc_lines(self) -> str:
        indent = self.indent
        lines = ["/**"]
        for line in self.doc_lines or []:
            lines.append(f"{indent} * {line}" if line else f"{indent} *")
        lines.append(f"{indent} */")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


class OpaqueMember(Member):
    """A member kept verbatim: initializer blocks and nested non-class types."""

    def __init__(self, kind: MemberKind, name: str, text: str) -> None:
        super().__init__(name, synthesized=False)
        self.kind = kind
        self._text = text


class FieldDecl(Member):
    """A field declaration with one or more variables."""

    kind = MemberKind.FIELD

    def __init__(
        self, variables: Sequence[Variable], type_text: str, modifiers: Sequence[str] = ()
    ) -> None:
        super().__init__(variables[0].name, modifiers)
        self.variables: List[Variable] = list(variables)
        self.type_text = type_text
        self._type_offset = 0
        self._modifier_offsets: Dict[str, int] = {}
        self._variable_spans: Dict[str, Tuple[int, int]] = {}
        self._origin: Optional[int] = None

    @property
    def names(self) -> List[str]:
        """Names of all variables declared by this field."""
        return [variable.name for variable in self.variables]

    def variable(self, name: str) -> Optional[Variable]:
        """Return the variable with the given name, if declared here."""
        for variable in self.variables:
            if variable.name == name:
                return variable
        return None

    def set_final(self, final: bool) -> None:
        """Add or remove the ``final`` modifier."""
        if final == self.has_modifier("final"):
            return
        if final:
            self.modifiers = order_modifiers([*self.modifiers, "final"])
            if self._text is not None:
                self._splice(self._type_offset, self._type_offset, "final ")
        else:
            self.modifiers = [modifier for modifier in self.modifiers if modifier != "final"]
            if self._text is not None and "final" in self._modifier_offsets:
                start = self._modifier_offsets.pop("final")
                end = start + len("final")
                while end < len(self._text) and self._text[end].isspace():
                    end += 1
                self._splice(start, end, "")

    def variable_contains(self, name: str, offset: int) -> bool:
        """Check whether an offset of the original source lies inside one
        variable of this declaration.

        The modifiers and type count as part of the first variable and each
        separator as part of the variable before it.
        """
        if not self.contains(offset):
            return False
        if self._origin is None or name not in self._variable_spans:
            return True
        starts = sorted(start for start, _ in self._variable_spans.values())
        index = starts.index(self._variable_spans[name][0])
        position = offset - self._origin
        if index > 0 and position < starts[index]:
            return False
        return index + 1 == len(starts) or position < starts[index + 1]

    def remove_variable(self, name: str) -> bool:
        """Remove one variable from a multi-variable declaration.

        Returns:
            True if the declaration has no variables left and must be deleted
        """
        remaining = [variable for variable in self.variables if variable.name != name]
        if not remaining:
            return True
        if self._text is not None and name in self._variable_spans:
            ordered = sorted(self._variable_spans.items(), key=lambda item: item[1][0])
            index = [entry[0] for entry in ordered].index(name)
            start, end = ordered[index][1]
            if index + 1 < len(ordered):
                end = ordered[index + 1][1][0]
            else:
                start = ordered[index - 1][1][1]
            del self._variable_spans[name]
            self._splice(start, end, "")
        self.variables = remaining
        self.name = remaining[0].name
        return False

    def render_declaration(self) -> str:
        names = ", ".join(variable.name for variable in self.variables)
        return " ".join([*self.modifiers, self.type_text, names]) + ";"

    def _splice(self, start: int, end: int, replacement: str) -> None:
        assert self._text is not None
        self._text = self._text[:start] + replacement + self._text[end:]
        delta = len(replacement) - (end - start)

        def shift(offset: int) -> int:
            return offset + delta if offset >= end else offset

        self._type_offset = shift(self._type_offset)
        self._modifier_offsets = {key: shift(value) for key, value in self._modifier_offsets.items()}
        self._variable_spans = {
            key: (shift(span[0]), shift(span[1])) for key, span in self._variable_spans.items()
        }


class MethodDecl(Member):
    """A method, or a constructor when ``return_type`` is None."""

    def __init__(
        self,
        name: str,
        parameters: Sequence[Parameter] = (),
        return_type: Optional[str] = None,
        modifiers: Sequence[str] = (),
        annotations: Sequence[str] = (),
        body: Sequence[str] = (),
    ) -> None:
        super().__init__(name, modifiers)
        self.parameters: List[Parameter] = list(parameters)
        self.return_type = return_type
        self.annotations: List[str] = list(annotations)
        self.body: List[str] = list(body)

    @property
    def kind(self) -> MemberKind:  # type: ignore[override]
        return MemberKind.CONSTRUCTOR if self.return_type is None else MemberKind.METHOD

    @property
    def is_constructor(self) -> bool:
        return self.return_type is None

    def render_declaration(self) -> str:
        indent = self.indent
        parameters = ", ".join(parameter.render() for parameter in self.parameters)
        head = [*self.modifiers]
        if self.return_type is not None:
            head.append(self.return_type)
        head.append(f"{self.name}({parameters})")
        if self.body:
            inner = indent + self.indent_unit
            block = " {\n" + "".join(f"{inner}{statement}\n" for statement in self.body) + indent + "}"
        else:
            block = " {\n" + indent + "}"
        lines = [f"@{annotation}" for annotation in self.annotations]
        lines.append(" ".join(head) + block)
        return ("\n" + indent).join(lines)


class ClassDecl(Member):
    """A class declaration and its ordered body members."""

    kind = MemberKind.CLASS

    def __init__(
        self,
        name: str,
        modifiers: Sequence[str] = (),
        type_parameters: Sequence[TypeParameter] = (),
        superclass: Optional[TypeRef] = None,
    ) -> None:
        super().__init__(name, modifiers)
        self.type_parameters: List[TypeParameter] = list(type_parameters)
        self.superclass = superclass
        self.members: List[Member] = []
        self._unit: Optional["CompilationUnit"] = None
        self._header: Optional[str] = None
        self._trailer: Optional[str] = None
        self._own_indent = ""
        self._declaration_start: Optional[int] = None
        self._member_indent: Optional[str] = None

    # -- navigation -------------------------------------------------------

    @property
    def unit(self) -> Optional["CompilationUnit"]:
        """The compilation unit that (transitively) contains this class."""
        if self.parent is not None:
            return self.parent.unit
        return self._unit

    @property
    def is_static(self) -> bool:
        return self.has_modifier("static")

    @property
    def is_abstract(self) -> bool:
        return self.has_modifier("abstract")

    @property
    def qualified_name(self) -> str:
        """Name qualified by enclosing classes, e.g. ``Outer.Inner``."""
        if self.parent is not None:
            return f"{self.parent.qualified_name}.{self.name}"
        return self.name

    def top_level(self) -> "ClassDecl":
        """Return the outermost class enclosing this one."""
        current = self
        while current.parent is not None:
            current = current.parent
        return current

    def fields(self) -> List[FieldDecl]:
        return [member for member in self.members if isinstance(member, FieldDecl)]

    def methods(self) -> List[MethodDecl]:
        return [
            member
            for member in self.members
            if isinstance(member, MethodDecl) and not member.is_constructor
        ]

    def constructors(self) -> List[MethodDecl]:
        return [
            member for member in self.members if isinstance(member, MethodDecl) and member.is_constructor
        ]

    def inner_classes(self) -> List["ClassDecl"]:
        return [member for member in self.members if isinstance(member, ClassDecl)]

    def find_inner_class(self, name: str) -> Optional["ClassDecl"]:
        """Find a directly nested class by name."""
        for inner in self.inner_classes():
            if inner.name == name:
                return inner
        return None

    def find_nested_type(self, name: str) -> Optional[Member]:
        """Find a directly nested class, interface, enum or annotation type by name."""
        for member in self.members:
            if member.kind in (MemberKind.CLASS, MemberKind.TYPE) and member.name == name:
                return member
        return None

    def find_field(self, name: str) -> Optional[FieldDecl]:
        """Find the field declaration declaring a variable with the given name."""
        for declaration in self.fields():
            if declaration.variable(name) is not None:
                return declaration
        return None

    def class_at(self, offset: int) -> Optional["ClassDecl"]:
        """Return the innermost class (this one or a nested one) containing an offset."""
        if not self.contains(offset):
            return None
        for inner in self.inner_classes():
            found = inner.class_at(offset)
            if found is not None:
                return found
        return self

    # -- formatting -------------------------------------------------------

    @property
    def indent(self) -> str:
        if self.parent is not None:
            return self.parent.member_indent
        return self._own_indent

    @property
    def indent_unit(self) -> str:
        unit = self.unit
        return unit.indent_unit if unit is not None else DEFAULT_INDENT_UNIT

    @property
    def member_indent(self) -> str:
        """Indentation used for members of this class."""
        if self._member_indent is not None and len(self._member_indent) > len(self.indent):
            return self._member_indent
        return self.indent + self.indent_unit

    @property
    def trailer(self) -> str:
        """Text between the last member and the closing brace."""
        if self._trailer is not None:
            return self._trailer
        return "\n" + self.indent

    @trailer.setter
    def trailer(self, value: str) -> None:
        self._trailer = value

    def leading_for(self, previous: Optional[Member], member: Member) -> str:
        """Canonical whitespace separating a member from the one before it."""
        if previous is None:
            return "\n" + self.member_indent
        if previous.kind is MemberKind.FIELD and member.kind is MemberKind.FIELD:
            return "\n" + self.member_indent
        return "\n\n" + self.member_indent

    def render_declaration(self) -> str:
        if self._header is not None:
            header = self._header
        else:
            header = " ".join([*self.modifiers, "class", self.name]) + " {"
        body = "".join(member.leading + member.render() + member.trailing for member in self.members)
        return header + body + self.trailer + "}"

    # -- mutation ---------------------------------------------------------

    def add(self, member: Member) -> Member:
        """Append a member, keeping fields, constructors, methods and nested
        types grouped in that order."""
        group = _KIND_GROUP[member.kind]
        index = 0
        for position, existing in enumerate(self.members):
            if _KIND_GROUP[existing.kind] <= group:
                index = position + 1
        return self._insert(index, member)

    def add_after(self, member: Member, anchor: Member) -> Member:
        """Insert a member immediately after an existing one."""
        return self._insert(self._index_of(anchor) + 1, member)

    def replace(self, old: Member, new: Member) -> Member:
        """Replace a member in place, keeping the surrounding whitespace."""
        index = self._index_of(old)
        new.parent = self
        new.leading = old.leading
        new.trailing = old.trailing
        self.members[index] = new
        old.parent = None
        return new

    def delete(self, member: Member) -> None:
        """Remove a member from the body."""
        index = self._index_of(member)
        del self.members[index]
        member.parent = None
        if index < len(self.members):
            following = self.members[index]
            if not following.leading.strip():
                previous = self.members[index - 1] if index > 0 else None
                following.leading = self.leading_for(previous, following)

    def delete_variable(self, declaration: FieldDecl, name: str) -> None:
        """Remove one variable of a field declaration, deleting the declaration
        when it was the only one."""
        if declaration.remove_variable(name):
            self.delete(declaration)

    def _insert(self, index: int, member: Member) -> Member:
        member.parent = self
        previous = self.members[index - 1] if index > 0 else None
        member.leading = self.leading_for(previous, member)
        member.trailing = ""
        self.members.insert(index, member)
        if index + 1 < len(self.members):
            following = self.members[index + 1]
            if not following.leading.strip():
                following.leading = self.leading_for(member, following)
        return member

    def _index_of(self, member: Member) -> int:
        for index, existing in enumerate(self.members):
            if existing is member:
                return index
        raise ValueError(f"{member!r} is not a member of class {self.name}")


class CompilationUnit:
    """A parsed ``.java`` file: package, imports and top-level types."""

    def __init__(
        self,
        source: str,
        path: Optional[Path],
        package: Optional[str],
        imports: Sequence[ImportDecl],
        import_offset: int,
        import_anchor: str,
    ) -> None:
        self.source = source
        self.path = path
        self.package = package
        self.imports: List[ImportDecl] = list(imports)
        self.types: List[Member] = []
        self.indent_unit = DEFAULT_INDENT_UNIT
        self.line_separator = "\n"
        self._import_offset = import_offset
        self._import_anchor = import_anchor
        self._added_imports: List[str] = []

    def classes(self) -> Iterator[ClassDecl]:
        """Iterate over all class declarations, outer classes first."""
        pending = [member for member in self.types if isinstance(member, ClassDecl)]
        while pending:
            current = pending.pop(0)
            yield current
            pending[0:0] = current.inner_classes()

    def find_class(self, qualified_name: str) -> Optional[ClassDecl]:
        """Find a class by name, e.g. ``Point`` or ``Outer.Inner``."""
        for declaration in self.classes():
            if declaration.qualified_name == qualified_name:
                return declaration
        return None

    def class_at(self, offset: int) -> Optional[ClassDecl]:
        """Return the innermost class whose source range contains the offset."""
        for member in self.types:
            if isinstance(member, ClassDecl):
                found = member.class_at(offset)
                if found is not None:
                    return found
        return None

    def offset_of(self, line: int, column: int = 1) -> int:
        """Convert a 1-based line and column into a source offset."""
        if line < 1:
            raise ValueError(f"Invalid line number: {line}")
        lines = self.source.splitlines(keepends=True)
        if line > len(lines):
            raise ValueError(f"Line {line} is beyond the end of the file ({len(lines)} lines)")
        return sum(len(text) for text in lines[: line - 1]) + max(column, 1) - 1

    # -- imports ----------------------------------------------------------

    def imports_type(self, qualified_name: str) -> bool:
        """Check whether a type is visible by its simple name through imports
        or the current package."""
        package, _, _ = qualified_name.rpartition(".")
        if package and package == self.package:
            return True
        for declaration in self.imports:
            if declaration.static:
                continue
            if declaration.wildcard and declaration.path == package:
                return True
            if not declaration.wildcard and declaration.path == qualified_name:
                return True
        return qualified_name in self._added_imports

    def claims_simple_name(self, simple_name: str, qualified_name: str) -> bool:
        """Check whether a different import or a declared type already uses a
        simple name."""
        for declaration in self.imports:
            if declaration.static or declaration.wildcard:
                continue
            if declaration.path.rpartition(".")[2] == simple_name and declaration.path != qualified_name:
                return True
        for added in self._added_imports:
            if added.rpartition(".")[2] == simple_name and added != qualified_name:
                return True
        return any(declaration.name == simple_name for declaration in self.classes())

    def add_import(self, qualified_name: str) -> None:
        """Add a single-type import unless the type is already imported."""
        if not self.imports_type(qualified_name):
            logger.debug("Adding import %s", qualified_name)
            self._added_imports.append(qualified_name)

    def candidate_names(self, type_text: str) -> List[str]:
        """Fully-qualified names a (possibly simple) type name may refer to.

        Resolution goes through single-type imports first, then on-demand
        imports and the current package.
        """
        name = erase_type(type_text)
        if "." in name:
            return [name]
        head = name
        for declaration in self.imports:
            if not declaration.static and not declaration.wildcard:
                if declaration.path.rpartition(".")[2] == head:
                    return [declaration.path]
        candidates = [
            f"{declaration.path}.{head}"
            for declaration in self.imports
            if declaration.wildcard and not declaration.static
        ]
        candidates.append(f"{self.package}.{head}" if self.package else head)
        return candidates

    # -- rendering --------------------------------------------------------

    def render(self) -> str:
        """Render the unit, splicing regenerated classes into the original text."""
        text = self.source
        for member in reversed(self.types):
            if isinstance(member, ClassDecl) and member.source_range is not None:
                start, end = member.source_range
                if member._declaration_start is not None:
                    start = member._declaration_start
                text = text[:start] + member.render_declaration() + text[end:]
        if self._added_imports:
            lines = "\n".join(f"import {name};" for name in self._added_imports)
            if self._import_anchor == "import":
                insertion = "\n" + lines
            elif self._import_anchor == "package":
                insertion = "\n\n" + lines
            else:
                insertion = lines + "\n\n"
            offset = self._import_offset
            text = text[:offset] + insertion + text[offset:]
        return self._with_line_separator(text)

    @property
    def original_text(self) -> str:
        """The source as read, with its own line separators."""
        return self._with_line_separator(self.source)

    def _with_line_separator(self, text: str) -> str:
        if self.line_separator == "\n":
            return text
        return text.replace("\n", self.line_separator)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Token:
    value: str
    start: int
    is_identifier: bool

    @property
    def end(self) -> int:
        return self.start + len(self.value)


def parse_file(path: Path) -> CompilationUnit:
    """Parse a ``.java`` file into a declaration tree, keeping its line separators."""
    with path.open(encoding="utf-8", newline="") as f:
        return parse_source(f.read(), path)


def parse_source(source: str, path: Optional[Path] = None) -> CompilationUnit:
    """Parse Java source text into a declaration tree.

    Args:
        source: Java source code
        path: Optional path the source was read from

    Returns:
        The parsed compilation unit

    Raises:
        ValueError: If the source is not valid Java
        StructuralInconsistencyError: If member spans cannot be matched with
            the parsed declarations
    """
    location = str(path) if path is not None else "<source>"
    line_separator = detect_line_separator(source)
    if line_separator != "\n":
        source = source.replace(line_separator, "\n")
    try:
        raw_tokens = list(javalang.tokenizer.tokenize(source))
        tree = javalang.parse.parse(source)
    except javalang.parser.JavaSyntaxError as e:
        description = getattr(e, "description", None) or repr(e)
        raise ValueError(f"Java syntax error in {location}: {description}") from e
    except javalang.tokenizer.LexerError as e:
        raise ValueError(f"Java syntax error in {location}: {e}") from e
    tokens = _locate_tokens(source, raw_tokens, location)
    unit = _TreeBuilder(source, tokens).build(tree, path)
    unit.line_separator = line_separator
    return unit


def detect_line_separator(source: str) -> str:
    """Return ``\\r\\n`` when every line of the source ends with it, else ``\\n``.

    Files with mixed line endings are kept as they are and generated code
    uses ``\\n``.
    """
    if CRLF in source and source.count(CRLF) == source.count("\n"):
        return CRLF
    return "\n"


def _skip_trivia(source: str, position: int) -> int:
    length = len(source)
    while position < length:
        if source[position].isspace():
            position += 1
        elif source.startswith("//", position):
            newline = source.find("\n", position)
            position = length if newline == -1 else newline
        elif source.startswith("/*", position):
            close = source.find("*/", position + 2)
            position = length if close == -1 else close + 2
        else:
            break
    return position


def _locate_tokens(source: str, raw_tokens: Sequence[Any], location: str) -> List[_Token]:
    tokens = []
    position = 0
    for raw in raw_tokens:
        position = _skip_trivia(source, position)
        if not source.startswith(raw.value, position):
            raise StructuralInconsistencyError(
                f"Cannot locate token {raw.value!r} in {location} "
                "(unicode escapes outside literals are not supported)"
            )
        tokens.append(
            _Token(raw.value, position, isinstance(raw, javalang.tokenizer.Identifier))
        )
        position += len(raw.value)
    return tokens


def _split_doc(trivia: str) -> Tuple[str, Optional[str], str]:
    """Split the trivia before a member into (leading, javadoc, gap)."""
    position = 0
    doc_span: Optional[Tuple[int, int]] = None
    length = len(trivia)
    while position < length:
        if trivia[position].isspace():
            position += 1
        elif trivia.startswith("//", position):
            newline = trivia.find("\n", position)
            position = length if newline == -1 else newline
            doc_span = None
        elif trivia.startswith("/*", position):
            close = trivia.find("*/", position + 2)
            end = length if close == -1 else close + 2
            is_doc = trivia.startswith("/**", position) and not trivia.startswith("/**/", position)
            doc_span = (position, end) if is_doc else None
            position = end
        else:
            break
    if doc_span is None or trivia[doc_span[1] :].strip():
        return trivia, None, ""
    start, end = doc_span
    return trivia[:start], trivia[start:end], trivia[end:]


def _split_trailing(trivia: str) -> Tuple[str, str]:
    """Split a same-line comment off the start of the trivia after a member."""
    match = re.match(r"[ \t]*(//[^\n]*|/\*(?:(?!\*/)[^\n])*\*/[ \t]*(?=\n|$))", trivia)
    if match is None:
        return "", trivia
    return trivia[: match.end()], trivia[match.end() :]


_DECLARATION_NODES = (
    javalang.tree.FieldDeclaration,
    javalang.tree.MethodDeclaration,
    javalang.tree.ConstructorDeclaration,
    javalang.tree.TypeDeclaration,
)


class _TreeBuilder:
    """Builds the declaration tree from located tokens and the javalang tree."""

    def __init__(self, source: str, tokens: List[_Token]) -> None:
        self.source = source
        self.tokens = tokens
        self._indent_unit: Optional[str] = None

    def build(self, tree: Any, path: Optional[Path]) -> CompilationUnit:
        index = 0
        count = len(self.tokens)
        import_offset = 0
        import_anchor = "start"
        while index < count and self.tokens[index].value in ("package", "import", ";"):
            if self.tokens[index].value == ";":
                index += 1
                continue
            anchor = self.tokens[index].value
            end = self._find_value(index, ";")
            import_offset = self.tokens[end].end
            import_anchor = anchor
            index = end + 1

        package = tree.package.name if getattr(tree, "package", None) else None
        imports = [
            ImportDecl(declaration.path, bool(declaration.static), bool(declaration.wildcard))
            for declaration in (tree.imports or [])
        ]
        unit = CompilationUnit(self.source, path, package, imports, import_offset, import_anchor)

        ranges = self._split_members(index, count)
        nodes = [node for node in (tree.types or []) if isinstance(node, javalang.tree.TypeDeclaration)]
        if len(ranges) != len(nodes):
            raise StructuralInconsistencyError(
                f"Found {len(ranges)} top-level declarations but the parser reported {len(nodes)}"
            )
        previous_end = import_offset
        for (start, end), node in zip(ranges, nodes):
            member = self._build_member(start, end, node)
            trivia = self.source[previous_end : self.tokens[start].start]
            leading, doc, gap = _split_doc(trivia)
            member.leading, member.doc, member.gap = leading, doc, gap
            member.source_range = (
                self.tokens[start].start - (len(doc) + len(gap) if doc else 0),
                self.tokens[end - 1].end,
            )
            if isinstance(member, ClassDecl):
                member._unit = unit
                member._own_indent = self._line_indent(self.tokens[start].start)
                member._declaration_start = self.tokens[start].start
            unit.types.append(member)
            previous_end = self.tokens[end - 1].end
        unit.indent_unit = self._indent_unit or DEFAULT_INDENT_UNIT
        return unit

    # -- token scanning ---------------------------------------------------

    def _find_value(self, index: int, value: str) -> int:
        while index < len(self.tokens) and self.tokens[index].value != value:
            index += 1
        if index >= len(self.tokens):
            raise StructuralInconsistencyError(f"Expected {value!r} before end of file")
        return index

    def _matching(self, index: int, opening: str, closing: str) -> int:
        depth = 0
        for position in range(index, len(self.tokens)):
            value = self.tokens[position].value
            if value == opening:
                depth += 1
            elif value == closing:
                depth -= 1
                if depth == 0:
                    return position
        raise StructuralInconsistencyError(f"Unbalanced {opening!r} in source")

    def _split_members(self, start: int, end: int) -> List[Tuple[int, int]]:
        ranges = []
        index = start
        while index < end:
            if self.tokens[index].value == ";":
                index += 1
                continue
            member_end = self._member_end(index, end)
            ranges.append((index, member_end))
            index = member_end
        return ranges

    def _member_end(self, index: int, end: int) -> int:
        depth = 0
        assigned = False
        while index < end:
            value = self.tokens[index].value
            if value in ("(", "["):
                depth += 1
            elif value in (")", "]"):
                depth -= 1
            elif value == "{":
                close = self._matching(index, "{", "}")
                if assigned or depth > 0:
                    index = close + 1
                    continue
                return close + 1
            elif value == ";" and depth == 0:
                return index + 1
            elif value == "=" and depth == 0:
                assigned = True
            index += 1
        return end

    def _skip_modifiers(self, index: int, end: int) -> int:
        while index < end:
            value = self.tokens[index].value
            if value == "@" and index + 1 < end and self.tokens[index + 1].value != "interface":
                index += 2
                while index + 1 < end and self.tokens[index].value == ".":
                    index += 2
                if index < end and self.tokens[index].value == "(":
                    index = self._matching(index, "(", ")") + 1
            elif value in MODIFIER_KEYWORDS:
                index += 1
            else:
                break
        return index

    def _line_indent(self, offset: int) -> str:
        line_start = self.source.rfind("\n", 0, offset) + 1
        match = _INDENT_RE.match(self.source, line_start)
        return match.group(0) if match else ""

    # -- members ----------------------------------------------------------

    def _build_member(self, start: int, end: int, node: Any) -> Member:
        text = self.source[self.tokens[start].start : self.tokens[end - 1].end]
        if isinstance(node, javalang.tree.ClassDeclaration):
            return self._build_class(start, end, node)
        if isinstance(node, javalang.tree.TypeDeclaration):
            return OpaqueMember(MemberKind.TYPE, node.name, text)
        if isinstance(node, javalang.tree.FieldDeclaration):
            return self._build_field(start, end, node, text)
        parameters = [
            Parameter(
                parameter.name,
                type_to_text(parameter.type) + ("..." if getattr(parameter, "varargs", False) else ""),
            )
            for parameter in (node.parameters or [])
        ]
        return_type: Optional[str] = None
        if isinstance(node, javalang.tree.MethodDeclaration):
            return_type = type_to_text(node.return_type) if node.return_type is not None else "void"
        method = MethodDecl(
            node.name, parameters, return_type, order_modifiers(sorted(node.modifiers or ()))
        )
        method.synthesized = False
        method._text = text
        return method

    def _build_field(self, start: int, end: int, node: Any, text: str) -> FieldDecl:
        base_type = type_to_text(node.type)
        variables = [
            Variable(
                declarator.name,
                base_type + "[]" * len(getattr(declarator, "dimensions", None) or []),
                declarator.initializer is not None,
            )
            for declarator in node.declarators
        ]
        declaration = FieldDecl(variables, base_type, order_modifiers(sorted(node.modifiers or ())))
        declaration.synthesized = False
        declaration._text = text
        origin = self.tokens[start].start
        declaration._origin = origin
        type_index = self._skip_modifiers(start, end)
        declaration._type_offset = self.tokens[type_index].start - origin
        for position in range(start, type_index):
            token = self.tokens[position]
            if token.value in MODIFIER_KEYWORDS:
                declaration._modifier_offsets[token.value] = token.start - origin
        declaration._variable_spans = {
            name: (first - origin, last - origin)
            for name, (first, last) in self._variable_spans(type_index, end, declaration.names).items()
        }
        return declaration

    def _is_declarator_start(self, index: int, end: int, name: str) -> bool:
        token = self.tokens[index]
        if not token.is_identifier or token.value != name:
            return False
        following = index + 1
        while following + 1 < end and self.tokens[following].value == "[":
            following += 2
        return following < end and self.tokens[following].value in ("=", ",", ";")

    def _variable_spans(
        self, type_index: int, end: int, names: Sequence[str]
    ) -> Dict[str, Tuple[int, int]]:
        """Locate each variable (name plus initializer) of a field declaration.

        A comma separates declarators only when the next declarator name
        follows it, so commas inside type arguments or initializers are not
        mistaken for separators.
        """
        spans: Dict[str, Tuple[int, int]] = {}
        index = type_index
        while index < end and not self._is_declarator_start(index, end, names[0]):
            index += 1
        for position, name in enumerate(names):
            variable_start = index
            following_name = names[position + 1] if position + 1 < len(names) else None
            while index < end:
                value = self.tokens[index].value
                if value == ";" and following_name is None:
                    break
                if (
                    value == ","
                    and following_name is not None
                    and self._is_declarator_start(index + 1, end, following_name)
                ):
                    break
                index += 1
            if variable_start >= end or index >= end:
                break
            spans[name] = (self.tokens[variable_start].start, self.tokens[index - 1].end)
            index += 1
        return spans

    def _build_class(self, start: int, end: int, node: Any) -> ClassDecl:
        type_parameters = []
        for parameter in getattr(node, "type_parameters", None) or []:
            bounds = getattr(parameter, "extends", None) or []
            type_parameters.append(
                TypeParameter(parameter.name, type_to_text(bounds[0]) if bounds else None)
            )
        superclass = TypeRef.from_node(node.extends) if node.extends is not None else None
        declaration = ClassDecl(
            node.name, order_modifiers(sorted(node.modifiers or ())), type_parameters, superclass
        )
        declaration.synthesized = False

        open_index = self._find_value(self._skip_modifiers(start, end), "{")
        close_index = end - 1
        declaration._header = self.source[self.tokens[start].start : self.tokens[open_index].end]

        ranges = self._split_members(open_index + 1, close_index)
        nodes = [member for member in (node.body or []) if isinstance(member, _DECLARATION_NODES)]
        members = []
        node_index = 0
        for member_start, member_end in ranges:
            first = self.tokens[self._skip_modifiers(member_start, member_end)].value
            if first == "{":
                text = self.source[self.tokens[member_start].start : self.tokens[member_end - 1].end]
                members.append(OpaqueMember(MemberKind.INITIALIZER, "", text))
                continue
            if node_index >= len(nodes):
                raise StructuralInconsistencyError(
                    f"Class {node.name}: more members in source than declarations reported by the parser"
                )
            member_node = nodes[node_index]
            node_index += 1
            is_type = first in TYPE_KEYWORDS or first == "@"
            if is_type != isinstance(member_node, javalang.tree.TypeDeclaration):
                raise StructuralInconsistencyError(
                    f"Class {node.name}: member order does not match parsed declarations"
                )
            members.append(self._build_member(member_start, member_end, member_node))
        if node_index != len(nodes):
            raise StructuralInconsistencyError(
                f"Class {node.name}: parser reported declarations missing from the source split"
            )

        previous_end = self.tokens[open_index].end
        previous: Optional[Member] = None
        for member, (member_start, member_end) in zip(members, ranges):
            trivia = self.source[previous_end : self.tokens[member_start].start]
            if previous is not None:
                previous.trailing, trivia = _split_trailing(trivia)
            leading, doc, gap = _split_doc(trivia)
            member.leading, member.doc, member.gap = leading, doc, gap
            doc_length = len(doc) + len(gap) if doc else 0
            member.source_range = (
                self.tokens[member_start].start - doc_length,
                self.tokens[member_end - 1].end,
            )
            member.parent = declaration
            previous_end = self.tokens[member_end - 1].end
            previous = member
        trailer = self.source[previous_end : self.tokens[close_index].start]
        if previous is not None:
            previous.trailing, trailer = _split_trailing(trailer)
        declaration._trailer = trailer
        declaration.members = members

        if members:
            first_start = self.tokens[ranges[0][0]].start
            member_indent = self._line_indent(first_start)
            declaration._member_indent = member_indent
            class_indent = self._line_indent(self.tokens[start].start)
            if self._indent_unit is None and len(member_indent) > len(class_indent):
                if member_indent.startswith(class_indent):
                    self._indent_unit = member_indent[len(class_indent) :]
        return declaration
