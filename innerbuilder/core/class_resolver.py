"""Resolution of class names to declarations across a source tree."""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from innerbuilder.core.declarations import ClassDecl, CompilationUnit, parse_file

logger = logging.getLogger(__name__)


class ClassResolver:
    """Resolves class names relative to a class declaration.

    Names are looked up through the enclosing class scopes and the top-level
    types of the declaring file, then through other ``.java`` files of the
    source tree (the same directory for classes of the same package, the
    package path below the source root for imported or qualified names).
    Parsed files are cached for the lifetime of the resolver.
    """

    def __init__(self, unit: CompilationUnit) -> None:
        self.unit = unit
        self._units: Dict[Path, Optional[CompilationUnit]] = {}
        if unit.path is not None:
            self._units[unit.path.resolve()] = unit

    def resolve(self, name: str, context: ClassDecl) -> Optional[ClassDecl]:
        """Resolve a simple, dotted or fully-qualified class name.

        Args:
            name: The name as written in source, type arguments removed
            context: The class in which the name appears

        Returns:
            The resolved class declaration, or None when the class is not
            part of the parsed source tree
        """
        unit = context.unit or self.unit
        if unit.package and name.startswith(unit.package + "."):
            name = name[len(unit.package) + 1 :]
        head, *rest = name.split(".")

        found = self._resolve_in_scopes(head, context) or self._resolve_in_unit(head, unit)
        if found is not None:
            return _descend(found, rest)
        found = self._resolve_external(head, rest, unit)
        if found is None:
            logger.debug("Could not resolve class %s from %s", name, context.qualified_name)
        return found

    def superclass(self, declaration: ClassDecl) -> Optional[ClassDecl]:
        """Return the resolved superclass of a class, if it is part of the source tree."""
        if declaration.superclass is None:
            return None
        # the superclass name is resolved from the scope enclosing the class
        context = declaration.parent or declaration
        return self.resolve(declaration.superclass.name, context)

    def is_subclass(self, declaration: ClassDecl, ancestor: ClassDecl) -> bool:
        """Check whether ``ancestor`` is a (transitive) superclass of ``declaration``."""
        seen = set()
        current = self.superclass(declaration)
        while current is not None and id(current) not in seen:
            if current is ancestor:
                return True
            seen.add(id(current))
            current = self.superclass(current)
        return False

    def _resolve_in_scopes(self, name: str, context: ClassDecl) -> Optional[ClassDecl]:
        scope: Optional[ClassDecl] = context
        while scope is not None:
            inner = scope.find_inner_class(name)
            if inner is not None:
                return inner
            if scope.name == name:
                return scope
            scope = scope.parent
        return None

    def _resolve_in_unit(self, name: str, unit: CompilationUnit) -> Optional[ClassDecl]:
        for member in unit.types:
            if isinstance(member, ClassDecl) and member.name == name:
                return member
        return None

    def _resolve_external(self, head: str, rest: List[str], unit: CompilationUnit) -> Optional[ClassDecl]:
        if unit.path is None:
            return None
        if rest and head[:1].islower():
            # fully-qualified name of a class in another package
            qualified = [head, *rest]
            for split in range(1, len(qualified)):
                found = self._load_type(unit, ".".join(qualified[:split]), qualified[split])
                if found is not None:
                    return _descend(found, qualified[split + 1 :])
            return None
        for candidate in unit.candidate_names(head):
            package, _, simple_name = candidate.rpartition(".")
            found = self._load_type(unit, package, simple_name)
            if found is not None:
                return _descend(found, rest)
        return None

    def _load_type(self, unit: CompilationUnit, package: str, name: str) -> Optional[ClassDecl]:
        directory = _package_directory(unit, package)
        if directory is None:
            return None
        path = (directory / f"{name}.java").resolve()
        if path not in self._units:
            self._units[path] = self._parse(path)
        loaded = self._units[path]
        if loaded is None:
            return None
        return self._resolve_in_unit(name, loaded)

    def _parse(self, path: Path) -> Optional[CompilationUnit]:
        if not path.is_file():
            return None
        try:
            return parse_file(path)
        except ValueError as e:
            logger.warning("Skipping %s while resolving classes: %s", path, e)
            return None


def _descend(declaration: ClassDecl, names: List[str]) -> Optional[ClassDecl]:
    current: Optional[ClassDecl] = declaration
    for name in names:
        if current is None:
            return None
        current = current.find_inner_class(name)
    return current


def _package_directory(unit: CompilationUnit, package: str) -> Optional[Path]:
    """Directory holding the classes of a package, relative to a unit's file."""
    assert unit.path is not None
    directory = unit.path.resolve().parent
    if package == (unit.package or ""):
        return directory
    segments = unit.package.split(".") if unit.package else []
    if segments and list(directory.parts[-len(segments) :]) != segments:
        # the file does not live in its package directory
        return None
    root = directory.parents[len(segments) - 1] if segments else directory
    return root.joinpath(*package.split(".")) if package else root
