"""Generation of the inner Builder class and its merge into the target class.

The generator runs every step against the in-memory declaration tree; the
caller renders and writes the compilation unit only after ``run`` returned,
so a failure part-way leaves the source file untouched.

Steps, in order:

1. find or create the nested ``Builder`` class
2. (re)generate the private ``Target(Builder builder)`` constructor
3. mirror the selected fields in the builder
4. the optional static ``newBuilder(...)`` factory
5. the builder constructor taking the final fields
6. the optional copy constructor or static copy factory
7. one fluent setter per non-final field
8. ``build()``
9. shorten annotation references and reformat the builder
"""

import logging
from collections.abc import Sequence

from innerbuilder.core.builder_utils import (
    apply_substitution,
    are_types_presentable_equal,
    capitalize,
    setter_name,
)
from innerbuilder.core.class_resolver import ClassResolver
from innerbuilder.core.declarations import ClassDecl, Member, MethodDecl, Parameter
from innerbuilder.core.element_factory import (
    build_method_doc,
    builder_class_doc,
    create_assignment,
    create_call,
    create_class,
    create_constructor,
    create_method,
    create_new_instance,
    create_parameter,
    create_return,
    create_return_this,
    setter_doc,
)
from innerbuilder.core.field_collector import FieldMember, superclass_substitution
from innerbuilder.core.formatter import reformat_class, shorten_class_references
from innerbuilder.core.member_inserter import add_member, find_or_create_field
from innerbuilder.core.options import BuilderOption, GenerationOptions

logger = logging.getLogger(__name__)

BUILDER_CLASS_NAME = "Builder"
BUILDER_SETTER_DEFAULT_PARAMETER_NAME = "val"
BUILDER_SETTER_ALTERNATIVE_PARAMETER_NAME = "value"
BUILDER_PARAMETER_NAME = "builder"
COPY_PARAMETER_NAME = "copy"
NEW_BUILDER_METHOD_NAME = "newBuilder"
BUILD_METHOD_NAME = "build"
JSR305_NONNULL = "javax.annotation.Nonnull"
FINDBUGS_NONNULL = "edu.umd.cs.findbugs.annotations.NonNull"


class InnerBuilderGenerator:
    """Generates or updates the inner builder of one class.

    Args:
        target: The class receiving the builder
        selected_fields: Fields to build, in collected order
        options: Option snapshot for this generation pass
        resolver: Resolver used to find setters in superclasses
    """

    def __init__(
        self,
        target: ClassDecl,
        selected_fields: Sequence[FieldMember],
        options: GenerationOptions,
        resolver: ClassResolver | None = None,
    ) -> None:
        self.target = target
        self.selected_fields = list(selected_fields)
        self.options = options
        unit = target.unit
        if resolver is None:
            assert unit is not None
            resolver = ClassResolver(unit)
        self.resolver = resolver

    def run(self) -> ClassDecl:
        """Generate the builder into the target class.

        Returns:
            The builder class declaration
        """
        target = self.target
        builder = self._find_or_create_builder_class()

        add_member(target, None, self._generate_constructor(), replace=True)

        final_fields: list[FieldMember] = []
        non_final_fields: list[FieldMember] = []
        last_field: Member | None = None
        for member in self.selected_fields:
            builder_field = find_or_create_field(builder, member, last_field)
            is_final = member.is_final and BuilderOption.FINAL_SETTERS not in self.options
            builder_field.set_final(is_final)
            (final_fields if is_final else non_final_fields).append(member)
            last_field = builder_field

        if BuilderOption.NEW_BUILDER_METHOD in self.options:
            add_member(target, None, self._generate_new_builder_method(final_fields), replace=False)

        add_member(builder, None, self._generate_builder_constructor(final_fields), replace=False)

        if BuilderOption.COPY_CONSTRUCTOR in self.options:
            if BuilderOption.NEW_BUILDER_METHOD in self.options:
                copy_method = self._generate_copy_builder_method(final_fields, non_final_fields)
                add_member(target, None, copy_method, replace=True)
            else:
                copy_constructor = self._generate_copy_constructor(self.selected_fields)
                add_member(builder, None, copy_constructor, replace=True)

        last_added: Member | None = None
        for member in non_final_fields:
            last_added = add_member(builder, last_added, self._generate_setter(member), replace=False)

        add_member(builder, last_added, self._generate_build_method(), replace=False)

        unit = target.unit
        if unit is not None:
            shorten_class_references(unit, [target, builder])
        reformat_class(builder)
        logger.info(
            "Generated builder for %s with %d field(s)", target.qualified_name, len(self.selected_fields)
        )
        return builder

    # -- builder class ------------------------------------------------------

    def _find_or_create_builder_class(self) -> ClassDecl:
        existing = self.target.find_nested_type(BUILDER_CLASS_NAME)
        if isinstance(existing, ClassDecl):
            logger.debug("Reusing existing %s.%s", self.target.qualified_name, BUILDER_CLASS_NAME)
            return existing
        if existing is not None:
            raise ValueError(
                f"{self.target.qualified_name}.{BUILDER_CLASS_NAME} already exists and is not a class"
            )
        builder = create_class(BUILDER_CLASS_NAME, ["public", "static", "final"])
        if self._uses(BuilderOption.WITH_JAVADOC):
            builder.set_doc_lines(builder_class_doc(self.target.name))
        self.target.add(builder)
        return builder

    # -- generated members ----------------------------------------------------

    def _generate_constructor(self) -> MethodDecl:
        body = []
        for member in self.selected_fields:
            source = f"{BUILDER_PARAMETER_NAME}.{member.name}"
            setter = None if member.is_final else self._find_setter(member)
            if setter is None:
                body.append(create_assignment(member.name, source))
            else:
                body.append(create_call(setter.name, source))
        parameter = create_parameter(BUILDER_PARAMETER_NAME, BUILDER_CLASS_NAME)
        return create_constructor(self.target.name, [parameter], body, ["private"])

    def _generate_new_builder_method(self, final_fields: Sequence[FieldMember]) -> MethodDecl:
        parameters = [self._field_parameter(member) for member in final_fields]
        body = [create_return(create_new_instance(BUILDER_CLASS_NAME, [m.name for m in final_fields]))]
        return create_method(
            NEW_BUILDER_METHOD_NAME, BUILDER_CLASS_NAME, parameters, body, ["public", "static"]
        )

    def _generate_builder_constructor(self, final_fields: Sequence[FieldMember]) -> MethodDecl:
        parameters = [self._field_parameter(member) for member in final_fields]
        body = [create_assignment(f"this.{member.name}", member.name) for member in final_fields]
        visibility = "private" if self._uses(BuilderOption.NEW_BUILDER_METHOD) else "public"
        return create_constructor(BUILDER_CLASS_NAME, parameters, body, [visibility])

    def _generate_copy_builder_method(
        self, final_fields: Sequence[FieldMember], non_final_fields: Sequence[FieldMember]
    ) -> MethodDecl:
        arguments = [f"{COPY_PARAMETER_NAME}.{member.name}" for member in final_fields]
        body = [
            f"{BUILDER_CLASS_NAME} {BUILDER_PARAMETER_NAME} = "
            f"{create_new_instance(BUILDER_CLASS_NAME, arguments)};"
        ]
        body.extend(self._copy_assignments(non_final_fields, f"{BUILDER_PARAMETER_NAME}."))
        body.append(create_return(BUILDER_PARAMETER_NAME))
        return create_method(
            NEW_BUILDER_METHOD_NAME,
            BUILDER_CLASS_NAME,
            [self._copy_parameter()],
            body,
            ["public", "static"],
        )

    def _generate_copy_constructor(self, fields: Sequence[FieldMember]) -> MethodDecl:
        body = self._copy_assignments(fields, "this.")
        return create_constructor(BUILDER_CLASS_NAME, [self._copy_parameter()], body, ["public"])

    def _generate_setter(self, member: FieldMember) -> MethodDecl:
        field_name = member.name
        prefix = self.options.with_prefix
        method_name = f"{prefix}{capitalize(field_name)}" if prefix else field_name
        if self._uses(BuilderOption.FIELD_NAMES):
            parameter_name = field_name
            target = f"this.{field_name}"
        else:
            parameter_name = (
                BUILDER_SETTER_DEFAULT_PARAMETER_NAME
                if field_name != BUILDER_SETTER_DEFAULT_PARAMETER_NAME
                else BUILDER_SETTER_ALTERNATIVE_PARAMETER_NAME
            )
            target = field_name
        parameter = create_parameter(
            parameter_name, member.type_text, [] if member.is_primitive else self._nonnull_annotations()
        )
        setter = create_method(
            method_name,
            BUILDER_CLASS_NAME,
            [parameter],
            [create_assignment(target, parameter_name), create_return_this()],
            ["public"],
            self._nonnull_annotations(),
        )
        if self._uses(BuilderOption.WITH_JAVADOC):
            setter.set_doc_lines(setter_doc(field_name, parameter_name))
        return setter

    def _generate_build_method(self) -> MethodDecl:
        class_name = self.target.name
        build = create_method(
            BUILD_METHOD_NAME,
            class_name,
            [],
            [create_return(create_new_instance(class_name, ["this"]))],
            ["public"],
            self._nonnull_annotations(),
        )
        if self._uses(BuilderOption.WITH_JAVADOC):
            build.set_doc_lines(build_method_doc(class_name))
        return build

    # -- helpers ----------------------------------------------------------

    def _uses(self, option: BuilderOption) -> bool:
        return option in self.options

    def _nonnull_annotations(self) -> list[str]:
        annotations = []
        if self._uses(BuilderOption.JSR305_ANNOTATIONS):
            annotations.append(JSR305_NONNULL)
        if self._uses(BuilderOption.FINDBUGS_ANNOTATION):
            annotations.append(FINDBUGS_NONNULL)
        return annotations

    def _field_parameter(self, member: FieldMember) -> Parameter:
        annotations = [] if member.is_primitive else self._nonnull_annotations()
        return create_parameter(member.name, member.type_text, annotations)

    def _copy_parameter(self) -> Parameter:
        return create_parameter(COPY_PARAMETER_NAME, self.target.name, self._nonnull_annotations())

    def _copy_assignments(self, fields: Sequence[FieldMember], qualifier: str) -> list[str]:
        return [
            create_assignment(f"{qualifier}{member.name}", f"{COPY_PARAMETER_NAME}.{member.name}")
            for member in fields
        ]

    def _find_setter(self, member: FieldMember) -> MethodDecl | None:
        """Find a conventional one-argument setter for a field in the target
        class or its superclasses."""
        name = setter_name(member.name, member.type_text)
        substitution: dict[str, str] = {}
        current: ClassDecl | None = self.target
        visited = set()
        while current is not None and id(current) not in visited:
            visited.add(id(current))
            for method in current.methods():
                if method.name != name or len(method.parameters) != 1:
                    continue
                if current is not self.target and method.has_modifier("private"):
                    continue
                parameter_type = apply_substitution(method.parameters[0].type_text, substitution)
                if are_types_presentable_equal(parameter_type, member.type_text):
                    return method
            superclass = self.resolver.superclass(current)
            if superclass is None:
                break
            substitution = superclass_substitution(current, superclass, substitution)
            current = superclass
        return None


def generate(
    target: ClassDecl | None,
    selected_fields: Sequence[FieldMember],
    options: GenerationOptions,
    resolver: ClassResolver | None = None,
) -> ClassDecl | None:
    """Generate the inner builder of a class.

    Returns:
        The builder class, or None when there is no target class
    """
    if target is None:
        logger.info("No class to generate a builder for")
        return None
    return InnerBuilderGenerator(target, selected_fields, options, resolver).run()
