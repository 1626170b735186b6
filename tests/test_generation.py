"""
Tests for inner builder generation.

This module runs the generate-builder command against Java fixtures and
compares the edited files with the expected output.
"""

from innerbuilder.core.options import BuilderOption
from tests.conftest import BuilderTestBase


class TestDefaults(BuilderTestBase):
    """Generation with all options disabled."""

    fixture_category = "generation/defaults"

    def test_point(self) -> None:
        """Add a builder with one setter per field."""
        self.generate(exact=True, target="Point")

    def test_idempotent(self) -> None:
        """Regenerating an up-to-date builder leaves the file unchanged."""
        self.generate(exact=True, target="Point")

    def test_qualified_builder_reference(self) -> None:
        """A constructor taking ``Point.Builder`` is replaced, not duplicated."""
        self.generate(exact=True, target="Point")

    def test_rerun_with_added_field(self) -> None:
        """A new field gets its builder field and setter after the previous ones."""
        self.generate(exact=True, target="Point")

    def test_keeps_customized_setter(self) -> None:
        """An existing setter with the generated signature is not overwritten."""
        self.generate(target="Point")

    def test_recreates_field_with_changed_type(self) -> None:
        """A builder field whose type no longer matches is recreated."""
        self.generate(target="Counter")

    def test_uses_existing_setter(self) -> None:
        """The builder constructor calls conventional setters of the target class."""
        self.generate(target="Account")

    def test_nested_target(self) -> None:
        """Generate the builder of a nested class."""
        self.generate(exact=True, target="Outer.Inner")

    def test_preserves_comments(self) -> None:
        """Comments, Javadoc and unrelated members survive generation unchanged."""
        self.generate(exact=True, target="Polygon")

    def test_field_named_val(self) -> None:
        """A field named like the setter parameter gets the alternative parameter name."""
        self.generate(target="Reading")


class TestOptions(BuilderTestBase):
    """Generation with individual options enabled."""

    fixture_category = "generation/options"

    def test_with_notation(self) -> None:
        """Prefix setter names with 'with'."""
        self.generate(target="Person", options={BuilderOption.WITH_NOTATION: True})

    def test_custom_with_prefix(self) -> None:
        """Use a custom setter prefix."""
        self.generate(target="Person", options={BuilderOption.WITH_NOTATION: "set"})

    def test_field_names(self) -> None:
        """Name setter parameters after their fields."""
        self.generate(target="Person", options={BuilderOption.FIELD_NAMES: True})

    def test_final_fields(self) -> None:
        """Final fields become builder constructor parameters."""
        self.generate(target="Money")

    def test_final_setters(self) -> None:
        """Final fields get setters instead of constructor parameters."""
        self.generate(target="Money", options={BuilderOption.FINAL_SETTERS: True})

    def test_new_builder_method(self) -> None:
        """Add a static factory and hide the builder constructor."""
        self.generate(target="Money", options={BuilderOption.NEW_BUILDER_METHOD: True})

    def test_copy_constructor(self) -> None:
        """Add a builder copy constructor."""
        self.generate(target="Money", options={BuilderOption.COPY_CONSTRUCTOR: True})

    def test_copy_with_factory(self) -> None:
        """With the factory enabled, copying goes through a static method."""
        self.generate(
            target="Money",
            options={BuilderOption.NEW_BUILDER_METHOD: True, BuilderOption.COPY_CONSTRUCTOR: True},
        )

    def test_jsr305_annotations(self) -> None:
        """Annotate setters, build() and reference parameters with @Nonnull."""
        self.generate(target="Person", options={BuilderOption.JSR305_ANNOTATIONS: True})

    def test_findbugs_with_existing_import(self) -> None:
        """Reuse an existing import of the Findbugs annotation."""
        self.generate(
            target="Tag",
            options={BuilderOption.FINDBUGS_ANNOTATION: True, BuilderOption.COPY_CONSTRUCTOR: True},
        )

    def test_javadoc(self) -> None:
        """Document the builder class, setters and build()."""
        self.generate(exact=True, target="Person", options={BuilderOption.WITH_JAVADOC: True})


class TestInheritance(BuilderTestBase):
    """Generation collecting fields of superclasses."""

    fixture_category = "generation/inheritance"

    def test_superclass_in_sibling_file(self) -> None:
        """Collect accessible non-final fields of a superclass declared in another file."""
        self.generate(target_file="Circle.java", target="Circle")

    def test_generic_superclass(self) -> None:
        """Substitute the type arguments of a generic superclass."""
        self.generate(target="User")
