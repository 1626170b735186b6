"""Tests for the inner builder generator."""

import pytest

from innerbuilder.core.builder_generator import BUILDER_CLASS_NAME, InnerBuilderGenerator, generate
from innerbuilder.core.declarations import parse_source
from innerbuilder.core.field_collector import collect_fields
from innerbuilder.core.options import BuilderOption, GenerationOptions


def run(source: str, target: str, *options: BuilderOption, with_prefix: str | None = None):
    unit = parse_source(source)
    declaration = unit.find_class(target)
    members = collect_fields(declaration)
    builder = generate(declaration, members, GenerationOptions.of(*options, with_prefix=with_prefix))
    return unit, builder


def test_generate_without_target() -> None:
    assert generate(None, [], GenerationOptions()) is None


def test_builder_is_static_final_member_class() -> None:
    unit, builder = run("class A {\n    private int x;\n}\n", "A")
    assert builder.name == BUILDER_CLASS_NAME
    assert builder.modifiers == ["public", "static", "final"]
    assert builder.parent is unit.find_class("A")


def test_regeneration_is_stable() -> None:
    source = "class A {\n    private final String id;\n    private int x;\n}\n"
    all_options = (
        BuilderOption.NEW_BUILDER_METHOD,
        BuilderOption.COPY_CONSTRUCTOR,
        BuilderOption.JSR305_ANNOTATIONS,
        BuilderOption.WITH_JAVADOC,
        BuilderOption.FIELD_NAMES,
    )
    first, _ = run(source, "A", *all_options, with_prefix="with")
    once = first.render()
    second, _ = run(once, "A", *all_options, with_prefix="with")
    assert second.render() == once


@pytest.mark.parametrize("declaration", ["interface Builder {\n    }", "enum Builder { ON }"])
def test_nested_non_class_builder_is_rejected(declaration: str) -> None:
    source = f"public class P {{\n    int x;\n\n    {declaration}\n}}\n"
    with pytest.raises(ValueError, match="P.Builder already exists and is not a class"):
        run(source, "P")


def test_outer_constructor_is_regenerated() -> None:
    source = (
        "class A {\n"
        "    private int x;\n"
        "    private int y;\n\n"
        "    private A(Builder builder) {\n"
        "        x = builder.x;\n"
        "    }\n\n"
        "    public static final class Builder {\n"
        "        private int x;\n"
        "    }\n"
        "}\n"
    )
    unit, _ = run(source, "A")
    (constructor,) = unit.find_class("A").constructors()
    assert constructor.body == ["x = builder.x;", "y = builder.y;"]


def test_builder_fields_lose_final_with_final_setters() -> None:
    source = (
        "class A {\n"
        "    private final int x;\n\n"
        "    public static final class Builder {\n"
        "        private final int x;\n"
        "    }\n"
        "}\n"
    )
    unit, builder = run(source, "A", BuilderOption.FINAL_SETTERS)
    assert not builder.find_field("x").has_modifier("final")
    assert "        private int x;\n" in unit.render()


def test_setter_of_superclass_is_used() -> None:
    source = (
        "class Base<T> {\n"
        "    protected T value;\n\n"
        "    public void setValue(T value) {\n"
        "        this.value = value;\n"
        "    }\n"
        "}\n\n"
        "class A extends Base<String> {\n"
        "}\n"
    )
    unit, _ = run(source, "A")
    (constructor,) = unit.find_class("A").constructors()
    assert constructor.body == ["setValue(builder.value);"]


def test_private_setter_of_superclass_is_ignored() -> None:
    source = (
        "class Base {\n"
        "    protected int value;\n\n"
        "    private void setValue(int value) {\n"
        "        this.value = value;\n"
        "    }\n"
        "}\n\n"
        "class A extends Base {\n"
        "}\n"
    )
    unit, _ = run(source, "A")
    (constructor,) = unit.find_class("A").constructors()
    assert constructor.body == ["value = builder.value;"]


def test_setter_with_other_parameter_type_is_ignored() -> None:
    source = (
        "class A {\n"
        "    private long count;\n\n"
        "    public void setCount(int count) {\n"
        "        this.count = count;\n"
        "    }\n"
        "}\n"
    )
    unit, _ = run(source, "A")
    assert unit.find_class("A").constructors()[0].body == ["count = builder.count;"]


def test_copy_constructor_assigns_every_field() -> None:
    source = "class A {\n    private final int x;\n    private int y;\n}\n"
    unit, builder = run(source, "A", BuilderOption.COPY_CONSTRUCTOR)
    copy = builder.constructors()[1]
    assert [p.type_text for p in copy.parameters] == ["A"]
    assert copy.body == ["this.x = copy.x;", "this.y = copy.y;"]


def test_log_message(caplog) -> None:
    with caplog.at_level("INFO", logger="innerbuilder"):
        run("class A {\n    private int x;\n}\n", "A")
    assert "Generated builder for A with 1 field(s)" in caplog.text


def test_generator_creates_own_resolver() -> None:
    unit = parse_source("class A {\n    private int x;\n}\n")
    declaration = unit.find_class("A")
    generator = InnerBuilderGenerator(declaration, collect_fields(declaration), GenerationOptions())
    assert generator.resolver.unit is unit
