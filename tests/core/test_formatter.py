"""Tests for import shortening and builder reformatting."""

from innerbuilder.core.declarations import parse_source
from innerbuilder.core.element_factory import create_field, create_method, create_parameter
from innerbuilder.core.formatter import reformat_class, shorten_class_references, shorten_reference

NONNULL = "javax.annotation.Nonnull"


class TestShortenReference:
    """Tests for shorten_reference() function."""

    def test_adds_import_after_existing_imports(self) -> None:
        unit = parse_source("package p;\n\nimport java.util.List;\n\nclass A {\n}\n")
        assert shorten_reference(unit, NONNULL) == "Nonnull"
        assert unit.render() == (
            "package p;\n\nimport java.util.List;\nimport javax.annotation.Nonnull;\n\nclass A {\n}\n"
        )

    def test_adds_import_after_package(self) -> None:
        unit = parse_source("package p;\n\nclass A {\n}\n")
        shorten_reference(unit, NONNULL)
        assert unit.render() == "package p;\n\nimport javax.annotation.Nonnull;\n\nclass A {\n}\n"

    def test_adds_import_at_start(self) -> None:
        unit = parse_source("class A {\n}\n")
        shorten_reference(unit, NONNULL)
        assert unit.render() == "import javax.annotation.Nonnull;\n\nclass A {\n}\n"

    def test_already_imported(self) -> None:
        source = "import javax.annotation.*;\n\nclass A {\n}\n"
        unit = parse_source(source)
        assert shorten_reference(unit, NONNULL) == "Nonnull"
        assert unit.render() == source

    def test_same_package(self) -> None:
        unit = parse_source("package javax.annotation;\n\nclass A {\n}\n")
        assert shorten_reference(unit, NONNULL) == "Nonnull"

    def test_clashing_import_keeps_qualified_name(self) -> None:
        source = "import com.example.Nonnull;\n\nclass A {\n}\n"
        unit = parse_source(source)
        assert shorten_reference(unit, NONNULL) == NONNULL
        assert unit.render() == source

    def test_clashing_class_keeps_qualified_name(self) -> None:
        unit = parse_source("class A {\n    static class Nonnull {\n    }\n}\n")
        assert shorten_reference(unit, NONNULL) == NONNULL

    def test_import_is_added_once(self) -> None:
        unit = parse_source("class A {\n}\n")
        shorten_reference(unit, NONNULL)
        shorten_reference(unit, NONNULL)
        assert unit.render().count("import javax.annotation.Nonnull;") == 1


def test_shorten_class_references_only_touches_generated_members() -> None:
    source = "class A {\n    @javax.annotation.Nonnull\n    String name() {\n        return null;\n    }\n}\n"
    unit = parse_source(source)
    declaration = unit.find_class("A")
    generated = declaration.add(
        create_method("id", "String", [create_parameter("v", "String", [NONNULL])], [], ["public"], [NONNULL])
    )
    shorten_class_references(unit, [declaration])
    assert generated.annotations == ["Nonnull"]
    assert generated.parameters[0].annotations == ["Nonnull"]
    assert "    @javax.annotation.Nonnull\n    String name() {" in unit.render()


def test_reformat_class_normalizes_blank_lines() -> None:
    unit = parse_source(
        "class A {\n"
        "    static final class Builder {\n"
        "        private int a;\n\n\n"
        "        private int b;\n"
        "        // keep me\n"
        "        public Builder() {\n"
        "        }\n"
        "        public Builder a(int val) {\n"
        "            a = val;\n"
        "            return this;\n"
        "        }\n\n"
        "    }\n"
        "}\n"
    )
    builder = unit.find_class("A.Builder")
    builder.add(create_field("c", "int"))
    reformat_class(builder)
    assert unit.render() == (
        "class A {\n"
        "    static final class Builder {\n"
        "        private int a;\n"
        "        private int b;\n"
        "        private int c;\n"
        "        // keep me\n"
        "        public Builder() {\n"
        "        }\n\n"
        "        public Builder a(int val) {\n"
        "            a = val;\n"
        "            return this;\n"
        "        }\n"
        "    }\n"
        "}\n"
    )
