"""Tests for field and option selection."""

from collections.abc import Callable

import click
import pytest

from innerbuilder.core.config import OptionStore
from innerbuilder.core.declarations import parse_source
from innerbuilder.core.field_collector import FieldMember, collect_fields
from innerbuilder.core.options import BuilderOption, GenerationOptions
from innerbuilder.core.selector import OPTIONS, select_by_name, select_fields_and_options


@pytest.fixture
def members() -> list[FieldMember]:
    unit = parse_source("class A {\n    private int x;\n    private String y;\n    private long z;\n}\n")
    collected = collect_fields(unit.find_class("A"))
    assert collected is not None
    return collected


def scripted(answers: list) -> Callable:
    remaining = iter(answers)

    def answer(*args, **kwargs):
        return next(remaining)

    return answer


class TestSelectByName:
    """Tests for select_by_name() function."""

    def test_keeps_collected_order(self, members) -> None:
        assert [m.name for m in select_by_name(members, ["z", "x"])] == ["x", "z"]

    def test_unknown_field(self, members) -> None:
        with pytest.raises(ValueError, match="Unknown field"):
            select_by_name(members, ["x", "missing"])


class TestSelectFieldsAndOptions:
    """Tests for select_fields_and_options() function."""

    def test_all_fields_by_default(self, members) -> None:
        assert select_fields_and_options(members, OptionStore()) == members

    def test_named_fields(self, members) -> None:
        selected = select_fields_and_options(members, OptionStore(), ["y"])
        assert [m.name for m in selected] == ["y"]

    def test_empty_selection(self, members) -> None:
        assert select_fields_and_options(members, OptionStore(), []) is None

    def test_no_members(self) -> None:
        assert select_fields_and_options([], OptionStore()) is None

    def test_interactive_selection_updates_store(self, members, monkeypatch) -> None:
        # one confirm per option, with-notation asks for its prefix as well
        confirms = [False, True, False, True, False, False, True, False]
        monkeypatch.setattr(click, "prompt", scripted(["1, z", "set"]))
        monkeypatch.setattr(click, "confirm", scripted(confirms))
        store = OptionStore()

        selected = select_fields_and_options(members, store, interactive=True)

        assert [m.name for m in selected] == ["x", "z"]
        options = GenerationOptions.from_store(store)
        assert set(options) == {
            BuilderOption.NEW_BUILDER_METHOD,
            BuilderOption.WITH_NOTATION,
            BuilderOption.WITH_JAVADOC,
        }
        assert options.with_prefix == "set"

    def test_interactive_selection_aborted(self, members, monkeypatch) -> None:
        def abort(*args, **kwargs):
            raise click.Abort()

        monkeypatch.setattr(click, "prompt", abort)
        assert select_fields_and_options(members, OptionStore(), interactive=True) is None

    def test_interactive_unknown_field(self, members, monkeypatch) -> None:
        monkeypatch.setattr(click, "prompt", scripted(["x, nope"]))
        with pytest.raises(click.BadParameter):
            select_fields_and_options(members, OptionStore(), interactive=True)


def test_every_option_has_a_caption() -> None:
    assert [entry.option for entry in OPTIONS] == list(BuilderOption)
