"""Tests for step registry entities and value objects."""
import pytest

from bddmcp.domains.step_registry import (
    KeywordClass, SourceLocation, StepDefinition, split_keyword,
)


def _handler(ctx):
    return None


class TestStepDefinition:
    def test_create_captures_source_location(self):
        definition = StepDefinition.create("I log in", _handler)
        assert definition.declared_at is not None
        assert definition.declared_at.file.endswith("test_entities.py")
        assert definition.declared_at.function == "_handler"

    @pytest.mark.parametrize("timeout", [0, -5])
    def test_non_positive_timeout_rejected(self, timeout):
        with pytest.raises(ValueError):
            StepDefinition.create("I log in", _handler, timeout_ms=timeout)

    def test_non_integer_timeout_rejected(self):
        with pytest.raises(ValueError):
            StepDefinition.create("I log in", _handler, timeout_ms=1.5)

    def test_handler_must_be_callable(self):
        with pytest.raises(TypeError):
            StepDefinition.create("I log in", "not callable")

    def test_describe_names_keyword_and_location(self):
        definition = StepDefinition.create("I log in", _handler, keyword_class=KeywordClass.WHEN)
        assert definition.describe().startswith("When 'I log in' (")

    def test_to_dict(self):
        definition = StepDefinition.create("I wait {int} s", _handler, timeout_ms=500)
        data = definition.to_dict()
        assert data["placeholders"] == ["int"]
        assert data["timeout_ms"] == 500
        assert data["group"] == "common"


class TestSplitKeyword:
    @pytest.mark.parametrize("line,keyword,text", [
        ("Given I log in", KeywordClass.GIVEN, "I log in"),
        ("when I click", KeywordClass.WHEN, "I click"),
        ("  And the page loads ", KeywordClass.AND, "the page loads"),
        ("But nothing else", KeywordClass.BUT, "nothing else"),
        ("* I do it", KeywordClass.GENERIC, "I do it"),
        ("I do it", None, "I do it"),
        ("Thenceforth I wait", None, "Thenceforth I wait"),
    ])
    def test_split(self, line, keyword, text):
        assert split_keyword(line) == (keyword, text)


class TestSourceLocation:
    def test_builtin_has_no_location(self):
        assert SourceLocation.from_callable(len) is None

    def test_str(self):
        assert str(SourceLocation("steps.py", 12)) == "steps.py:12"
