"""Tests for the pattern compiler."""
import pytest

from bddmcp.domains.shared.errors import PatternError
from bddmcp.domains.step_pattern import (
    LiteralSegment, PatternCompiler, PlaceholderSegment, PlaceholderType,
)


@pytest.fixture
def compiler():
    return PatternCompiler()


# ── compile ──────────────────────────────────────────────────────────


class TestCompile:
    def test_segments_in_order(self, compiler):
        pattern = compiler.compile("I add {int} items to {string}")
        assert pattern.segments == (
            LiteralSegment("I add "),
            PlaceholderSegment(PlaceholderType.INT),
            LiteralSegment(" items to "),
            PlaceholderSegment(PlaceholderType.STRING),
        )

    def test_literal_only_template(self, compiler):
        pattern = compiler.compile("I am logged in")
        assert pattern.placeholder_types == ()
        assert pattern.segments == (LiteralSegment("I am logged in"),)

    def test_compiled_once_per_template(self, compiler):
        assert compiler.compile("I wait {int} seconds") is compiler.compile("I wait {int} seconds")

    def test_unknown_placeholder_rejected(self, compiler):
        with pytest.raises(PatternError, match="unknown placeholder"):
            compiler.compile("I pick {color}")

    def test_unclosed_brace_rejected(self, compiler):
        with pytest.raises(PatternError, match="unclosed"):
            compiler.compile("I enter {string")

    def test_stray_closing_brace_rejected(self, compiler):
        with pytest.raises(PatternError, match="unescaped"):
            compiler.compile("I enter string}")

    def test_nested_brace_rejected(self, compiler):
        with pytest.raises(PatternError):
            compiler.compile("I enter {{int}}")

    def test_empty_template_rejected(self, compiler):
        with pytest.raises(PatternError):
            compiler.compile("   ")

    def test_escaped_braces_are_literal(self, compiler):
        pattern = compiler.compile(r"the payload is \{\} with {int} keys")
        assert pattern.placeholder_types == (PlaceholderType.INT,)
        values = compiler.match(pattern, "the payload is {} with 3 keys")
        assert [v.value for v in values] == [3]

    def test_pattern_error_carries_position(self, compiler):
        with pytest.raises(PatternError) as info:
            compiler.compile("abc {nope}")
        assert info.value.position == 4
        assert info.value.template == "abc {nope}"

    def test_regex_metacharacters_in_literal(self, compiler):
        pattern = compiler.compile("the total (with tax) is {float}?")
        values = compiler.match(pattern, "the total (with tax) is 12.50?")
        assert values[0].value == 12.5


# ── match ────────────────────────────────────────────────────────────


class TestMatch:
    def test_int_extraction(self, compiler):
        pattern = compiler.compile("I have {int} apples")
        values = compiler.match(pattern, "I have -42 apples")
        assert values[0].type == PlaceholderType.INT
        assert values[0].value == -42
        assert values[0].raw == "-42"

    def test_int_rejects_decimal(self, compiler):
        pattern = compiler.compile("I have {int} apples")
        assert compiler.match(pattern, "I have 4.5 apples") is None

    def test_int_rejects_words(self, compiler):
        pattern = compiler.compile("I have {int} apples")
        assert compiler.match(pattern, "I have many apples") is None

    @pytest.mark.parametrize("raw,expected", [
        ("3", 3.0), ("3.25", 3.25), ("+0.5", 0.5), ("-.5", -0.5), ("7.", 7.0),
    ])
    def test_float_forms(self, compiler, raw, expected):
        pattern = compiler.compile("the price is {float}")
        values = compiler.match(pattern, f"the price is {raw}")
        assert values[0].value == pytest.approx(expected)

    def test_string_double_quoted(self, compiler):
        pattern = compiler.compile("I type {string}")
        values = compiler.match(pattern, 'I type "hello world"')
        assert values[0].value == "hello world"
        assert values[0].raw == '"hello world"'

    def test_string_single_quoted(self, compiler):
        pattern = compiler.compile("I type {string}")
        assert compiler.match(pattern, "I type 'it works'")[0].value == "it works"

    def test_string_empty(self, compiler):
        pattern = compiler.compile("I type {string}")
        assert compiler.match(pattern, 'I type ""')[0].value == ""

    def test_string_requires_quotes(self, compiler):
        pattern = compiler.compile("I type {string}")
        assert compiler.match(pattern, "I type hello") is None

    def test_word_single_token(self, compiler):
        pattern = compiler.compile("I open the {word} page")
        assert compiler.match(pattern, "I open the checkout page")[0].value == "checkout"
        assert compiler.match(pattern, "I open the check out page") is None

    def test_anchored_match_rejects_prefix_and_suffix(self, compiler):
        pattern = compiler.compile("I wait {int} seconds")
        assert compiler.match(pattern, "then I wait 5 seconds") is None
        assert compiler.match(pattern, "I wait 5 seconds please") is None

    def test_literal_pattern_match_returns_empty_tuple(self, compiler):
        pattern = compiler.compile("I am logged in")
        assert compiler.match(pattern, "I am logged in") == ()
        assert compiler.match(pattern, "I am logged out") is None

    def test_multiple_placeholders(self, compiler):
        pattern = compiler.compile("I transfer {float} from {word} to {string}")
        values = compiler.match(pattern, 'I transfer 10.5 from savings to "Main Account"')
        assert [v.value for v in values] == [10.5, "savings", "Main Account"]


# ── round trip ───────────────────────────────────────────────────────


class TestRoundTrip:
    @pytest.mark.parametrize("template,values", [
        ("I have {int} items", [0]),
        ("I have {int} items", [-17]),
        ("the price is {float} euro", [19.99]),
        ("I type {string} into {word}", ["John's order", "search"]),
        ("I type {string}", ['say "hi"']),
        ("{word} sends {int} messages to {string}", ["alice", 3, "bob"]),
        ("I am logged in", []),
    ])
    def test_render_then_match_returns_values(self, compiler, template, values):
        pattern = compiler.compile(template)
        text = pattern.render(values)
        matched = compiler.match(pattern, text)
        assert matched is not None
        assert [v.value for v in matched] == values

    def test_render_rejects_wrong_arity(self, compiler):
        pattern = compiler.compile("I have {int} items")
        with pytest.raises(ValueError):
            pattern.render([1, 2])

    def test_render_rejects_word_with_space(self, compiler):
        pattern = compiler.compile("I open {word}")
        with pytest.raises(ValueError):
            pattern.render(["two words"])
