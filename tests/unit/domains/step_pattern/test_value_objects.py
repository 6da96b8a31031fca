"""Tests for step pattern value objects."""
import pytest

from bddmcp.domains.step_pattern import PatternCompiler, PlaceholderType


class TestPlaceholderType:
    def test_closed_set(self):
        assert PlaceholderType.names() == ("string", "int", "float", "word")

    def test_convert_int(self):
        assert PlaceholderType.INT.convert("+7") == 7

    def test_convert_string_strips_quotes(self):
        assert PlaceholderType.STRING.convert("'abc'") == "abc"

    def test_render_bool_rejected_for_int(self):
        with pytest.raises(ValueError):
            PlaceholderType.INT.render(True)

    def test_render_string_with_both_quotes_rejected(self):
        with pytest.raises(ValueError):
            PlaceholderType.STRING.render("""it's "quoted" """)


class TestStepPattern:
    def test_equal_templates_compare_equal(self):
        compiler = PatternCompiler()
        assert compiler.compile("I see {int}") == compiler.compile("I see {int}")

    def test_signature_ignores_escape_spelling(self):
        compiler = PatternCompiler()
        a = compiler.compile(r"a \{ b {int}")
        assert a.signature == ("L:a { b ", "P:int")

    def test_sample_text_matches_itself(self):
        pattern = PatternCompiler().compile("I send {int} {word} to {string} at {float}")
        assert pattern.match(pattern.sample_text()) is not None

    def test_str_is_template(self):
        assert str(PatternCompiler().compile("I log in")) == "I log in"

    def test_example_texts_fill_placeholders_from_vocabulary(self):
        pattern = PatternCompiler().compile("I {word} {int} times")
        texts = pattern.example_texts(["the 3 ", " items"])
        assert texts[0] == pattern.sample_text()
        assert "I items 3 times" in texts
        assert all(pattern.match(t) is not None for t in texts)

    def test_fills_only_capturable_tokens(self):
        assert PlaceholderType.INT.fills(["x", "42", "1"]) == ("1", "42")
        assert PlaceholderType.STRING.fills(["a b"]) == ('"sample"', '"a b"')
        assert PlaceholderType.WORD.fills(["a b", "c"]) == ("sample", "c")
