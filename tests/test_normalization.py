"""Tests for partymark.normalization."""
from partymark.normalization import name_key, normalize_text, scrub_name, strip_quotes


class TestNormalizeText:
    def test_line_endings(self) -> None:
        assert normalize_text("a\r\nb\rc") == "a\nb\nc"

    def test_collapses_horizontal_whitespace(self) -> None:
        assert normalize_text("  Acme   Inc.\t\t(the Company)  ") == "Acme Inc. (the Company)"

    def test_keeps_newlines(self) -> None:
        assert normalize_text("line one  \n  line two") == "line one \n line two"

    def test_nbsp_collapsed(self) -> None:
        assert normalize_text("Acme\u00a0\u00a0Inc") == "Acme Inc"

    def test_empty(self) -> None:
        assert normalize_text("") == ""
        assert normalize_text("   \r\n  ") == ""


class TestScrubName:
    def test_strips_between_and_punctuation(self) -> None:
        assert scrub_name('between "Acme Inc",') == "Acme Inc"

    def test_strips_by_and_between(self) -> None:
        assert scrub_name("by and between Beta LLC") == "Beta LLC"

    def test_collapses_spaces(self) -> None:
        assert scrub_name("Acme  Holdings") == "Acme Holdings"

    def test_may_return_empty(self) -> None:
        assert scrub_name(" ,; ") == ""


class TestHelpers:
    def test_strip_curly_quotes(self) -> None:
        assert strip_quotes("“Acme”") == "Acme"

    def test_strip_only_one_quote_each_side(self) -> None:
        assert strip_quotes("''Acme''") == "'Acme'"

    def test_name_key(self) -> None:
        assert name_key("  Acme   INC ") == "acme inc"
