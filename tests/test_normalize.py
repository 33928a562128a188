"""
Tests for name normalization.
"""

import pytest

from sponsormatch.normalize import (
    expand_abbreviations,
    normalize_name,
    normalize_text,
    remove_stop_words,
    remove_suffixes,
    strip_punctuation,
)


class TestNormalizeName:
    """Test the canonical matching form."""

    def test_strips_legal_suffix_and_punctuation(self):
        """Trailing legal suffixes and punctuation should be removed."""
        assert normalize_name("ACME CORP.") == "acme"
        assert normalize_name("Acme Corporation") == "acme"

    def test_strips_repeated_trailing_suffixes(self):
        """Several trailing suffixes should all be dropped."""
        assert normalize_name("Smith & Associates LLC") == "smith"
        assert normalize_name("Global Holdings Inc") == "global"

    def test_keeps_suffix_words_that_are_not_trailing(self):
        """Only trailing suffixes are removed."""
        assert normalize_name("Group Dynamics") == "group dynamics"

    def test_keeps_last_word_when_all_suffixes(self):
        """A name made only of suffixes should keep one word."""
        assert normalize_name("Holdings") == "holdings"

    def test_expands_abbreviations(self):
        """Known abbreviations should be expanded word by word."""
        assert normalize_name("Acme Mfg Mgmt") == "acme manufacturing management"

    def test_removes_stop_words(self):
        """Articles and prepositions should be dropped."""
        assert normalize_name("The Home Depot") == "home depot"
        assert normalize_name("Bank of America") == "bank america"

    def test_keeps_stop_words_when_nothing_else_remains(self):
        """A name of only stop-words should not be reduced to nothing."""
        assert normalize_name("The Of") == "the of"

    def test_underscores_are_punctuation(self):
        assert normalize_name("foo_bar") == "foo bar"

    @pytest.mark.parametrize("value", ["", "   ", None, 42, "!!!"])
    def test_empty_or_invalid_input(self, value):
        """Empty and non-string input should give an empty string."""
        assert normalize_name(value) == ""

    def test_expansion_exposing_a_suffix_is_settled(self):
        """An expanded word that is itself a trailing suffix is removed too."""
        assert normalize_name("Foo Corp The") == "foo"

    @pytest.mark.parametrize("name", [
        "ACME CORP.",
        "Foo Corp The",
        "Acme Inc Of",
        "Acme Res",
        "Acme Mfg",
        "The Inc",
        "Inc",
        "Johnson & Johnson",
        "International Business Machines Corp.",
        "  Über   Technologies, Inc. ",
    ])
    def test_idempotent(self, name):
        """Normalizing a normalized name should change nothing."""
        once = normalize_name(name)
        assert normalize_name(once) == once


class TestHelpers:
    """Test the individual normalization steps."""

    def test_normalize_text(self):
        assert normalize_text("  Acme   Corp ") == "acme corp"

    def test_strip_punctuation(self):
        assert strip_punctuation("  Acme,  Corp. ") == "acme corp"
        assert strip_punctuation("AT&T") == "at t"

    def test_strip_punctuation_non_string(self):
        assert strip_punctuation(None) == ""

    def test_remove_suffixes_does_not_mutate_input(self):
        words = ["acme", "inc"]
        assert remove_suffixes(words) == ["acme"]
        assert words == ["acme", "inc"]

    def test_expand_abbreviations(self):
        assert expand_abbreviations(["natl", "acme"]) == ["national", "acme"]

    def test_remove_stop_words(self):
        assert remove_stop_words(["the", "acme"]) == ["acme"]
        assert remove_stop_words(["the", "of"]) == ["the", "of"]
