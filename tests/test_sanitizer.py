"""Tests for the sanitizer pass list."""
from __future__ import annotations

import re

import pytest

from replycapture.sanitizer import SANITIZE_PASSES, SanitizePass, apply_pass, sanitize

PASSES = {sanitize_pass.name: sanitize_pass for sanitize_pass in SANITIZE_PASSES}


class TestPassOrder:
    def test_structural_passes_run_first(self) -> None:
        assert [sanitize_pass.name for sanitize_pass in SANITIZE_PASSES] == [
            "entity_metadata_objects",
            "turn_reference_arrays",
            "indexed_reference_remnants",
            "pair_arrays",
            "citation_markers",
            "bracket_quote_runs",
            "dangling_conjunction",
            "excess_newlines",
            "repeated_spaces",
        ]

    def test_bracket_collapse_alone_mangles_fragments(self) -> None:
        text = 'x ["turn0product1","Mouse"] y'
        assert apply_pass(text, PASSES["bracket_quote_runs"]) == 'x turn0product1","Mouse y'
        assert sanitize(text) == "x y"

    def test_pass_must_not_match_empty(self) -> None:
        with pytest.raises(ValueError, match="empty string"):
            SanitizePass("bad", re.compile(r"x*"))


class TestIndividualPasses:
    def test_entity_metadata_object(self) -> None:
        text = 'Picks:\n{"selections":[["turn0product1","Mouse"],["turn0product2","Pad"]]}\nEnjoy'
        assert apply_pass(text, PASSES["entity_metadata_objects"]) == "Picks:\n\nEnjoy"

    def test_entity_metadata_object_with_markers(self) -> None:
        text = 'Picks \ue200products\ue202{"selections":[["turn0product1","Mouse"]]}\ue201 done'
        assert apply_pass(text, PASSES["entity_metadata_objects"]) == "Picks  done"

    def test_turn_reference_array(self) -> None:
        text = 'Top pick: ["turn0product3","Wireless Mouse"] is great'
        assert apply_pass(text, PASSES["turn_reference_arrays"]) == "Top pick: is great"

    def test_indexed_reference_remnant(self) -> None:
        text = 'Try this: product3","Wireless Mouse"], today'
        assert apply_pass(text, PASSES["indexed_reference_remnants"]) == "Try this: today"

    def test_pair_array(self) -> None:
        text = 'Note ["key","value"], end'
        assert apply_pass(text, PASSES["pair_arrays"]) == "Note end"

    def test_citation_markers(self) -> None:
        text = "Fact.\ue200cite\ue202turn0search1\ue201 More【4†source】."
        assert apply_pass(text, PASSES["citation_markers"]) == "Fact. More."

    def test_bracket_quote_runs(self) -> None:
        assert apply_pass('a ]]"" b', PASSES["bracket_quote_runs"]) == "a  b"

    def test_single_quote_characters_survive(self) -> None:
        text = 'He said "hi" [1]'
        assert apply_pass(text, PASSES["bracket_quote_runs"]) == text

    def test_dangling_for_at_end(self) -> None:
        assert apply_pass("Great choices.\nFor", PASSES["dangling_conjunction"]) == "Great choices.\n"

    def test_dangling_for_before_newline(self) -> None:
        text = "Best picks For\nNext line"
        assert apply_pass(text, PASSES["dangling_conjunction"]) == "Best picks\nNext line"

    def test_for_inside_sentence_is_kept(self) -> None:
        text = "For desks, pick a mouse."
        assert apply_pass(text, PASSES["dangling_conjunction"]) == text

    def test_excess_newlines(self) -> None:
        assert apply_pass("a\n\n\n\nb", PASSES["excess_newlines"]) == "a\n\nb"

    def test_repeated_spaces(self) -> None:
        assert apply_pass("a    b", PASSES["repeated_spaces"]) == "a b"


SAMPLES = [
    "",
    "Plain reply with nothing to strip.",
    '  padded\n\n\n\ntext   here  ',
    'Top pick: ["turn0product3","Wireless Mouse"] is great',
    'Try this: product3","Wireless Mouse"] today For For',
    'x ""[[ y ]] "" z\n\n\n\n\nFor',
    "Fact.\ue200cite\ue202turn0search1\ue201 More【4†source】.",
    'Picks \ue200products\ue202{"selections":[["turn0product1","Mouse"]]}\ue201 done\nFor',
    'nested ["a","b"]["c","d"] ["turn1x"] product1","y"]"]',
]


class TestSanitize:
    def test_none_and_empty(self) -> None:
        assert sanitize(None) == ""
        assert sanitize("") == ""

    def test_trims(self) -> None:
        assert sanitize("  \n hello \n ") == "hello"

    def test_full_cleanup(self) -> None:
        text = (
            "Two good options:\n\n"
            '\ue200products\ue202{"selections":[["turn0product1","Logi Mouse"]]}\ue201\n\n'
            'The mouse ["turn0product1","https://shop.example.com/mouse"] is quiet.'
            "\ue200cite\ue202turn0search2\ue201\n\n\n\nFor"
        )
        assert sanitize(text) == "Two good options:\n\nThe mouse is quiet."

    def test_repeated_dangling_words(self) -> None:
        assert sanitize("Try these For For") == "Try these"

    def test_literal_string_pair_is_removed(self) -> None:
        # Heuristic: a genuine two-string JSON array in prose is lost too.
        assert sanitize('Use x = ["a","b"] here') == "Use x = here"

    @pytest.mark.parametrize("text", SAMPLES)
    def test_idempotent(self, text: str) -> None:
        once = sanitize(text)
        assert sanitize(once) == once

    @pytest.mark.parametrize("text", SAMPLES)
    def test_never_grows(self, text: str) -> None:
        assert len(sanitize(text)) <= len(text)
