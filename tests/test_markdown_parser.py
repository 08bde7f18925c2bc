"""Tests for cross-reference extraction and rewriting."""
import pytest

from foucault.storage.markdown_parser import MarkdownParser


@pytest.fixture
def parser():
    return MarkdownParser()


class TestExtractReferences:
    """Tests for MarkdownParser.extract_references."""

    def test_simple(self, parser):
        assert parser.extract_references("See [[Kant]] and [[Hegel]].") == ["Kant", "Hegel"]

    def test_deduplicated_in_order(self, parser):
        body = "[[B]] then [[A]] then [[B]] again and [[ A ]]"
        assert parser.extract_references(body) == ["B", "A"]

    def test_targets_stripped(self, parser):
        assert parser.extract_references("[[  Critique of Pure Reason ]]") == [
            "Critique of Pure Reason"
        ]

    @pytest.mark.parametrize("body", [
        "unterminated [[Kant",
        "empty [[]] marker",
        "blank [[   ]] marker",
        "spanning [[Ka\nnt]] lines",
        "",
    ])
    def test_malformed_ignored(self, parser, body):
        assert parser.extract_references(body) == []

    def test_unterminated_does_not_swallow_later_marker(self, parser):
        assert parser.extract_references("[[broken and [[Kant]]") == ["Kant"]

    def test_fenced_code_ignored(self, parser):
        body = "before [[A]]\n```python\nx = '[[B]]'\n```\nafter [[C]]\n"
        assert parser.extract_references(body) == ["A", "C"]

    def test_tilde_fence_and_unclosed_fence(self, parser):
        assert parser.extract_references("~~~\n[[A]]\n~~~\n[[B]]") == ["B"]
        assert parser.extract_references("```\n[[A]]\n") == []

    def test_inline_code_ignored(self, parser):
        body = "use `[[A]]` literally, but [[B]] is a link, ``[[C]]`` too"
        assert parser.extract_references(body) == ["B"]

    def test_none_body(self, parser):
        assert parser.extract_references(None) == []


class TestRewriteReferences:
    """Tests for MarkdownParser.rewrite_references."""

    def test_rewrites_matching_markers_only(self, parser):
        body = "[[Kant]] and [[ Kant ]] but not [[Kantian]]"
        assert parser.rewrite_references(body, "Kant", "Immanuel Kant") == (
            "[[Immanuel Kant]] and [[Immanuel Kant]] but not [[Kantian]]"
        )

    def test_code_left_untouched(self, parser):
        body = "[[Kant]]\n```\n[[Kant]]\n```\n`[[Kant]]`\n"
        assert parser.rewrite_references(body, "Kant", "K") == (
            "[[K]]\n```\n[[Kant]]\n```\n`[[Kant]]`\n"
        )

    def test_no_match_returns_same_text(self, parser):
        body = "nothing to see\nhere [[Hegel]]"
        assert parser.rewrite_references(body, "Kant", "K") == body
