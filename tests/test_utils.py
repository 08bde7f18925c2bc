"""Tests for utility functions."""
import pytest

from foucault.utils import escape_like_pattern, sanitize_for_terminal


@pytest.mark.parametrize("text,expected", [
    ("Critique of Pure Reason", "Critique-of-Pure-Reason"),
    ("Hegel: Phenomenology", "Hegel-Phenomenology"),
    ("draft_note", "draft_note"),
    ("a/b\\c", "a-b-c"),
    ("???", ""),
    ("", ""),
])
def test_sanitize_for_terminal(text, expected):
    assert sanitize_for_terminal(text) == expected


def test_escape_like_pattern():
    assert escape_like_pattern("100% done") == "100\\% done"
    assert escape_like_pattern("draft_1") == "draft\\_1"
    assert escape_like_pattern("back\\slash") == "back\\\\slash"


def test_wildcards_match_literally(service):
    """LIKE wildcards in a search are literal characters."""
    service.create_note("100% sure")
    service.create_note("1000 ways")
    service.create_note("draft_1")
    service.create_note("draftX1")
    assert [s.name for s in service.search_notes_by_name("100%")] == ["100% sure"]
    assert [s.name for s in service.search_notes_by_name("draft_")] == ["draft_1"]
    service.create_tag("50%")
    service.create_tag("500")
    assert [t.name for t in service.search_tags("0%")] == ["50%"]
