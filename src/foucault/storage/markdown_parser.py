"""Cross-reference extraction for markdown note bodies.

A cross-reference is a ``[[note name]]`` marker in the markdown text.
Markers inside fenced code blocks or inline code spans are literal text,
as are unterminated, empty, or multi-line markers.
"""
import logging
import re
from typing import Callable, Iterator, List, Tuple

logger = logging.getLogger(__name__)

# Opening or closing line of a fenced code block
FENCE_PATTERN = re.compile(r"^ {0,3}(`{3,}|~{3,})")
# Inline code span delimited by equal-length backtick runs
INLINE_CODE_PATTERN = re.compile(r"(?<!`)(`+)(?!`).*?(?<!`)\1(?!`)")
# Single-line [[target]] marker
REFERENCE_PATTERN = re.compile(r"\[\[([^\[\]\n]*)\]\]")


class MarkdownParser:
    """Finds and rewrites ``[[...]]`` cross-references in note bodies."""

    def extract_references(self, body: str) -> List[str]:
        """Return the referenced note names in order of first appearance.

        Targets are stripped of surrounding whitespace and deduplicated;
        empty markers are ignored.
        """
        seen = set()
        references = []
        for segment, is_code in self._segments(body or ""):
            if is_code:
                continue
            for match in REFERENCE_PATTERN.finditer(segment):
                target = match.group(1).strip()
                if target and target not in seen:
                    seen.add(target)
                    references.append(target)
        return references

    def rewrite_references(self, body: str, old_name: str, new_name: str) -> str:
        """Point every marker naming ``old_name`` at ``new_name`` instead.

        Code blocks and inline code are left untouched, as are all other
        markers.
        """
        def replace(match: re.Match) -> str:
            if match.group(1).strip() == old_name:
                return f"[[{new_name}]]"
            return match.group(0)

        return self._transform_text(body or "", lambda text: REFERENCE_PATTERN.sub(replace, text))

    def _transform_text(self, body: str, transform: Callable[[str], str]) -> str:
        return "".join(
            segment if is_code else transform(segment)
            for segment, is_code in self._segments(body)
        )

    def _segments(self, body: str) -> Iterator[Tuple[str, bool]]:
        """Split ``body`` into (text, is_code) pieces that concatenate back to it."""
        fence = None
        for line in body.splitlines(keepends=True):
            fence_match = FENCE_PATTERN.match(line)
            if fence is not None:
                # Closing fence must use the same character, at least as long
                if fence_match and fence_match.group(1)[0] == fence[0] \
                        and len(fence_match.group(1)) >= len(fence) \
                        and not line.strip().strip(fence[0]):
                    fence = None
                yield line, True
                continue
            if fence_match:
                fence = fence_match.group(1)
                yield line, True
                continue
            position = 0
            for code in INLINE_CODE_PATTERN.finditer(line):
                if code.start() > position:
                    yield line[position:code.start()], False
                yield code.group(0), True
                position = code.end()
            if position < len(line):
                yield line[position:], False
