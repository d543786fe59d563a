"""
Document segmentation into offset-addressed coding units.

Text is split on blank lines into paragraphs and every paragraph on terminal
punctuation followed by whitespace into sentences. Each segment keeps the
absolute character offsets of its stripped text in the source document.
"""

import re
from dataclasses import dataclass, field
from typing import Iterator, List, Tuple

_PARAGRAPH_BREAK = re.compile(r'\n\s*\n')
_SENTENCE_BREAK = re.compile(r'(?<=[.!?])\s+')


@dataclass(frozen=True)
class Segment:
    """A sentence-level slice of a document."""
    text: str
    start_offset: int
    end_offset: int
    keywords: Tuple[str, ...] = field(default=())

    @property
    def length(self) -> int:
        return self.end_offset - self.start_offset


def _pieces(text: str, pattern: re.Pattern, base: int) -> Iterator[Tuple[int, int]]:
    """Yield absolute (start, end) spans of the text between pattern matches."""
    position = 0
    for match in pattern.finditer(text):
        yield base + position, base + match.start()
        position = match.end()
    yield base + position, base + len(text)


def _strip_span(content: str, start: int, end: int) -> Tuple[int, int]:
    while start < end and content[start].isspace():
        start += 1
    while end > start and content[end - 1].isspace():
        end -= 1
    return start, end


def segment_document(content: str, min_length: int = 10) -> List[Segment]:
    """
    Split content into sentence segments with absolute offsets.

    Args:
        content: Full document text
        min_length: Segments shorter than this are not meaningful coding units

    Returns:
        Segments in document order, without keywords
    """
    if not content or not content.strip():
        return []

    segments = []
    for para_start, para_end in _pieces(content, _PARAGRAPH_BREAK, 0):
        paragraph = content[para_start:para_end]
        if not paragraph.strip():
            continue
        for start, end in _pieces(paragraph, _SENTENCE_BREAK, para_start):
            start, end = _strip_span(content, start, end)
            if end - start < min_length:
                continue
            segments.append(Segment(content[start:end], start, end))
    return segments
