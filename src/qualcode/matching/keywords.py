"""
Keyword extraction for pattern matching.

Text is lowercased, stripped of everything that is neither a word character
nor whitespace (Unicode-aware, so German umlauts and other extended Latin
letters survive), split on whitespace and filtered by length and a fixed
German/English stop-word list.
"""

import re
from typing import FrozenSet, Iterable, List, Optional

STOPWORDS: FrozenSet[str] = frozenset({
    # German
    'der', 'die', 'das', 'ein', 'eine', 'und', 'oder', 'aber', 'wenn',
    # English
    'the', 'a', 'an', 'and', 'or', 'but', 'if', 'is', 'are', 'was', 'were',
})

_NON_WORD = re.compile(r'[^\w\s]')


def build_stopwords(extra: Optional[Iterable[str]] = None) -> FrozenSet[str]:
    """Fixed stop-word list extended with caller-supplied words."""
    if not extra:
        return STOPWORDS
    return STOPWORDS | frozenset(word.lower() for word in extra)


def extract_keywords(text: str,
                     stopwords: FrozenSet[str] = STOPWORDS,
                     min_length: int = 3) -> List[str]:
    """
    Reduce text to its keyword tokens, keeping repeats.

    Args:
        text: Input text
        stopwords: Tokens to drop
        min_length: Shortest token kept

    Returns:
        Keyword list in text order
    """
    if not text:
        return []
    cleaned = _NON_WORD.sub('', text.lower())
    return [token for token in cleaned.split()
            if len(token) >= min_length and token not in stopwords]
