# -*- coding: utf-8 -*-
"""
Small text helpers shared by chunking, classification and the Q&A shortcut.
"""
import re
from typing import List, Set, Tuple

_WORD_RE = re.compile(r'\S+')
_TOKEN_RE = re.compile(r"[a-z0-9]+(?:'[a-z]+)?")

STOPWORDS = frozenset("""
a an and are as at be been but by can could did do does for from had has have how
i if in into is it its me my of on or our should so than that the their them then
there these they this to was we were what when where which who why will with would
you your
""".split())


def word_spans(text: str, start: int = 0, end: int = None) -> List[Tuple[int, int]]:
    """(start, end) character spans of whitespace-separated words in text[start:end]."""
    end = len(text) if end is None else end
    return [m.span() for m in _WORD_RE.finditer(text, start, end)]


def keywords(text: str) -> Set[str]:
    """Lowercased content words of text (stopwords removed)."""
    return {t for t in _TOKEN_RE.findall(text.lower()) if t not in STOPWORDS}


def keyword_overlap(question: str, query: str) -> float:
    """
    Share of the question's content words that also appear in the query.

    Returns 0.0 when the question has no content words.
    """
    question_words = keywords(question)
    if not question_words:
        return 0.0
    return len(question_words & keywords(query)) / len(question_words)
