# -*- coding: utf-8 -*-
"""
Deterministic chunk classification.

A chunk is:
- qa when an explicit question marker ("Q:", "Question:") is followed by an
  answer marker ("A:", "Answer:"); question and answer text are extracted
- procedure when it has ordered step markers ("1.", "2)", "Step 3") or
  several sentences opening with an imperative verb
- fact otherwise
"""
import re
from dataclasses import dataclass
from typing import Optional

from docgraph.utils.dataclasses import NodeType

QUESTION_MARKER = re.compile(r'\b(?:Q|[Qq]uestion)\s*:')
ANSWER_MARKER = re.compile(r'\b(?:A|[Aa]nswer)\s*:')

_STEP_MARKER = re.compile(
    r'(?:^|(?<=\s))(?:(\d{1,2})[.)]|[Ss]tep\s+(\d{1,2})\s*[:.)-]?)\s+(?=\S)',
    re.MULTILINE,
)
_BULLET_OR_NUMBER = re.compile(r'^[\s*\-•>#]*(?:\d{1,2}[.)]\s*)?')
_SENTENCE_SPLIT = re.compile(r'(?<=[.!?])\s+|\n+')

IMPERATIVE_VERBS = frozenset("""
add allow apply check choose click close configure confirm connect copy create
delete disable download enable enter fill find follow go install log make navigate
note open paste press remove replace restart run save scroll select send set sign
start stop submit switch tap turn type update upload use verify visit wait
""".split())

MIN_STEP_MARKERS = 2
MIN_IMPERATIVE_SENTENCES = 2


@dataclass
class Classification:
    """Result of classify_chunk()."""
    chunk_type: NodeType
    question: Optional[str] = None
    answer: Optional[str] = None


def extract_qa(text: str) -> Optional[Classification]:
    """First question/answer pair in text, or None."""
    for q_match in QUESTION_MARKER.finditer(text):
        a_match = ANSWER_MARKER.search(text, q_match.end())
        if a_match is None:
            return None
        next_q = QUESTION_MARKER.search(text, q_match.end(), a_match.start())
        if next_q is not None:
            # Unanswered question, try the next one
            continue
        following = QUESTION_MARKER.search(text, a_match.end())
        answer_end = following.start() if following else len(text)
        question = text[q_match.end():a_match.start()].strip()
        answer = text[a_match.end():answer_end].strip()
        if question and answer:
            return Classification(NodeType.QA, question=question, answer=answer)
    return None


def count_step_markers(text: str) -> int:
    """
    Number of step markers that belong to an ordered run.

    A marker counts when its number has a predecessor or successor among
    the markers found (1 and 2, 3 and 4, ...).
    """
    numbers = []
    for match in _STEP_MARKER.finditer(text):
        numbers.append(int(match.group(1) or match.group(2)))
    found = set(numbers)
    return sum(1 for n in numbers if n - 1 in found or n + 1 in found)


def count_imperative_sentences(text: str) -> int:
    count = 0
    for sentence in _SENTENCE_SPLIT.split(text):
        sentence = _BULLET_OR_NUMBER.sub('', sentence)
        first = sentence.split(maxsplit=1)[0] if sentence.strip() else ''
        if first.strip('.,:;!?"\'()').lower() in IMPERATIVE_VERBS:
            count += 1
    return count


def classify_chunk(text: str) -> Classification:
    """Classify one chunk of text."""
    qa = extract_qa(text)
    if qa is not None:
        return qa
    if count_step_markers(text) >= MIN_STEP_MARKERS:
        return Classification(NodeType.PROCEDURE)
    if count_imperative_sentences(text) >= MIN_IMPERATIVE_SENTENCES:
        return Classification(NodeType.PROCEDURE)
    return Classification(NodeType.FACT)
