# -*- coding: utf-8 -*-
"""
Word-window chunker with hierarchical boundaries.

Algorithm:
1. Split the document into sections at markdown headers and explicit
   question markers (HARD boundaries), so every Q&A pair starts its own
   section and a header always opens a chunk
2. A section of at most max_words words is one chunk
3. Longer sections are cut into windows of chunk_words words that advance
   by chunk_words - overlap_words, until the remainder fits in max_words
4. Chunk text is the exact document substring from the window's first word
   to its last word; offset is the character offset of the first word
"""

import logging
import re
from typing import List, Optional, Tuple

from config.search_config import CHUNKING_CONFIG
from docgraph.ingestion.chunk_classifier import QUESTION_MARKER, classify_chunk
from docgraph.utils.dataclasses import ChunkDescriptor, Document
from docgraph.utils.text_utils import word_spans

logger = logging.getLogger(__name__)

HEADER_PATTERN = re.compile(r'^[ \t]*#{1,6}[ \t]+(.+?)[ \t#]*$', re.MULTILINE)


class TextChunker:
    """
    Args:
        chunk_words: Words per window for long sections
        overlap_words: Words shared by consecutive windows
        max_words: Largest chunk emitted
    """

    def __init__(
        self,
        chunk_words: int = None,
        overlap_words: int = None,
        max_words: int = None
    ):
        self.chunk_words = chunk_words or CHUNKING_CONFIG['chunk_words']
        self.overlap_words = CHUNKING_CONFIG['overlap_words'] if overlap_words is None else overlap_words
        self.max_words = max_words or CHUNKING_CONFIG['max_words']

        if self.chunk_words <= 0 or self.max_words < self.chunk_words:
            raise ValueError("Need 0 < chunk_words <= max_words")
        if not 0 <= self.overlap_words < self.chunk_words:
            raise ValueError("Need 0 <= overlap_words < chunk_words")

    @property
    def step(self) -> int:
        return self.chunk_words - self.overlap_words

    def split_into_sections(self, text: str) -> List[Tuple[int, int, Optional[str]]]:
        """
        Split text at headers and question markers.

        Returns:
            List of (start, end, section_title) with non-blank content;
            section_title is the most recent markdown header, if any
        """
        boundaries = {0}
        titles = {}
        header_spans = []
        for match in HEADER_PATTERN.finditer(text):
            boundaries.add(match.start())
            titles[match.start()] = match.group(1).strip()
            header_spans.append(match.span())

        for match in QUESTION_MARKER.finditer(text):
            if any(start <= match.start() < end for start, end in header_spans):
                continue
            boundaries.add(match.start())

        ordered = sorted(boundaries) + [len(text)]
        sections = []
        current_title = None
        for start, end in zip(ordered, ordered[1:]):
            if start in titles:
                current_title = titles[start]
            if text[start:end].strip():
                sections.append((start, end, current_title))
        return sections

    def window_bounds(self, n_words: int) -> List[Tuple[int, int]]:
        """[start, end) word index windows for a section of n_words words."""
        if n_words <= self.max_words:
            return [(0, n_words)] if n_words else []
        bounds = []
        start = 0
        while n_words - start > self.max_words:
            bounds.append((start, start + self.chunk_words))
            start += self.step
        bounds.append((start, n_words))
        return bounds

    def chunk_document(self, document: Document) -> List[ChunkDescriptor]:
        """
        Chunk and classify one document.

        Returns:
            Chunks in document order with character offsets
        """
        text = document.text
        chunks = []
        for section_start, section_end, title in self.split_into_sections(text):
            spans = word_spans(text, section_start, section_end)
            for first, last in self.window_bounds(len(spans)):
                start = spans[first][0]
                end = spans[last - 1][1]
                chunk_text = text[start:end]
                label = classify_chunk(chunk_text)
                chunks.append(ChunkDescriptor(
                    document_id=document.document_id,
                    source_name=document.source_name,
                    offset=start,
                    position=len(chunks),
                    text=chunk_text,
                    chunk_type=label.chunk_type,
                    question=label.question,
                    answer=label.answer,
                    section_title=title,
                ))

        logger.debug(f"{document.document_id}: {len(chunks)} chunks")
        return chunks
