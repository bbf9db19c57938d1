# -*- coding: utf-8 -*-
"""
Embed Processor - build-time ingestion and embedding

Runs one unit of work per document (read, chunk, classify, embed) on a
bounded ThreadPoolExecutor. Workers finish in any order; results are sorted
by (document_id, offset) afterwards, so node ids never depend on scheduling.

Failures are recovered locally:
- an unreadable document is skipped and recorded in the BuildReport
- a chunk whose embedding fails (provider error, wrong dimension,
  non-finite values) is dropped and counted
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from threading import Lock
from typing import List, Tuple, Union

import numpy as np
from tqdm import tqdm

from config.search_config import BUILD_CONFIG
from docgraph.ingestion.document_loader import DocumentLoader
from docgraph.ingestion.text_chunker import TextChunker
from docgraph.utils.dataclasses import BuildReport, EmbeddedChunk, NodeType
from docgraph.utils.embedder import EmbeddingProvider
from docgraph.utils.errors import DocumentUnreadable, EmbeddingError

logger = logging.getLogger(__name__)


def embed_text(provider: EmbeddingProvider, text: str, dim: int) -> np.ndarray:
    """
    Embed text and validate the vector.

    Raises:
        EmbeddingError: provider failure, wrong dimension or non-finite values
    """
    try:
        vector = provider.embed_single(text)
    except Exception as e:
        raise EmbeddingError(f"Embedding provider failed: {e}") from e
    vector = np.asarray(vector, dtype=np.float32).reshape(-1)
    if vector.shape[0] != dim:
        raise EmbeddingError(f"Expected {dim}-dim vector, got {vector.shape[0]}")
    if not np.all(np.isfinite(vector)):
        raise EmbeddingError("Embedding contains non-finite values")
    return vector


class EmbedProcessor:
    """
    Parallel document -> embedded chunk pipeline.

    Usage:
        processor = EmbedProcessor(embedder, max_workers=4)
        chunks = processor.process("docs/", report)
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        loader: DocumentLoader = None,
        chunker: TextChunker = None,
        max_workers: int = None,
        show_progress: bool = None
    ):
        """
        Args:
            embedder: Embedding provider
            loader: Document loader (default settings if None)
            chunker: Chunker (default settings if None)
            max_workers: Worker pool size
            show_progress: Show a tqdm progress bar
        """
        self.embedder = embedder
        self.loader = loader or DocumentLoader()
        self.chunker = chunker or TextChunker()
        self.max_workers = max(1, max_workers or BUILD_CONFIG['max_workers'])
        self.show_progress = BUILD_CONFIG['show_progress'] if show_progress is None else show_progress
        self.embedding_dim = int(embedder.get_embedding_dim())
        self.results_lock = Lock()

    def process_document(self, path: Path, source_dir: Path) -> Tuple[List[EmbeddedChunk], int, int]:
        """
        Read, chunk and embed one document.

        Returns:
            (embedded chunks, chunks produced, embedding failures)

        Raises:
            DocumentUnreadable: the document cannot be read
        """
        document = self.loader.load_document(path, source_dir)
        chunks = self.chunker.chunk_document(document)

        embedded = []
        failures = 0
        for chunk in chunks:
            try:
                vector = embed_text(self.embedder, chunk.text, self.embedding_dim)
                question_vector = None
                if chunk.chunk_type == NodeType.QA:
                    question_vector = embed_text(self.embedder, chunk.question, self.embedding_dim)
            except EmbeddingError as e:
                failures += 1
                logger.warning(f"Skipping chunk {chunk.document_id}@{chunk.offset}: {e}")
                continue
            embedded.append(EmbeddedChunk(
                **vars(chunk),
                embedding=vector,
                question_embedding=question_vector,
            ))
        return embedded, len(chunks), failures

    def process(self, source_dir: Union[str, Path], report: BuildReport) -> List[EmbeddedChunk]:
        """
        Embed every document of source_dir.

        Args:
            source_dir: Source directory
            report: Build report, updated with counts and skipped inputs

        Returns:
            Embedded chunks sorted by (document_id, offset)
        """
        source_dir = Path(source_dir)
        paths = self.loader.list_documents(source_dir)
        report.documents_seen = len(paths)
        if not paths:
            logger.warning(f"No documents found in {source_dir}")
            return []

        start_time = time.monotonic()
        collected: List[EmbeddedChunk] = []
        logger.info(f"Embedding {len(paths)} documents with {self.max_workers} workers...")

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_path = {
                executor.submit(self.process_document, path, source_dir): path
                for path in paths
            }

            progress = tqdm(
                as_completed(future_to_path),
                total=len(future_to_path),
                desc="Embedding documents",
                disable=not self.show_progress,
            )
            for future in progress:
                try:
                    chunks, produced, failures = future.result()
                except DocumentUnreadable as e:
                    logger.warning(f"Skipping unreadable document {e.document_id}: {e.reason}")
                    with self.results_lock:
                        report.unreadable_documents[e.document_id] = e.reason
                    continue

                with self.results_lock:
                    collected.extend(chunks)
                    report.documents_loaded += 1
                    report.chunks_produced += produced
                    report.chunks_embedded += len(chunks)
                    report.embedding_failures += failures

        collected.sort(key=lambda c: c.sort_key)
        report.unreadable_documents = dict(sorted(report.unreadable_documents.items()))

        elapsed = time.monotonic() - start_time
        logger.info(
            f"Embedded {report.chunks_embedded}/{report.chunks_produced} chunks "
            f"from {report.documents_loaded}/{report.documents_seen} documents in {elapsed:.1f}s"
        )
        return collected
