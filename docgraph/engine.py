# -*- coding: utf-8 -*-
"""
GraphSearchEngine - the caller-facing search capability.

Wires IndexStore, QueryProcessor and ResponseComposer around one injected
embedding provider. Engines are plain instances; hosts that need a shared
engine create one and pass it around.

Lifecycle operations (initialize, build_index, load) return a StatusCode.
search() and answer() raise NotReadyError / InvalidArgumentError instead of
returning partial results.

Examples:
    from docgraph.engine import GraphSearchEngine

    engine = GraphSearchEngine()            # SentenceTransformerEmbedder
    engine.initialize("docs/", "index/", max_results=5)
    engine.build_index()
    for snippet in engine.search("refund policy"):
        print(f"[{snippet.score:.3f}] {snippet.source_name}: {snippet.text[:80]}")
    print(engine.answer("how do I get a refund"))
"""
# Standard library
import logging
from pathlib import Path
from typing import List, Optional, Protocol, Union

# Project imports
from docgraph.graph.graph_builder import GraphBuilder
from docgraph.graph.index_store import IndexStore
from docgraph.ingestion.document_loader import DocumentLoader
from docgraph.ingestion.text_chunker import TextChunker
from docgraph.retrieval.query_processor import QueryProcessor
from docgraph.retrieval.response_composer import ResponseComposer
from docgraph.utils.dataclasses import (
    BuildReport, EngineState, IndexSnapshot, QueryResult, Snippet, StatusCode,
)
from docgraph.utils.embedder import EmbeddingProvider, SentenceTransformerEmbedder
from docgraph.utils.errors import NotReadyError, PartialBuildError

logger = logging.getLogger(__name__)


class SearchCapability(Protocol):
    """Operations exposed to host applications."""

    def initialize(self, source_dir, index_path, max_results: int) -> StatusCode:
        ...

    def build_index(self, force: bool = False) -> StatusCode:
        ...

    def search(self, query: str, max_results: Optional[int] = None) -> List[Snippet]:
        ...

    def get_state(self) -> EngineState:
        ...


class GraphSearchEngine:
    """
    Graph-based semantic search engine.

    Args:
        embedder: Embedding provider; a SentenceTransformerEmbedder is
            created on first use when None
        graph_builder, chunker, loader: Build components (defaults if None)
        query_processor: Query pipeline (default settings if None)
        composer: Response composer (default settings if None)
        max_workers: Build worker pool size
        show_progress: Show tqdm progress during builds
    """

    def __init__(
        self,
        embedder: EmbeddingProvider = None,
        graph_builder: GraphBuilder = None,
        chunker: TextChunker = None,
        loader: DocumentLoader = None,
        query_processor: QueryProcessor = None,
        composer: ResponseComposer = None,
        max_workers: int = None,
        show_progress: bool = None
    ):
        if embedder is None:
            embedder = SentenceTransformerEmbedder()
        self.embedder = embedder
        self.store = IndexStore(
            embedder,
            graph_builder=graph_builder,
            chunker=chunker,
            loader=loader,
            max_workers=max_workers,
            show_progress=show_progress,
        )
        self.query_processor = query_processor or QueryProcessor(embedder)
        self.composer = composer or ResponseComposer()

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def initialize(self, source_dir: Union[str, Path], index_path: Union[str, Path],
                   max_results: int) -> StatusCode:
        return self.store.initialize(source_dir, index_path, max_results)

    def build_index(self, force: bool = False) -> StatusCode:
        return self.store.build_index(force=force)

    def load(self) -> StatusCode:
        return self.store.load()

    def get_state(self) -> EngineState:
        return self.store.state

    @property
    def last_error(self):
        return self.store.last_error

    @property
    def last_report(self) -> Optional[BuildReport]:
        return self.store.last_report

    def snapshot(self) -> Optional[IndexSnapshot]:
        return self.store.snapshot()

    def require_complete_build(self) -> None:
        """
        Raise PartialBuildError if the last build skipped any input.

        For callers that prefer exceptions over PARTIAL_BUILD status codes.
        """
        report = self.store.last_report
        if report is not None and report.status == StatusCode.PARTIAL_BUILD:
            raise PartialBuildError(report.unreadable_documents, report.embedding_failures)

    # ========================================================================
    # QUERIES
    # ========================================================================

    def query(self, query: str, max_results: Optional[int] = None) -> QueryResult:
        """
        Full query result (snippets plus seeds and traversal counts).

        Raises:
            NotReadyError: engine is not Ready
            InvalidArgumentError: blank query or bad max_results
        """
        snapshot = self.store.snapshot()
        if snapshot is None or self.store.state != EngineState.READY:
            raise NotReadyError(f"Engine is {self.store.state.value}, build or load an index first")
        if max_results is None:
            max_results = self.store.max_results
        return self.query_processor.process(snapshot, query, max_results)

    def search(self, query: str, max_results: Optional[int] = None) -> List[Snippet]:
        """Ranked snippets; a direct answer, when found, is the first snippet."""
        return self.query(query, max_results).snippets

    def answer(self, query: str, max_results: Optional[int] = None) -> str:
        """Search and compose the final answer text."""
        return self.composer.compose(self.search(query, max_results))
