# -*- coding: utf-8 -*-
"""
Index store: lifecycle, persistence and snapshot swapping.

State machine:
    Uninitialized --initialize()--> Initialized --build_index()/load()--> Ready

Lifecycle operations return a StatusCode and record the underlying error in
`last_error`; they never leave the store half-updated. A build works on new
objects only and publishes them with a single attribute assignment
(copy-on-write), so readers holding the previous IndexSnapshot are never
affected and never wait. A lock serialises builds and loads with each other.

Persisted layout (one JSON document, written atomically):
    {
      "header":   {"format", "format_version", "node_count", "edge_count", "embedding_dim"},
      "metadata": {...IndexMetadata},
      "nodes":    [{"id", "text", "document_id", "source_name", "offset", "type",
                    "embedding", "question"?, "answer"?, "question_embedding"?,
                    "section_title"?}],
      "edges":    [{"source", "target", "weight", "type"}]
    }

Examples:
    store = IndexStore(embedder)
    store.initialize("docs/", "index/", max_results=5)   # StatusCode.OK
    store.build_index()                                   # OK / PARTIAL_BUILD
    snapshot = store.snapshot()
"""
# Standard library
import logging
import os
import threading
import time
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

# Third-party
import numpy as np

# Project imports
from config.search_config import CHUNKING_CONFIG, INDEX_CONFIG
from docgraph.graph.graph_builder import GraphBuilder
from docgraph.ingestion.document_loader import DocumentLoader
from docgraph.ingestion.embed_processor import EmbedProcessor
from docgraph.ingestion.text_chunker import TextChunker
from docgraph.utils.dataclasses import (
    BuildReport, Edge, EdgeType, EngineState, Graph, IndexMetadata,
    IndexSnapshot, Node, NodeType, StatusCode,
)
from docgraph.utils.embedder import EmbeddingProvider, provider_name
from docgraph.utils.errors import (
    ConfigError, DocGraphError, IndexCorruptError, IndexIOError, InvalidArgumentError,
    NotReadyError,
)
from docgraph.utils.id_generator import config_fingerprint, source_fingerprint
from docgraph.utils.io import load_json, save_json

logger = logging.getLogger(__name__)

INDEX_FORMAT = INDEX_CONFIG['format']
FORMAT_VERSION = INDEX_CONFIG['format_version']


# ============================================================================
# SERIALIZATION
# ============================================================================

def snapshot_to_dict(snapshot: IndexSnapshot) -> Dict[str, Any]:
    """Serialize a snapshot into the persisted layout."""
    graph = snapshot.graph
    nodes = []
    for node_id in range(len(graph.nodes)):
        node = graph.nodes[node_id]
        record = {
            'id': node.node_id,
            'text': node.text,
            'document_id': node.document_id,
            'source_name': node.source_name,
            'offset': node.offset,
            'type': node.node_type.value,
            'embedding': node.embedding.tolist(),
        }
        if node.node_type == NodeType.QA:
            record['question'] = node.question
            record['answer'] = node.answer
        if node.question_embedding is not None:
            record['question_embedding'] = node.question_embedding.tolist()
        if node.section_title is not None:
            record['section_title'] = node.section_title
        nodes.append(record)

    edges = [
        {'source': e.source_id, 'target': e.target_id, 'weight': e.weight, 'type': e.edge_type.value}
        for e in graph.edges
    ]

    return {
        'header': {
            'format': INDEX_FORMAT,
            'format_version': FORMAT_VERSION,
            'node_count': len(nodes),
            'edge_count': len(edges),
            'embedding_dim': graph.embedding_dim,
        },
        'metadata': snapshot.metadata.to_dict(),
        'nodes': nodes,
        'edges': edges,
    }


def snapshot_from_dict(data: Any) -> IndexSnapshot:
    """
    Rebuild a snapshot from the persisted layout.

    Raises:
        IndexCorruptError: wrong format/version, count mismatch, missing
            fields or graph invariant violations
    """
    if not isinstance(data, dict) or not isinstance(data.get('header'), dict):
        raise IndexCorruptError("Index has no header")
    header = data['header']
    if header.get('format') != INDEX_FORMAT:
        raise IndexCorruptError(f"Unknown index format: {header.get('format')!r}")
    if header.get('format_version') != FORMAT_VERSION:
        raise IndexCorruptError(
            f"Index format version {header.get('format_version')!r} != supported {FORMAT_VERSION}"
        )

    try:
        metadata = IndexMetadata.from_dict(data['metadata'])
        nodes = [_node_from_record(record) for record in data['nodes']]
        edges = [
            Edge(int(record['source']), int(record['target']),
                 float(record['weight']), EdgeType(record['type']))
            for record in data['edges']
        ]
        if len(nodes) != header['node_count'] or len(edges) != header['edge_count']:
            raise IndexCorruptError(
                f"Header counts ({header['node_count']} nodes, {header['edge_count']} edges) "
                f"do not match content ({len(nodes)} nodes, {len(edges)} edges)"
            )
        graph = Graph(nodes, edges, embedding_dim=header['embedding_dim'] or None)
    except IndexCorruptError:
        raise
    except (KeyError, TypeError, ValueError, OverflowError) as e:
        raise IndexCorruptError(f"Malformed index: {e}") from e

    return IndexSnapshot(graph=graph, metadata=metadata)


def _node_from_record(record: Dict[str, Any]) -> Node:
    """Node from its persisted record; offsets and vectors are checked too."""
    node = Node(
        node_id=int(record['id']),
        document_id=record['document_id'],
        source_name=record['source_name'],
        offset=int(record['offset']),
        text=record['text'],
        embedding=record['embedding'],
        node_type=NodeType(record['type']),
        question=record.get('question'),
        answer=record.get('answer'),
        question_embedding=record.get('question_embedding'),
        section_title=record.get('section_title'),
    )
    if node.offset < 0:
        raise IndexCorruptError(f"Node {node.node_id} has negative offset {node.offset}")
    if not np.all(np.isfinite(node.embedding)):
        raise IndexCorruptError(f"Node {node.node_id} embedding has non-finite values")
    if node.question_embedding is not None and not np.all(np.isfinite(node.question_embedding)):
        raise IndexCorruptError(f"Node {node.node_id} question embedding has non-finite values")
    return node


def write_index(snapshot: IndexSnapshot, path: Union[str, Path]) -> str:
    """Atomically persist a snapshot. Raises IndexIOError."""
    try:
        return save_json(snapshot_to_dict(snapshot), path)
    except OSError as e:
        raise IndexIOError(f"Cannot write index {path}: {e}") from e


def read_index(path: Union[str, Path]) -> IndexSnapshot:
    """Read a persisted snapshot. Raises IndexIOError / IndexCorruptError."""
    try:
        data = load_json(path)
    except OSError as e:
        raise IndexIOError(f"Cannot read index {path}: {e}") from e
    except ValueError as e:
        raise IndexCorruptError(f"Index {path} is not valid JSON: {e}") from e
    return snapshot_from_dict(data)


def resolve_index_path(index_path: Union[str, Path]) -> Path:
    """
    File that holds the index.

    A directory (existing, or given with a trailing separator, or without a
    file suffix) resolves to INDEX_CONFIG['index_filename'] inside it.
    """
    raw = str(index_path)
    path = Path(index_path)
    if path.is_dir() or raw.endswith(('/', os.sep)) or not path.suffix:
        return path / INDEX_CONFIG['index_filename']
    return path


# ============================================================================
# STORE
# ============================================================================

class IndexStore:
    """
    Owns the current IndexSnapshot and the build/load lifecycle.

    Args:
        embedder: Embedding provider used for builds
        graph_builder: GraphBuilder (default settings if None)
        chunker: TextChunker (default settings if None)
        loader: DocumentLoader (default settings if None)
        max_workers: Build worker pool size
        show_progress: Show tqdm progress during builds
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        graph_builder: GraphBuilder = None,
        chunker: TextChunker = None,
        loader: DocumentLoader = None,
        max_workers: int = None,
        show_progress: bool = None
    ):
        self.embedder = embedder
        self.graph_builder = graph_builder or GraphBuilder()
        self.chunker = chunker or TextChunker()
        self.loader = loader or DocumentLoader()
        self.max_workers = max_workers
        self.show_progress = show_progress

        self.source_dir: Optional[Path] = None
        self.index_file: Optional[Path] = None
        self.max_results: Optional[int] = None

        self.last_error: Optional[DocGraphError] = None
        self.last_report: Optional[BuildReport] = None

        self._state = EngineState.UNINITIALIZED
        self._snapshot: Optional[IndexSnapshot] = None
        self._build_lock = threading.Lock()

    @property
    def state(self) -> EngineState:
        return self._state

    def snapshot(self) -> Optional[IndexSnapshot]:
        """Current snapshot (None before the first successful build/load)."""
        return self._snapshot

    def _fail(self, error: DocGraphError) -> StatusCode:
        self.last_error = error
        logger.error(f"{type(error).__name__}: {error}")
        return error.status

    # ------------------------------------------------------------------------
    # initialize
    # ------------------------------------------------------------------------

    def initialize(self, source_dir: Union[str, Path], index_path: Union[str, Path],
                   max_results: int) -> StatusCode:
        """
        Validate arguments and move Uninitialized -> Initialized.

        Returns:
            OK, CONFIG_ERROR (bad source dir / index location) or
            INVALID_ARGUMENT (max_results not a positive int)
        """
        if isinstance(max_results, bool) or not isinstance(max_results, int) or max_results <= 0:
            return self._fail(InvalidArgumentError(f"max_results must be a positive integer, got {max_results!r}"))

        source = Path(source_dir)
        if not source.is_dir():
            return self._fail(ConfigError(f"Source directory not found: {source}"))
        if not os.access(source, os.R_OK | os.X_OK):
            return self._fail(ConfigError(f"Source directory not readable: {source}"))

        index_file = resolve_index_path(index_path)
        if index_file.is_dir():
            return self._fail(ConfigError(f"Index path is a directory: {index_file}"))
        try:
            index_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return self._fail(ConfigError(f"Cannot prepare index location {index_file.parent}: {e}"))
        if not os.access(index_file.parent, os.W_OK):
            return self._fail(ConfigError(f"Index location not writable: {index_file.parent}"))

        with self._build_lock:
            self.source_dir = source
            self.index_file = index_file
            self.max_results = max_results
            self.last_error = None
            if self._state == EngineState.UNINITIALIZED:
                self._state = EngineState.INITIALIZED

        logger.info(f"Initialized: source={source}, index={index_file}, max_results={max_results}")
        return StatusCode.OK

    # ------------------------------------------------------------------------
    # build
    # ------------------------------------------------------------------------

    def build_settings(self) -> Dict[str, Any]:
        """Everything that changes the built graph."""
        return {
            'format_version': FORMAT_VERSION,
            'chunking': {
                'chunk_words': self.chunker.chunk_words,
                'overlap_words': self.chunker.overlap_words,
                'max_words': self.chunker.max_words,
                'extensions': list(self.loader.extensions),
                'encoding': self.loader.encoding or CHUNKING_CONFIG['encoding'],
            },
            'graph': self.graph_builder.settings,
            'embedder': {
                'name': provider_name(self.embedder),
                'dim': int(self.embedder.get_embedding_dim()),
            },
        }

    def _reusable_snapshot(self, source_fp: str, config_fp: str) -> Optional[IndexSnapshot]:
        if not self.index_file.exists():
            return None
        try:
            snapshot = read_index(self.index_file)
        except (IndexIOError, IndexCorruptError) as e:
            logger.warning(f"Existing index not reusable, rebuilding: {e}")
            return None
        metadata = snapshot.metadata
        if metadata.source_fingerprint == source_fp and metadata.config_fingerprint == config_fp:
            return snapshot
        logger.info("Source or settings changed since last build, rebuilding")
        return None

    def build_index(self, force: bool = False) -> StatusCode:
        """
        Build (or reuse) the index and move to Ready.

        Args:
            force: Rebuild even when the persisted index matches the source

        Returns:
            OK, PARTIAL_BUILD (some documents/chunks skipped), NOT_READY
            (not initialized), CONFIG_ERROR (source dir vanished) or IO_ERROR
            (index could not be written; previous snapshot kept)
        """
        if self._state == EngineState.UNINITIALIZED:
            return self._not_ready("build_index")

        with self._build_lock:
            start = time.monotonic()
            report = BuildReport()
            self.last_report = report

            try:
                document_ids = [
                    p.relative_to(self.source_dir).as_posix()
                    for p in self.loader.list_documents(self.source_dir)
                ]
            except ConfigError as e:
                report.status = self._fail(e)
                return report.status

            source_fp = source_fingerprint(self.source_dir, document_ids)
            config_fp = config_fingerprint(self.build_settings())

            if not force:
                reused = self._reusable_snapshot(source_fp, config_fp)
                if reused is not None:
                    report.reused_index = True
                    report.documents_seen = len(document_ids)
                    report.documents_loaded = reused.metadata.document_count
                    report.chunks_embedded = reused.metadata.chunk_count
                    report.node_count = len(reused.graph.nodes)
                    report.edge_count = len(reused.graph.edges)
                    partial = bool(reused.metadata.skipped_documents) or reused.metadata.skipped_chunks > 0
                    report.status = StatusCode.PARTIAL_BUILD if partial else StatusCode.OK
                    reused = replace(reused, metadata=replace(reused.metadata, max_results=self.max_results))
                    self._publish(reused)
                    logger.info(f"Reused persisted index {self.index_file} ({reused.graph})")
                    return report.status

            processor = EmbedProcessor(
                self.embedder,
                loader=self.loader,
                chunker=self.chunker,
                max_workers=self.max_workers,
                show_progress=self.show_progress,
            )
            try:
                chunks = processor.process(self.source_dir, report)
            except ConfigError as e:
                report.status = self._fail(e)
                return report.status

            graph = self.graph_builder.build(chunks, embedding_dim=processor.embedding_dim)
            metadata = IndexMetadata(
                name=INDEX_CONFIG['name'],
                format_version=FORMAT_VERSION,
                source_dir=str(self.source_dir),
                max_results=self.max_results,
                built_at=datetime.now(timezone.utc).isoformat(timespec='seconds'),
                chunk_count=len(graph.nodes),
                document_count=report.documents_loaded,
                source_fingerprint=source_fp,
                config_fingerprint=config_fp,
                skipped_documents=sorted(report.unreadable_documents),
                skipped_chunks=report.embedding_failures,
            )
            snapshot = IndexSnapshot(graph=graph, metadata=metadata)
            report.node_count = len(graph.nodes)
            report.edge_count = len(graph.edges)

            try:
                write_index(snapshot, self.index_file)
            except IndexIOError as e:
                report.status = self._fail(e)
                report.elapsed_seconds = time.monotonic() - start
                return report.status

            self._publish(snapshot)
            report.elapsed_seconds = time.monotonic() - start
            report.status = StatusCode.PARTIAL_BUILD if report.skipped else StatusCode.OK
            if report.status == StatusCode.PARTIAL_BUILD:
                logger.warning(
                    f"Partial build: {len(report.unreadable_documents)} documents and "
                    f"{report.embedding_failures} chunks skipped"
                )
            logger.info(f"Index ready: {graph} in {report.elapsed_seconds:.1f}s")
            return report.status

    # ------------------------------------------------------------------------
    # load
    # ------------------------------------------------------------------------

    def load(self) -> StatusCode:
        """
        Load the persisted index into Ready without rebuilding.

        Returns:
            OK, NOT_READY (not initialized), IO_ERROR or INDEX_CORRUPT
        """
        if self._state == EngineState.UNINITIALIZED:
            return self._not_ready("load")

        with self._build_lock:
            try:
                snapshot = read_index(self.index_file)
            except (IndexIOError, IndexCorruptError) as e:
                return self._fail(e)
            self._publish(snapshot)
        logger.info(f"Loaded index {self.index_file} ({snapshot.graph})")
        return StatusCode.OK

    # ------------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------------

    def _publish(self, snapshot: IndexSnapshot) -> None:
        self._snapshot = snapshot
        self._state = EngineState.READY
        self.last_error = None

    def _not_ready(self, operation: str) -> StatusCode:
        return self._fail(NotReadyError(f"{operation}() called before initialize()"))
