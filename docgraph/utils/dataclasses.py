# -*- coding: utf-8 -*-
"""
Core data structures for docgraph

Single source of truth for the data passed between ingestion, graph
construction, persistence and retrieval. Import from this module rather than
individual modules for consistency.

Examples:
    from docgraph.utils.dataclasses import Node, Edge, EdgeType, Graph, NodeType

    node = Node(node_id=0, document_id="faq.txt", source_name="faq.txt",
                offset=0, text="Q: ... A: ...", embedding=vec,
                node_type=NodeType.QA, question="...", answer="...")
    graph = Graph([node], [])

"""
from dataclasses import dataclass, field, asdict
from typing import List, Optional, Dict, Any, Iterable, Tuple
from enum import Enum
import numpy as np


# ============================================================================
# ENUMS
# ============================================================================

class NodeType(Enum):
    """Chunk classification."""
    FACT = "fact"
    PROCEDURE = "procedure"
    QA = "qa"


class EdgeType(Enum):
    """Relation between two nodes."""
    SAME_DOCUMENT = "same_document"
    SEMANTIC = "semantic"
    REFERENCE = "reference"


class EngineState(Enum):
    """Engine lifecycle: Uninitialized -> Initialized -> Ready."""
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    READY = "ready"


class StatusCode(Enum):
    """Outcome of lifecycle operations (initialize / build / load)."""
    OK = "ok"
    PARTIAL_BUILD = "partial_build"
    CONFIG_ERROR = "config_error"
    IO_ERROR = "io_error"
    INDEX_CORRUPT = "index_corrupt"
    NOT_READY = "not_ready"
    INVALID_ARGUMENT = "invalid_argument"

    @property
    def ok(self) -> bool:
        """True for OK and PARTIAL_BUILD (the engine is usable)."""
        return self in (StatusCode.OK, StatusCode.PARTIAL_BUILD)


# ============================================================================
# INGESTION
# ============================================================================

@dataclass
class Document:
    """Plain-text document read from the source directory."""
    document_id: str                        # Relative POSIX path inside source dir
    source_name: str                        # File name shown in citations
    path: str
    text: str


@dataclass
class ChunkDescriptor:
    """
    Contiguous span of a document.

    `offset` is the character offset of the chunk's first word and `text`
    is the exact document substring, so document[offset:offset+len(text)]
    reproduces the chunk.
    """
    document_id: str
    source_name: str
    offset: int
    position: int                           # 0-indexed position in document
    text: str
    chunk_type: NodeType = NodeType.FACT
    question: Optional[str] = None
    answer: Optional[str] = None
    section_title: Optional[str] = None

    @property
    def sort_key(self) -> Tuple[str, int]:
        return (self.document_id, self.offset)


@dataclass
class EmbeddedChunk(ChunkDescriptor):
    """Chunk with its embedding (and the question embedding for qa chunks)."""
    embedding: Optional[np.ndarray] = None
    question_embedding: Optional[np.ndarray] = None


# ============================================================================
# GRAPH
# ============================================================================

def _frozen_vector(vector) -> np.ndarray:
    array = np.array(vector, dtype=np.float32).reshape(-1)
    array.flags.writeable = False
    return array


@dataclass(frozen=True, eq=False)
class Node:
    """
    Immutable graph node.

    Embeddings are stored as read-only float32 vectors. qa nodes carry the
    extracted question/answer pair and, when computed at build time, the
    question embedding used by the Q&A shortcut.
    """
    node_id: int
    document_id: str
    source_name: str
    offset: int
    text: str
    embedding: np.ndarray
    node_type: NodeType = NodeType.FACT
    question: Optional[str] = None
    answer: Optional[str] = None
    question_embedding: Optional[np.ndarray] = None
    section_title: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'embedding', _frozen_vector(self.embedding))
        if self.question_embedding is not None:
            object.__setattr__(self, 'question_embedding', _frozen_vector(self.question_embedding))
        if self.node_type == NodeType.QA and not (self.question and self.answer):
            raise ValueError(f"qa node {self.node_id} needs a question and an answer")

    @property
    def dimension(self) -> int:
        return int(self.embedding.shape[0])

    def __eq__(self, other):
        if not isinstance(other, Node):
            return NotImplemented
        if (self.node_id, self.document_id, self.source_name, self.offset, self.text,
                self.node_type, self.question, self.answer, self.section_title) != (
                other.node_id, other.document_id, other.source_name, other.offset, other.text,
                other.node_type, other.question, other.answer, other.section_title):
            return False
        if not np.array_equal(self.embedding, other.embedding):
            return False
        if (self.question_embedding is None) != (other.question_embedding is None):
            return False
        if self.question_embedding is not None:
            return np.array_equal(self.question_embedding, other.question_embedding)
        return True

    def __hash__(self):
        return hash((self.node_id, self.document_id, self.offset))


@dataclass(frozen=True)
class Edge:
    """
    Undirected weighted edge, stored with source_id < target_id.
    """
    source_id: int
    target_id: int
    weight: float
    edge_type: EdgeType

    def __post_init__(self):
        if self.source_id > self.target_id:
            source, target = self.target_id, self.source_id
            object.__setattr__(self, 'source_id', source)
            object.__setattr__(self, 'target_id', target)
        object.__setattr__(self, 'weight', float(self.weight))
        if not 0.0 <= self.weight <= 1.0:
            raise ValueError(f"Edge weight out of range [0, 1]: {self.weight}")

    @property
    def key(self) -> Tuple[int, int, str]:
        return (self.source_id, self.target_id, self.edge_type.value)

    def other(self, node_id: int) -> int:
        """Endpoint opposite to node_id."""
        return self.target_id if node_id == self.source_id else self.source_id


class Graph:
    """
    Immutable node/edge graph.

    Invariants checked on construction (ValueError on violation):
    - node ids are exactly 0..n-1
    - every edge references two existing nodes, no self loops
    - at most one edge per (pair, type)
    - all embeddings share one dimension
    """

    def __init__(self, nodes: Iterable[Node], edges: Iterable[Edge],
                 embedding_dim: Optional[int] = None):
        ordered = sorted(nodes, key=lambda n: n.node_id)
        ids = [n.node_id for n in ordered]
        if ids != list(range(len(ordered))):
            raise ValueError("Node ids must be dense and start at 0")

        dims = {n.dimension for n in ordered}
        if len(dims) > 1:
            raise ValueError(f"Mixed embedding dimensions: {sorted(dims)}")
        if dims:
            found = dims.pop()
            if embedding_dim is not None and embedding_dim != found:
                raise ValueError(f"Embedding dimension {found} != declared {embedding_dim}")
            embedding_dim = found
        self.embedding_dim = embedding_dim or 0

        self.nodes: Dict[int, Node] = {n.node_id: n for n in ordered}

        seen = set()
        checked = []
        for edge in edges:
            if edge.source_id == edge.target_id:
                raise ValueError(f"Self loop on node {edge.source_id}")
            if edge.source_id not in self.nodes or edge.target_id not in self.nodes:
                raise ValueError(f"Edge {edge.key} references a missing node")
            if edge.key in seen:
                raise ValueError(f"Duplicate edge {edge.key}")
            seen.add(edge.key)
            checked.append(edge)
        self.edges: Tuple[Edge, ...] = tuple(sorted(checked, key=lambda e: e.key))

        adjacency: Dict[int, List[Edge]] = {node_id: [] for node_id in self.nodes}
        for edge in self.edges:
            adjacency[edge.source_id].append(edge)
            adjacency[edge.target_id].append(edge)
        self.adjacency: Dict[int, Tuple[Edge, ...]] = {
            node_id: tuple(sorted(items, key=lambda e: (e.other(node_id), e.edge_type.value)))
            for node_id, items in adjacency.items()
        }
        self._matrix: Optional[np.ndarray] = None

    def __len__(self) -> int:
        return len(self.nodes)

    def neighbors(self, node_id: int) -> Tuple[Edge, ...]:
        return self.adjacency.get(node_id, ())

    def embedding_matrix(self) -> np.ndarray:
        """Row-normalised float32 matrix, row i = node i (zero rows stay zero)."""
        if self._matrix is None:
            if not self.nodes:
                matrix = np.zeros((0, self.embedding_dim), dtype=np.float32)
            else:
                matrix = np.vstack([self.nodes[i].embedding for i in range(len(self.nodes))])
                norms = np.linalg.norm(matrix, axis=1, keepdims=True)
                norms[norms == 0] = 1.0
                matrix = (matrix / norms).astype(np.float32)
            matrix.flags.writeable = False
            self._matrix = matrix
        return self._matrix

    def equivalent(self, other: 'Graph', tol: float = 1e-9) -> bool:
        """Same nodes and edge keys, edge weights equal within tol."""
        if len(self.nodes) != len(other.nodes) or len(self.edges) != len(other.edges):
            return False
        if any(self.nodes[i] != other.nodes[i] for i in self.nodes):
            return False
        return all(
            a.key == b.key and abs(a.weight - b.weight) <= tol
            for a, b in zip(self.edges, other.edges)
        )

    def __eq__(self, other):
        if not isinstance(other, Graph):
            return NotImplemented
        return (
            self.embedding_dim == other.embedding_dim
            and len(self.nodes) == len(other.nodes)
            and all(self.nodes[i] == other.nodes[i] for i in self.nodes)
            and self.edges == other.edges
        )

    __hash__ = None

    def __repr__(self):
        return f"Graph(nodes={len(self.nodes)}, edges={len(self.edges)}, dim={self.embedding_dim})"


# ============================================================================
# INDEX
# ============================================================================

@dataclass
class IndexMetadata:
    """Descriptive data persisted next to the graph."""
    name: str
    format_version: int
    source_dir: str
    max_results: int
    built_at: str
    chunk_count: int = 0
    document_count: int = 0
    source_fingerprint: str = ""
    config_fingerprint: str = ""
    skipped_documents: List[str] = field(default_factory=list)
    skipped_chunks: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IndexMetadata':
        return cls(
            name=data['name'],
            format_version=int(data['format_version']),
            source_dir=data['source_dir'],
            max_results=int(data['max_results']),
            built_at=data['built_at'],
            chunk_count=int(data.get('chunk_count', 0)),
            document_count=int(data.get('document_count', 0)),
            source_fingerprint=data.get('source_fingerprint', ''),
            config_fingerprint=data.get('config_fingerprint', ''),
            skipped_documents=list(data.get('skipped_documents', [])),
            skipped_chunks=int(data.get('skipped_chunks', 0)),
        )


@dataclass(frozen=True)
class IndexSnapshot:
    """Graph plus metadata, swapped as one unit on rebuild."""
    graph: Graph
    metadata: IndexMetadata


@dataclass
class BuildReport:
    """Summary of one build_index() run."""
    documents_seen: int = 0
    documents_loaded: int = 0
    unreadable_documents: Dict[str, str] = field(default_factory=dict)
    chunks_produced: int = 0
    chunks_embedded: int = 0
    embedding_failures: int = 0
    node_count: int = 0
    edge_count: int = 0
    reused_index: bool = False
    elapsed_seconds: float = 0.0
    status: StatusCode = StatusCode.OK

    @property
    def skipped(self) -> bool:
        return bool(self.unreadable_documents) or self.embedding_failures > 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['status'] = self.status.value
        return data


# ============================================================================
# RETRIEVAL
# ============================================================================

@dataclass
class Snippet:
    """One ranked search result."""
    node_id: int
    text: str
    source_name: str
    score: float
    direct_answer: Optional[str] = None
    document_id: str = ""
    node_type: NodeType = NodeType.FACT

    def to_dict(self) -> Dict[str, Any]:
        return {
            'node_id': self.node_id,
            'text': self.text,
            'source_name': self.source_name,
            'document_id': self.document_id,
            'node_type': self.node_type.value,
            'score': round(float(self.score), 6),
            'direct_answer': self.direct_answer,
        }


@dataclass
class QueryResult:
    """Full outcome of one query (snippets plus traversal details)."""
    query: str
    snippets: List[Snippet] = field(default_factory=list)
    seeds: List[Tuple[int, float]] = field(default_factory=list)
    visited_count: int = 0
    direct_answer_node_id: Optional[int] = None

    @property
    def direct_answer(self) -> Optional[str]:
        if self.snippets and self.snippets[0].direct_answer is not None:
            return self.snippets[0].direct_answer
        return None
