# -*- coding: utf-8 -*-
"""
Graph builder: embedded chunks -> immutable Graph.

Node ids are assigned by sorting chunks on (document_id, offset), so an
unchanged corpus always produces the same ids. Three edge classes are built:

- same_document: chunks at most `same_document_window` positions apart in one
  document; weight = same_document_weight * same_document_falloff ** (d - 1)
- semantic: any pair with cosine similarity >= semantic_threshold; weight is
  the similarity. Candidates come from a FAISS inner-product range search
  over the normalised embeddings and are re-checked exactly in float64
- reference: a chunk that names another document (file name, or its stem
  after a cue such as "see") links to that document's first chunk; a chunk
  that names a section ("see section Billing") links to the first chunk of
  that section. Fixed weight

Edges are deduplicated per (pair, type) and sorted.

Examples:
    builder = GraphBuilder()
    graph = builder.build(embedded_chunks, embedding_dim=384)
    print(graph)  # Graph(nodes=120, edges=431, dim=384)

References:
    FAISS IndexFlatIP.range_search: exhaustive inner-product radius search
"""
# Standard library
import logging
import re
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence

# Third-party
import faiss
import numpy as np

# Project imports
from config.search_config import GRAPH_CONFIG
from docgraph.utils.dataclasses import Edge, EdgeType, EmbeddedChunk, Graph, Node

logger = logging.getLogger(__name__)

# Slack for float32 rounding in the FAISS pass; every candidate is re-checked
RANGE_SEARCH_SLACK = 1e-4

REFERENCE_CUES = r'(?:see(?:\s+also)?|refer(?:\s+to)?|described\s+in|according\s+to|cf\.)'
MIN_STEM_LENGTH = 3


class GraphBuilder:
    """
    Build a Graph from embedded chunks.

    Example:
        builder = GraphBuilder(config={'semantic_threshold': 0.7})
        graph = builder.build(chunks, embedding_dim=64)
    """

    def __init__(self, config: Dict = None):
        """
        Args:
            config: Optional overrides of GRAPH_CONFIG keys
        """
        cfg = dict(GRAPH_CONFIG)
        cfg.update(config or {})
        self.window = int(cfg['same_document_window'])
        self.same_document_weight = float(cfg['same_document_weight'])
        self.same_document_falloff = float(cfg['same_document_falloff'])
        self.semantic_threshold = float(cfg['semantic_threshold'])
        self.reference_weight = float(cfg['reference_weight'])

        for name in ('same_document_weight', 'same_document_falloff', 'reference_weight'):
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise ValueError(f"{name} must be within [0, 1]")
        if self.window < 0:
            raise ValueError("same_document_window must be >= 0")

    @property
    def settings(self) -> Dict:
        """Settings that change the built graph (part of the config fingerprint)."""
        return {
            'same_document_window': self.window,
            'same_document_weight': self.same_document_weight,
            'same_document_falloff': self.same_document_falloff,
            'semantic_threshold': self.semantic_threshold,
            'reference_weight': self.reference_weight,
        }

    # ========================================================================
    # NODES
    # ========================================================================

    def create_nodes(self, chunks: Iterable[EmbeddedChunk]) -> List[Node]:
        """Sort chunks by (document_id, offset) and assign dense ids."""
        ordered = sorted(chunks, key=lambda c: c.sort_key)
        nodes = []
        for node_id, chunk in enumerate(ordered):
            nodes.append(Node(
                node_id=node_id,
                document_id=chunk.document_id,
                source_name=chunk.source_name,
                offset=chunk.offset,
                text=chunk.text,
                embedding=chunk.embedding,
                node_type=chunk.chunk_type,
                question=chunk.question,
                answer=chunk.answer,
                question_embedding=chunk.question_embedding,
                section_title=chunk.section_title,
            ))
        return nodes

    # ========================================================================
    # EDGES
    # ========================================================================

    def same_document_weight_at(self, distance: int) -> float:
        return self.same_document_weight * self.same_document_falloff ** (distance - 1)

    def build_same_document_edges(self, nodes: Sequence[Node]) -> List[Edge]:
        by_document: Dict[str, List[int]] = defaultdict(list)
        for node in nodes:
            by_document[node.document_id].append(node.node_id)

        edges = []
        for ids in by_document.values():
            for i, source in enumerate(ids):
                for distance in range(1, self.window + 1):
                    if i + distance >= len(ids):
                        break
                    edges.append(Edge(
                        source, ids[i + distance],
                        self.same_document_weight_at(distance),
                        EdgeType.SAME_DOCUMENT,
                    ))
        return edges

    def build_semantic_edges(self, nodes: Sequence[Node], embedding_dim: int) -> List[Edge]:
        if len(nodes) < 2:
            return []

        exact = np.vstack([n.embedding for n in nodes]).astype(np.float64)
        norms = np.linalg.norm(exact, axis=1, keepdims=True)
        norms[norms == 0] = 1.0
        exact = exact / norms
        vectors = np.ascontiguousarray(exact, dtype=np.float32)

        index = faiss.IndexFlatIP(embedding_dim)
        index.add(vectors)
        lims, _, labels = index.range_search(vectors, self.semantic_threshold - RANGE_SEARCH_SLACK)

        edges = []
        for i in range(len(nodes)):
            for j in sorted(int(label) for label in labels[lims[i]:lims[i + 1]]):
                if j <= i:
                    continue
                similarity = float(np.dot(exact[i], exact[j]))
                if similarity >= self.semantic_threshold:
                    edges.append(Edge(i, j, min(1.0, max(0.0, similarity)), EdgeType.SEMANTIC))
        return edges

    def build_reference_edges(self, nodes: Sequence[Node]) -> List[Edge]:
        first_by_document: Dict[str, Node] = {}
        first_by_section: Dict[str, Node] = {}
        for node in nodes:
            first_by_document.setdefault(node.document_id, node)
            if node.section_title:
                first_by_section.setdefault(node.section_title.lower(), node)

        document_patterns = []
        for document_id, target in first_by_document.items():
            names = {re.escape(target.source_name)}
            if document_id != target.source_name:
                names.add(re.escape(document_id))
            alternatives = '|'.join(sorted(names, key=len, reverse=True))
            pattern = rf'(?<![\w/.-])(?:{alternatives})(?![\w-])'
            stem = target.source_name.rsplit('.', 1)[0]
            if len(stem) >= MIN_STEM_LENGTH and stem != target.source_name:
                pattern += rf'|{REFERENCE_CUES}\s+(?:the\s+)?["\']?{re.escape(stem)}\b'
            document_patterns.append((target, re.compile(pattern, re.IGNORECASE)))

        section_patterns = []
        for title, target in first_by_section.items():
            escaped = re.escape(title).replace(r'\ ', r'\s+')
            pattern = (
                rf'{REFERENCE_CUES}\s+(?:the\s+)?(?:section\s+["\']?{escaped}\b'
                rf'|["\']?{escaped}["\']?\s+section\b)'
            )
            section_patterns.append((target, re.compile(pattern, re.IGNORECASE)))

        edges = []
        for node in nodes:
            for target, pattern in document_patterns:
                if target.document_id == node.document_id:
                    continue
                if pattern.search(node.text):
                    edges.append(Edge(node.node_id, target.node_id,
                                      self.reference_weight, EdgeType.REFERENCE))
            for target, pattern in section_patterns:
                if target.node_id == node.node_id:
                    continue
                if pattern.search(node.text):
                    edges.append(Edge(node.node_id, target.node_id,
                                      self.reference_weight, EdgeType.REFERENCE))
        return edges

    # ========================================================================
    # GRAPH
    # ========================================================================

    def build(self, chunks: Iterable[EmbeddedChunk], embedding_dim: Optional[int] = None) -> Graph:
        """
        Build the graph.

        Args:
            chunks: Embedded chunks, in any order
            embedding_dim: Expected embedding dimension (checked)

        Returns:
            Graph with deduplicated, sorted edges
        """
        nodes = self.create_nodes(chunks)
        if embedding_dim is None:
            embedding_dim = nodes[0].dimension if nodes else 0

        candidates = (
            self.build_same_document_edges(nodes)
            + self.build_semantic_edges(nodes, embedding_dim)
            + self.build_reference_edges(nodes)
        )

        edges: Dict[tuple, Edge] = {}
        for edge in candidates:
            if edge.source_id != edge.target_id:
                edges.setdefault(edge.key, edge)

        graph = Graph(nodes, edges.values(), embedding_dim=embedding_dim)
        counts = defaultdict(int)
        for edge in graph.edges:
            counts[edge.edge_type.value] += 1
        logger.info(f"Built {graph} ({dict(sorted(counts.items()))})")
        return graph
