# -*- coding: utf-8 -*-
"""
Shared fixtures for the docgraph test suite.

Embedding providers here are deterministic and offline: HashingEmbedder maps
each lowercase token to a signed bucket (md5), so texts sharing words get a
positive cosine similarity and identical texts get identical vectors.
"""
import hashlib
import re
import sys
from pathlib import Path

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from docgraph.utils.dataclasses import (  # noqa: E402
    Edge, EdgeType, Graph, IndexMetadata, IndexSnapshot, Node, NodeType,
)

_TOKEN = re.compile(r'[a-z0-9]+')


class HashingEmbedder:
    """Bag-of-words hashing embedder (deterministic, thread-safe)."""

    name = 'hashing-test'

    def __init__(self, dim: int = 256):
        self.dim = dim
        self.calls = 0

    def embed_single(self, text):
        self.calls += 1
        vector = np.zeros(self.dim, dtype=np.float32)
        for token in _TOKEN.findall(text.lower()):
            digest = hashlib.md5(token.encode('utf-8')).digest()
            bucket = int.from_bytes(digest[:4], 'little') % self.dim
            vector[bucket] += 1.0 if digest[4] % 2 == 0 else -1.0
        norm = np.linalg.norm(vector)
        return vector / norm if norm > 0 else vector

    def get_embedding_dim(self):
        return self.dim


class FailingEmbedder(HashingEmbedder):
    """Raises for any text containing EMBED_FAIL."""

    def embed_single(self, text):
        if 'EMBED_FAIL' in text:
            raise RuntimeError("model crashed")
        return super().embed_single(text)


class LookupEmbedder:
    """Returns preset vectors for exact texts (for hand-built graphs)."""

    name = 'lookup-test'

    def __init__(self, vectors, dim):
        self.vectors = {k: np.asarray(v, dtype=np.float32) for k, v in vectors.items()}
        self.dim = dim

    def embed_single(self, text):
        return self.vectors[text]

    def get_embedding_dim(self):
        return self.dim


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def hashing_embedder():
    return HashingEmbedder(dim=256)


@pytest.fixture
def failing_embedder():
    return FailingEmbedder(dim=256)


@pytest.fixture
def lookup_embedder():
    """Factory: lookup_embedder({text: vector}, dim)."""
    return LookupEmbedder


@pytest.fixture
def write_docs(tmp_path):
    """Factory writing {relative_path: text} under tmp_path/docs."""
    def _write(files):
        source = tmp_path / 'docs'
        source.mkdir(exist_ok=True)
        for name, text in files.items():
            path = source / name
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(text, bytes):
                path.write_bytes(text)
            else:
                path.write_text(text, encoding='utf-8')
        return source
    return _write


@pytest.fixture
def make_snapshot():
    """
    Factory for hand-built snapshots.

    make_snapshot(embeddings, edges, types=None, qa=None) where edges are
    (source, target, weight) tuples (semantic type) and qa maps node id to
    (question, answer, question_embedding).
    """
    def _make(embeddings, edges=(), types=None, qa=None, documents=None):
        types = types or {}
        qa = qa or {}
        nodes = []
        for node_id, vector in enumerate(embeddings):
            question, answer, question_vector = qa.get(node_id, (None, None, None))
            document = (documents or {}).get(node_id, f"doc{node_id}.txt")
            nodes.append(Node(
                node_id=node_id,
                document_id=document,
                source_name=document,
                offset=0,
                text=f"node {node_id} text",
                embedding=vector,
                node_type=types.get(node_id, NodeType.QA if node_id in qa else NodeType.FACT),
                question=question,
                answer=answer,
                question_embedding=question_vector,
            ))
        graph = Graph(nodes, [Edge(s, t, w, EdgeType.SEMANTIC) for s, t, w in edges])
        metadata = IndexMetadata(
            name='test', format_version=1, source_dir='.', max_results=10,
            built_at='2026-01-01T00:00:00+00:00',
        )
        return IndexSnapshot(graph=graph, metadata=metadata)
    return _make
