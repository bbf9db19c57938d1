# -*- coding: utf-8 -*-
"""
Graph construction tests: id assignment, edge classes and determinism.
"""
import numpy as np
import pytest

from docgraph.graph.graph_builder import GraphBuilder
from docgraph.ingestion.text_chunker import TextChunker
from docgraph.utils.dataclasses import (
    Document, Edge, EdgeType, EmbeddedChunk, Graph, Node, NodeType,
)

pytestmark = pytest.mark.graph


def chunk(document_id, offset, text, embedding, position=0, section_title=None):
    return EmbeddedChunk(
        document_id=document_id,
        source_name=document_id.rsplit('/', 1)[-1],
        offset=offset,
        position=position,
        text=text,
        embedding=np.asarray(embedding, dtype=np.float32),
        section_title=section_title,
    )


def orthogonal(i, dim=16):
    vector = np.zeros(dim, dtype=np.float32)
    vector[i] = 1.0
    return vector


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def builder():
    return GraphBuilder()


class TestNodes:

    def test_ids_follow_document_and_offset(self, builder):
        """Node ids follow (document_id, offset) order"""
        chunks = [
            chunk('b.txt', 0, 'b0', orthogonal(0)),
            chunk('a.txt', 50, 'a1', orthogonal(1)),
            chunk('a.txt', 0, 'a0', orthogonal(2)),
        ]

        graph = builder.build(chunks)

        assert [(n.document_id, n.offset) for n in graph.nodes.values()] == [
            ('a.txt', 0), ('a.txt', 50), ('b.txt', 0),
        ]
        assert list(graph.nodes) == [0, 1, 2]

    def test_offsets_within_document_bounds(self, builder, hashing_embedder):
        """Every node offset lies inside its document"""
        text = "Intro.\n" + ' '.join(f"w{i}" for i in range(400))
        doc = Document(document_id='long.txt', source_name='long.txt', path='long.txt', text=text)
        chunks = [
            EmbeddedChunk(**vars(c), embedding=hashing_embedder.embed_single(c.text))
            for c in TextChunker().chunk_document(doc)
        ]

        graph = builder.build(chunks)

        for node in graph.nodes.values():
            assert node.document_id
            assert 0 <= node.offset < len(text)

    def test_embeddings_are_read_only(self, builder):
        """Node embeddings cannot be modified in place"""
        graph = builder.build([chunk('a.txt', 0, 'a', orthogonal(0))])

        with pytest.raises(ValueError):
            graph.nodes[0].embedding[0] = 5.0


class TestSameDocumentEdges:

    def test_window_and_decreasing_weights(self, builder):
        """Neighbour weights fall off with distance inside the window"""
        chunks = [chunk('a.txt', i * 10, f"a{i}", orthogonal(i), position=i) for i in range(4)]
        chunks.append(chunk('b.txt', 0, 'b0', orthogonal(5)))

        graph = builder.build(chunks)
        same = {(e.source_id, e.target_id): e.weight
                for e in graph.edges if e.edge_type == EdgeType.SAME_DOCUMENT}

        assert same == {
            (0, 1): pytest.approx(0.9), (1, 2): pytest.approx(0.9), (2, 3): pytest.approx(0.9),
            (0, 2): pytest.approx(0.45), (1, 3): pytest.approx(0.45),
        }

    def test_only_within_one_document(self, builder):
        """Chunks from different documents are never neighbours"""
        chunks = [chunk(f"d{i}.txt", 0, f"d{i}", orthogonal(i)) for i in range(3)]

        graph = builder.build(chunks)

        for edge in graph.edges:
            if edge.edge_type == EdgeType.SAME_DOCUMENT:
                assert graph.nodes[edge.source_id].document_id == graph.nodes[edge.target_id].document_id
        assert not [e for e in graph.edges if e.edge_type == EdgeType.SAME_DOCUMENT]


class TestSemanticEdges:

    def test_threshold_and_weight(self, builder):
        """Pairs at or above the threshold are linked with their similarity"""
        vectors = {
            'a': [1.0, 0.0, 0.0, 0.0],
            'b': [0.8, 0.6, 0.0, 0.0],     # cos(a, b) = 0.8
            'c': [0.0, 0.0, 1.0, 0.0],     # orthogonal to a and b
            'd': [0.7, 0.0, 0.714, 0.0],   # ~0.70 with a, ~0.71 with c, ~0.56 with b
        }
        chunks = [chunk(f"{name}.txt", 0, name, vec) for name, vec in vectors.items()]

        graph = builder.build(chunks)
        semantic = {(e.source_id, e.target_id): e.weight
                    for e in graph.edges if e.edge_type == EdgeType.SEMANTIC}

        assert set(semantic) == {(0, 1), (0, 3), (2, 3)}
        assert semantic[(0, 1)] == pytest.approx(0.8, abs=1e-6)
        assert all(0.6 <= w <= 1.0 for w in semantic.values())

    def test_identical_vectors_weight_one(self, builder):
        """Identical vectors get weight 1.0"""
        chunks = [chunk('a.txt', 0, 'x', orthogonal(3)), chunk('b.txt', 0, 'y', orthogonal(3))]

        graph = builder.build(chunks)

        (edge,) = [e for e in graph.edges if e.edge_type == EdgeType.SEMANTIC]
        assert edge.weight == pytest.approx(1.0)


class TestReferenceEdges:

    def test_file_name_and_stem_references(self, builder):
        """A file name or a cued stem links to that document"""
        chunks = [
            chunk('guide.txt', 0, 'For limits see doc2.txt and refer to pricing for costs.', orthogonal(0)),
            chunk('doc2.txt', 0, 'Limits are listed here.', orthogonal(1)),
            chunk('doc2.txt', 40, 'More limits.', orthogonal(2), position=1),
            chunk('pricing.md', 0, 'Costs are listed here.', orthogonal(3)),
        ]

        graph = builder.build(chunks)
        references = {(e.source_id, e.target_id): e.weight
                      for e in graph.edges if e.edge_type == EdgeType.REFERENCE}

        # ids: doc2.txt@0=0, doc2.txt@40=1, guide.txt=2, pricing.md=3
        assert references == {(0, 2): pytest.approx(0.8), (2, 3): pytest.approx(0.8)}

    def test_section_reference(self, builder):
        """A cued section title links to the chunk under that header"""
        chunks = [
            chunk('manual.md', 0, '# Billing\nInvoices are monthly.', orthogonal(0), section_title='Billing'),
            chunk('manual.md', 100, 'Details are described in section Billing above.', orthogonal(1), position=1),
        ]

        graph = builder.build(chunks)

        assert Edge(0, 1, 0.8, EdgeType.REFERENCE) in graph.edges

    def test_no_reference_without_mention(self, builder):
        """No reference edge without an explicit mention"""
        chunks = [chunk('a.txt', 0, 'Nothing to see here.', orthogonal(0)),
                  chunk('b.txt', 0, 'Unrelated.', orthogonal(1))]

        graph = builder.build(chunks)

        assert not [e for e in graph.edges if e.edge_type == EdgeType.REFERENCE]


class TestGraphInvariants:

    def test_rebuild_is_identical(self, builder, hashing_embedder):
        """Same chunks give the same graph"""
        texts = ["refund policy details", "refund policy summary", "shipping times", "see a.txt"]
        chunks = [chunk(name, 0, text, hashing_embedder.embed_single(text))
                  for name, text in zip(['a.txt', 'b.txt', 'c.txt', 'd.txt'], texts)]

        first = builder.build(chunks)
        second = builder.build(list(reversed(chunks)))

        assert first == second
        assert first.equivalent(second)

    def test_edges_unique_and_valid(self, builder, hashing_embedder):
        """One edge per pair and type, no self loops"""
        texts = ["alpha beta", "alpha beta gamma", "alpha beta delta", "see a.txt alpha beta"]
        chunks = [chunk('a.txt', i * 20, t, hashing_embedder.embed_single(t), position=i)
                  for i, t in enumerate(texts)]

        graph = builder.build(chunks)
        keys = [e.key for e in graph.edges]

        assert len(keys) == len(set(keys))
        assert keys == sorted(keys)
        for edge in graph.edges:
            assert edge.source_id < edge.target_id
            assert edge.source_id in graph.nodes and edge.target_id in graph.nodes

    def test_graph_rejects_invalid_structure(self):
        """Self loops and other invalid structures raise ValueError"""
        nodes = [Node(i, 'a.txt', 'a.txt', i, 't', orthogonal(i)) for i in range(2)]

        with pytest.raises(ValueError):
            Graph(nodes, [Edge(0, 0, 0.5, EdgeType.SEMANTIC)])
        with pytest.raises(ValueError):
            Graph(nodes, [Edge(0, 5, 0.5, EdgeType.SEMANTIC)])
        with pytest.raises(ValueError):
            Graph(nodes, [Edge(0, 1, 0.5, EdgeType.SEMANTIC), Edge(1, 0, 0.7, EdgeType.SEMANTIC)])
        with pytest.raises(ValueError):
            Graph([Node(3, 'a.txt', 'a.txt', 0, 't', orthogonal(0))], [])

    def test_qa_node_requires_answer(self):
        """qa nodes need both question and answer"""
        with pytest.raises(ValueError):
            Node(0, 'a.txt', 'a.txt', 0, 't', orthogonal(0), node_type=NodeType.QA, question='Why?')
