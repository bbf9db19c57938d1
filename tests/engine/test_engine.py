# -*- coding: utf-8 -*-
"""
End-to-end engine tests: lifecycle, scenarios and snapshot isolation.
"""
from concurrent.futures import ThreadPoolExecutor

import pytest

from docgraph.engine import GraphSearchEngine
from docgraph.retrieval.request_handler import handle_request
from docgraph.utils.dataclasses import EngineState, StatusCode
from docgraph.utils.errors import InvalidArgumentError, NotReadyError, PartialBuildError

pytestmark = pytest.mark.engine


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def engine(hashing_embedder):
    return GraphSearchEngine(embedder=hashing_embedder, max_workers=2)


@pytest.fixture
def ready_engine(engine, write_docs, tmp_path):
    source = write_docs({
        'faq.txt': "Q: How do I process a refund? A: Visit settings > refunds.",
        'doc1.txt': "The refund policy covers thirty days of purchases.",
        'doc2.txt': "Shipping policy covers international orders.",
    })
    assert engine.initialize(source, tmp_path / 'index', max_results=5) == StatusCode.OK
    assert engine.build_index() == StatusCode.OK
    return engine


class TestLifecycle:

    def test_nonexistent_source_dir(self, engine, tmp_path):
        """Missing source directory keeps the engine uninitialized"""
        status = engine.initialize(tmp_path / 'does-not-exist', tmp_path / 'index', 5)

        assert status == StatusCode.CONFIG_ERROR
        assert engine.get_state() == EngineState.UNINITIALIZED

    def test_search_before_ready(self, engine, write_docs, tmp_path):
        """Searching before a build raises NotReadyError"""
        with pytest.raises(NotReadyError):
            engine.search("anything")

        engine.initialize(write_docs({'a.txt': 'alpha'}), tmp_path / 'index', 5)
        with pytest.raises(NotReadyError):
            engine.search("anything")

    def test_ready_after_build(self, ready_engine):
        """A successful build makes the engine ready"""
        assert ready_engine.get_state() == EngineState.READY

    def test_require_complete_build(self, failing_embedder, write_docs, tmp_path):
        """Partial builds fail when a complete build is required"""
        engine = GraphSearchEngine(embedder=failing_embedder)
        engine.initialize(write_docs({'a.txt': 'fine', 'b.txt': 'EMBED_FAIL'}), tmp_path / 'index', 5)

        assert engine.build_index() == StatusCode.PARTIAL_BUILD
        with pytest.raises(PartialBuildError):
            engine.require_complete_build()


class TestScenarios:

    def test_refund_question_answered_directly(self, ready_engine):
        """A stored answer is returned verbatim"""
        assert ready_engine.answer("how do I get a refund") == "Visit settings > refunds."

    def test_fallback_summary(self, hashing_embedder, write_docs, tmp_path):
        """Without a Q&A match the summary cites its sources"""
        engine = GraphSearchEngine(embedder=hashing_embedder)
        source = write_docs({
            'doc1.txt': "The refund policy covers thirty days of purchases.",
            'doc2.txt': "Shipping policy covers international orders.",
        })
        engine.initialize(source, tmp_path / 'index', max_results=3)
        engine.build_index()

        text = engine.answer("refund policy covers purchases")

        assert text == (
            "Based on the information available:\n"
            "- The refund policy covers thirty days of purchases. (Source: doc1.txt)\n"
            "- Shipping policy covers international orders. (Source: doc2.txt)"
        )

    def test_search_respects_max_results(self, ready_engine):
        """search returns at most max_results snippets"""
        assert len(ready_engine.search("refund policy", max_results=1)) == 1
        assert len(ready_engine.search("refund policy")) <= 5

    def test_invalid_max_results(self, ready_engine):
        """Non-positive max_results raises InvalidArgumentError"""
        with pytest.raises(InvalidArgumentError):
            ready_engine.search("refund", max_results=0)

    def test_rebuild_deterministic(self, ready_engine, hashing_embedder, tmp_path):
        """Two engines over the same source build equal graphs"""
        other = GraphSearchEngine(embedder=hashing_embedder)
        other.initialize(ready_engine.store.source_dir, tmp_path / 'other-index', 5)
        other.build_index()

        assert other.snapshot().graph == ready_engine.snapshot().graph


class TestSnapshotIsolation:

    def test_in_flight_snapshot_survives_rebuild(self, ready_engine):
        """A held snapshot is untouched by a rebuild"""
        old = ready_engine.snapshot()
        (ready_engine.store.source_dir / 'new.txt').write_text("Gift cards never expire.", encoding='utf-8')

        assert ready_engine.build_index() == StatusCode.OK

        new = ready_engine.snapshot()
        assert new is not old
        assert len(old.graph.nodes) == 3
        assert len(new.graph.nodes) == 4
        result = ready_engine.query_processor.process(old, "gift cards", 5)
        assert all(s.node_id < 3 for s in result.snippets)

    def test_concurrent_queries(self, ready_engine):
        """Parallel queries give the same answers"""
        with ThreadPoolExecutor(max_workers=4) as executor:
            answers = list(executor.map(ready_engine.answer, ["how do I get a refund"] * 16))

        assert set(answers) == {"Visit settings > refunds."}


class TestRequestHandler:

    def test_graph_method(self, ready_engine):
        """The graph method returns the composed answer"""
        response = handle_request(ready_engine, {'query': 'how do I get a refund', 'search_method': 'graph'})

        assert response == {'text': 'Visit settings > refunds.'}

    def test_unsupported_method(self, ready_engine):
        """Unknown search methods are rejected"""
        with pytest.raises(InvalidArgumentError):
            handle_request(ready_engine, {'query': 'refund', 'search_method': 'bm25'})

    def test_missing_query(self, ready_engine):
        """Requests without a query are rejected"""
        with pytest.raises(InvalidArgumentError):
            handle_request(ready_engine, {'search_method': 'graph'})
