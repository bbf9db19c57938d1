# -*- coding: utf-8 -*-
"""
Query processing: seeding, graph traversal, ranking and the Q&A shortcut.

Pipeline for one query against one immutable IndexSnapshot:
(1) embed the query,
(2) seed with the top_k nodes by cosine similarity (ties by ascending id),
(3) traverse up to max_depth hops, scoring every reached node with
    seed similarity * product of edge weights * decay ** hops and keeping the
    maximum per node, within a max_visited_nodes budget,
(4) rank visited nodes by score descending, ties by id, truncated to
    max_results,
(5) if a visited qa node's question matches the query (embedding similarity
    >= qa_threshold, else keyword overlap > keyword_overlap_min) its answer
    is returned first as the direct answer.

Seed similarities below zero are floored at 0 before propagation. The
snapshot is captured by the caller, so a concurrent rebuild never changes
the graph mid-query.

Examples:
    processor = QueryProcessor(embedder)
    result = processor.process(snapshot, "how do I get a refund", max_results=5)
    if result.direct_answer:
        print(result.direct_answer)

References:
    config.search_config.TRAVERSAL_CONFIG: top_k, max_depth, decay, budget
    config.search_config.QA_CONFIG: qa_threshold, keyword_overlap_min
"""
# Standard library
import logging
from typing import Dict, List, Optional, Tuple

# Third-party
import numpy as np
from sklearn.metrics.pairwise import cosine_similarity

# Config imports (direct)
from config.search_config import QA_CONFIG, TRAVERSAL_CONFIG

# Project imports
from docgraph.ingestion.embed_processor import embed_text
from docgraph.utils.dataclasses import Graph, IndexSnapshot, NodeType, QueryResult, Snippet
from docgraph.utils.embedder import EmbeddingProvider
from docgraph.utils.errors import InvalidArgumentError, NotReadyError
from docgraph.utils.text_utils import keyword_overlap

logger = logging.getLogger(__name__)


def validate_max_results(max_results) -> int:
    if isinstance(max_results, bool) or not isinstance(max_results, int) or max_results <= 0:
        raise InvalidArgumentError(f"max_results must be a positive integer, got {max_results!r}")
    return max_results


def validate_query(query) -> str:
    if not isinstance(query, str) or not query.strip():
        raise InvalidArgumentError("query must be a non-empty string")
    return query


class QueryProcessor:
    """
    Graph search over an IndexSnapshot.

    Args:
        embedder: Provider used for the query (and uncached question) vectors
        traversal_config: Overrides of TRAVERSAL_CONFIG keys
        qa_config: Overrides of QA_CONFIG keys
    """

    def __init__(self, embedder: EmbeddingProvider, traversal_config: Dict = None,
                 qa_config: Dict = None):
        traversal = dict(TRAVERSAL_CONFIG)
        traversal.update(traversal_config or {})
        qa = dict(QA_CONFIG)
        qa.update(qa_config or {})

        self.embedder = embedder
        self.top_k = int(traversal['top_k'])
        self.max_depth = int(traversal['max_depth'])
        self.decay = float(traversal['decay'])
        self.max_visited_nodes = int(traversal['max_visited_nodes'])
        self.qa_threshold = float(qa['qa_threshold'])
        self.keyword_overlap_min = float(qa['keyword_overlap_min'])

        if self.top_k <= 0 or self.max_depth < 0 or self.max_visited_nodes <= 0:
            raise ValueError("top_k and max_visited_nodes must be positive, max_depth >= 0")

    # ========================================================================
    # STEPS
    # ========================================================================

    def embed_query(self, graph: Graph, query: str) -> np.ndarray:
        return embed_text(self.embedder, query, graph.embedding_dim)

    def select_seeds(self, graph: Graph, query_vector: np.ndarray) -> List[Tuple[int, float]]:
        """Top-k (node_id, cosine similarity), similarity desc then id asc."""
        similarities = cosine_similarity(
            query_vector.reshape(1, -1).astype(np.float64),
            graph.embedding_matrix().astype(np.float64),
        )[0]
        ids = np.arange(len(similarities))
        order = np.lexsort((ids, -similarities))[:self.top_k]
        return [(int(i), float(similarities[i])) for i in order]

    def traverse(self, graph: Graph, seeds: List[Tuple[int, float]]) -> Dict[int, float]:
        """
        Layered max-product relaxation from the seeds.

        Returns:
            {node_id: best score} for every visited node
        """
        best: Dict[int, float] = {}
        for node_id, similarity in seeds:
            best[node_id] = max(best.get(node_id, 0.0), max(0.0, similarity))
        frontier = dict(best)

        for hop in range(1, self.max_depth + 1):
            improved: Dict[int, float] = {}
            for node_id in sorted(frontier):
                base = frontier[node_id]
                for edge in graph.neighbors(node_id):
                    neighbor = edge.other(node_id)
                    candidate = base * edge.weight * self.decay
                    if neighbor in best:
                        if candidate <= best[neighbor]:
                            continue
                    elif len(best) >= self.max_visited_nodes:
                        continue
                    best[neighbor] = candidate
                    improved[neighbor] = candidate
            if not improved:
                break
            frontier = improved

        return best

    def rank(self, scores: Dict[int, float], max_results: int) -> List[Tuple[int, float]]:
        ranked = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
        return ranked[:max_results]

    def match_question(self, graph: Graph, query: str, query_vector: np.ndarray,
                       visited: Dict[int, float]) -> Optional[int]:
        """
        Visited qa node whose question best matches the query, or None.

        Embedding similarity is tried first; keyword overlap is the fallback.
        Ties go to the lower node id.
        """
        qa_ids = sorted(i for i in visited if graph.nodes[i].node_type == NodeType.QA)
        if not qa_ids:
            return None

        vectors = []
        for node_id in qa_ids:
            node = graph.nodes[node_id]
            if node.question_embedding is not None:
                vectors.append(node.question_embedding)
            else:
                vectors.append(embed_text(self.embedder, node.question, graph.embedding_dim))
        similarities = cosine_similarity(
            query_vector.reshape(1, -1).astype(np.float64),
            np.vstack(vectors).astype(np.float64),
        )[0]

        best_index = int(np.argmax(similarities))
        if similarities[best_index] >= self.qa_threshold:
            logger.debug(f"Q&A match node {qa_ids[best_index]} (similarity {similarities[best_index]:.3f})")
            return qa_ids[best_index]

        overlaps = [keyword_overlap(graph.nodes[i].question, query) for i in qa_ids]
        best_index = int(np.argmax(overlaps))
        if overlaps[best_index] > self.keyword_overlap_min:
            logger.debug(f"Q&A match node {qa_ids[best_index]} (keyword overlap {overlaps[best_index]:.2f})")
            return qa_ids[best_index]
        return None

    # ========================================================================
    # PIPELINE
    # ========================================================================

    def process(self, snapshot: Optional[IndexSnapshot], query: str, max_results: int) -> QueryResult:
        """
        Run the full query pipeline.

        Raises:
            NotReadyError: no snapshot is loaded
            InvalidArgumentError: blank query or max_results not a positive int
            EmbeddingError: the query could not be embedded
        """
        validate_query(query)
        validate_max_results(max_results)
        if snapshot is None:
            raise NotReadyError("No index loaded, call build_index() or load() first")

        graph = snapshot.graph
        if not graph.nodes:
            return QueryResult(query=query)

        query_vector = self.embed_query(graph, query)
        seeds = self.select_seeds(graph, query_vector)
        visited = self.traverse(graph, seeds)
        ranked = self.rank(visited, max_results)

        snippets = [self._snippet(graph, node_id, score) for node_id, score in ranked]

        match_id = self.match_question(graph, query, query_vector, visited)
        if match_id is not None:
            node = graph.nodes[match_id]
            direct = self._snippet(graph, match_id, visited[match_id])
            direct.direct_answer = node.answer
            others = [s for s in snippets if s.node_id != match_id]
            snippets = [direct] + others[:max_results - 1]

        logger.debug(
            f"Query {query!r}: {len(seeds)} seeds, {len(visited)} visited, "
            f"{len(snippets)} results, direct_answer={match_id is not None}"
        )
        return QueryResult(
            query=query,
            snippets=snippets,
            seeds=seeds,
            visited_count=len(visited),
            direct_answer_node_id=match_id,
        )

    @staticmethod
    def _snippet(graph: Graph, node_id: int, score: float) -> Snippet:
        node = graph.nodes[node_id]
        return Snippet(
            node_id=node_id,
            text=node.text,
            source_name=node.source_name,
            score=score,
            document_id=node.document_id,
            node_type=node.node_type,
        )
