# -*- coding: utf-8 -*-
"""
Module: search_config.py
Package: config
Purpose: Configuration for index building and graph search

Defaults for chunking, embedding, graph construction, traversal, the
question/answer shortcut and response composition. Values marked (env) can
be overridden from a .env file or the process environment.
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _env_int(name, default):
    value = os.getenv(name)
    return int(value) if value not in (None, '') else default


# ============================================================================
# INGESTION
# ============================================================================

CHUNKING_CONFIG = {
    'chunk_words': 150,              # Target words per chunk window
    'overlap_words': 25,             # Words shared between consecutive windows
    'max_words': 200,                # Hard upper bound for a single chunk
    'extensions': ('.txt', '.md'),   # Candidate document suffixes
    'encoding': 'utf-8',
}


# ============================================================================
# EMBEDDING
# ============================================================================

EMBEDDING_CONFIG = {
    'model_name': os.getenv('DOCGRAPH_EMBEDDING_MODEL', 'BAAI/bge-small-en-v1.5'),  # (env)
    'device': os.getenv('DOCGRAPH_EMBEDDING_DEVICE') or None,                       # (env)
    'normalize': True,
}


# ============================================================================
# GRAPH CONSTRUCTION
# ============================================================================

GRAPH_CONFIG = {
    # same_document edges
    'same_document_window': 2,       # Max positional distance inside a document
    'same_document_weight': 0.9,     # Weight for adjacent chunks
    'same_document_falloff': 0.5,    # Multiplier per extra position of distance

    # semantic edges
    'semantic_threshold': 0.6,       # Min cosine similarity for an edge

    # reference edges
    'reference_weight': 0.8,
}


# ============================================================================
# TRAVERSAL / RANKING
# ============================================================================

TRAVERSAL_CONFIG = {
    'top_k': 5,                      # Seed nodes per query
    'max_depth': 2,                  # Max hops from a seed
    'decay': 0.7,                    # Score multiplier per hop
    'max_visited_nodes': 1000,       # Visit budget per query
}


# ============================================================================
# QUESTION / ANSWER SHORTCUT
# ============================================================================

QA_CONFIG = {
    'qa_threshold': 0.25,            # Min query/question cosine similarity
    'keyword_overlap_min': 0.6,      # Fallback: share of question keywords in query
}


# ============================================================================
# RESPONSE COMPOSITION
# ============================================================================

RESPONSE_CONFIG = {
    'header': 'Based on the information available:',
    'max_snippets': 3,
    'no_results_message': 'No relevant information found.',
}


# ============================================================================
# INDEX / BUILD
# ============================================================================

INDEX_CONFIG = {
    'format': 'docgraph-index',
    'format_version': 1,
    'index_filename': 'graph_index.json',
    'name': 'docgraph',
    'default_max_results': 10,
}

BUILD_CONFIG = {
    'max_workers': _env_int('DOCGRAPH_MAX_WORKERS', 4),   # (env)
    'show_progress': False,
}

LOGGING_CONFIG = {
    'level': os.getenv('DOCGRAPH_LOG_LEVEL', 'INFO'),     # (env)
    'log_file': os.getenv('DOCGRAPH_LOG_FILE') or None,
}
