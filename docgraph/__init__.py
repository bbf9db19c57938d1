# -*- coding: utf-8 -*-
"""
docgraph: graph-based semantic search over plain-text documents.

Examples:
    from docgraph import GraphSearchEngine
    engine = GraphSearchEngine()
    engine.initialize("docs/", "index/", max_results=5)
    engine.build_index()
    print(engine.answer("how do I get a refund"))
"""
from docgraph.engine import GraphSearchEngine
from docgraph.utils.dataclasses import EngineState, StatusCode

__version__ = "0.1.0"

__all__ = ["GraphSearchEngine", "EngineState", "StatusCode", "__version__"]
