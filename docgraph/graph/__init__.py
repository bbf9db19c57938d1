# -*- coding: utf-8 -*-
"""
Graph package for graph construction and index persistence.

Contains graph_builder (dense ids, same_document / semantic / reference
edges) and index_store (lifecycle, JSON persistence, snapshot swapping).
"""
