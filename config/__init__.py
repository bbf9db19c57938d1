# -*- coding: utf-8 -*-
"""
Configuration constants for docgraph (see search_config).
"""
