# -*- coding: utf-8 -*-
"""
Retrieval package for query processing and answer composition.
"""
