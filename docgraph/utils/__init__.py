# -*- coding: utf-8 -*-
"""
Shared utilities: data structures, errors, embedding providers, logging,
JSON I/O, fingerprints and text helpers.
"""
