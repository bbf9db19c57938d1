# -*- coding: utf-8 -*-
"""
Exception taxonomy for docgraph

Every error carries the StatusCode that lifecycle operations report for it.
Per-document and per-chunk errors (DocumentUnreadable, EmbeddingError) are
caught and counted during a build; state and argument errors from search()
propagate to the caller.
"""
from typing import Dict, Optional

from docgraph.utils.dataclasses import StatusCode


class DocGraphError(Exception):
    """Base class for all docgraph errors."""
    status = StatusCode.CONFIG_ERROR


class ConfigError(DocGraphError):
    """Missing or unreadable source directory, bad index location or settings."""
    status = StatusCode.CONFIG_ERROR


class IndexIOError(DocGraphError, OSError):
    """Persisted index cannot be read or written."""
    status = StatusCode.IO_ERROR


class IndexCorruptError(DocGraphError):
    """Persisted index is malformed or has an unexpected format version."""
    status = StatusCode.INDEX_CORRUPT


class DocumentUnreadable(DocGraphError):
    """A single source document could not be read or decoded."""
    status = StatusCode.PARTIAL_BUILD

    def __init__(self, document_id: str, reason: str):
        super().__init__(f"{document_id}: {reason}")
        self.document_id = document_id
        self.reason = reason


class EmbeddingError(DocGraphError):
    """The embedding provider failed for one chunk or returned a bad vector."""
    status = StatusCode.PARTIAL_BUILD


class PartialBuildError(DocGraphError):
    """
    Aggregate warning: the index was built but some inputs were skipped.

    Not raised by build_index() (which returns PARTIAL_BUILD); available for
    callers that prefer exceptions, see GraphSearchEngine.require_complete_build().
    """
    status = StatusCode.PARTIAL_BUILD

    def __init__(self, unreadable: Optional[Dict[str, str]] = None, failed_chunks: int = 0):
        unreadable = unreadable or {}
        super().__init__(
            f"Build skipped {len(unreadable)} documents and {failed_chunks} chunks"
        )
        self.unreadable = unreadable
        self.failed_chunks = failed_chunks


class NotReadyError(DocGraphError):
    """Operation needs an initialized engine or a loaded/built index."""
    status = StatusCode.NOT_READY


class InvalidArgumentError(DocGraphError, ValueError):
    """Caller supplied an invalid argument (blank query, max_results <= 0, ...)."""
    status = StatusCode.INVALID_ARGUMENT
