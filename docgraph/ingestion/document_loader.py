# -*- coding: utf-8 -*-
"""
Document

Loads plain-text documents (.txt, .md) from a source directory into the
Document format used downstream. Files are discovered recursively and
returned in sorted relative-path order so that builds are deterministic.
A file that cannot be read or decoded raises DocumentUnreadable for that
file only; callers decide whether to skip it.

Examples:
    loader = DocumentLoader()
    for path in loader.list_documents("docs/"):
        doc = loader.load_document(path, "docs/")

"""
import logging
from pathlib import Path
from typing import Iterable, List, Union

from config.search_config import CHUNKING_CONFIG
from docgraph.utils.dataclasses import Document
from docgraph.utils.errors import ConfigError, DocumentUnreadable

logger = logging.getLogger(__name__)


class DocumentLoader:
    """
    Loader for a directory of plain-text documents.

    Usage:
        loader = DocumentLoader(extensions=('.txt',))
        paths = loader.list_documents("docs/")
    """

    def __init__(self, extensions: Iterable[str] = None, encoding: str = None):
        """
        Args:
            extensions: File suffixes to ingest (case-insensitive)
            encoding: Text encoding of source files
        """
        extensions = extensions or CHUNKING_CONFIG['extensions']
        self.extensions = tuple(sorted(e.lower() for e in extensions))
        self.encoding = encoding or CHUNKING_CONFIG['encoding']

    def list_documents(self, source_dir: Union[str, Path]) -> List[Path]:
        """
        Candidate documents under source_dir, sorted by relative path.

        Hidden files and directories (leading '.') are ignored.

        Raises:
            ConfigError: source_dir is missing or not a directory
        """
        source_dir = Path(source_dir)
        if not source_dir.is_dir():
            raise ConfigError(f"Source directory not found: {source_dir}")

        candidates = []
        for path in source_dir.rglob('*'):
            relative = path.relative_to(source_dir)
            if any(part.startswith('.') for part in relative.parts):
                continue
            if path.suffix.lower() in self.extensions and path.is_file():
                candidates.append(path)
        logger.debug(f"Found {len(candidates)} candidate documents in {source_dir}")
        return sorted(candidates, key=lambda p: p.relative_to(source_dir).as_posix())

    def load_document(self, path: Union[str, Path], source_dir: Union[str, Path]) -> Document:
        """
        Read one document.

        Raises:
            DocumentUnreadable: the file cannot be opened or decoded
        """
        path = Path(path)
        document_id = path.relative_to(source_dir).as_posix()
        try:
            text = path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentUnreadable(document_id, str(e)) from e

        return Document(
            document_id=document_id,
            source_name=path.name,
            path=str(path),
            text=text,
        )
