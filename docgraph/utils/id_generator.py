# -*- coding: utf-8 -*-
"""
Deterministic fingerprints for build reuse.

A persisted index is reused when both fingerprints match: the source
fingerprint covers every candidate document (relative path and bytes), the
config fingerprint covers every setting that changes the built graph.

Example:
    from docgraph.utils.id_generator import source_fingerprint, config_fingerprint

    fp = source_fingerprint("docs/", ["faq.txt", "guide.md"])
"""

import hashlib
import json
from pathlib import Path
from typing import Any, Dict, Iterable, Union


def _hash_string(content: str, length: int = 16) -> str:
    """
    Truncated SHA-256 hash of content.

    Args:
        content: String to hash
        length: Number of hex characters to return

    Returns:
        Lowercase hex hash string
    """
    return hashlib.sha256(content.encode('utf-8')).hexdigest()[:length]


def source_fingerprint(source_dir: Union[str, Path], document_ids: Iterable[str]) -> str:
    """
    Fingerprint the documents of a source directory.

    Unreadable files contribute their path and a marker, so a file that
    becomes readable later changes the fingerprint.
    """
    source_dir = Path(source_dir)
    digest = hashlib.sha256()
    for document_id in sorted(document_ids):
        digest.update(document_id.encode('utf-8'))
        digest.update(b'\0')
        try:
            digest.update((source_dir / document_id).read_bytes())
        except OSError:
            digest.update(b'<unreadable>')
        digest.update(b'\0')
    return digest.hexdigest()[:32]


def config_fingerprint(settings: Dict[str, Any]) -> str:
    """Fingerprint of build settings (key order independent)."""
    return _hash_string(json.dumps(settings, sort_keys=True, default=str), length=32)
