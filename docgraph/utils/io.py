# -*- coding: utf-8 -*-
"""
I/O utilities for index artifacts

JSON helpers with consistent encoding and logging. save_json() writes to a
temporary file in the target directory and renames it over the destination,
so readers never observe a half-written index.

Examples:
    from docgraph.utils.io import load_json, save_json
    payload = load_json("index/graph_index.json")
    save_json(payload, "index/graph_index.json")

"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Union

import numpy as np

logger = logging.getLogger(__name__)


# ============================================================================
# JSON
# ============================================================================

def load_json(path: Union[str, Path]) -> Any:
    """
    Load JSON file.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON content
    """
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    logger.info(f"Loaded {path} ({_size_str(path)})")
    return data


def save_json(
    data: Any,
    path: Union[str, Path],
    indent: int = None,
) -> str:
    """
    Atomically save data to a JSON file.

    Args:
        data: Data to save (JSON-serializable, numpy values allowed)
        path: Output path
        indent: Indentation level (default compact)

    Returns:
        Path string
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix='.tmp', dir=str(path.parent))
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=indent, ensure_ascii=False, default=_serialize)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise

    logger.info(f"Saved {path} ({_size_str(path)})")
    return str(path)


# ============================================================================
# HELPERS
# ============================================================================

def _serialize(obj: Any) -> Any:
    """Fallback serializer for numpy types and paths."""
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, Path):
        return obj.as_posix()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _size_str(path: Path) -> str:
    """Human-readable file size."""
    size = path.stat().st_size
    if size < 1024:
        return f"{size} B"
    if size < 1024 ** 2:
        return f"{size / 1024:.1f} KB"
    return f"{size / 1024 ** 2:.1f} MB"
