# -*- coding: utf-8 -*-
"""
Caller-facing request contract.

Request:  {"query": str, "search_method": "graph"}
Response: {"text": str}

Transport (HTTP or otherwise) is up to the host application; only the
"graph" method is served here.
"""
import logging
from typing import Any, Dict, Mapping

from docgraph.utils.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ('graph',)


def handle_request(engine, request: Mapping[str, Any]) -> Dict[str, str]:
    """
    Answer one request with the given engine.

    Raises:
        InvalidArgumentError: malformed request or unsupported search_method
        NotReadyError: the engine has no index loaded
    """
    if not isinstance(request, Mapping):
        raise InvalidArgumentError("request must be a mapping")
    method = request.get('search_method', 'graph')
    if method not in SUPPORTED_METHODS:
        raise InvalidArgumentError(
            f"Unsupported search_method {method!r}, expected one of {SUPPORTED_METHODS}"
        )
    query = request.get('query')
    logger.debug(f"Handling {method} request")
    return {'text': engine.answer(query)}
