# -*- coding: utf-8 -*-
"""
Response composition from ranked snippets.

- Direct answer (first snippet carries direct_answer): returned verbatim
- Otherwise: a fixed-form summary of up to max_snippets snippets

    Based on the information available:
    - {snippet text} (Source: {document name})
    - ...

- No snippets: the configured no-result message
"""
from typing import Dict, List, Sequence

from config.search_config import RESPONSE_CONFIG
from docgraph.utils.dataclasses import Snippet


class ResponseComposer:
    """Turn ranked snippets into the final answer text."""

    def __init__(self, config: Dict = None):
        cfg = dict(RESPONSE_CONFIG)
        cfg.update(config or {})
        self.header = cfg['header']
        self.max_snippets = int(cfg['max_snippets'])
        self.no_results_message = cfg['no_results_message']

    def compose(self, snippets: Sequence[Snippet]) -> str:
        if not snippets:
            return self.no_results_message
        if snippets[0].direct_answer is not None:
            return snippets[0].direct_answer

        lines: List[str] = [self.header]
        for snippet in snippets[:self.max_snippets]:
            lines.append(f"- {snippet.text.strip()} (Source: {snippet.source_name})")
        return '\n'.join(lines)
