#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Command-line interface for docgraph.

Usage:
    docgraph build docs/ index/ --max-results 5
    docgraph build docs/ index/ --force --workers 8 --log-file logs/build.log
    docgraph query index/ "how do I get a refund"
    docgraph query index/ "refund policy" --max-results 3 --json
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from config.search_config import EMBEDDING_CONFIG, INDEX_CONFIG, LOGGING_CONFIG
from docgraph.engine import GraphSearchEngine
from docgraph.graph.index_store import resolve_index_path
from docgraph.utils.dataclasses import StatusCode
from docgraph.utils.embedder import SentenceTransformerEmbedder
from docgraph.utils.errors import DocGraphError
from docgraph.utils.logger import setup_logging

logger = logging.getLogger(__name__)

EXIT_CODES = {
    StatusCode.OK: 0,
    StatusCode.PARTIAL_BUILD: 0,
    StatusCode.CONFIG_ERROR: 2,
    StatusCode.INVALID_ARGUMENT: 2,
    StatusCode.IO_ERROR: 3,
    StatusCode.INDEX_CORRUPT: 4,
    StatusCode.NOT_READY: 5,
}


# ============================================================================
# ARGUMENT PARSING
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='docgraph',
        description="Graph-based semantic search over plain-text documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  docgraph build docs/ index/
  docgraph query index/ "how do I get a refund"
        """
    )
    parser.add_argument('--log-level', default=LOGGING_CONFIG['level'],
                        help='Logging level (default: %(default)s)')
    parser.add_argument('--log-file', default=LOGGING_CONFIG['log_file'],
                        help='Also write logs to this file')
    parser.add_argument('--model', default=EMBEDDING_CONFIG['model_name'],
                        help='sentence-transformers model (default: %(default)s)')
    parser.add_argument('--device', default=EMBEDDING_CONFIG['device'],
                        help="'cpu', 'cuda', or auto-detect when omitted")

    subparsers = parser.add_subparsers(dest='command', required=True)

    build = subparsers.add_parser('build', help='Build (or reuse) an index')
    build.add_argument('source_dir', help='Directory of .txt/.md documents')
    build.add_argument('index_path', help='Index file or directory')
    build.add_argument('--max-results', type=int, default=INDEX_CONFIG['default_max_results'])
    build.add_argument('--force', action='store_true', help='Rebuild even if the index is current')
    build.add_argument('--workers', type=int, default=None, help='Build worker pool size')
    build.add_argument('--progress', action='store_true', help='Show a progress bar')

    query = subparsers.add_parser('query', help='Query a persisted index')
    query.add_argument('index_path', help='Index file or directory')
    query.add_argument('query', help='Query text')
    query.add_argument('--source-dir', default=None,
                       help='Source directory (default: the index directory)')
    query.add_argument('--max-results', type=int, default=INDEX_CONFIG['default_max_results'])
    query.add_argument('--json', action='store_true', help='Print snippets as JSON')

    return parser


# ============================================================================
# COMMANDS
# ============================================================================

def create_engine(args, **kwargs) -> GraphSearchEngine:
    embedder = SentenceTransformerEmbedder(model_name=args.model, device=args.device)
    return GraphSearchEngine(embedder=embedder, **kwargs)


def run_build(args) -> int:
    engine = create_engine(args, max_workers=args.workers, show_progress=args.progress)
    status = engine.initialize(args.source_dir, args.index_path, args.max_results)
    if status != StatusCode.OK:
        print(f"Error: {engine.last_error}", file=sys.stderr)
        return EXIT_CODES[status]

    status = engine.build_index(force=args.force)
    report = engine.last_report
    if not status.ok:
        print(f"Error: {engine.last_error}", file=sys.stderr)
        return EXIT_CODES[status]

    action = 'Reused' if report.reused_index else 'Built'
    print(f"{action} index with {report.node_count} nodes and {report.edge_count} edges")
    if status == StatusCode.PARTIAL_BUILD:
        print(
            f"Warning: skipped {len(report.unreadable_documents)} documents "
            f"and {report.embedding_failures} chunks",
            file=sys.stderr,
        )
    return EXIT_CODES[status]


def run_query(args) -> int:
    index_file = resolve_index_path(args.index_path)
    source_dir = args.source_dir or str(index_file.parent)

    engine = create_engine(args)
    status = engine.initialize(source_dir, index_file, args.max_results)
    if status == StatusCode.OK:
        status = engine.load()
    if status != StatusCode.OK:
        print(f"Error: {engine.last_error}", file=sys.stderr)
        return EXIT_CODES[status]

    try:
        result = engine.query(args.query)
    except DocGraphError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CODES[e.status] or 1

    answer = engine.composer.compose(result.snippets)
    if args.json:
        print(json.dumps({
            'query': result.query,
            'answer': answer,
            'direct_answer': result.direct_answer is not None,
            'visited': result.visited_count,
            'snippets': [s.to_dict() for s in result.snippets],
        }, indent=2, ensure_ascii=False))
    else:
        print(answer)
    return 0


# ============================================================================
# MAIN
# ============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, log_file=args.log_file)

    try:
        if args.command == 'build':
            return run_build(args)
        return run_query(args)
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130


if __name__ == '__main__':
    sys.exit(main())
