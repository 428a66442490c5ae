#!/usr/bin/env python
"""
Query Runner Entry Point

Compiles a tree-sitter query file, parses a source file and prints the
matches that pass the query's predicates, one JSON object per line:
  - Match mode (default): one line per match with all of its captures
  - Capture mode (--captures): one line per capture
"""

import argparse
import json
import sys
from typing import Any, Dict, List, Optional, Tuple
from utils.logger import log  # Use our central logger
from utils.error_handling import handle_errors, ParsingError
from queries.api import compile_query, run_query, run_captures
from queries.compiled_query import CompiledQuery
from queries.errors import QueryError
from queries.models import QueryCapture, QueryMatch
from queries.registry import create_default_registry
from parsers.tree_sitter_parser import TreeSitterParser

def _byte_range(value: str) -> Tuple[int, int]:
    start, _, end = value.partition(":")
    try:
        return int(start), int(end)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected START:END, got {value!r}")

def capture_to_dict(query: CompiledQuery, capture: QueryCapture, source: bytes) -> Dict[str, Any]:
    node = capture.node
    return {
        "name": query.capture_names[capture.index],
        "text": source[node.start_byte:node.end_byte].decode("utf-8", errors="replace"),
        "start": list(node.start_point),
        "end": list(node.end_point)
    }

def match_to_dict(query: CompiledQuery, match: QueryMatch, source: bytes,
                  captures: Optional[List[QueryCapture]] = None) -> Dict[str, Any]:
    """JSON-ready view of a match; ``captures`` narrows the captures shown."""
    properties = {
        setting.key: setting.value for setting in query.property_settings(match.pattern_index)
    }
    return {
        "pattern": match.pattern_index,
        "captures": [
            capture_to_dict(query, c, source)
            for c in (captures if captures is not None else match.captures)
        ],
        "properties": properties
    }

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a tree-sitter query with predicate filtering.")
    parser.add_argument("query_file", help="File containing the query text")
    parser.add_argument("source_file", help="Source file to query")
    parser.add_argument("--language", "-l", required=True,
                        help="Language of the source file (e.g. python, js, c++)")
    parser.add_argument("--captures", action="store_true",
                        help="Print one line per capture instead of per match")
    parser.add_argument("--byte-range", type=_byte_range,
                        help="Only match within START:END byte offsets")
    parser.add_argument("--match-limit", type=int,
                        help="Maximum number of in-progress matches")
    parser.add_argument("--max-start-depth", type=int,
                        help="Maximum depth at which patterns may start")
    parser.add_argument("--strict", action="store_true",
                        help="Reject predicates without a registered handler")
    return parser

def run(args, out=sys.stdout) -> int:
    """Execute the query described by parsed ``args``; returns the exit code."""
    with open(args.query_file, "r", encoding="utf-8") as f:
        query_text = f.read()
    with open(args.source_file, "rb") as f:
        source = f.read()

    registry = create_default_registry(allow_unknown=not args.strict)
    try:
        query = compile_query(query_text, args.language, registry=registry)
    except QueryError as e:
        print(f"{args.query_file}: {e}", file=sys.stderr)
        return 1

    tree = TreeSitterParser(args.language).parse(source)
    options = {}
    if args.byte_range is not None:
        options["byte_range"] = args.byte_range
    if args.match_limit is not None:
        options["match_limit"] = args.match_limit
    if args.max_start_depth is not None:
        options["max_start_depth"] = args.max_start_depth

    count = 0
    if args.captures:
        for match, position in run_captures(query, tree.root_node, source, **options):
            out.write(json.dumps(match_to_dict(query, match, source, [match.captures[position]])) + "\n")
            count += 1
    else:
        for match in run_query(query, tree.root_node, source, **options):
            out.write(json.dumps(match_to_dict(query, match, source)) + "\n")
            count += 1

    log(f"Query produced {count} results", level="info", context={
        "query_file": args.query_file,
        "source_file": args.source_file
    })
    return 0

@handle_errors(error_types=(OSError, ParsingError), default_return=1)
def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point with argument parsing."""
    args = build_parser().parse_args(argv)
    return run(args)

if __name__ == "__main__":
    sys.exit(main())
