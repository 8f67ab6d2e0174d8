"""``tree-cli``: inspect page-builder exports and term lists stored as JSON."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional, Sequence

from dotenv import find_dotenv, load_dotenv
from loguru import logger

from page_tree import build_summary, count_elements, find_all_by_type, load_elements
from taxonomy_tree import FlatItem, build_hierarchy
from tree_core import TreeError, TreeValidationError
from tree_core.log import configure_logging


def _read_json(path: str) -> Any:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise TreeValidationError(f"{path} is not valid JSON: {exc}") from exc


def _read_elements(path: str):
    data = _read_json(path)
    # Page-builder template exports wrap the element list in "content".
    if isinstance(data, dict):
        data = data.get("content", data.get("elements"))
    if not isinstance(data, list):
        raise TreeValidationError(f"{path} does not contain an element list.")
    return load_elements(data)


def _read_items(path: str) -> List[FlatItem]:
    data = _read_json(path)
    if not isinstance(data, list):
        raise TreeValidationError(f"{path} does not contain a list of terms.")
    try:
        return [FlatItem.model_validate(raw) for raw in data]
    except ValueError as exc:
        raise TreeValidationError(f"{path} contains a malformed term: {exc}") from exc


def _summary(args: argparse.Namespace) -> Any:
    elements = _read_elements(args.file)
    structure = build_summary(elements, include_settings=args.settings)
    return {
        "element_count": count_elements(elements),
        "structure": [node.model_dump(exclude_none=True) for node in structure],
    }


def _find_type(args: argparse.Namespace) -> Any:
    matches = find_all_by_type(_read_elements(args.file), args.widget_type)
    return {"count": len(matches), "elements": [match.model_dump() for match in matches]}


def _hierarchy(args: argparse.Namespace) -> Any:
    return [entry.model_dump() for entry in build_hierarchy(_read_items(args.file))]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tree-cli", description=__doc__)
    parser.add_argument("--log-level", default=None, help="Overrides LOG_LEVEL")
    commands = parser.add_subparsers(dest="command", required=True)

    summary = commands.add_parser("summary", help="Depth-tagged outline of a page")
    summary.add_argument("file")
    summary.add_argument("--settings", action="store_true", help="Include element settings")
    summary.set_defaults(handler=_summary)

    find_type = commands.add_parser("find-type", help="Every widget of one type")
    find_type.add_argument("file")
    find_type.add_argument("widget_type")
    find_type.set_defaults(handler=_find_type)

    hierarchy = commands.add_parser("hierarchy", help="Pre-order view of a flat term list")
    hierarchy.add_argument("file")
    hierarchy.set_defaults(handler=_hierarchy)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv(find_dotenv(usecwd=True))
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        result = args.handler(args)
    except (TreeError, OSError) as exc:
        logger.error("tree-cli {command} failed: {error}", command=args.command, error=exc)
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
