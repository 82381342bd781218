#!/usr/bin/env python3
"""
Build the JSON knowledge index from a YAML catalog.

Usage:
    python scripts/build_index.py references/index.yaml data/knowledge-index.json \
        --content-root references
"""

import argparse
import logging
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from yc_knowledge.errors import IndexLoadError
from yc_knowledge.index_builder import build_index
from yc_knowledge.loader import load_yaml_catalog
from yc_knowledge.search import get_top_authors

logger = logging.getLogger("build_index")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build the knowledge index JSON from a YAML catalog")
    parser.add_argument("catalog", type=Path, help="YAML catalog (resources list)")
    parser.add_argument("output", type=Path, help="Output JSON index path")
    parser.add_argument(
        "--content-root",
        type=Path,
        default=None,
        help="Directory with the markdown bodies (enables hasTranscript detection)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    try:
        resources = load_yaml_catalog(args.catalog, args.content_root)
        index = build_index(resources)
    except IndexLoadError as e:
        logger.error(e.message)
        return 1

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(index.model_dump_json(by_alias=True, indent=2), encoding="utf-8")

    stats = index.stats
    print(f"Index written to {args.output}")
    print(f"  Resources:  {stats.total_resources}")
    print(f"  Categories: {stats.total_categories}")
    print(f"  Authors:    {stats.total_authors}")
    print(f"  Lines:      {stats.total_lines}")
    print(f"  Keywords:   {len(index.search_index.keywords)}")
    print("  Top authors:")
    for entry in get_top_authors(resources, limit=5):
        print(f"    {entry['count']:4d}  {entry['author']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
