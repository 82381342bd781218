"""
Default loaders for the knowledge index and document bodies.

KnowledgeBase only depends on two callables:
- index loader: () -> KnowledgeIndex
- content loader: (locator) -> str

This module provides file-system implementations of both:
- JsonIndexLoader: prebuilt JSON index (output of scripts/build_index.py)
- YamlCatalogLoader: YAML catalog, index built in memory at load time
- FileContentLoader: markdown bodies under a content root

Catalog YAML structure:
    version: "1.0"
    total_resources: 443
    resources:
      - code: 8z
        file: essays/8z-how-to-get-startup-ideas.md
        title: How to Get Startup Ideas
        author: Paul Graham
        type: essay
        url: https://www.ycombinator.com/library/8z
        topics: [Getting Started, Fundraising]
        founder_stage: [pre-idea, idea]
        related: [8g]
        lines: 420
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import ValidationError

from .errors import ContentLoadError, IndexLoadError
from .index_builder import build_index, normalize_category
from .models import KnowledgeIndex, ResourceMeta

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# A body counts as a transcript when it has more real text lines than this
TRANSCRIPT_MIN_LINES = 5


def has_transcript(path: PathLike) -> bool:
    """True when the markdown file has body text beyond headings and metadata."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError:
        return False

    content_lines = [
        line for line in text.splitlines()
        if line.strip()
        and not line.startswith("#")
        and not line.startswith("**")
        and not line.startswith("---")
    ]
    return len(content_lines) > TRANSCRIPT_MIN_LINES


def load_index_file(path: PathLike) -> KnowledgeIndex:
    """
    Load a prebuilt JSON knowledge index.

    Raises:
        IndexLoadError: File missing/unreadable or content fails validation
    """
    index_path = Path(path)
    try:
        raw = index_path.read_text(encoding="utf-8")
    except OSError as e:
        raise IndexLoadError(f"Failed to read knowledge index {index_path}: {e}") from e

    try:
        index = KnowledgeIndex.model_validate_json(raw)
    except ValidationError as e:
        raise IndexLoadError(f"Invalid knowledge index {index_path}: {e}") from e

    logger.info(f"Loaded knowledge index from {index_path}: {len(index.resources)} resources")
    return index


def load_yaml_catalog(path: PathLike, content_root: Optional[PathLike] = None) -> List[ResourceMeta]:
    """
    Parse a YAML catalog into resource metadata.

    Topics are normalized to category ids. When content_root is given, each
    resource's hasTranscript flag is derived from its markdown file.

    Raises:
        IndexLoadError: File unreadable, not valid YAML, or an entry is invalid
    """
    catalog_path = Path(path)
    try:
        data = yaml.safe_load(catalog_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise IndexLoadError(f"Failed to read catalog {catalog_path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("resources"), list):
        raise IndexLoadError(f"Catalog {catalog_path} has no 'resources' list")

    root = Path(content_root) if content_root else None
    resources = []
    for position, entry in enumerate(data["resources"]):
        if not isinstance(entry, dict):
            raise IndexLoadError(f"Catalog entry #{position} is not a mapping")
        file_path = entry.get("file", "")
        try:
            resources.append(ResourceMeta(
                code=str(entry.get("code", "")),
                title=entry.get("title", ""),
                author=entry.get("author", ""),
                type=entry.get("type"),
                url=entry.get("url") or "",
                topics=[normalize_category(t) for t in entry.get("topics") or []],
                founder_stage=entry.get("founder_stage") or [],
                lines=entry.get("lines") or 0,
                file_path=file_path,
                has_transcript=has_transcript(root / file_path) if root and file_path else False,
                related=[str(code) for code in entry.get("related") or []],
                summary=entry.get("summary"),
            ))
        except ValidationError as e:
            raise IndexLoadError(f"Invalid catalog entry #{position} ({entry.get('code')}): {e}") from e

    declared = data.get("total_resources")
    if declared is not None and declared != len(resources):
        logger.warning(f"Catalog declares {declared} resources but lists {len(resources)}")

    logger.info(f"Parsed {len(resources)} resources from catalog {catalog_path}")
    return resources


class JsonIndexLoader:
    """Async index loader for a prebuilt JSON index file"""

    def __init__(self, path: PathLike):
        self.path = Path(path)

    async def __call__(self) -> KnowledgeIndex:
        return await asyncio.to_thread(load_index_file, self.path)


class YamlCatalogLoader:
    """Async index loader that builds the index from a YAML catalog"""

    def __init__(self, path: PathLike, content_root: Optional[PathLike] = None):
        self.path = Path(path)
        self.content_root = content_root

    def _load(self) -> KnowledgeIndex:
        return build_index(load_yaml_catalog(self.path, self.content_root))

    async def __call__(self) -> KnowledgeIndex:
        return await asyncio.to_thread(self._load)


def create_index_loader(index_path: PathLike, content_root: Optional[PathLike] = None):
    """Pick the index loader matching the file extension (.json or .yaml/.yml)"""
    suffix = Path(index_path).suffix.lower()
    if suffix in (".yaml", ".yml"):
        return YamlCatalogLoader(index_path, content_root)
    return JsonIndexLoader(index_path)


class FileContentLoader:
    """
    Async content loader reading markdown bodies from a content root.

    Locators are paths relative to the root; locators resolving outside the
    root are refused.
    """

    def __init__(self, content_root: PathLike):
        self.content_root = Path(content_root).resolve()

    def resolve(self, locator: str) -> Path:
        path = (self.content_root / locator).resolve()
        if self.content_root not in path.parents:
            raise ContentLoadError(locator, "locator resolves outside the content root")
        return path

    async def __call__(self, locator: str) -> str:
        path = self.resolve(locator)
        try:
            content = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except OSError as e:
            raise ContentLoadError(locator, str(e)) from e

        logger.debug(f"Loaded content {locator}: {len(content)} chars")
        return content
