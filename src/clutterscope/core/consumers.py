"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/consumers.py
Detects directories known to waste space (dependency caches, VCS metadata,
build output, miscellaneous caches) and totals the bytes below each one.

The set of names is a closed table: a directory name either has an entry in
KNOWN_CONSUMERS or it never matches.
"""

import logging
from dataclasses import dataclass
from pathlib import PurePath
from typing import Dict, List, Iterable, Optional, Tuple

from clutterscope.core.models import FileRecord, HiddenConsumer, ConsumerCategory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsumerKind:
    category: ConsumerCategory
    description: str
    recommendation: str


_DEP = ConsumerCategory.DEPENDENCY_CACHE
_VCS = ConsumerCategory.VERSION_CONTROL
_BUILD = ConsumerCategory.BUILD_ARTIFACT
_OTHER = ConsumerCategory.OTHER_KNOWN

KNOWN_CONSUMERS: Dict[str, ConsumerKind] = {
    "node_modules": ConsumerKind(_DEP, "Node.js dependencies", "Consider using npm prune or clearing unused dependencies"),
    "bower_components": ConsumerKind(_DEP, "Bower dependencies", "Reinstall on demand instead of keeping a copy"),
    ".venv": ConsumerKind(_DEP, "Python virtual environment", "Recreate virtual environment if needed"),
    "venv": ConsumerKind(_DEP, "Python virtual environment", "Recreate virtual environment if needed"),
    ".tox": ConsumerKind(_DEP, "tox environments", "Safe to delete, tox rebuilds them"),
    "vendor": ConsumerKind(_DEP, "Vendored dependencies", "Check whether vendored copies are still required"),
    ".git": ConsumerKind(_VCS, "Git repository data", "Run git gc to clean up unnecessary files"),
    ".svn": ConsumerKind(_VCS, "Subversion metadata", "Run svn cleanup or remove stale working copies"),
    ".hg": ConsumerKind(_VCS, "Mercurial repository data", "Remove stale clones"),
    ".bzr": ConsumerKind(_VCS, "Bazaar repository data", "Remove stale branches"),
    "target": ConsumerKind(_BUILD, "Rust/Maven build artifacts", "Run cargo clean or mvn clean to remove build artifacts"),
    "build": ConsumerKind(_BUILD, "Build output directory", "Clean build artifacts if not needed"),
    "dist": ConsumerKind(_BUILD, "Distribution files", "Remove old distribution builds"),
    "__pycache__": ConsumerKind(_BUILD, "Python bytecode cache", "Safe to delete, will be regenerated"),
    ".gradle": ConsumerKind(_BUILD, "Gradle caches", "Run gradle clean or clear the Gradle cache"),
    ".next": ConsumerKind(_BUILD, "Next.js build output", "Safe to delete, next build regenerates it"),
    ".cache": ConsumerKind(_OTHER, "Application cache", "Review and clean old cache files"),
    "tmp": ConsumerKind(_OTHER, "Temporary files", "Clean up old temporary files"),
    "logs": ConsumerKind(_OTHER, "Log files", "Archive or delete old logs"),
    ".pytest_cache": ConsumerKind(_OTHER, "pytest cache", "Safe to delete, will be regenerated"),
    ".mypy_cache": ConsumerKind(_OTHER, "mypy cache", "Safe to delete, will be regenerated"),
}


def classify_directory(name: str) -> Optional[ConsumerKind]:
    """Exact-name lookup in the closed table."""
    return KNOWN_CONSUMERS.get(name)


def _common_parent_parts(records: List[FileRecord]) -> Tuple[str, ...]:
    """
    Parts of the parent of the deepest directory shared by every record.
    The shared directory itself stays eligible, so a corpus that lives
    entirely inside one node_modules still reports it.
    """
    common = records[0].parent_parts
    for record in records[1:]:
        parts = record.parent_parts
        size = 0
        for left, right in zip(common, parts):
            if left != right:
                break
            size += 1
        common = common[:size]
        if not common:
            break
    return common[:-1]


def _first_eligible_index(parts: Tuple[str, ...], root_parts: Tuple[str, ...]) -> int:
    """Index of the first ancestor part eligible for matching (parts of the root itself never are)."""
    if parts[:len(root_parts)] == root_parts:
        return len(root_parts)
    return len(parts)


def detect_hidden_consumers(records: Iterable[FileRecord], root: Optional[str] = None) -> List[HiddenConsumer]:
    """
    One HiddenConsumer per matching subtree occurrence.

    A file belongs to the outermost matching ancestor, so nested caches
    (node_modules/a/node_modules) are counted once, under the outer one.

    Args:
        records: File records; their paths carry the directory ancestry
        root: Only directories below root are considered. Without it the
            parent of the records' deepest common directory is used, so
            ancestors above the analyzed tree (/tmp, /home/x/build) never match.
    """
    records = list(records)
    if not records:
        return []

    root_parts = PurePath(root).parts if root else _common_parent_parts(records)
    logger.debug(f"Matching consumer directories below {PurePath(*root_parts) if root_parts else '<all>'}")
    totals: Dict[str, List[int]] = {}
    kinds: Dict[str, ConsumerKind] = {}

    for record in records:
        parts = record.parent_parts
        for index in range(_first_eligible_index(parts, root_parts), len(parts)):
            kind = classify_directory(parts[index])
            if kind is None:
                continue
            subtree = str(PurePath(*parts[:index + 1]))
            entry = totals.setdefault(subtree, [0, 0])
            entry[0] += record.size_bytes
            entry[1] += 1
            kinds[subtree] = kind
            break

    consumers = [
        HiddenConsumer(
            subtree_path=subtree,
            category=kinds[subtree].category,
            aggregate_bytes=size,
            file_count=count,
            description=kinds[subtree].description,
            recommendation=kinds[subtree].recommendation,
        )
        for subtree, (size, count) in totals.items()
    ]
    consumers.sort(key=lambda c: (-c.aggregate_bytes, c.subtree_path))
    logger.debug(f"Found {len(consumers)} hidden consumer subtree(s)")
    return consumers
