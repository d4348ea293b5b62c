"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/patterns.py
Groups files whose names differ only by a sequence number or a date token.
"""

import logging
import os
import re
from collections import defaultdict
from functools import lru_cache
from typing import List, Iterable, Optional, Tuple

from clutterscope.core.models import FileRecord, PatternGroup, PatternKind

logger = logging.getLogger(__name__)

# Pre-compiled regex patterns
# Trailing "(2)", "_001", "-2", " v3", "_v12", or 2+ digits glued to the name ("test123")
_PATTERN_NUMBERED = re.compile(
    r'^(?P<base>.*?)(?:\s*\(\d+\)|[-_ ]v?\d+|v?\d{2,})$',
    re.IGNORECASE,
)
# YYYY-MM-DD, YYYY_MM_DD, YYYY.MM.DD or YYYYMMDD, years 1900-2099
_PATTERN_DATE = re.compile(
    r'(?<!\d)(?:19|20)\d{2}(?P<sep>[-_.]?)(?:0[1-9]|1[0-2])(?P=sep)(?:0[1-9]|[12]\d|3[01])(?!\d)'
)
_PATTERN_EDGE_SEPARATORS = re.compile(r'^[\s_.\-]+|[\s_.\-]+$')


def _trim(text: str) -> str:
    return _PATTERN_EDGE_SEPARATORS.sub('', text)


def _split_name(filename: str) -> Tuple[str, str]:
    stem, ext = os.path.splitext(filename)
    return stem, ext.lower()


def _ends_with_date(stem: str) -> bool:
    match = None
    for match in _PATTERN_DATE.finditer(stem):
        pass
    return match is not None and match.end() == len(stem)


def detect_numbered(stem: str) -> Optional[str]:
    """
    Base name with the trailing sequence number removed, or None.
    Digits that complete a date token are not a sequence number.
    """
    if _ends_with_date(stem):
        return None
    match = _PATTERN_NUMBERED.match(stem)
    if not match:
        return None
    base = _trim(match.group('base'))
    return base or None


def detect_dated(stem: str) -> Optional[str]:
    """Base name with the first embedded date token removed, or None."""
    match = _PATTERN_DATE.search(stem)
    if not match:
        return None
    before = _trim(stem[:match.start()])
    after = _trim(stem[match.end():])
    base = "_".join(part for part in (before, after) if part)
    return base or None


@lru_cache(maxsize=8192)
def classify_filename(filename: str) -> Optional[Tuple[PatternKind, str, str]]:
    """
    (kind, base name, lower-cased extension) for a file name, or None.
    Numbered is tried first, so a name matching both is Numbered. Digits
    that close a trailing date are never taken as a sequence number.

    Examples:
        "backup-001.tar"     → (NUMBERED, "backup", ".tar")
        "Report (2).pdf"     → (NUMBERED, "Report", ".pdf")
        "log-2024-01-31.txt" → (DATED, "log", ".txt")
        "backup-notes.txt"   → None
    """
    stem, ext = _split_name(filename)
    base = detect_numbered(stem)
    if base is not None:
        return PatternKind.NUMBERED, base, ext
    base = detect_dated(stem)
    if base is not None:
        return PatternKind.DATED, base, ext
    return None


def detect_pattern_groups(records: Iterable[FileRecord], min_members: int = 2) -> List[PatternGroup]:
    """
    Families of files collapsing to the same (kind, base name, extension).
    Families with fewer than min_members are dropped.
    """
    families = defaultdict(dict)
    for record in records:
        classified = classify_filename(record.name)
        if classified is None:
            continue
        families[classified].setdefault(record.path, record)

    groups = [
        PatternGroup(
            base_name=base,
            kind=kind,
            members=tuple(members[p] for p in sorted(members)),
            extension=ext,
        )
        for (kind, base, ext), members in families.items()
        if len(members) >= min_members
    ]
    groups.sort(key=lambda g: (-g.total_bytes, g.base_name, g.kind.value, g.extension))
    logger.debug(f"Found {len(groups)} pattern group(s)")
    return groups
