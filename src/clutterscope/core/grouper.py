"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/grouper.py
Partitions hashed records into exact-duplicate groups.
"""

import logging
from collections import defaultdict
from typing import List, Dict, Any, Callable, Iterable

from clutterscope.core.models import FileRecord, DuplicateGroup

logger = logging.getLogger(__name__)


class FileGrouperImpl:
    """
    Groups records by a computed key and keeps only partitions with 2+ members.
    """

    def group_by_size(self, records: Iterable[FileRecord]) -> Dict[int, List[FileRecord]]:
        """Groups records by their size."""
        return self._group_by(records, lambda r: r.size_bytes)

    def group_by_content_digest(self, records: Iterable[FileRecord]) -> Dict[str, List[FileRecord]]:
        """Groups records by content digest; records without one are ignored."""
        return self._group_by(records, lambda r: r.content_digest)

    def find_exact_duplicates(self, records: Iterable[FileRecord]) -> List[DuplicateGroup]:
        groups = [
            DuplicateGroup(digest=digest, members=tuple(members))
            for digest, members in self.group_by_content_digest(records).items()
        ]
        groups.sort(key=lambda g: (-g.wasted_bytes, g.members[0].path))
        return groups

    @staticmethod
    def _group_by(records: Iterable[FileRecord], key_func: Callable[[FileRecord], Any]) -> Dict[Any, List[FileRecord]]:
        """
        Helper method to group records by any computed key.
        Args:
            records: Records to group
            key_func: Function that computes a hashable key, or None to leave the record out
        Returns:
            Dict[key, List[FileRecord]] with members sorted by path
        """
        groups = defaultdict(list)
        seen = set()
        for record in records:
            if record.path in seen:
                logger.debug(f"Ignoring repeated record for {record.path}")
                continue
            seen.add(record.path)
            key = key_func(record)
            if key is not None:
                groups[key].append(record)

        result = {}
        for key, group in groups.items():
            if len(group) >= 2:  # Singletons are not duplicates
                result[key] = sorted(group, key=lambda r: r.path)

        return result


def find_exact_duplicates(records: Iterable[FileRecord]) -> List[DuplicateGroup]:
    """Pure partition of hashed records into duplicate groups, largest waste first."""
    return FileGrouperImpl().find_exact_duplicates(records)
