"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/report.py
Merges detector outputs into one immutable Report. No I/O.
"""

from typing import Iterable, Optional

from clutterscope.core.models import (
    Report, DuplicateGroup, SimilarityGroup, LargeFileOutlier,
    HiddenConsumer, PatternGroup, SkippedFile, SIMILARITY_POLICY,
)


def build_report(
        duplicate_groups: Iterable[DuplicateGroup] = (),
        similarity_groups: Iterable[SimilarityGroup] = (),
        large_files: Iterable[LargeFileOutlier] = (),
        hidden_consumers: Iterable[HiddenConsumer] = (),
        pattern_groups: Iterable[PatternGroup] = (),
        skipped: Iterable[SkippedFile] = (),
        total_files_analyzed: int = 0,
        total_size_analyzed: int = 0,
        similarity_threshold: Optional[int] = None
) -> Report:
    """
    Every section is re-sorted by a fixed key, so the same detector results
    produce the same report regardless of the order they arrived in.
    """
    return Report(
        duplicate_groups=tuple(sorted(
            duplicate_groups, key=lambda g: (-g.wasted_bytes, g.members[0].path))),
        similarity_groups=tuple(sorted(
            similarity_groups, key=lambda g: (-g.count, -g.average_similarity, g.members[0].path))),
        large_files=tuple(sorted(large_files, key=lambda o: (o.rank, o.record.path))),
        hidden_consumers=tuple(sorted(
            hidden_consumers, key=lambda c: (-c.aggregate_bytes, c.subtree_path))),
        pattern_groups=tuple(sorted(
            pattern_groups, key=lambda g: (-g.total_bytes, g.base_name, g.kind.value, g.extension))),
        skipped=tuple(sorted(skipped, key=lambda s: (s.path, s.stage))),
        total_files_analyzed=total_files_analyzed,
        total_size_analyzed=total_size_analyzed,
        similarity_threshold=similarity_threshold,
        similarity_policy=SIMILARITY_POLICY,
    )
