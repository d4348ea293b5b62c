"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

analyzer.py
Runs the full analysis pipeline over a record set:
    content-hash (same-size candidates only) → exact groups
    fuzzy-hash → similarity groups        (when find_similar is set)
    outliers → hidden consumers → patterns
and merges everything into a Report.
"""
import logging
import time
from typing import List, Tuple, Optional, Callable, Iterable

from clutterscope.core.models import (
    FileRecord, AnalysisParams, AnalysisStats, AnalysisCancelled, Report, SkippedFile, Stage,
)
from clutterscope.core.grouper import FileGrouperImpl
from clutterscope.core.interfaces import Analyzer
from clutterscope.core.stages import ContentHashStage, FuzzyHashStage
from clutterscope.core.similarity import SimilarityGrouperImpl
from clutterscope.core.outliers import detect_large_file_outliers
from clutterscope.core.consumers import detect_hidden_consumers
from clutterscope.core.patterns import detect_pattern_groups
from clutterscope.core.report import build_report

logger = logging.getLogger(__name__)


# =============================
# Main Analyzer Class
# =============================
class AnalyzerImpl(Analyzer):
    """
    Coordinates every detector and collects per-stage statistics.
    The record list is read-only for the detectors; only the hashing stages
    write digests onto records, and only from the calling thread.
    """
    def __init__(self, grouper=None, content_stage=None, fuzzy_stage=None, similarity_grouper=None):
        self.grouper = grouper or FileGrouperImpl()
        self.content_stage = content_stage
        self.fuzzy_stage = fuzzy_stage
        self.similarity_grouper = similarity_grouper

    def analyze(
        self,
        records: Iterable[FileRecord],
        params: AnalysisParams,
        stopped_flag: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> Tuple[Report, AnalysisStats]:
        """
        Args:
            records: Records produced by the scanner
            params: Validated analysis parameters
            stopped_flag: Function that returns True if the run should be aborted.
            progress_callback: Reports progress per stage (stage, current, total).
        Returns:
            Tuple[Report, AnalysisStats]
        Raises:
            AnalysisCancelled: stopped_flag fired; no partial report is produced.
        """
        stats = AnalysisStats()
        total_start_time = time.time()
        records = self._unique(records)
        skipped: List[SkippedFile] = []

        duplicate_groups = []
        if params.find_duplicates:
            self._check_stopped(stopped_flag, Stage.CONTENT_HASH)
            start_time = time.time()
            # Only files sharing a size can share content
            candidates = [r for group in self.grouper.group_by_size(records).values() for r in group]
            stage = self.content_stage or ContentHashStage(max_workers=params.max_workers)
            hashed, stage_skipped = stage.process(candidates, stopped_flag, progress_callback)
            skipped.extend(stage_skipped)
            stats.update_stage(Stage.CONTENT_HASH.value, len(hashed), len(candidates), time.time() - start_time)

            self._check_stopped(stopped_flag, Stage.EXACT_GROUPS)
            start_time = time.time()
            duplicate_groups = self.grouper.find_exact_duplicates(hashed)
            stats.update_stage(Stage.EXACT_GROUPS.value, len(duplicate_groups),
                               sum(g.count for g in duplicate_groups), time.time() - start_time)

        similarity_groups = []
        if params.find_similar:
            self._check_stopped(stopped_flag, Stage.FUZZY_HASH)
            start_time = time.time()
            stage = self.fuzzy_stage or FuzzyHashStage(
                min_size=params.min_fuzzy_size,
                max_size=params.max_fuzzy_size,
                max_workers=params.max_workers,
            )
            fingerprinted, stage_skipped = stage.process(records, stopped_flag, progress_callback)
            skipped.extend(stage_skipped)
            stats.update_stage(Stage.FUZZY_HASH.value, len(fingerprinted), len(records), time.time() - start_time)

            self._check_stopped(stopped_flag, Stage.SIMILARITY)
            start_time = time.time()
            grouper = self.similarity_grouper or SimilarityGrouperImpl(max_workers=params.max_workers)
            similarity_groups = grouper.find_groups(
                fingerprinted,
                params.similarity_threshold,
                params.min_cluster_size,
                prefilter=params.prefilter,
                stopped_flag=stopped_flag,
                progress_callback=progress_callback,
            )
            stats.update_stage(Stage.SIMILARITY.value, len(similarity_groups),
                               len(fingerprinted), time.time() - start_time)

        total_size = sum(r.size_bytes for r in records)

        self._check_stopped(stopped_flag, Stage.OUTLIERS)
        start_time = time.time()
        large_files = detect_large_file_outliers(
            records,
            min_size_floor=params.outlier_min_size,
            k=params.std_dev_threshold,
            top_n=params.top_n,
            total_size=total_size,
        )
        stats.update_stage(Stage.OUTLIERS.value, len(large_files), len(records), time.time() - start_time)

        hidden_consumers = []
        if params.check_hidden_consumers:
            self._check_stopped(stopped_flag, Stage.HIDDEN_CONSUMERS)
            start_time = time.time()
            hidden_consumers = detect_hidden_consumers(records, root=params.root_dir)
            stats.update_stage(Stage.HIDDEN_CONSUMERS.value, len(hidden_consumers),
                               len(records), time.time() - start_time)

        pattern_groups = []
        if params.check_patterns:
            self._check_stopped(stopped_flag, Stage.PATTERNS)
            start_time = time.time()
            pattern_groups = detect_pattern_groups(records)
            stats.update_stage(Stage.PATTERNS.value, len(pattern_groups), len(records), time.time() - start_time)

        self._check_stopped(stopped_flag, "report")
        report = build_report(
            duplicate_groups=duplicate_groups,
            similarity_groups=similarity_groups,
            large_files=large_files,
            hidden_consumers=hidden_consumers,
            pattern_groups=pattern_groups,
            skipped=skipped,
            total_files_analyzed=len(records),
            total_size_analyzed=total_size,
            similarity_threshold=params.similarity_threshold if params.find_similar else None,
        )

        stats.total_time = time.time() - total_start_time
        logger.info(f"Analyzed {len(records)} files in {stats.total_time:.2f}s")
        return report, stats

    @staticmethod
    def _unique(records: Iterable[FileRecord]) -> List[FileRecord]:
        """Drops repeated paths, keeping the first record seen."""
        seen = {}
        for record in records:
            if record.path in seen:
                logger.debug(f"Ignoring repeated record for {record.path}")
                continue
            seen[record.path] = record
        return list(seen.values())

    @staticmethod
    def _check_stopped(stopped_flag: Optional[Callable[[], bool]], stage) -> None:
        if stopped_flag and stopped_flag():
            name = stage.value if isinstance(stage, Stage) else stage
            logger.info(f"Analysis cancelled before {name}")
            raise AnalysisCancelled(f"Cancelled before {name}")
