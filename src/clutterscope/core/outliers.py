"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/outliers.py
Statistical detection of unusually large files.

Only records at or above the size floor take part: the floor is applied
first, then mean and sample standard deviation are computed over what is left.
"""

import logging
import statistics
from typing import List, Iterable, Optional

from clutterscope.core.models import (
    FileRecord, LargeFileOutlier, validate_outlier_params,
    DEFAULT_OUTLIER_MIN_SIZE, DEFAULT_STD_DEV_THRESHOLD, DEFAULT_TOP_N,
)

logger = logging.getLogger(__name__)


def detect_large_file_outliers(
        records: Iterable[FileRecord],
        min_size_floor: int = DEFAULT_OUTLIER_MIN_SIZE,
        k: float = DEFAULT_STD_DEV_THRESHOLD,
        top_n: int = DEFAULT_TOP_N,
        total_size: Optional[int] = None
) -> List[LargeFileOutlier]:
    """
    Files whose size exceeds mean + k * stddev of the candidate population,
    ranked by descending z-score and truncated to top_n.

    Args:
        records: Records to consider
        min_size_floor: Records smaller than this are not candidates
        k: Number of standard deviations above the mean
        top_n: Maximum number of outliers returned
        total_size: Denominator for percentage_of_total; defaults to the sum of all records
    Returns:
        Ranked outliers; empty when fewer than two candidates exist or all
        candidates share one size.
    """
    validate_outlier_params(min_size_floor, k, top_n)

    records = list(records)
    candidates = [r for r in records if r.size_bytes >= min_size_floor]
    if len(candidates) < 2:
        logger.debug(f"Only {len(candidates)} candidate(s) at or above {min_size_floor} bytes, no statistics")
        return []

    sizes = [r.size_bytes for r in candidates]
    mean = statistics.fmean(sizes)
    stddev = statistics.stdev(sizes)
    if stddev == 0:
        logger.debug("All candidates share the same size, no outliers")
        return []

    if total_size is None:
        total_size = sum(r.size_bytes for r in records)

    scored = []
    for record in candidates:
        z_score = (record.size_bytes - mean) / stddev
        if z_score > k:
            scored.append((z_score, record))

    scored.sort(key=lambda item: (-item[0], item[1].path))

    return [
        LargeFileOutlier(
            record=record,
            z_score=z_score,
            rank=rank,
            percentage_of_total=(record.size_bytes / total_size * 100.0) if total_size else 0.0,
        )
        for rank, (z_score, record) in enumerate(scored[:top_n], 1)
    ]
