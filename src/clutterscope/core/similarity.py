"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/similarity.py
Near-duplicate grouping over fuzzy digests.

ALGORITHM
---------
1. Score every unordered pair of candidates. The flat pair index space
   k in [0, n(n-1)/2) is cut into contiguous ranges; each range is decoded to
   (i, j) pairs in closed form and scored by a pool worker.
2. Keep an edge (i, j) when score >= threshold.
3. Union-find over the edges, single-threaded, after the map has finished.
4. Drop components smaller than the minimum size.
5. Average similarity of a component is the mean over all of its member pairs,
   pairs below the threshold included. Only non-zero scores are kept on the
   group; the remaining pairs scored 0.

Grouping is single-linkage: members are connected through a chain of
above-threshold pairs, not necessarily directly.

PRE-FILTER
----------
With prefilter enabled, candidates are bucketed by ssdeep block size plus the
first characters of the first chunk and only compared within a bucket. Buckets
partition the candidates, so components never straddle two buckets.
"""

import logging
import math
from collections import defaultdict
from typing import List, Dict, Optional, Callable, Tuple, Iterable

from clutterscope.core.models import (
    FileRecord, SimilarityGroup, PairScore, AnalysisCancelled, validate_similarity_params,
)
from clutterscope.core.hasher import CTPHAlgorithmImpl
from clutterscope.core.interfaces import FuzzyHashAlgorithm
from clutterscope.core.parallel import parallel_map, resolve_workers, chunk_ranges

logger = logging.getLogger(__name__)

# Below this many pairs, process start-up costs more than the comparisons
PARALLEL_PAIR_THRESHOLD = 20_000
TASKS_PER_WORKER = 4
PREFILTER_PREFIX_LENGTH = 8

Edge = Tuple[int, int, int]


class UnionFind:
    """Disjoint Set Union for transitive grouping."""

    def __init__(self, n: int):
        self.parent = list(range(n))
        self.rank = [0] * n

    def find(self, x: int) -> int:
        """Find root with path compression."""
        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]
        return root

    def union(self, x: int, y: int) -> bool:
        """Union by rank. Returns False when already in the same set."""
        px, py = self.find(x), self.find(y)
        if px == py:
            return False
        if self.rank[px] < self.rank[py]:
            px, py = py, px
        self.parent[py] = px
        if self.rank[px] == self.rank[py]:
            self.rank[px] += 1
        return True

    def components(self) -> Dict[int, List[int]]:
        groups = defaultdict(list)
        for i in range(len(self.parent)):
            groups[self.find(i)].append(i)
        return groups


def pair_count(n: int) -> int:
    return n * (n - 1) // 2


def pair_at(k: int, n: int) -> Tuple[int, int]:
    """
    Decode the k-th pair (row-major upper triangle, i < j) of n items.
    """
    i = n - 2 - (math.isqrt(4 * n * (n - 1) - 8 * k - 7) - 1) // 2
    j = k + i + 1 - pair_count(n) + (n - i) * (n - i - 1) // 2
    return i, j


def _score_pair_range(digests: List[str], start: int, stop: int,
                      algorithm: FuzzyHashAlgorithm) -> List[Edge]:
    """
    Score pairs [start, stop) and return the non-zero ones as (i, j, score).
    Module level so it can run in a worker process.
    """
    n = len(digests)
    scores: List[Edge] = []
    if start >= stop:
        return scores
    i, j = pair_at(start, n)
    for _ in range(start, stop):
        try:
            score = algorithm.compare(digests[i], digests[j])
        except Exception as e:
            logger.debug(f"Comparison failed for pair ({i}, {j}): {e}")
            score = 0
        if score > 0:
            scores.append((i, j, score))
        j += 1
        if j == n:
            i += 1
            j = i + 1
    return scores


def bucket_by_digest_prefix(records: Iterable[FileRecord],
                            prefix_length: int = PREFILTER_PREFIX_LENGTH) -> Dict[Tuple[str, str], List[FileRecord]]:
    """
    Coarse locality-sensitive buckets: ssdeep "blocksize:chunk:chunk" keyed by
    (blocksize, chunk[:prefix_length]). Malformed digests get a bucket of their own.
    """
    buckets = defaultdict(list)
    for record in records:
        parts = (record.fuzzy_digest or "").split(":")
        if len(parts) >= 3:
            key = (parts[0], parts[1][:prefix_length])
        else:
            key = ("", record.path)
        buckets[key].append(record)
    return buckets


class SimilarityGrouperImpl:
    """
    Builds the threshold similarity graph over fuzzy digests and returns its
    connected components as SimilarityGroups.
    """

    def __init__(self, algorithm: FuzzyHashAlgorithm = None, max_workers: Optional[int] = None,
                 parallel_pair_threshold: int = PARALLEL_PAIR_THRESHOLD):
        self.algorithm = algorithm or CTPHAlgorithmImpl()
        self.max_workers = max_workers
        self.parallel_pair_threshold = parallel_pair_threshold

    def find_groups(
            self,
            records: Iterable[FileRecord],
            threshold: int,
            min_size: int = 2,
            prefilter: bool = False,
            stopped_flag: Optional[Callable[[], bool]] = None,
            progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> List[SimilarityGroup]:
        validate_similarity_params(threshold, min_size)

        candidates = self._candidates(records)
        if len(candidates) < min_size:
            return []

        partitions = (
            list(bucket_by_digest_prefix(candidates).values()) if prefilter else [candidates]
        )
        logger.debug(f"Comparing {len(candidates)} fuzzy digests in {len(partitions)} partition(s)")

        groups: List[SimilarityGroup] = []
        for partition in partitions:
            if len(partition) < min_size:
                continue
            edges = self._score_partition(partition, stopped_flag, progress_callback)
            groups.extend(self._build_groups(partition, edges, threshold, min_size))

        groups.sort(key=lambda g: (-g.count, -g.average_similarity, g.members[0].path))
        return groups

    @staticmethod
    def _candidates(records: Iterable[FileRecord]) -> List[FileRecord]:
        unique = {}
        for record in records:
            if record.fuzzy_digest and record.path not in unique:
                unique[record.path] = record
        # Stable order keeps the pair numbering, and so the output, reproducible
        return [unique[p] for p in sorted(unique)]

    def _score_partition(
            self,
            partition: List[FileRecord],
            stopped_flag: Optional[Callable[[], bool]],
            progress_callback: Optional[Callable[[str, int, object], None]]
    ) -> Dict[Tuple[int, int], int]:
        digests = [r.fuzzy_digest for r in partition]
        total = pair_count(len(digests))
        workers = resolve_workers(self.max_workers)
        if total < self.parallel_pair_threshold:
            workers = 1

        ranges = chunk_ranges(total, workers * TASKS_PER_WORKER if workers > 1 else 1)

        def on_progress(done: int, count: int) -> None:
            if progress_callback:
                progress_callback("similarity", done, count)

        results = parallel_map(
            _score_pair_range,
            [(digests, start, stop, self.algorithm) for start, stop in ranges],
            max_workers=workers,
            use_processes=True,
            stopped_flag=stopped_flag,
            progress_callback=on_progress,
        )
        if len(results) != len(ranges):
            raise AnalysisCancelled("Cancelled during similarity comparison")

        scores: Dict[Tuple[int, int], int] = {}
        for chunk in results:
            for i, j, score in chunk:
                scores[(i, j)] = score
        return scores

    @staticmethod
    def _build_groups(
            partition: List[FileRecord],
            scores: Dict[Tuple[int, int], int],
            threshold: int,
            min_size: int
    ) -> List[SimilarityGroup]:
        uf = UnionFind(len(partition))
        if threshold == 0:
            # Every computed pair, scored or not, meets a zero threshold
            for i in range(1, len(partition)):
                uf.union(0, i)
        else:
            for (i, j), score in scores.items():
                if score >= threshold:
                    uf.union(i, j)

        inner_scores: Dict[int, List[Edge]] = defaultdict(list)
        for (i, j), score in sorted(scores.items()):
            root = uf.find(i)
            if root == uf.find(j):
                inner_scores[root].append((i, j, score))

        groups = []
        for root, indices in uf.components().items():
            if len(indices) < min_size:
                continue
            indices.sort()
            edges = inner_scores[root]
            pairs = pair_count(len(indices))
            # Pairs missing from scores compared at 0: they weigh on the mean but are not stored
            above = pairs if threshold == 0 else sum(1 for _, _, score in edges if score >= threshold)
            groups.append(SimilarityGroup(
                members=tuple(partition[i] for i in indices),
                pairwise_similarities=tuple(
                    PairScore(left=partition[i].path, right=partition[j].path, score=score)
                    for i, j, score in edges
                ),
                average_similarity=sum(score for _, _, score in edges) / pairs,
                density=above / pairs,
            ))
        return groups


def find_similarity_groups(
        records: Iterable[FileRecord],
        threshold: int,
        min_size: int = 2,
        prefilter: bool = False,
        algorithm: FuzzyHashAlgorithm = None,
        max_workers: Optional[int] = None
) -> List[SimilarityGroup]:
    """
    Single-linkage near-duplicate groups over records carrying a fuzzy digest.
    Raises InvalidParameterError when threshold is outside [0, 100] or min_size < 2.
    """
    grouper = SimilarityGrouperImpl(algorithm=algorithm, max_workers=max_workers)
    return grouper.find_groups(records, threshold, min_size, prefilter=prefilter)
