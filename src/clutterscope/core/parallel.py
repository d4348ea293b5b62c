"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/parallel.py
Worker-pool helpers for the data-parallel map phases of the pipeline.

Every task owns its input and returns a plain value; callers merge the
results themselves once the pool has drained, so no state is shared between
workers.
"""

import logging
import os
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, TypeVar

logger = logging.getLogger(__name__)

R = TypeVar("R")


def default_workers() -> int:
    return os.cpu_count() or 1


def resolve_workers(max_workers: Optional[int]) -> int:
    if max_workers is None:
        return default_workers()
    return max(1, int(max_workers))


def chunk_ranges(total: int, parts: int) -> List[Tuple[int, int]]:
    """Split [0, total) into at most `parts` contiguous, non-empty half-open ranges."""
    if total <= 0:
        return []
    parts = max(1, min(parts, total))
    step, extra = divmod(total, parts)
    ranges = []
    start = 0
    for i in range(parts):
        stop = start + step + (1 if i < extra else 0)
        ranges.append((start, stop))
        start = stop
    return ranges


def parallel_map(
        func: Callable[..., R],
        args_list: Sequence[Tuple],
        max_workers: Optional[int] = None,
        use_processes: bool = False,
        stopped_flag: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
) -> List[R]:
    """
    Apply func(*args) to every entry of args_list and return results in input order.

    Runs in the calling thread when a single worker is requested or there is
    only one task. Returns an empty list if stopped_flag fires; callers treat
    that as "discard everything".
    """
    total = len(args_list)
    workers = resolve_workers(max_workers)
    results: List[R] = []

    if workers == 1 or total <= 1:
        for done, args in enumerate(args_list, 1):
            if stopped_flag and stopped_flag():
                return []
            results.append(func(*args))
            if progress_callback:
                progress_callback(done, total)
        return results

    pool_cls = ProcessPoolExecutor if use_processes else ThreadPoolExecutor
    logger.debug(f"Dispatching {total} tasks to {pool_cls.__name__} with {workers} workers")

    with pool_cls(max_workers=workers) as executor:
        futures = [executor.submit(func, *args) for args in args_list]
        try:
            for done, future in enumerate(futures, 1):
                if stopped_flag and stopped_flag():
                    _cancel_all(executor, futures)
                    return []
                results.append(future.result())
                if progress_callback:
                    progress_callback(done, total)
        except BaseException:
            _cancel_all(executor, futures)
            raise

    return results


def _cancel_all(executor: Executor, futures: Iterable) -> None:
    for f in futures:
        f.cancel()
