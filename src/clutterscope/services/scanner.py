"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/scanner.py
Walks a directory tree and produces the FileRecord stream the core consumes.
Features:
- Uses os.walk with in-place pruning of subdirectories
- Hidden entries (dot-names) skipped unless include_hidden is set
- Optional maximum depth below the root
- Optional glob filter on file names (fnmatch)
- Excluded directories are never entered
- Symbolic links are never followed
"""

import fnmatch
import os
import stat
import time
import logging
from pathlib import Path
from typing import List, Optional, Callable

from clutterscope.core.models import FileRecord
from clutterscope.core.interfaces import FileScanner

logger = logging.getLogger(__name__)


class FileScannerImpl(FileScanner):
    """
    Scans a directory tree and returns one FileRecord per regular file.

    Attributes:
        root_dir: Root directory to scan
        include_hidden: Whether dot-files and dot-directories are walked
        max_depth: Deepest directory level to descend into (0 = root only)
        patterns: Glob patterns a file name must match (any of them), e.g. ["*.log"]
        excluded_dirs: Directories that are never entered
    """

    def __init__(
        self,
        root_dir: str,
        include_hidden: bool = False,
        max_depth: Optional[int] = None,
        patterns: Optional[List[str]] = None,
        excluded_dirs: Optional[List[str]] = None
    ):
        self.root_dir = root_dir
        self.include_hidden = include_hidden
        self.max_depth = max_depth
        self.patterns = list(patterns) if patterns else []
        self.excluded_dirs = [str(Path(d).resolve()) for d in excluded_dirs] if excluded_dirs else []

    def scan(self,
             stopped_flag: Optional[Callable[[], bool]] = None,
             progress_callback: Optional[Callable[[str, int, object], None]] = None) -> List[FileRecord]:
        """
        Single-pass scanner with throttled progress updates.
        Returns an empty list when cancelled.
        """
        logger.debug(f"Root directory: {self.root_dir}")
        logger.debug(f"Filters: include_hidden={self.include_hidden}, max_depth={self.max_depth}, "
                     f"patterns={self.patterns}")

        if stopped_flag and stopped_flag():
            logger.debug("Scan cancelled before start")
            return []

        root_path = Path(self.root_dir)
        if not root_path.exists():
            error_msg = f"Directory does not exist: {self.root_dir}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)
        if not root_path.is_dir():
            error_msg = f"Not a directory: {self.root_dir}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

        found: List[FileRecord] = []
        processed = 0
        progress_interval = 5000
        progress_counter = 0
        start_time = time.time()

        for root, dirs, files in os.walk(self.root_dir, onerror=self._on_walk_error):
            if stopped_flag and stopped_flag():
                logger.debug("Scan interrupted by user")
                return []

            depth = self._depth_of(root)
            if self.max_depth is not None and depth >= self.max_depth:
                dirs[:] = []
            else:
                dirs[:] = sorted(d for d in dirs if self._prefilter_dirs(os.path.join(root, d)))

            for filename in sorted(files):
                record = self._process_file(os.path.join(root, filename))
                if record:
                    found.append(record)
                processed += 1
                progress_counter += 1
                if progress_callback and progress_counter >= progress_interval:
                    progress_callback('scanning', processed, None)
                    progress_counter = 0

        if progress_callback and progress_counter > 0:
            progress_callback('scanning', processed, None)

        logger.debug(f"Scan completed in {time.time() - start_time:.2f}s. Found {len(found)} files.")
        return found

    def _depth_of(self, directory: str) -> int:
        relative = os.path.relpath(directory, self.root_dir)
        return 0 if relative == os.curdir else relative.count(os.sep) + 1

    @staticmethod
    def _on_walk_error(error: OSError) -> None:
        logger.warning(f"Cannot read directory: {error}")

    def _is_hidden(self, name: str) -> bool:
        return not self.include_hidden and name.startswith('.')

    @staticmethod
    def _is_excluded_directory(path: str, excluded_dirs: List[str]) -> bool:
        """Check if path is within an excluded directory."""
        try:
            path_str = str(Path(path).resolve(strict=False))
        except (OSError, ValueError):
            return False
        for excluded_dir in excluded_dirs:
            normalized_excluded = os.path.normpath(excluded_dir)
            if path_str == normalized_excluded or path_str.startswith(normalized_excluded + os.sep):
                return True
        return False

    def _prefilter_dirs(self, path: str) -> bool:
        """Decide whether os.walk may enter a subdirectory."""
        if self._is_hidden(os.path.basename(path)):
            logger.debug(f"Skipping hidden directory: {path}")
            return False
        if os.path.islink(path):
            logger.debug(f"Skipping symbolic link: {path}")
            return False
        if self.excluded_dirs and self._is_excluded_directory(path, self.excluded_dirs):
            logger.debug(f"Skipping excluded directory: {path}")
            return False
        return True

    def _process_file(self, path: str) -> Optional[FileRecord]:
        """
        Returns a FileRecord if the path is a regular file passing all filters, else None.
        """
        name = os.path.basename(path)
        if self._is_hidden(name):
            return None
        if self.patterns and not any(fnmatch.fnmatch(name, p) for p in self.patterns):
            return None

        try:
            stat_result = os.lstat(path)
        except OSError as e:
            logger.debug(f"Could not stat {path}: {e}")
            return None

        if stat.S_ISLNK(stat_result.st_mode):
            logger.debug(f"Skipping symbolic link: {path}")
            return None
        if not stat.S_ISREG(stat_result.st_mode):
            logger.debug(f"Skipping non-regular file: {path}")
            return None

        return FileRecord(path=path, size_bytes=stat_result.st_size, mtime=stat_result.st_mtime)
