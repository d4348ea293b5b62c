"""
Unified command orchestrator for storage analysis.
This is the single entry point for business logic, used by the CLI and by library callers.
"""
from typing import List, Optional, Callable, Tuple

from clutterscope.core.models import AnalysisParams, AnalysisStats, FileRecord, Report
from clutterscope.core.analyzer import AnalyzerImpl
from clutterscope.services.scanner import FileScannerImpl


class AnalysisCommand:
    """
    Orchestrates the entire analysis workflow:
    1. Scan the root directory into FileRecords
    2. Run every enabled detector over them
    3. Return the report with per-stage statistics

    Usage:
        params = AnalysisParams(root_dir="~/projects", find_similar=True)
        command = AnalysisCommand()
        report, stats = command.execute(
            params,
            progress_callback=cli_progress_printer,
            stopped_flag=signal_handler_check
        )
    """

    def __init__(self, analyzer: Optional[AnalyzerImpl] = None):
        self.analyzer = analyzer or AnalyzerImpl()
        self.records: Optional[List[FileRecord]] = None

    def execute(
            self,
            params: AnalysisParams,
            progress_callback: Optional[Callable[[str, int, Optional[int]], None]] = None,
            stopped_flag: Optional[Callable[[], bool]] = None
    ) -> Tuple[Report, AnalysisStats]:
        """
        Execute analysis with given parameters.

        Args:
            params: Validated analysis parameters (root_dir is required here)
            progress_callback: (stage: str, current: int, total: Optional[int]) -> None
            stopped_flag: () -> bool (returns True if operation should stop)

        Returns:
            Tuple of (report, statistics)

        Raises:
            ValueError: If root_dir is missing
            RuntimeError: If the root directory cannot be scanned
            AnalysisCancelled: If stopped_flag fires
        """
        if not params.root_dir:
            raise ValueError("root_dir is required to scan")

        scanner = FileScannerImpl(
            root_dir=params.root_dir,
            include_hidden=params.include_hidden,
            max_depth=params.max_depth,
            patterns=params.patterns,
            excluded_dirs=params.excluded_dirs,
        )
        self.records = scanner.scan(stopped_flag=stopped_flag, progress_callback=progress_callback)

        return self.analyzer.analyze(
            self.records,
            params,
            stopped_flag=stopped_flag,
            progress_callback=progress_callback,
        )

    def get_records(self) -> List[FileRecord]:
        """Get scanned records after execution."""
        if self.records is None:
            raise RuntimeError("Execute command first before accessing records")
        return self.records
