#!/usr/bin/env python3
"""
clutterscope CLI: command line interface for storage analysis.
Finds exact duplicates, near-duplicates, unusually large files, space-hungry
cache and build directories, and numbered or dated file families.
Read-only: nothing is moved or deleted.
"""
from __future__ import annotations  # Enable postponed evaluation of annotations (PEP 563)
import argparse
import sys
import os
import time
from pathlib import Path
from typing import Optional, NoReturn
import logging

logging.basicConfig(
    level=logging.ERROR,
    format="%(levelname)-8s | %(name)-25s | %(message)s"
)

from clutterscope.core.models import (
    AnalysisParams, AnalysisCancelled, InvalidParameterError, Report,
    DEFAULT_SIMILARITY_THRESHOLD, DEFAULT_MIN_CLUSTER_SIZE, DEFAULT_STD_DEV_THRESHOLD, DEFAULT_TOP_N,
)
from clutterscope.commands import AnalysisCommand
from clutterscope.services.report_service import ReportService
from clutterscope.utils.convert_utils import ConvertUtils
from clutterscope.aliases import (
    OUTPUT_FORMAT_CHOICES, OUTPUT_FORMAT_HELP_TEXT,
    SIMILARITY_HELP_TEXT, OUTLIER_HELP_TEXT, EPILOG_TEXT,
)


class CLIApplication:
    """Main CLI application controller."""

    def __init__(self):
        self.start_time: float = time.time()
        self.verbose: bool = False
        self.quiet: bool = False

    @staticmethod
    def parse_args(args=None) -> argparse.Namespace:
        """Parse command-line arguments."""
        parser = argparse.ArgumentParser(
            description="clutterscope: storage analysis: duplicates, similar files, large files, hidden consumers",
            formatter_class=argparse.RawTextHelpFormatter,
            epilog=EPILOG_TEXT
        )

        # Required arguments
        parser.add_argument(
            "--input", "-i",
            required=True,
            type=str,
            help="Input directory to analyze"
        )

        # Walk options
        parser.add_argument(
            "--hidden",
            action="store_true",
            dest="include_hidden",
            help="Include hidden files and directories (names starting with '.')"
        )
        parser.add_argument(
            "--max-depth", "-d",
            default=None,
            type=int,
            metavar='',
            dest="max_depth",
            help="Maximum directory depth below the input directory (0 = input directory only)"
        )
        parser.add_argument(
            "--pattern", "-p",
            nargs="+",
            default=[],
            type=str,
            metavar='',
            dest="patterns",
            help="Only analyze files whose name matches one of these globs (e.g., '*.log' '*.tar')"
        )
        parser.add_argument(
            "--excluded-dirs", '-e',
            nargs="+",
            default=[],
            type=str,
            metavar='',
            dest="excluded_dirs",
            help="Excluded/ignored directories (space separated)"
        )

        # Detector options
        parser.add_argument(
            "--no-duplicates",
            action="store_false",
            dest="find_duplicates",
            help="Skip exact-duplicate detection"
        )
        parser.add_argument(
            "--similar", "-s",
            action="store_true",
            dest="find_similar",
            help="Group near-duplicate files by fuzzy hash"
        )
        parser.add_argument(
            "--threshold", "-t",
            default=DEFAULT_SIMILARITY_THRESHOLD,
            type=int,
            metavar='',
            help=SIMILARITY_HELP_TEXT
        )
        parser.add_argument(
            "--min-cluster",
            default=DEFAULT_MIN_CLUSTER_SIZE,
            type=int,
            metavar='',
            dest="min_cluster_size",
            help=f"Minimum number of files in a similarity group. Default: {DEFAULT_MIN_CLUSTER_SIZE}"
        )
        parser.add_argument(
            "--min-fuzzy-size",
            default="4KB",
            type=str,
            metavar='',
            help="Files smaller than this get no fuzzy hash. Default: 4KB"
        )
        parser.add_argument(
            "--max-fuzzy-size",
            default="1GB",
            type=str,
            metavar='',
            help="Files larger than this are skipped by fuzzy hashing (e.g., 1GB). Default: 1GB"
        )
        parser.add_argument(
            "--prefilter",
            action="store_true",
            help="Only compare files whose fuzzy hashes share block size and prefix"
        )
        parser.add_argument(
            "--outlier-min-size", "-m",
            default="10MB",
            type=str,
            metavar='',
            help=OUTLIER_HELP_TEXT
        )
        parser.add_argument(
            "--std-dev",
            default=DEFAULT_STD_DEV_THRESHOLD,
            type=float,
            metavar='',
            dest="std_dev_threshold",
            help=f"Standard deviations above the mean for a large-file outlier. Default: {DEFAULT_STD_DEV_THRESHOLD}"
        )
        parser.add_argument(
            "--top", "-n",
            default=DEFAULT_TOP_N,
            type=int,
            metavar='',
            dest="top_n",
            help=f"Maximum number of large files to report. Default: {DEFAULT_TOP_N}"
        )
        parser.add_argument(
            "--no-consumers",
            action="store_false",
            dest="check_hidden_consumers",
            help="Skip cache/build/VCS directory detection"
        )
        parser.add_argument(
            "--no-patterns",
            action="store_false",
            dest="check_patterns",
            help="Skip numbered/dated file family detection"
        )
        parser.add_argument(
            "--workers", "-w",
            default=None,
            type=int,
            metavar='',
            dest="max_workers",
            help="Worker count for hashing and comparison. Default: number of CPUs"
        )

        # Output options
        parser.add_argument(
            "--format", "-f",
            choices=OUTPUT_FORMAT_CHOICES,
            default="text",
            dest="output_format",
            help=OUTPUT_FORMAT_HELP_TEXT
        )
        parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output"
        )
        parser.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Show detailed statistics and progress"
        )

        return parser.parse_args(args)

    def validate_args(self, args: argparse.Namespace) -> None:
        """Validate command-line arguments before execution."""
        root_path = Path(args.input).resolve()
        if not root_path.exists():
            self.error_exit(f"Directory not found: {args.input}")
        if not root_path.is_dir():
            self.error_exit(f"Path is not a directory: {args.input}")

        if not 0 <= args.threshold <= 100:
            self.error_exit(f"Similarity threshold must be between 0 and 100, got {args.threshold}")
        if args.min_cluster_size < 2:
            self.error_exit(f"Minimum cluster size must be at least 2, got {args.min_cluster_size}")
        if args.top_n <= 0:
            self.error_exit(f"--top must be positive, got {args.top_n}")
        if args.std_dev_threshold < 0:
            self.error_exit("--std-dev cannot be negative")
        if args.max_depth is not None and args.max_depth < 0:
            self.error_exit("--max-depth cannot be negative")
        if args.max_workers is not None and args.max_workers < 1:
            self.error_exit("--workers must be at least 1")

        # Validate size formats
        try:
            ConvertUtils.human_to_bytes(args.outlier_min_size)
            ConvertUtils.human_to_bytes(args.min_fuzzy_size)
            if args.max_fuzzy_size:
                ConvertUtils.human_to_bytes(args.max_fuzzy_size)
        except ValueError as e:
            self.error_exit(f"Invalid size format: {e}")

        # Validate excluded directories
        for excl_dir in args.excluded_dirs:
            excl_path = Path(excl_dir).resolve()
            if not excl_path.exists():
                self.warning(f"Excluded directory not found: {excl_dir}")
            elif not excl_path.is_dir():
                self.warning(f"Excluded path is not a directory: {excl_dir}")

    def create_params(self, args: argparse.Namespace) -> AnalysisParams:
        """Create AnalysisParams from CLI arguments."""
        excluded_dirs = [str(Path(item.strip()).resolve()) for item in args.excluded_dirs]
        try:
            return AnalysisParams.from_human_readable(
                root_dir=str(Path(args.input).resolve()),
                outlier_min_size_str=args.outlier_min_size,
                min_fuzzy_size_str=args.min_fuzzy_size,
                max_fuzzy_size_str=args.max_fuzzy_size,
                include_hidden=args.include_hidden,
                max_depth=args.max_depth,
                patterns=args.patterns,
                excluded_dirs=excluded_dirs,
                find_duplicates=args.find_duplicates,
                find_similar=args.find_similar,
                similarity_threshold=args.threshold,
                min_cluster_size=args.min_cluster_size,
                prefilter=args.prefilter,
                std_dev_threshold=args.std_dev_threshold,
                top_n=args.top_n,
                check_hidden_consumers=args.check_hidden_consumers,
                check_patterns=args.check_patterns,
                max_workers=args.max_workers,
            )
        except InvalidParameterError as e:
            self.error_exit(f"Parameter error: {e}")

    def progress_callback(self, stage: str, current: int, total: Optional[int]) -> None:
        """CLI progress callback - shows progress in console."""
        if not self.verbose:
            return

        if total and total > 0:
            percent = (current / total) * 100
            sys.stderr.write(f"\r  [{stage}] {current}/{total} ({percent:.1f}%)")
        else:
            sys.stderr.write(f"\r  [{stage}] {current} files processed...")
        sys.stderr.flush()

    @staticmethod
    def stopped_flag() -> bool:
        """Check if operation should stop (placeholder for signal handling)."""
        return False

    def run_analysis(self, params: AnalysisParams) -> Report:
        """Execute analysis workflow."""
        command = AnalysisCommand()
        try:
            report, stats = command.execute(
                params,
                progress_callback=self.progress_callback if self.verbose else None,
                stopped_flag=self.stopped_flag
            )
        except AnalysisCancelled:
            print("\n⚠️  Analysis cancelled", file=sys.stderr)
            sys.exit(130)
        except (RuntimeError, ValueError) as e:
            self.error_exit(f"Analysis failed: {e}")

        if self.verbose:
            sys.stderr.write("\n")
            print(stats.print_summary(), file=sys.stderr)
        return report

    def output_results(self, report: Report, output_format: str) -> None:
        if self.quiet and output_format == "text":
            return
        print(ReportService.render(report, output_format))

    def warning(self, message: str) -> None:
        """Print a warning message to stderr."""
        if not self.quiet:
            print(f"⚠️  {message}", file=sys.stderr)

    @staticmethod
    def error_exit(message: str, code: int = 1) -> NoReturn:
        """Print error and exit."""
        print(f"❌ Error: {message}", file=sys.stderr)
        sys.exit(code)

    def run(self, argv=None) -> None:
        """Main entry point with conditional output behavior."""
        args = self.parse_args(argv)
        self.verbose = args.verbose
        self.quiet = args.quiet

        if os.environ.get("DEBUG"):
            logging.getLogger().setLevel(logging.DEBUG)
        elif self.verbose:
            logging.getLogger().setLevel(logging.INFO)

        self.validate_args(args)
        params = self.create_params(args)

        if not self.quiet and args.output_format == "text":
            print(f"Scanning directory: {params.root_dir}")

        report = self.run_analysis(params)
        self.output_results(report, args.output_format)

        elapsed = time.time() - self.start_time
        if self.verbose:
            print(f"\n✅ Completed in {elapsed:.2f} seconds", file=sys.stderr)


def main() -> None:
    """Application entry point."""
    app = CLIApplication()
    try:
        app.run()
    except KeyboardInterrupt:
        print("\n⚠️  Operation cancelled by user (Ctrl+C)")
        sys.exit(130)
    except Exception as e:
        if os.environ.get("DEBUG"):
            raise
        print(f"❌ Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
