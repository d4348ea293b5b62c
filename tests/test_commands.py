"""
Integration tests for AnalysisCommand: the orchestration layer between the CLI and core.
Verifies correct wiring of scanner -> analyzer with progress/cancellation support.
"""
import pytest

from clutterscope import AnalysisCommand, AnalysisParams
from clutterscope.core.models import AnalysisCancelled


class TestAnalysisCommand:
    """Test command orchestration logic (scanner + analyzer integration)."""

    def test_execute_returns_report_and_stats(self, test_files, temp_dir):
        params = AnalysisParams(root_dir=str(temp_dir), max_workers=1)

        command = AnalysisCommand()
        report, stats = command.execute(params)

        assert report.total_files_analyzed == 12
        assert len(report.duplicate_groups) == 2
        assert "content-hash" in stats.stage_stats
        assert len(command.get_records()) == 12

    def test_scan_options_are_forwarded(self, test_files, temp_dir):
        params = AnalysisParams(root_dir=str(temp_dir), patterns=["*.tar"], max_workers=1)

        command = AnalysisCommand()
        report, _ = command.execute(params)

        assert report.total_files_analyzed == 2
        assert report.duplicate_groups == ()
        assert [g.base_name for g in report.pattern_groups] == ["backup"]

    def test_empty_directory_gives_empty_report(self, temp_dir):
        report, _ = AnalysisCommand().execute(AnalysisParams(root_dir=str(temp_dir)))
        assert report.total_files_analyzed == 0
        assert report.duplicate_groups == ()
        assert report.hidden_consumers == ()

    def test_root_dir_is_required(self):
        with pytest.raises(ValueError, match="root_dir"):
            AnalysisCommand().execute(AnalysisParams())

    def test_missing_root_raises_runtime_error(self, temp_dir):
        with pytest.raises(RuntimeError):
            AnalysisCommand().execute(AnalysisParams(root_dir=str(temp_dir / "gone")))

    def test_get_records_before_execute(self):
        with pytest.raises(RuntimeError, match="Execute command first"):
            AnalysisCommand().get_records()

    def test_cancellation_propagates(self, test_files, temp_dir):
        with pytest.raises(AnalysisCancelled):
            AnalysisCommand().execute(AnalysisParams(root_dir=str(temp_dir)), stopped_flag=lambda: True)

    def test_progress_callback_receives_stages(self, test_files, temp_dir):
        stages = set()
        AnalysisCommand().execute(
            AnalysisParams(root_dir=str(temp_dir), max_workers=1),
            progress_callback=lambda stage, current, total: stages.add(stage),
        )
        assert "scanning" in stages
        assert "content-hash" in stages
