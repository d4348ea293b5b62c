"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/report_service.py
Renders a Report as plain text, JSON or CSV. Read-only: never touches the files it lists.
"""
import csv
import io
import json
from typing import List

from clutterscope.core.models import Report
from clutterscope.utils.convert_utils import ConvertUtils

CSV_HEADER = ["section", "group", "path", "size_bytes", "detail"]


class ReportService:
    @staticmethod
    def to_json(report: Report) -> str:
        return json.dumps(report.to_dict(), indent=2, ensure_ascii=False)

    @staticmethod
    def to_csv(report: Report) -> str:
        """
        One row per listed file (or subtree for hidden consumers).
        The group column ties rows of the same group together.
        """
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADER)

        for idx, group in enumerate(report.duplicate_groups, 1):
            for member in group.members:
                writer.writerow(["duplicate", idx, member.path, member.size_bytes, group.digest])
        for idx, group in enumerate(report.similarity_groups, 1):
            for member in group.members:
                writer.writerow(["similar", idx, member.path, member.size_bytes,
                                 f"{group.average_similarity:.1f}"])
        for outlier in report.large_files:
            writer.writerow(["large-file", outlier.rank, outlier.record.path, outlier.size_bytes,
                             f"{outlier.z_score:.2f}"])
        for idx, consumer in enumerate(report.hidden_consumers, 1):
            writer.writerow(["hidden-consumer", idx, consumer.subtree_path, consumer.aggregate_bytes,
                             consumer.category.value])
        for idx, group in enumerate(report.pattern_groups, 1):
            for member in group.members:
                writer.writerow(["pattern", idx, member.path, member.size_bytes, group.pattern])
        for skipped in report.skipped:
            writer.writerow(["skipped", "", skipped.path, "", f"{skipped.stage}: {skipped.reason}"])

        return buffer.getvalue()

    @staticmethod
    def to_text(report: Report) -> str:
        """Human-readable report, one section per detector that found something."""
        h = ConvertUtils.bytes_to_human
        lines: List[str] = [
            f"Analyzed {report.total_files_analyzed} files ({h(report.total_size_analyzed)})",
        ]

        if report.duplicate_groups:
            lines.append(f"\nExact duplicates: {len(report.duplicate_groups)} groups, "
                         f"{h(report.total_wasted_bytes)} reclaimable")
            for idx, group in enumerate(report.duplicate_groups, 1):
                lines.append(f"\n📁 Group {idx} | Size: {h(group.size_bytes)} | Files: {group.count} "
                             f"| Wasted: {h(group.wasted_bytes)}")
                for member in group.members:
                    lines.append(f"   {member.path}")

        if report.similarity_groups:
            lines.append(f"\nSimilar files ({report.similarity_policy}, threshold "
                         f"{report.similarity_threshold}): {len(report.similarity_groups)} groups")
            for idx, group in enumerate(report.similarity_groups, 1):
                lines.append(f"\n🔗 Group {idx} | Files: {group.count} | "
                             f"Avg similarity: {group.average_similarity:.1f}% | Density: {group.density:.2f}")
                for member in group.members:
                    lines.append(f"   {member.path} [{h(member.size_bytes)}]")

        if report.large_files:
            lines.append(f"\nLarge files: {len(report.large_files)}")
            for outlier in report.large_files:
                lines.append(f"   #{outlier.rank} {outlier.record.path} [{h(outlier.size_bytes)}] "
                             f"z={outlier.z_score:.2f} ({outlier.percentage_of_total:.1f}% of total)")
                if outlier.record.mtime is not None:
                    lines.append(f"      modified {ConvertUtils.timestamp_to_human(outlier.record.mtime)}")

        if report.hidden_consumers:
            lines.append(f"\nHidden space consumers: {len(report.hidden_consumers)}")
            for consumer in report.hidden_consumers:
                lines.append(f"   {consumer.subtree_path} [{h(consumer.aggregate_bytes)}, "
                             f"{consumer.file_count} files] {consumer.category.display_name}")
                if consumer.recommendation:
                    lines.append(f"      → {consumer.recommendation}")

        if report.pattern_groups:
            lines.append(f"\nFile name patterns: {len(report.pattern_groups)}")
            for group in report.pattern_groups:
                lines.append(f"   {group.pattern} ({group.kind.value}) | Files: {group.count} "
                             f"| Total: {h(group.total_bytes)}")

        if report.skipped:
            lines.append(f"\nSkipped: {len(report.skipped)} files")
            for skipped in report.skipped:
                lines.append(f"   {skipped.path} [{skipped.stage}] {skipped.reason}")

        if len(lines) == 1:
            lines.append("Nothing to report.")

        return "\n".join(lines)

    @classmethod
    def render(cls, report: Report, output_format: str = "text") -> str:
        renderers = {
            "text": cls.to_text,
            "json": cls.to_json,
            "csv": cls.to_csv,
        }
        if output_format not in renderers:
            raise ValueError(f"Unknown output format: {output_format}")
        return renderers[output_format](report)
