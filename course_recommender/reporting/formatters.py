"""
Terminal and stream formatters for the CLI.

All formatters take typed models and return plain strings suitable for
``typer.echo()``. No third-party dependencies (no ``rich``, no ``colorama``).

Progress output
---------------
``format_progress_line()`` renders one event per line::

  [ 47%] trainee_complete  Ana Silva: 5 recommendations found

``format_sse()`` renders the same event as a Server-Sent Events frame for an
HTTP transport (``data: <camelCase JSON>\\n\\n``).
"""

from __future__ import annotations

import json

from course_recommender.models.progress import ProgressEvent
from course_recommender.models.recommendation import GenerationResult
from course_recommender.models.statistics import (
    DatasetStatistics,
    IntegrityReport,
    TraineeSummary,
)

# ── Progress stream ──────────────────────────────────────────────────────────


def format_progress_line(event: ProgressEvent) -> str:
    """One console line: percentage, stage and message."""
    return f"[{event.progress:>3}%] {event.stage.value:<17} {event.message}"


def format_sse(event: ProgressEvent) -> str:
    """Server-Sent Events frame carrying the camelCase event payload."""
    payload = json.dumps(event.to_wire(), separators=(",", ":"), ensure_ascii=False)
    return f"data: {payload}\n\n"


# ── Run summary ──────────────────────────────────────────────────────────────


def format_result_summary(result: GenerationResult, top_n: int = 10) -> str:
    """Summary block plus the first ``top_n`` trainees' best recommendation."""
    lines: list[str] = []
    lines.append("")
    lines.append("=== Recommendation Run ===")
    lines.append(f"  Trainees scored:   {result.total_trainees}")
    lines.append(f"  Courses in catalog:{result.total_courses:>5}")
    lines.append(f"  Recommendations:   {result.recommendations_generated}")
    lines.append(f"  Chunks:            {result.chunks_processed} x {result.chunk_size}")

    if not result.data:
        lines.append("")
        lines.append("  (no trainees matched the filters)")
        return "\n".join(lines)

    lines.append("")
    header = f"    {'Trainee':<28}  {'Top course':<36}  {'Prob':>5}  {'Recs':>4}"
    lines.append(header)
    lines.append("    " + "-" * (len(header) - 4))
    for trainee in result.data[:top_n]:
        top = trainee.recommendations[0] if trainee.recommendations else None
        course = top.course_name[:36] if top else "-"
        prob = f"{top.probability:.2f}" if top else "-"
        lines.append(
            f"    {trainee.trainee_name[:28]:<28}  {course:<36}  {prob:>5}  "
            f"{len(trainee.recommendations):>4}"
        )
    if len(result.data) > top_n:
        lines.append(f"    ... and {len(result.data) - top_n} more")
    return "\n".join(lines)


# ── Dataset queries ──────────────────────────────────────────────────────────


def format_statistics(stats: DatasetStatistics) -> str:
    lines: list[str] = []
    lines.append("")
    lines.append("=== Dataset Statistics ===")
    lines.append(f"  Courses:      {stats.total_courses}")
    lines.append(f"  Trainees:     {stats.total_trainees}")
    lines.append(f"  Enrollments:  {stats.total_enrollments}")
    lines.append(
        f"  Avg enrollments / trainee: {stats.average_enrollments_per_trainee:.2f}"
    )
    lines.append(
        f"  Avg enrollments / course:  {stats.average_enrollments_per_course:.2f}"
    )

    lines.append("")
    lines.append("  [COURSES BY STATUS]")
    for row in stats.courses_by_status:
        lines.append(f"    {row.status:>2}  {row.label:<10}  {row.count:>6}")

    lines.append("")
    lines.append("  [ENGAGEMENT]")
    for level, count in stats.engagement_levels.items():
        lines.append(f"    {level:<8}  {count:>6}")

    lines.append("")
    lines.append("  [TOP COURSES]")
    for row in stats.top_courses:
        lines.append(f"    {str(row.course_id):>8}  {row.course_name[:40]:<40}  {row.enrollment_count:>6}")
    return "\n".join(lines)


def format_trainee_table(trainees: list[TraineeSummary], title: str) -> str:
    lines: list[str] = []
    lines.append("")
    lines.append(f"=== {title} ===")
    if not trainees:
        lines.append("  (no trainees found)")
        return "\n".join(lines)

    header = f"    {'ID':>8}  {'Name':<28}  {'Email':<30}  {'Phone':<15}  {'Enr':>4}"
    lines.append(header)
    lines.append("    " + "-" * (len(header) - 4))
    for t in trainees:
        lines.append(
            f"    {str(t.id):>8}  {t.name[:28]:<28}  {t.email[:30]:<30}  "
            f"{t.phone[:15]:<15}  {t.enrollment_count:>4}"
        )
    lines.append(f"  {len(trainees)} trainee(s)")
    return "\n".join(lines)


def format_integrity_report(report: IntegrityReport) -> str:
    lines: list[str] = []
    lines.append("")
    lines.append("=== Data Integrity ===")
    lines.append(f"  Courses:      {report.total_courses}")
    lines.append(f"  Trainees:     {report.total_trainees}")
    lines.append(f"  Enrollments:  {report.total_enrollments}")
    if report.is_clean:
        lines.append("  [OK] Every enrollment references a known course.")
        return "\n".join(lines)

    lines.append(
        f"  [WARN] {report.invalid_enrollments} enrollment(s) reference "
        f"{report.unique_invalid_course_ids} unknown course id(s); "
        f"{report.affected_trainees} trainee(s) affected."
    )
    lines.append(
        "  Unknown course ids: " + ", ".join(str(c) for c in report.invalid_course_ids)
    )
    for t in report.sample_affected_trainees:
        lines.append(f"    - {t.id}  {t.name}  {t.email}")
    return "\n".join(lines)
