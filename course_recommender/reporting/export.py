"""
File export helpers for recommendation runs and prospect lists.

All writers create missing parent directories and return the written
``Path``. CSV rows are flat (no nested lists) so they open directly in
Excel or a CRM import wizard.

``flatten_results_for_export()`` turns a ``GenerationResult`` into one row
per (trainee, recommendation); trainees with no recommendations still get a
single row with empty course columns so they are not lost from the sheet.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Optional

from course_recommender.models.dataset import Course
from course_recommender.models.recommendation import GenerationResult
from course_recommender.models.statistics import TraineeSummary
from course_recommender.taxonomy.course_status import status_label

RECOMMENDATION_COLUMNS = [
    "trainee_id", "trainee_name", "trainee_email", "trainee_phone",
    "current_course_count", "rank", "course_id", "course_name",
    "course_status", "course_status_label", "probability", "explanation",
    "similar_courses", "ai_insight",
]

PROSPECT_COLUMNS = [
    "course_id", "course_name", "trainee_id", "name", "email", "phone",
    "enrollment_count",
]


def export_to_csv(
    records: list[dict],
    path: Path,
    fieldnames: Optional[list[str]] = None,
) -> Path:
    """Write ``records`` to a UTF-8 CSV file.

    Args:
        records:    Flat row dicts.
        path:       Destination file path.
        fieldnames: Column order; defaults to the keys of the first record.
                    With no records and no fieldnames an empty file is written.

    Returns:
        ``path`` as written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    cols = fieldnames or (list(records[0].keys()) if records else None)
    if cols is None:
        path.write_text("", encoding="utf-8")
        return path
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=cols, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(records)
    return path


def export_to_json(data: dict | list, path: Path) -> Path:
    """Write ``data`` as pretty-printed UTF-8 JSON and return ``path``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(data, indent=2, default=str, ensure_ascii=False),
        encoding="utf-8",
    )
    return path


def flatten_results_for_export(result: GenerationResult) -> list[dict]:
    """One flat row per (trainee, recommendation), ``rank`` starting at 1."""
    rows: list[dict] = []
    for trainee in result.data:
        base = {
            "trainee_id":           trainee.trainee_id,
            "trainee_name":         trainee.trainee_name,
            "trainee_email":        trainee.trainee_email,
            "trainee_phone":        trainee.trainee_phone,
            "current_course_count": len(trainee.current_courses),
        }
        if not trainee.recommendations:
            rows.append({**base, **{col: "" for col in RECOMMENDATION_COLUMNS if col not in base}})
            continue

        for rank, rec in enumerate(trainee.recommendations, start=1):
            rows.append(
                {
                    **base,
                    "rank":                rank,
                    "course_id":           rec.course_id,
                    "course_name":         rec.course_name,
                    "course_status":       rec.course_status,
                    "course_status_label": status_label(rec.course_status),
                    "probability":         rec.probability,
                    "explanation":         rec.explanation or "",
                    "similar_courses":     "; ".join(
                        f"{s.course_name} ({s.similarity:.2f})" for s in rec.similar_courses
                    ),
                    "ai_insight":          rec.ai_insight or "",
                }
            )
    return rows


def flatten_prospects_for_export(
    trainees: list[TraineeSummary],
    course: Course,
) -> list[dict]:
    """One flat row per prospect of ``course``."""
    return [
        {
            "course_id":        course.id,
            "course_name":      course.name,
            "trainee_id":       t.id,
            "name":             t.name,
            "email":            t.email,
            "phone":            t.phone,
            "enrollment_count": t.enrollment_count,
        }
        for t in trainees
    ]
