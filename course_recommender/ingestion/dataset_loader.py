"""
Dataset loader: JSON file or directory of CSV exports.

Supported inputs
----------------
``dataset.json``
    ``{"courses": [...], "trainees": [...], "enrollments": [...]}`` with
    camelCase or snake_case item keys.

``<dir>/courses.csv``, ``<dir>/trainees.csv``, ``<dir>/enrollments.csv``
    Spreadsheet exports. Header names vary between exports, so each field
    accepts several column names (first non-empty wins)::

      courses      id        ← id | CourseBasicDataId | CourseID | courseId
                   name      ← name | CustomName | CourseName
                   status    ← status | Status            (unparsable → 1)
      trainees     id        ← id | MemberId | traineeId
                   name      ← name | Name
                   email     ← email | Email
                   phone     ← phone | Phone | Mobile
      enrollments  trainee   ← traineeId | MemberId
                   course    ← courseId | CourseId | CourseBasicDataId
                   date      ← enrollmentDate | EnrollmentDate

Rows without an id are skipped with a warning. Purely numeric ids become
``int`` so they match across files.
"""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Any, Optional

from course_recommender.errors import InvalidDatasetError
from course_recommender.models.common import coerce_entity_id
from course_recommender.models.dataset import REQUIRED_COLLECTIONS, Dataset
from course_recommender.taxonomy.course_status import CourseStatus

logger = logging.getLogger(__name__)

COURSE_ID_COLUMNS = ("id", "CourseBasicDataId", "CourseID", "courseId")
COURSE_NAME_COLUMNS = ("name", "CustomName", "CourseName")
COURSE_STATUS_COLUMNS = ("status", "Status")
TRAINEE_ID_COLUMNS = ("id", "MemberId", "traineeId")
TRAINEE_NAME_COLUMNS = ("name", "Name")
TRAINEE_EMAIL_COLUMNS = ("email", "Email")
TRAINEE_PHONE_COLUMNS = ("phone", "Phone", "Mobile")
ENROLLMENT_TRAINEE_COLUMNS = ("traineeId", "MemberId")
ENROLLMENT_COURSE_COLUMNS = ("courseId", "CourseId", "CourseBasicDataId")
ENROLLMENT_DATE_COLUMNS = ("enrollmentDate", "EnrollmentDate")


def load_dataset(path: Path) -> Dataset:
    """Load and validate a dataset from a JSON file or a CSV directory.

    Args:
        path: ``.json`` file or directory containing the three CSV files.

    Returns:
        Validated (unsanitized) ``Dataset``.

    Raises:
        FileNotFoundError:   If ``path`` does not exist.
        InvalidDatasetError: If a collection is missing or malformed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dataset not found: {path}")

    if path.is_dir():
        dataset = Dataset.from_payload(_read_csv_dir(path))
    else:
        dataset = Dataset.from_payload(_read_json(path))

    logger.info(
        "Loaded dataset %s: %d courses, %d trainees, %d enrollments",
        path.name, len(dataset.courses), len(dataset.trainees), len(dataset.enrollments),
    )
    return dataset


# ── JSON ──────────────────────────────────────────────────────────────────────

def _read_json(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        raise InvalidDatasetError(f"Dataset file is not valid JSON: {path} ({exc})") from exc


# ── CSV ───────────────────────────────────────────────────────────────────────

def _read_csv_dir(directory: Path) -> dict[str, list[dict[str, Any]]]:
    missing = [name for name in REQUIRED_COLLECTIONS if not (directory / f"{name}.csv").exists()]
    if missing:
        raise InvalidDatasetError(
            f"Dataset directory {directory} is missing: "
            + ", ".join(f"{name}.csv" for name in missing)
        )

    return {
        "courses": _parse_rows(directory / "courses.csv", _row_to_course),
        "trainees": _parse_rows(directory / "trainees.csv", _row_to_trainee),
        "enrollments": _parse_rows(directory / "enrollments.csv", _row_to_enrollment),
    }


def _parse_rows(path: Path, convert) -> list[dict[str, Any]]:
    with open(path, encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise InvalidDatasetError(f"CSV file is empty or has no header row: {path}")
        rows = list(reader)

    records: list[dict[str, Any]] = []
    skipped = 0
    for i, row in enumerate(rows):
        line_no = i + 2  # 1-based, skip header row
        record = convert(row)
        if record is None:
            skipped += 1
            logger.warning("%s row %d skipped: no identifier", path.name, line_no)
            continue
        records.append(record)

    logger.debug("Parsed %d rows from %s (%d skipped)", len(records), path.name, skipped)
    return records


def _row_to_course(row: dict[str, str]) -> Optional[dict[str, Any]]:
    course_id = _id(row, COURSE_ID_COLUMNS)
    if course_id is None:
        return None
    return {
        "id": course_id,
        "name": _first(row, COURSE_NAME_COLUMNS) or "",
        "status": _parse_status(_first(row, COURSE_STATUS_COLUMNS)),
    }


def _row_to_trainee(row: dict[str, str]) -> Optional[dict[str, Any]]:
    trainee_id = _id(row, TRAINEE_ID_COLUMNS)
    if trainee_id is None:
        return None
    return {
        "id": trainee_id,
        "name": _first(row, TRAINEE_NAME_COLUMNS) or "",
        "email": _first(row, TRAINEE_EMAIL_COLUMNS) or "",
        "phone": _first(row, TRAINEE_PHONE_COLUMNS) or "",
    }


def _row_to_enrollment(row: dict[str, str]) -> Optional[dict[str, Any]]:
    trainee_id = _id(row, ENROLLMENT_TRAINEE_COLUMNS)
    course_id = _id(row, ENROLLMENT_COURSE_COLUMNS)
    if trainee_id is None or course_id is None:
        return None
    return {
        "trainee_id": trainee_id,
        "course_id": course_id,
        "enrollment_date": _first(row, ENROLLMENT_DATE_COLUMNS),
    }


def _first(row: dict[str, str], columns: tuple[str, ...]) -> Optional[str]:
    """Return the first non-empty, stripped value among ``columns``."""
    for column in columns:
        value = (row.get(column) or "").strip()
        if value:
            return value
    return None


def _id(row: dict[str, str], columns: tuple[str, ...]):
    value = _first(row, columns)
    return None if value is None else coerce_entity_id(value)


def _parse_status(value: Optional[str]) -> int:
    """Status code 1–5; anything else falls back to CREATED."""
    try:
        status = int(float(value)) if value is not None else CourseStatus.CREATED
    except ValueError:
        return int(CourseStatus.CREATED)
    if status not in {s.value for s in CourseStatus}:
        return int(CourseStatus.CREATED)
    return int(status)
