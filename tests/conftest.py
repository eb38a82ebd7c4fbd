"""
Shared pytest fixtures for the course recommender test suite.

Provides:
  - ``worked_dataset``: the two-course / one-trainee example whose candidate
    course scores exactly 0.35.
  - ``sample_dataset``: a six-course, six-trainee catalog with one enrollment
    pointing at an unknown course (id 99).
  - ``app_config``: ``AppConfig`` with every output path under ``tmp_path``.
  - ``dataset_file``: ``sample_dataset`` written as camelCase JSON.

Sample catalog name tokens (used to derive expected similarities)::

    1  Intro Python Programming         {intro, python, programming}
    2  Advanced Python Programming      {advanced, python, programming}
    3  Excel Basics                     {excel, basics}
    4  Advanced Excel Formulas          {advanced, excel, formulas}
    5  Project Management Fundamentals  {project, management, fundamentals}
    6  Leadership Skills                {leadership, skills}

    sim(1,2) = 2/3    sim(2,4) = 1/3    sim(3,4) = 1/3    all others 0
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from course_recommender.config import (
    AppConfig,
    DataConfig,
    LoggingConfig,
)
from course_recommender.models.dataset import Course, Dataset, Enrollment, Trainee


# ── Datasets ──────────────────────────────────────────────────────────────────

@pytest.fixture
def worked_dataset() -> Dataset:
    return Dataset(
        courses=[
            Course(id=1, name="Intro Python", status=1),
            Course(id=2, name="Advanced Python", status=3),
        ],
        trainees=[Trainee(id=100, name="A")],
        enrollments=[Enrollment(trainee_id=100, course_id=1)],
    )


@pytest.fixture
def sample_dataset() -> Dataset:
    """Six courses, six trainees, ten valid enrollments plus one invalid.

    Sanitized enrollment counts per trainee:
        100: 2   101: 2   102: 1   103: 0 (only enrollment is invalid)
        104: 5   105: 0
    Sanitized enrollment counts per course:
        1: 3   2: 2   3: 2   4: 1   5: 1   6: 1
    """
    return Dataset(
        courses=[
            Course(id=1, name="Intro Python Programming", status=1),
            Course(id=2, name="Advanced Python Programming", status=3),
            Course(id=3, name="Excel Basics", status=2),
            Course(id=4, name="Advanced Excel Formulas", status=1),
            Course(id=5, name="Project Management Fundamentals", status=4),
            Course(id=6, name="Leadership Skills", status=1),
        ],
        trainees=[
            Trainee(id=100, name="Ana Silva", email="ana@example.com", phone="0551000001"),
            Trainee(id=101, name="Bruno Costa", email="bruno@example.com", phone="0551000002"),
            Trainee(id=102, name="Carla Dias", email="carla@corp.org", phone="0552000003"),
            Trainee(id=103, name="Daniel Evans"),
            Trainee(id=104, name="Eva Ferreira", email="eva@corp.org", phone="0553000005"),
            Trainee(id=105),
        ],
        enrollments=[
            Enrollment(trainee_id=100, course_id=1, enrollment_date="2024-01-15"),
            Enrollment(trainee_id=100, course_id=3, enrollment_date="2024-02-15"),
            Enrollment(trainee_id=101, course_id=1),
            Enrollment(trainee_id=101, course_id=2),
            Enrollment(trainee_id=102, course_id=4),
            Enrollment(trainee_id=103, course_id=99),
            Enrollment(trainee_id=104, course_id=1, enrollment_date="2024-01-10"),
            Enrollment(trainee_id=104, course_id=3, enrollment_date="2024-03-05"),
            Enrollment(trainee_id=104, course_id=5, enrollment_date="2024-02-01"),
            Enrollment(trainee_id=104, course_id=6),
            Enrollment(trainee_id=104, course_id=2, enrollment_date="2024-04-20"),
        ],
    )


# ── Config and files ──────────────────────────────────────────────────────────

@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Defaults with data/output/run paths under ``tmp_path`` and no log file."""
    return AppConfig(
        data=DataConfig(
            dataset_path=str(tmp_path / "dataset.json"),
            output_dir=str(tmp_path / "output"),
            run_dir=str(tmp_path / "runs"),
        ),
        logging=LoggingConfig(level="WARNING", log_file=""),
    )


@pytest.fixture
def dataset_file(tmp_path: Path, sample_dataset: Dataset) -> Path:
    path = tmp_path / "dataset.json"
    path.write_text(json.dumps(sample_dataset.to_wire()), encoding="utf-8")
    return path
