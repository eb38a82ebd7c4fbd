"""
Course Recommender — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Load and validate the dataset.
  4. Execute the query or pipeline stage.
  5. Report the result to stdout (errors to stderr, exit code 1).

Install and run::

    pip install -e .
    course-recommender --help
    course-recommender validate-config
    course-recommender validate-data --dataset data/dataset.json
    course-recommender stats
    course-recommender search "silva"
    course-recommender prospects 42 --export data/output/prospects_42.csv
    course-recommender recommend --max-trainees 100 --has-enrollments
    course-recommender recommend --sse > events.txt
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="course-recommender",
    help="Training centre course recommendation engine.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from course_recommender.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config, to_stderr: bool = False):
    """Set up logging from config."""
    from course_recommender.utils.logging import configure_logging
    configure_logging(config.logging, stream=sys.stderr if to_stderr else None)


def _load_session_or_exit(config, dataset_path: Optional[str]):
    """Load the dataset into a fresh ``DatasetSession`` or exit with an error."""
    from course_recommender.errors import InvalidDatasetError
    from course_recommender.ingestion.dataset_loader import load_dataset
    from course_recommender.session import DatasetSession

    path = Path(dataset_path or config.data.dataset_path)
    try:
        dataset = load_dataset(path)
    except (FileNotFoundError, InvalidDatasetError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    session = DatasetSession(config)
    session.load(dataset)
    return session


_DATASET_OPTION_HELP = "Dataset JSON file or CSV directory (default: [data] dataset_path)."


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Dataset path:       {config.data.dataset_path}")
    typer.echo(f"  Output dir:         {config.data.output_dir}")
    typer.echo(f"  Max recommendations:{config.engine.max_recommendations:>4}")
    typer.echo(f"  Min probability:    {config.engine.min_probability}")
    typer.echo(f"  Max trainees:       {config.engine.max_trainees}")
    typer.echo(f"  Chunk size:         {config.engine.chunk_size}")
    typer.echo(f"  Cache enabled:      {config.cache.enabled}")
    typer.echo(f"  AI provider:        {config.ai.provider}")
    typer.echo(f"  Log level:          {config.logging.level}")
    typer.echo(f"  Debug mode:         {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(mode="json"), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("validate-data")
def validate_data(
    dataset_path: Optional[str] = typer.Option(None, "--dataset", help=_DATASET_OPTION_HELP),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Load a dataset and report enrollments that reference unknown courses.

    Invalid enrollments are a warning (runs drop them); a structurally
    invalid dataset exits with code 1.
    """
    from course_recommender.errors import InvalidDatasetError
    from course_recommender.pipeline.validate import ValidateDataStage
    from course_recommender.reporting.formatters import format_integrity_report

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    stage = ValidateDataStage(config=config)
    try:
        stage.run(dataset_path=dataset_path)
    except (FileNotFoundError, InvalidDatasetError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(format_integrity_report(stage.report))
    typer.echo("")
    typer.echo("[OK] Dataset loaded.")


@app.command("stats")
def stats(
    dataset_path: Optional[str] = typer.Option(None, "--dataset", help=_DATASET_OPTION_HELP),
    as_json: bool = typer.Option(False, "--json", help="Print camelCase JSON instead of tables."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Print catalog, enrollment and engagement statistics."""
    from course_recommender.reporting.formatters import format_statistics

    config = _load_config_or_exit(config_path)
    _configure_logging(config, to_stderr=as_json)
    session = _load_session_or_exit(config, dataset_path)

    result = session.statistics()
    if as_json:
        typer.echo(json.dumps(result.to_wire(), indent=2, ensure_ascii=False))
    else:
        typer.echo(format_statistics(result))


@app.command("search")
def search(
    term: str = typer.Argument(..., help="Substring of name, email or phone."),
    limit: int = typer.Option(50, "--limit", min=1, help="Maximum results."),
    with_enrollments: bool = typer.Option(
        False, "--with-enrollments", help="Include each trainee's enrollments (JSON only)."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print camelCase JSON instead of a table."),
    dataset_path: Optional[str] = typer.Option(None, "--dataset", help=_DATASET_OPTION_HELP),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Search trainees; most engaged first."""
    from course_recommender.reporting.formatters import format_trainee_table

    config = _load_config_or_exit(config_path)
    _configure_logging(config, to_stderr=as_json)
    session = _load_session_or_exit(config, dataset_path)

    results = session.search_trainees(term, limit=limit, include_enrollments=with_enrollments)
    if as_json:
        typer.echo(json.dumps([r.to_wire() for r in results], indent=2, ensure_ascii=False))
    else:
        typer.echo(format_trainee_table(results, f"Search: '{term}'"))


@app.command("prospects")
def prospects(
    course_id: str = typer.Argument(..., help="Course id (numeric ids are matched as integers)."),
    export_path: Optional[str] = typer.Option(
        None, "--export", help="Write the prospect list to this CSV file."
    ),
    dataset_path: Optional[str] = typer.Option(None, "--dataset", help=_DATASET_OPTION_HELP),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """List trainees not yet enrolled in a course (outreach targets)."""
    from course_recommender.models.common import coerce_entity_id
    from course_recommender.reporting.export import (
        PROSPECT_COLUMNS,
        export_to_csv,
        flatten_prospects_for_export,
    )
    from course_recommender.reporting.formatters import format_trainee_table

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    session = _load_session_or_exit(config, dataset_path)

    target = coerce_entity_id(course_id)
    try:
        results = session.prospects_for_course(target)
    except ValueError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    course = next(c for c in session.require_dataset().courses if c.id == target)
    typer.echo(format_trainee_table(results, f"Prospects for {course.name}"))

    if export_path:
        written = export_to_csv(
            flatten_prospects_for_export(results, course),
            Path(export_path),
            fieldnames=PROSPECT_COLUMNS,
        )
        typer.echo(f"[OK] {len(results)} prospect(s) written to {written}")


@app.command("recommend")
def recommend(
    dataset_path: Optional[str] = typer.Option(None, "--dataset", help=_DATASET_OPTION_HELP),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", help="Override [data] output_dir."
    ),
    max_recommendations: Optional[int] = typer.Option(
        None, "--max-recommendations", help="Top-N per trainee (default from config)."
    ),
    min_probability: Optional[float] = typer.Option(
        None, "--min-probability", help="Drop candidates below this probability."
    ),
    max_trainees: Optional[int] = typer.Option(
        None, "--max-trainees", help="Hard cap on the trainee working set."
    ),
    chunk_size: Optional[int] = typer.Option(None, "--chunk-size", help="Trainees per batch."),
    no_explanations: bool = typer.Option(
        False, "--no-explanations", help="Omit templated explanation text."
    ),
    use_ai: bool = typer.Option(
        False, "--use-ai", help="Add provider insights (requires [ai] provider)."
    ),
    name: Optional[str] = typer.Option(None, "--name", help="Trainee name contains."),
    email: Optional[str] = typer.Option(None, "--email", help="Trainee email contains."),
    phone: Optional[str] = typer.Option(None, "--phone", help="Trainee phone contains."),
    has_enrollments: Optional[bool] = typer.Option(
        None,
        "--has-enrollments/--no-enrollments",
        help="Only trainees with (or without) enrollments.",
    ),
    min_enrollments: Optional[int] = typer.Option(None, "--min-enrollments"),
    max_enrollments: Optional[int] = typer.Option(None, "--max-enrollments"),
    courses: Optional[list[str]] = typer.Option(
        None, "--course", help="Only trainees enrolled in this course id (repeatable)."
    ),
    sample: Optional[int] = typer.Option(
        None, "--sample", help="Random sample of N trainees after filtering."
    ),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for --sample."),
    max_results: Optional[int] = typer.Option(
        None, "--max-results", help="Cap the filtered list (ignored with --sample)."
    ),
    sse: bool = typer.Option(
        False, "--sse", help="Print progress as Server-Sent Events frames."
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Generate course recommendations with live progress output.

    Writes recommendations.json and recommendations.csv to the output directory.
    """
    from pydantic import ValidationError

    from course_recommender.ai.providers import build_ai_provider
    from course_recommender.errors import RecommenderError
    from course_recommender.models.common import coerce_entity_id
    from course_recommender.models.request import GenerationRequest, TraineeFilters
    from course_recommender.pipeline.recommend import RecommendStage
    from course_recommender.reporting.formatters import (
        format_progress_line,
        format_result_summary,
        format_sse,
    )

    config = _load_config_or_exit(config_path)
    _configure_logging(config, to_stderr=sse)

    try:
        filters = TraineeFilters(
            name_search=name,
            email_search=email,
            phone_search=phone,
            has_enrollments=has_enrollments,
            min_enrollments=min_enrollments,
            max_enrollments=max_enrollments,
            enrolled_in_course=[coerce_entity_id(c) for c in courses or []],
            random_sample=sample is not None,
            random_sample_size=sample or 10,
            random_seed=seed,
            max_results=max_results,
        )
        request = GenerationRequest.from_config(
            config.engine,
            max_recommendations=max_recommendations,
            min_probability=min_probability,
            max_trainees=max_trainees,
            chunk_size=chunk_size,
            include_explanations=False if no_explanations else None,
            use_ai=use_ai,
            trainee_filters=filters,
        )
    except (ValidationError, ValueError) as exc:
        typer.echo(f"[ERROR] Invalid request: {exc}", err=True)
        raise typer.Exit(code=1)

    ai_provider = build_ai_provider(config.ai) if use_ai else None
    if use_ai and ai_provider is None:
        typer.echo("[WARN] --use-ai given but [ai] provider is 'none'; skipping insights.", err=True)

    def on_event(event) -> None:
        if sse:
            typer.echo(format_sse(event), nl=False)
        else:
            typer.echo(format_progress_line(event))

    stage = RecommendStage(config=config)
    try:
        stage.run(
            request=request,
            dataset_path=dataset_path,
            output_dir=output_dir,
            on_event=on_event,
            ai_provider=ai_provider,
        )
    except (FileNotFoundError, RecommenderError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    finally:
        if ai_provider is not None:
            ai_provider.close()

    if not sse:
        typer.echo(format_result_summary(stage.result))
        typer.echo("")
        for path in stage.output_paths:
            typer.echo(f"  Wrote {path}")
        typer.echo("[OK] Recommendations generated.")


if __name__ == "__main__":
    app()
