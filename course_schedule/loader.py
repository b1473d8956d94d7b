from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from course_schedule.export import write_schedule_artifacts
from course_schedule.generator import generate_schedule
from course_schedule.models import CourseConfig, CourseSchedule
from course_schedule.validation import validate_course_config

log = logging.getLogger(__name__)


@dataclass
class ScheduleBuildResult:
    config: CourseConfig
    schedule: CourseSchedule
    warnings: list[str]
    output_paths: dict[str, Path] = field(default_factory=dict)


def _load_yaml_module():
    try:
        import yaml
    except ModuleNotFoundError as exc:
        raise RuntimeError(
            "PyYAML is required for YAML course configurations. "
            "Install dependencies (e.g., `uv sync --dev`)."
        ) from exc
    return yaml


def load_raw_config(config_path: str | Path) -> dict[str, Any]:
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Course configuration not found: {path}")
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        raw = json.loads(text)
    else:
        raw = _load_yaml_module().safe_load(text)
    if not isinstance(raw, dict):
        raise ValueError("Course configuration must be a mapping/object at the top level.")
    return raw


def load_course_config(config_path: str | Path) -> CourseConfig:
    config = CourseConfig.from_dict(load_raw_config(config_path))
    log.info("Loaded course configuration from %s", config_path)
    return config


def build_course_schedule(
    *,
    config_path: str | Path,
    output_dir: str | Path | None = None,
    validate: bool = True,
) -> ScheduleBuildResult:
    config = load_course_config(config_path)
    if validate:
        validate_course_config(config)
    schedule = generate_schedule(config)

    output_paths: dict[str, Path] = {}
    if output_dir is not None:
        output_paths = write_schedule_artifacts(schedule, output_dir)

    return ScheduleBuildResult(
        config=config,
        schedule=schedule,
        warnings=list(schedule.warnings),
        output_paths=output_paths,
    )
