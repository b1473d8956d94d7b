from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match

from course_schedule.loader import load_raw_config

log = logging.getLogger(__name__)

DEFAULT_SCHEMA = Path(__file__).resolve().parent / "schemas" / "course_config.schema.yaml"


@dataclass(frozen=True)
class SchemaIssue:
    path: str
    message: str
    detail: str | None = None

    def __str__(self) -> str:
        text = f"{self.path}: {self.message}"
        return f"{text} ({self.detail})" if self.detail else text


def json_path(parts) -> str:
    """Render a jsonschema error path as ``$.sections[0].meetings``."""
    rendered = "$"
    for part in parts:
        rendered += f"[{part}]" if isinstance(part, int) else f".{part}"
    return rendered


def schema_issues(raw: dict[str, Any], schema_path: str | Path = DEFAULT_SCHEMA) -> list[SchemaIssue]:
    validator = Draft202012Validator(load_raw_config(schema_path))
    errors = sorted(validator.iter_errors(raw), key=lambda err: [str(p) for p in err.path])
    issues = []
    for err in errors:
        detail = best_match(err.context) if err.context else None
        issues.append(
            SchemaIssue(
                path=json_path(err.path),
                message=err.message,
                detail=detail.message if detail is not None else None,
            )
        )
    log.debug("Schema check against %s: %d issue(s)", schema_path, len(issues))
    return issues
