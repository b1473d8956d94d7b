from __future__ import annotations

import html
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import canvasapi
from canvasapi.exceptions import CanvasException

from course_schedule.calendar_events import assignment_due_datetime
from course_schedule.export import render_schedule_html
from course_schedule.models import (
    Assignment,
    CourseConfig,
    CourseSchedule,
    Lab,
    LectureMapping,
    Section,
)

log = logging.getLogger(__name__)

LECTURES_MODULE = "Lectures"
LABS_MODULE = "Labs"
SCHEDULE_PAGE_TITLE = "Course Schedule"


@dataclass
class SyncResult:
    section_id: str
    canvas_course_id: str
    dry_run: bool
    assignments_created: int = 0
    assignments_updated: int = 0
    assignments_skipped: int = 0
    modules_created: int = 0
    modules_updated: int = 0
    modules_skipped: int = 0
    actions: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


def _site_link(site_url: str, path: str | None, fallback: str) -> str:
    base = site_url.rstrip("/")
    if path and re.match(r"^https?://", path):
        return path
    return f"{base}{path}" if path else f"{base}{fallback}"


def _normalize_url(url: str) -> str:
    return url.strip().rstrip("/")


def _parse_canvas_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def due_at_utc(assignment: Assignment, default_timezone: str) -> str:
    due = assignment_due_datetime(assignment, default_timezone)
    return due.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def assignment_stub_html(assignment: Assignment, site_url: str) -> str:
    url = _site_link(site_url, assignment.url, "")
    return (
        "<p><strong>View the full assignment on the course website:</strong></p>\n"
        f'<p><a href="{html.escape(url, quote=True)}" target="_blank">'
        f"{html.escape(assignment.title)}</a></p>\n"
        "<p><em>All assignment details, instructions, and submission guidelines "
        "are available on the course website.</em></p>"
    )


def lecture_item_title(lecture: LectureMapping) -> str:
    if lecture.topics:
        return "; ".join(lecture.topics[:5])
    return lecture.display_title


def render_homepage_html(config: CourseConfig, site_url: str) -> str:
    base = site_url.rstrip("/")
    description = str(config.metadata.get("description") or "").strip()
    nav_links = [
        ("Schedule", f"{base}/schedule"),
        ("Syllabus", f"{base}/syllabus"),
        ("Lecture Notes", f"{base}/lecture-notes"),
        ("Assignments", f"{base}/assignments"),
        ("Staff", f"{base}/staff"),
    ]
    nav_html = "\n    ".join(
        f'<a href="{html.escape(url, quote=True)}" target="_blank" '
        f'style="margin-right: 20px; font-weight: 500;">{label}</a>'
        for label, url in nav_links
    )
    description_html = f"<p>{html.escape(description)}</p>" if description else ""
    return f"""<div style="max-width: 800px; margin: 0 auto; padding: 20px;">
  <p><strong>Visit the full course website:</strong>
    <a href="{html.escape(base, quote=True)}" target="_blank">{html.escape(base)}</a></p>
  <p style="font-size: 14px; color: #666;">{html.escape(config.semester)}</p>
  <h1>{html.escape(config.course_code)}: {html.escape(config.course_title)}</h1>
  {description_html}
  <div style="border-top: 1px solid #ddd; border-bottom: 1px solid #ddd; padding: 16px 0; margin: 32px 0;">
    {nav_html}
  </div>
</div>
"""


def connect_canvas(canvas_url: str, api_token: str) -> canvasapi.Canvas:
    return canvasapi.Canvas(canvas_url, api_token)


def _find_module_by_name(canvas_course, module_name: str):
    for module in canvas_course.get_modules():
        if str(getattr(module, "name", "")).strip() == module_name.strip():
            return module
    return None


def _find_page_by_title(canvas_course, title: str):
    for page in canvas_course.get_pages():
        if str(getattr(page, "title", "")).strip() == title.strip():
            return page
    return None


def _module_items_by_key(module) -> dict[str, Any]:
    items: dict[str, Any] = {}
    for item in module.get_module_items():
        external_url = getattr(item, "external_url", None)
        if external_url:
            items[_normalize_url(str(external_url))] = item
        items.setdefault(str(getattr(item, "title", "")).strip(), item)
    return items


def _assignment_needs_update(existing, payload: dict[str, Any], link: str) -> bool:
    if str(getattr(existing, "name", "")) != payload["name"]:
        return True
    existing_points = getattr(existing, "points_possible", None)
    if float(existing_points or 0) != float(payload["points_possible"]):
        return True
    if _parse_canvas_datetime(getattr(existing, "due_at", None)) != _parse_canvas_datetime(
        payload["due_at"]
    ):
        return True
    return link not in str(getattr(existing, "description", "") or "")


def sync_assignments(
    canvas_course,
    assignments: list[Assignment],
    *,
    site_url: str,
    default_timezone: str,
    result: SyncResult,
) -> None:
    existing_by_name = {
        str(getattr(item, "name", "")): item for item in canvas_course.get_assignments()
    }
    for assignment in assignments:
        payload = {
            "name": assignment.title,
            "description": assignment_stub_html(assignment, site_url),
            "due_at": due_at_utc(assignment, default_timezone),
            "points_possible": assignment.points or 0,
            "submission_types": ["none"],
            "published": True,
        }
        link = _site_link(site_url, assignment.url, "")
        try:
            existing = existing_by_name.get(assignment.title)
            if existing is None:
                result.actions.append(f"create-assignment:{assignment.title}")
                log.info("Creating assignment: %s", assignment.title)
                if not result.dry_run:
                    canvas_course.create_assignment(assignment=payload)
                result.assignments_created += 1
            elif _assignment_needs_update(existing, payload, link):
                result.actions.append(f"update-assignment:{assignment.title}")
                log.info("Updating assignment: %s", assignment.title)
                if not result.dry_run:
                    existing.edit(assignment=payload)
                result.assignments_updated += 1
            else:
                result.actions.append(f"skip-assignment:{assignment.title}")
                log.info("Skipped (no change): %s", assignment.title)
                result.assignments_skipped += 1
        except CanvasException as exc:
            message = f"Failed to sync assignment \"{assignment.title}\": {exc}"
            log.error(message)
            result.errors.append(message)


def _ensure_module(canvas_course, module_name: str, *, position: int, result: SyncResult):
    module = _find_module_by_name(canvas_course, module_name)
    if module is not None:
        result.actions.append(f"reuse-module:{module_name}")
        return module
    result.actions.append(f"create-module:{module_name}")
    log.info("Creating module '%s'", module_name)
    if result.dry_run:
        return None
    return canvas_course.create_module(module={"name": module_name, "position": position})


def _sync_module_links(
    canvas_course,
    module_name: str,
    links: list[tuple[str, str]],
    *,
    position: int,
    result: SyncResult,
) -> None:
    try:
        module = _ensure_module(canvas_course, module_name, position=position, result=result)
    except CanvasException as exc:
        message = f"Failed to create {module_name} module: {exc}"
        log.error(message)
        result.errors.append(message)
        return

    existing_items = _module_items_by_key(module) if module is not None else {}
    for title, url in links:
        existing = existing_items.get(_normalize_url(url)) or existing_items.get(title.strip())
        payload = {
            "type": "ExternalUrl",
            "title": title,
            "external_url": url,
            "new_tab": True,
        }
        try:
            if existing is None:
                result.actions.append(f"add-module-item:{module_name}:{title}")
                log.info("Adding %s module item: %s", module_name, title)
                if module is not None and not result.dry_run:
                    module.create_module_item(module_item=payload)
                result.modules_created += 1
            elif (
                str(getattr(existing, "title", "") or "").strip() != title.strip()
                or _normalize_url(str(getattr(existing, "external_url", "") or "")) != _normalize_url(url)
            ):
                result.actions.append(f"update-module-item:{module_name}:{title}")
                log.info("Updating %s module item: %s", module_name, title)
                if not result.dry_run:
                    existing.edit(module_item={"title": title, "external_url": url})
                result.modules_updated += 1
            else:
                result.actions.append(f"skip-module-item:{module_name}:{title}")
                result.modules_skipped += 1
        except CanvasException as exc:
            message = f"Failed to sync {module_name} item \"{title}\": {exc}"
            log.error(message)
            result.errors.append(message)

    if module is not None and not bool(getattr(module, "published", False)):
        result.actions.append(f"publish-module:{module_name}")
        log.info("Publishing module '%s'", module_name)
        if not result.dry_run:
            try:
                module.edit(module={"published": True})
            except CanvasException as exc:
                message = f"Failed to publish {module_name} module: {exc}"
                log.error(message)
                result.errors.append(message)


def sync_modules(
    canvas_course,
    lectures: list[LectureMapping],
    labs: list[Lab] | None,
    *,
    site_url: str,
    result: SyncResult,
) -> None:
    base = site_url.rstrip("/")
    lecture_links = [
        (lecture_item_title(lecture), f"{base}/lecture-notes/{lecture.lecture_id}")
        for lecture in lectures
    ]
    _sync_module_links(canvas_course, LECTURES_MODULE, lecture_links, position=1, result=result)

    if not labs:
        return
    # Labs repeat once per section; one module item per lab URL.
    seen_urls: set[str] = set()
    lab_links: list[tuple[str, str]] = []
    for lab in labs:
        url = _site_link(site_url, lab.url, f"/labs/{lab.id}")
        if url in seen_urls:
            continue
        seen_urls.add(url)
        lab_links.append((lab.display_title, url))
    _sync_module_links(canvas_course, LABS_MODULE, lab_links, position=2, result=result)


def sync_page(
    canvas_course,
    *,
    title: str,
    body: str,
    result: SyncResult,
    front_page: bool = False,
) -> None:
    try:
        if front_page:
            result.actions.append("update-front-page")
            log.info("Updating course front page")
            if not result.dry_run:
                canvas_course.edit_front_page(wiki_page={"body": body, "published": True})
            return
        existing_page = _find_page_by_title(canvas_course, title)
        wiki_page = {"title": title, "body": body, "published": True}
        if existing_page is not None:
            result.actions.append(f"update-page:{title}")
            if not result.dry_run:
                existing_page.edit(wiki_page=wiki_page)
        else:
            result.actions.append(f"create-page:{title}")
            if not result.dry_run:
                canvas_course.create_page(wiki_page=wiki_page)
    except CanvasException as exc:
        label = "front page" if front_page else f"page '{title}'"
        message = f"Failed to sync {label}: {exc}"
        log.error(message)
        result.errors.append(message)


def sync_section_to_canvas(
    canvas_course,
    section: Section,
    config: CourseConfig,
    *,
    site_url: str,
    schedule: CourseSchedule | None = None,
    dry_run: bool = True,
) -> SyncResult:
    settings = config.canvas
    result = SyncResult(
        section_id=section.id,
        canvas_course_id=str(getattr(canvas_course, "id", None) or section.canvas_course_id or ""),
        dry_run=dry_run,
    )
    log.info(
        "Syncing to Canvas course %s (Section %s: %s)%s",
        result.canvas_course_id,
        section.id,
        section.name,
        " [dry run]" if dry_run else "",
    )

    if (settings is None or settings.sync_assignments) and config.assignments:
        sync_assignments(
            canvas_course,
            config.assignments,
            site_url=site_url,
            default_timezone=section.timezone,
            result=result,
        )
    if settings is None or settings.sync_modules:
        sync_modules(canvas_course, config.lectures, config.labs, site_url=site_url, result=result)
    if schedule is not None:
        sync_page(
            canvas_course,
            title=SCHEDULE_PAGE_TITLE,
            body=render_schedule_html(schedule, section_id=section.id),
            result=result,
        )
    if settings is None or settings.sync_homepage:
        sync_page(
            canvas_course,
            title=config.course_code,
            body=render_homepage_html(config, site_url),
            result=result,
            front_page=True,
        )

    if result.success:
        log.info(
            "Sync complete: %d created, %d updated, %d skipped assignments; "
            "%d created, %d updated, %d skipped module items",
            result.assignments_created,
            result.assignments_updated,
            result.assignments_skipped,
            result.modules_created,
            result.modules_updated,
            result.modules_skipped,
        )
    else:
        log.warning("Sync completed with %d errors", len(result.errors))
    return result


def sync_to_canvas(
    config: CourseConfig,
    *,
    site_url: str,
    schedule: CourseSchedule | None = None,
    canvas: canvasapi.Canvas | None = None,
    canvas_url: str | None = None,
    api_token: str | None = None,
    dry_run: bool = True,
) -> list[SyncResult]:
    if config.canvas is not None and not config.canvas.enable_sync:
        log.info("Canvas sync is disabled (canvas.enable_sync is false). Skipping Canvas sync.")
        return []

    if canvas is None:
        settings = config.canvas
        canvas_url = canvas_url or (settings.canvas_url if settings else None) or os.environ.get(
            "CANVAS_API_URL"
        )
        token_env = settings.api_token_env_var if settings else "CANVAS_API_TOKEN"
        api_token = api_token or os.environ.get(token_env)
        if not canvas_url or not api_token:
            raise ValueError(
                f"Canvas sync requires a Canvas URL and an API token (set {token_env})."
            )
        canvas = connect_canvas(canvas_url, api_token)

    sections = [section for section in config.sections if section.canvas_course_id]
    if not sections and config.canvas and config.canvas.course_id:
        sections = [config.sections[0]]
    if not sections:
        log.info("No sections have canvas_course_id configured. Skipping Canvas sync.")
        return []

    results: list[SyncResult] = []
    for section in sections:
        course_id = section.canvas_course_id or config.canvas.course_id
        try:
            canvas_course = canvas.get_course(course_id)
        except CanvasException as exc:
            message = f"Failed to load Canvas course {course_id}: {exc}"
            log.error(message)
            results.append(
                SyncResult(
                    section_id=section.id,
                    canvas_course_id=str(course_id),
                    dry_run=dry_run,
                    errors=[message],
                )
            )
            continue
        results.append(
            sync_section_to_canvas(
                canvas_course,
                section,
                config,
                site_url=site_url,
                schedule=schedule,
                dry_run=dry_run,
            )
        )

    log.info(
        "Canvas sync summary: %d section(s), %d error(s)",
        len(results),
        sum(len(result.errors) for result in results),
    )
    return results
