"""Best-effort detection of story points and sprint values on issues.

Jira allocates different custom field ids per site for the same logical field.
When no id is configured, well-known ids and the sprint payload shape are used
instead. Every non-configured result is logged so the id can be added to the
configuration.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..models.sprint import JiraSprintInfo

logger = logging.getLogger("mcp-jira.jira.field_detection")

# Story points ids used by Jira Software Cloud templates (classic and team-managed)
COMMON_STORY_POINT_FIELD_IDS = (
    "customfield_10016",
    "customfield_10026",
    "customfield_10036",
)
NOT_SET = "Not set"


class FieldSource(str, Enum):
    """Where a detected value came from."""

    CONFIGURED = "configured"
    FALLBACK = "fallback"
    HEURISTIC = "heuristic"
    UNCONFIGURED = "unconfigured"


@dataclass(frozen=True)
class DetectedField:
    field_id: str | None
    value: Any
    source: FieldSource

    @property
    def found(self) -> bool:
        return self.source is not FieldSource.UNCONFIGURED


def _issue_fields(issue: dict[str, Any]) -> dict[str, Any]:
    # Accept a full issue payload or its "fields" object
    fields = issue.get("fields")
    return fields if isinstance(fields, dict) else issue


def detect_story_points(
    issue: dict[str, Any], configured_field: str | None = None
) -> DetectedField:
    """Find the story points value of an issue.

    A configured field wins whenever the issue carries it, even if empty.
    Otherwise the first well-known id holding a value is used. Nothing found
    is reported as ``unconfigured``, never as an error.
    """
    fields = _issue_fields(issue)

    if configured_field and configured_field in fields:
        return DetectedField(
            configured_field, fields[configured_field], FieldSource.CONFIGURED
        )

    for field_id in COMMON_STORY_POINT_FIELD_IDS:
        if fields.get(field_id) is not None:
            logger.info(
                f"Story points read from fallback field {field_id}; "
                "set storyPointsField in .jira-config.json to make this explicit"
            )
            return DetectedField(field_id, fields[field_id], FieldSource.FALLBACK)

    return DetectedField(None, None, FieldSource.UNCONFIGURED)


def looks_like_sprint(value: Any) -> bool:
    """True for a non-empty list whose first element is sprint-shaped."""
    return (
        isinstance(value, list)
        and bool(value)
        and JiraSprintInfo.looks_like_sprint(value[0])
    )


def detect_sprint(
    issue: dict[str, Any], configured_field: str | None = None
) -> DetectedField:
    """Find the sprint value of an issue.

    A configured field is used when it holds a value. Otherwise the first
    ``customfield_*`` whose value looks like a sprint list is returned and
    tagged ``heuristic``.
    """
    fields = _issue_fields(issue)

    if configured_field and fields.get(configured_field):
        return DetectedField(
            configured_field, fields[configured_field], FieldSource.CONFIGURED
        )

    for field_id, value in fields.items():
        if field_id.startswith("customfield_") and looks_like_sprint(value):
            logger.info(
                f"Sprint detected heuristically in field {field_id}; "
                "set sprintField in .jira-config.json to make this explicit"
            )
            return DetectedField(field_id, value, FieldSource.HEURISTIC)

    return DetectedField(None, None, FieldSource.UNCONFIGURED)


def format_story_points(detected: DetectedField) -> str:
    if not detected.found or detected.value is None:
        return NOT_SET
    value = detected.value
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def format_sprint(detected: DetectedField) -> str:
    """Render sprint names, newest last, as ``Name (state)``."""
    if not detected.found or not detected.value:
        return NOT_SET
    values = detected.value if isinstance(detected.value, list) else [detected.value]
    rendered = []
    for value in values:
        if isinstance(value, dict):
            sprint = JiraSprintInfo.from_api_response(value)
            label = str(sprint.name)
            rendered.append(f"{label} ({sprint.state})" if sprint.state else label)
        else:
            rendered.append(str(value))
    return ", ".join(rendered)
