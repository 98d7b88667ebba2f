"""Module for Jira field id resolution.

Custom field ids (``customfield_10016`` ...) differ between Jira sites, so the
ids for the logical fields are configured per instance and per project and
merged here. When configuration is missing, field metadata from ``/field`` can
be searched by name.
"""

import json
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Literal

from .config import FieldIdDefaults, InstanceConfig, ProjectConfig

logger = logging.getLogger("mcp-jira.jira.fields")

LOGICAL_FIELDS = ("story_points_field", "sprint_field", "epic_link_field", "rank_field")
# Fields whose absence is reported to the user on first project access
GUIDED_FIELDS = ("story_points_field", "sprint_field", "epic_link_field")

GREENHOPPER_SPRINT = "com.pyxis.greenhopper.jira:gh-sprint"
GREENHOPPER_EPIC_LINK = "com.pyxis.greenhopper.jira:gh-epic-link"
STORY_POINTS_NAME = re.compile(r"story|point|estimate", re.IGNORECASE)
CUSTOM_FIELD_ID = re.compile(r"^customfield_\d+$")

MatchType = Literal["exact-id", "exact-name", "fuzzy", "partial"]


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass(frozen=True)
class ResolvedFieldDefaults:
    """Field ids and value defaults for one (instance, project) pair."""

    story_points_field: str | None = None
    sprint_field: str | None = None
    epic_link_field: str | None = None
    rank_field: str | None = None
    field_defaults: dict[str, Any] = field(default_factory=dict)

    def missing_fields(self) -> list[str]:
        """Config names (camelCase) of guided fields that are not configured."""
        return [_camel(name) for name in GUIDED_FIELDS if not getattr(self, name)]

    def field_names(self) -> dict[str, str]:
        """Logical fields configured by name instead of a ``customfield_*`` id."""
        names = {}
        for name in LOGICAL_FIELDS:
            value = getattr(self, name)
            if value and not CUSTOM_FIELD_ID.match(value):
                names[name] = value
        return names


def merge_field_defaults(
    instance: InstanceConfig, project: ProjectConfig | None = None
) -> ResolvedFieldDefaults:
    """Merge instance and project field settings, project first.

    Per logical field the first set value wins:
    ``project.<field>``, ``project.default_fields.<field>``,
    ``instance.default_fields.<field>``. Value defaults are merged with
    project entries overriding instance entries.
    """
    layers: list[FieldIdDefaults | ProjectConfig] = []
    if project is not None:
        layers.append(project)
        if project.default_fields is not None:
            layers.append(project.default_fields)
    if instance.default_fields is not None:
        layers.append(instance.default_fields)

    ids = {}
    for name in LOGICAL_FIELDS:
        ids[name] = next(
            (getattr(layer, name) for layer in layers if getattr(layer, name)), None
        )

    values = dict(instance.field_defaults or {})
    if project is not None and project.field_defaults:
        values.update(project.field_defaults)

    return ResolvedFieldDefaults(**ids, field_defaults=values)


def format_missing_field_guidance(
    instance_name: str, project_key: str, missing: list[str]
) -> str:
    """Markdown guidance for configuring missing field ids."""
    if not missing:
        return ""

    snippet = {
        "projects": {
            project_key: {
                "instance": instance_name,
                **{name: "customfield_XXXXX" for name in missing},
            }
        }
    }
    lines = [
        f'**Missing field configuration for project "{project_key}" '
        f'in instance "{instance_name}"**',
        "",
        f"Missing fields: {', '.join(missing)}",
        "",
        "Run `detect_project_fields` to discover the field ids, or add them "
        "to your .jira-config.json:",
        "",
        "```json",
        json.dumps(snippet, indent=2),
        "```",
    ]
    return "\n".join(lines)


def _fuzzy(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "", value.lower())


def resolve_field_id(
    identifier: str, fields: list[dict[str, Any]]
) -> tuple[str, MatchType] | None:
    """Find the id of a field given its id or (approximate) name.

    Tries an exact id, an exact case-insensitive name, a name match ignoring
    punctuation and spaces, then a partial name match.

    Returns:
        ``(field_id, match_type)`` or None if nothing matches.
    """
    wanted = identifier.strip().lower()
    if not wanted:
        return None

    fields = [f for f in fields if f.get("id")]
    for f in fields:
        if f.get("id") == identifier:
            return f["id"], "exact-id"

    for f in fields:
        if (f.get("name") or "").lower() == wanted:
            return f["id"], "exact-name"

    fuzzy = _fuzzy(identifier)
    if fuzzy:
        for f in fields:
            if _fuzzy(f.get("name") or "") == fuzzy:
                return f["id"], "fuzzy"

    for f in fields:
        name = (f.get("name") or "").lower()
        if name and (wanted in name or name in wanted):
            logger.info(f"Found field '{f.get('name')}' as partial match for '{identifier}'")
            return f["id"], "partial"
    return None


def resolve_field_names(
    resolved: ResolvedFieldDefaults, fields: list[dict[str, Any]]
) -> ResolvedFieldDefaults:
    """Replace field names in ``resolved`` with ids found in ``fields`` metadata.

    Names without a match are kept as configured.
    """
    updates = {}
    for name, value in resolved.field_names().items():
        match = resolve_field_id(value, fields)
        if match is None:
            logger.warning(f"Configured {_camel(name)} '{value}' matches no Jira field")
            continue
        field_id, match_type = match
        logger.debug(f"Resolved {_camel(name)} '{value}' to {field_id} ({match_type})")
        updates[name] = field_id
    return replace(resolved, **updates) if updates else resolved


@dataclass(frozen=True)
class DetectedFieldId:
    field_id: str
    name: str


def detect_project_field_ids(
    fields: list[dict[str, Any]],
) -> dict[str, DetectedFieldId]:
    """Guess story points, sprint and epic link field ids from ``/field`` metadata.

    Returns:
        Mapping of config names (``storyPointsField`` ...) to detected fields.
    """
    detected: dict[str, DetectedFieldId] = {}
    for f in fields:
        field_id = f.get("id")
        if not field_id:
            continue
        schema = f.get("schema") or {}
        name = f.get("name") or ""

        if (
            "storyPointsField" not in detected
            and f.get("custom")
            and schema.get("type") == "number"
            and STORY_POINTS_NAME.search(name)
        ):
            detected["storyPointsField"] = DetectedFieldId(field_id, name)
        elif "sprintField" not in detected and GREENHOPPER_SPRINT in (
            field_id,
            schema.get("custom"),
            schema.get("system"),
        ):
            detected["sprintField"] = DetectedFieldId(field_id, name)
        elif "epicLinkField" not in detected and GREENHOPPER_EPIC_LINK in (
            field_id,
            schema.get("custom"),
            schema.get("system"),
        ):
            detected["epicLinkField"] = DetectedFieldId(field_id, name)

    logger.debug(
        f"Detected {len(detected)} field(s) from {len(fields)} field definitions"
    )
    return detected
