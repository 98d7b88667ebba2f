"""Tests for field id merging and field metadata lookups."""

import pytest

from mcp_jira.jira.config import FieldIdDefaults, InstanceConfig, ProjectConfig
from mcp_jira.jira.fields import (
    ResolvedFieldDefaults,
    detect_project_field_ids,
    format_missing_field_guidance,
    merge_field_defaults,
    resolve_field_id,
    resolve_field_names,
)

FIELD_METADATA = [
    {"id": "summary", "name": "Summary", "custom": False, "schema": {"type": "string"}},
    {
        "id": "customfield_10016",
        "name": "Story point estimate",
        "custom": True,
        "schema": {"type": "number"},
    },
    {
        "id": "customfield_10020",
        "name": "Sprint",
        "custom": True,
        "schema": {
            "type": "array",
            "custom": "com.pyxis.greenhopper.jira:gh-sprint",
        },
    },
    {
        "id": "customfield_10014",
        "name": "Epic Link",
        "custom": True,
        "schema": {"type": "any", "custom": "com.pyxis.greenhopper.jira:gh-epic-link"},
    },
    {"id": "customfield_10099", "name": "Team (new)", "custom": True, "schema": {}},
]


def make_instance(**kwargs) -> InstanceConfig:
    return InstanceConfig(name="main", email="a@b.c", api_token="t", domain="d", **kwargs)


class TestMergeFieldDefaults:
    def test_project_value_wins(self):
        instance = make_instance(
            default_fields=FieldIdDefaults(
                story_points_field="customfield_1", sprint_field="customfield_2"
            )
        )
        project = ProjectConfig(
            project_key="P", instance="main", story_points_field="customfield_9"
        )

        merged = merge_field_defaults(instance, project)

        assert merged.story_points_field == "customfield_9"
        assert merged.sprint_field == "customfield_2"
        assert merged.epic_link_field is None
        assert merged.rank_field is None

    def test_precedence_chain(self):
        instance = make_instance(
            default_fields=FieldIdDefaults(
                story_points_field="inst_sp",
                sprint_field="inst_sprint",
                epic_link_field="inst_epic",
                rank_field="inst_rank",
            )
        )
        project = ProjectConfig(
            project_key="P",
            instance="main",
            story_points_field="proj_sp",
            default_fields=FieldIdDefaults(
                story_points_field="projdef_sp", sprint_field="projdef_sprint"
            ),
        )

        merged = merge_field_defaults(instance, project)

        assert merged.story_points_field == "proj_sp"
        assert merged.sprint_field == "projdef_sprint"
        assert merged.epic_link_field == "inst_epic"
        assert merged.rank_field == "inst_rank"

    def test_value_defaults_project_wins(self):
        instance = make_instance(field_defaults={"labels": ["x"], "priority": "Low"})
        project = ProjectConfig(
            project_key="P", instance="main", field_defaults={"priority": "High"}
        )

        merged = merge_field_defaults(instance, project)

        assert merged.field_defaults == {"labels": ["x"], "priority": "High"}

    def test_without_project(self):
        merged = merge_field_defaults(make_instance())
        assert merged == ResolvedFieldDefaults()

    def test_merge_is_pure(self):
        instance = make_instance(field_defaults={"a": 1})
        project = ProjectConfig(project_key="P", instance="main", field_defaults={"b": 2})

        first = merge_field_defaults(instance, project)
        second = merge_field_defaults(instance, project)

        assert first == second
        assert instance.field_defaults == {"a": 1}

    def test_missing_fields(self):
        merged = ResolvedFieldDefaults(sprint_field="customfield_2")
        assert merged.missing_fields() == ["storyPointsField", "epicLinkField"]


def test_missing_field_guidance():
    guidance = format_missing_field_guidance("main", "PROJ", ["storyPointsField"])

    assert 'project "PROJ"' in guidance
    assert "detect_project_fields" in guidance
    assert '"storyPointsField": "customfield_XXXXX"' in guidance
    assert format_missing_field_guidance("main", "PROJ", []) == ""


@pytest.mark.parametrize(
    ("identifier", "expected"),
    [
        ("customfield_10016", ("customfield_10016", "exact-id")),
        ("sprint", ("customfield_10020", "exact-name")),
        ("epic-link", ("customfield_10014", "fuzzy")),
        ("Team", ("customfield_10099", "partial")),
        ("Nothing like it", None),
        ("", None),
    ],
    ids=["id", "name", "fuzzy", "partial", "missing", "empty"],
)
def test_resolve_field_id(identifier, expected):
    assert resolve_field_id(identifier, FIELD_METADATA) == expected


def test_detect_project_field_ids():
    detected = detect_project_field_ids(FIELD_METADATA)

    assert detected["storyPointsField"].field_id == "customfield_10016"
    assert detected["sprintField"].field_id == "customfield_10020"
    assert detected["epicLinkField"].name == "Epic Link"


def test_detect_project_field_ids_nothing_found():
    assert detect_project_field_ids(FIELD_METADATA[:1]) == {}


class TestResolveFieldNames:
    def test_field_names(self):
        merged = ResolvedFieldDefaults(
            story_points_field="Story point estimate", sprint_field="customfield_10020"
        )
        assert merged.field_names() == {"story_points_field": "Story point estimate"}

    def test_names_replaced_by_ids(self):
        merged = ResolvedFieldDefaults(
            story_points_field="Story point estimate",
            sprint_field="customfield_10020",
            epic_link_field="epic link",
            field_defaults={"labels": ["x"]},
        )

        resolved = resolve_field_names(merged, FIELD_METADATA)

        assert resolved.story_points_field == "customfield_10016"
        assert resolved.sprint_field == "customfield_10020"
        assert resolved.epic_link_field == "customfield_10014"
        assert resolved.field_defaults == {"labels": ["x"]}
        assert merged.story_points_field == "Story point estimate"

    def test_unknown_name_kept(self, caplog):
        merged = ResolvedFieldDefaults(rank_field="Nothing like it")

        resolved = resolve_field_names(merged, FIELD_METADATA)

        assert resolved.rank_field == "Nothing like it"
        assert "matches no Jira field" in caplog.text

    def test_ids_only_unchanged(self):
        merged = ResolvedFieldDefaults(story_points_field="customfield_1")
        assert resolve_field_names(merged, FIELD_METADATA) is merged
