"""Tests for instance resolution."""

import pytest

from mcp_jira.exceptions import InstanceNotFoundError, NoInstancesConfiguredError
from mcp_jira.jira.config import MultiInstanceConfig, parse_config_document
from mcp_jira.jira.instances import list_instances, resolve_instance_name
from tests.utils.factories import ConfigFactory


@pytest.fixture
def config(multi_config) -> MultiInstanceConfig:
    return parse_config_document(multi_config)


class TestResolveInstanceName:
    def test_project_mapping(self, config):
        assert resolve_instance_name(config, "X") == "b"

    def test_unmapped_project_uses_default(self, config):
        assert resolve_instance_name(config, "Y") == "a"

    def test_instance_project_list(self, config):
        assert resolve_instance_name(config, "BBB") == "b"

    def test_override_wins_over_mapping(self, config):
        # "a" does not list X and X is mapped to "b"
        assert resolve_instance_name(config, "X", instance_override="a") == "a"

    def test_unknown_override(self, config):
        with pytest.raises(InstanceNotFoundError) as exc:
            resolve_instance_name(config, "X", instance_override="zzz")
        assert exc.value.instance == "zzz"
        assert exc.value.available == ["a", "b"]

    def test_no_project_key_uses_default(self, config):
        assert resolve_instance_name(config, None) == "a"

    def test_first_instance_without_default(self):
        config = parse_config_document(
            ConfigFactory.multi(
                {"one": ConfigFactory.instance("one"), "two": ConfigFactory.instance("two")}
            )
        )
        assert resolve_instance_name(config, "ANY") == "one"

    def test_invalid_default_is_skipped(self):
        config = MultiInstanceConfig.model_validate(
            ConfigFactory.multi(
                {"one": ConfigFactory.instance("one"), "two": ConfigFactory.instance("two")},
                defaultInstance="gone",
            )
        )
        assert resolve_instance_name(config, "ANY") == "one"

    def test_mapping_to_unknown_instance(self):
        config = MultiInstanceConfig.model_validate(
            ConfigFactory.multi(projects={"P": {"instance": "gone"}})
        )
        with pytest.raises(InstanceNotFoundError):
            resolve_instance_name(config, "P")

    def test_mapping_beats_project_list(self):
        # Both "a" (via list) and "b" (via mapping) claim SHARED
        config = parse_config_document(
            ConfigFactory.multi(
                {
                    "a": ConfigFactory.instance("alpha", projects=["SHARED"]),
                    "b": ConfigFactory.instance("beta"),
                },
                projects={"SHARED": {"instance": "b"}},
            )
        )
        assert resolve_instance_name(config, "SHARED") == "b"

    def test_project_list_in_file_order(self):
        config = parse_config_document(
            ConfigFactory.multi(
                {
                    "first": ConfigFactory.instance("one", projects=["DUP"]),
                    "second": ConfigFactory.instance("two", projects=["DUP"]),
                },
                defaultInstance="second",
            )
        )
        assert resolve_instance_name(config, "DUP") == "first"

    def test_no_instances(self):
        config = MultiInstanceConfig(source="/cfg.json")
        with pytest.raises(NoInstancesConfiguredError) as exc:
            resolve_instance_name(config, "X", instance_override="a")
        assert "/cfg.json" in str(exc.value)


def test_list_instances(config):
    summaries = list_instances(config)

    assert [s.name for s in summaries] == ["a", "b"]
    assert summaries[0].is_default is True
    assert summaries[0].projects == ["AAA"]
    assert summaries[1].projects == ["BBB", "X"]
    assert summaries[1].domain == "beta"
