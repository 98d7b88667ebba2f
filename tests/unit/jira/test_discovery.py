"""Tests for locating and loading .jira-config.json."""

import json
from pathlib import Path

import pytest

from mcp_jira.exceptions import (
    ConfigNotFoundError,
    InvalidConfigFormatError,
    LegacyConfigIncompleteError,
)
from mcp_jira.jira.discovery import (
    CONFIG_FILE_NAME,
    ConfigFileLocator,
    find_checkout_root,
)
from tests.utils.factories import VALID_TOKEN, ConfigFactory


@pytest.fixture
def global_dir(home_dir) -> Path:
    return home_dir / ".config" / "mcp-jira"


class TestCandidatePaths:
    def test_order(self, locator, workdir, global_dir, empty_cwd):
        paths = locator.candidate_paths(str(workdir))

        assert paths == [
            (workdir / CONFIG_FILE_NAME).resolve(),
            (global_dir / CONFIG_FILE_NAME).resolve(),
            (empty_cwd / CONFIG_FILE_NAME).resolve(),
        ]

    def test_explicit_path_first(self, locator, env, workdir, tmp_path):
        env["JIRA_CONFIG_PATH"] = str(tmp_path / "custom.json")

        paths = locator.candidate_paths(str(workdir))

        assert paths[0] == (tmp_path / "custom.json").resolve()

    def test_explicit_directory_and_relative_path(self, locator, env, workdir):
        (workdir / "conf").mkdir()
        env["JIRA_CONFIG_PATH"] = "conf"

        paths = locator.candidate_paths(str(workdir))

        assert paths[0] == (workdir / "conf" / CONFIG_FILE_NAME).resolve()

    def test_deduplicates_working_dir_and_cwd(self, locator, empty_cwd):
        paths = locator.candidate_paths(str(empty_cwd))
        assert paths.count((empty_cwd / CONFIG_FILE_NAME).resolve()) == 1

    def test_legacy_locations(self, env, home_dir, workdir, empty_cwd):
        locator = ConfigFileLocator(
            environ=env, global_dir=home_dir / "global", include_legacy_locations=True
        )

        paths = locator.candidate_paths(str(workdir))

        assert (workdir.parent / CONFIG_FILE_NAME).resolve() in paths
        assert (empty_cwd.parent / CONFIG_FILE_NAME).resolve() in paths
        assert len(paths) == len(set(paths))



class TestCheckoutRoot:
    def test_source_checkout(self, tmp_path):
        module = tmp_path / "src" / "mcp_jira" / "jira" / "discovery.py"
        module.parent.mkdir(parents=True)
        (tmp_path / "pyproject.toml").write_text("", encoding="utf-8")

        assert find_checkout_root(module) == tmp_path.resolve()

    def test_installed_package(self, tmp_path):
        module = (
            tmp_path / "lib" / "python3.12" / "site-packages" / "mcp_jira" / "jira"
        ) / "discovery.py"
        module.parent.mkdir(parents=True)

        assert find_checkout_root(module) is None


class TestLoad:
    def test_loads_from_working_dir(self, locator, workdir, multi_config):
        path = ConfigFactory.write(workdir, multi_config)

        config = locator.load(str(workdir))

        assert config.instance_names == ["a", "b"]
        assert config.source == str(path.resolve())

    def test_explicit_path_wins(self, locator, env, workdir, tmp_path, multi_config):
        ConfigFactory.write(workdir, multi_config)
        explicit = ConfigFactory.write(
            tmp_path / "elsewhere", ConfigFactory.multi(), name="jira.json"
        )
        env["JIRA_CONFIG_PATH"] = str(explicit)

        config = locator.load(str(workdir))

        assert config.instance_names == ["primary"]

    def test_falls_back_to_global_dir(self, locator, workdir, global_dir):
        ConfigFactory.write(global_dir, ConfigFactory.multi())

        config = locator.load(str(workdir))

        assert config.instance_names == ["primary"]

    def test_invalid_json_skipped(self, locator, workdir, global_dir):
        ConfigFactory.write(workdir, "{ not json")
        ConfigFactory.write(global_dir, ConfigFactory.multi())

        config = locator.load(str(workdir))

        assert config.source == str((global_dir / CONFIG_FILE_NAME).resolve())

    def test_nothing_found(self, locator, workdir):
        with pytest.raises(ConfigNotFoundError) as exc:
            locator.load(str(workdir))

        assert str((workdir / CONFIG_FILE_NAME).resolve()) in exc.value.attempted_paths
        assert len(exc.value.attempted_paths) == 3
        assert isinstance(exc.value.last_error, FileNotFoundError)

    def test_reports_last_parse_error(self, locator, workdir):
        ConfigFactory.write(workdir, "{ not json")

        with pytest.raises(ConfigNotFoundError) as exc:
            locator.load(str(workdir))

        assert isinstance(exc.value.last_error, json.JSONDecodeError)
        assert exc.value.__cause__ is exc.value.last_error

    def test_unknown_shape(self, locator, workdir):
        ConfigFactory.write(workdir, {"hello": "world"})

        with pytest.raises(ConfigNotFoundError) as exc:
            locator.load(str(workdir))

        assert isinstance(exc.value.last_error, InvalidConfigFormatError)

    def test_validation_errors_reject_file(self, locator, workdir):
        document = ConfigFactory.multi({"p": ConfigFactory.instance(apiToken="TEST_TOKEN")})
        ConfigFactory.write(workdir, document)

        with pytest.raises(ConfigNotFoundError) as exc:
            locator.load(str(workdir))

        assert isinstance(exc.value.last_error, InvalidConfigFormatError)
        assert "placeholder" in str(exc.value.last_error)

    def test_empty_instances_load(self, locator, workdir):
        ConfigFactory.write(workdir, {"instances": {}})
        assert locator.load(str(workdir)).instances == {}


class TestLegacyFiles:
    def test_legacy_file_migrated(self, locator, env, workdir):
        env.update(
            JIRA_EMAIL="dev@example.com",
            JIRA_API_TOKEN=VALID_TOKEN,
            JIRA_DOMAIN="mycompany",
        )
        ConfigFactory.write(workdir, ConfigFactory.legacy("ABC"))

        config = locator.load(str(workdir))

        assert list(config.instances) == ["default"]
        assert list(config.projects) == ["ABC"]
        assert config.projects["ABC"].instance == "default"
        assert config.default_instance == "default"

    def test_legacy_file_without_credentials(self, locator, workdir, monkeypatch):
        for name in ("JIRA_EMAIL", "JIRA_API_TOKEN", "JIRA_DOMAIN"):
            monkeypatch.delenv(name, raising=False)
        ConfigFactory.write(workdir, ConfigFactory.legacy("ABC"))

        with pytest.raises(ConfigNotFoundError) as exc:
            locator.load(str(workdir))

        assert isinstance(exc.value.last_error, LegacyConfigIncompleteError)


class TestOpenCodeIntegration:
    def test_malformed_opencode_environment_does_not_block_loading(
        self, locator, env, workdir, multi_config
    ):
        ConfigFactory.write(workdir, multi_config)
        (workdir / "opencode.json").write_text(
            json.dumps({"mcp": {"jira": {"environment": ["JIRA_CONFIG_PATH=x"]}}}),
            encoding="utf-8",
        )

        config = locator.load(str(workdir))

        assert config.instance_names == ["a", "b"]
        assert "JIRA_CONFIG_PATH" not in env

    def test_opencode_environment_points_at_config(
        self, locator, env, workdir, tmp_path, multi_config
    ):
        ConfigFactory.write(tmp_path / "configs", multi_config)
        (workdir / "opencode.jsonc").write_text(
            """{
              // MCP servers
              "mcp": {
                "jira": {
                  "environment": {"JIRA_CONFIG_PATH": "../configs"}
                }
              }
            }""",
            encoding="utf-8",
        )

        config = locator.load(str(workdir))

        assert config.instance_names == ["a", "b"]
        assert env["JIRA_CONFIG_PATH"] == str((tmp_path / "configs").resolve())

    def test_opencode_never_overrides_environment(
        self, locator, env, workdir, tmp_path, multi_config
    ):
        ConfigFactory.write(workdir, multi_config)
        env["JIRA_CONFIG_PATH"] = str(workdir)
        (workdir / "opencode.json").write_text(
            json.dumps(
                {"mcp": {"jira": {"environment": {"JIRA_CONFIG_PATH": "/nowhere"}}}}
            ),
            encoding="utf-8",
        )

        locator.load(str(workdir))

        assert env["JIRA_CONFIG_PATH"] == str(workdir)
