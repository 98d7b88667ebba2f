"""
Root pytest configuration file for MCP Jira tests.

Every fixture keeps config discovery away from the real home directory and
the process environment.
"""

from pathlib import Path
from typing import Any

import pytest

from mcp_jira.jira.discovery import ConfigFileLocator
from mcp_jira.jira.opencode import OpenCodeConfigReader
from tests.utils.factories import ConfigFactory, CountingReader


@pytest.fixture(autouse=True)
def empty_cwd(tmp_path: Path, monkeypatch) -> Path:
    """Run every test from a directory without a config file."""
    cwd = tmp_path / "cwd"
    cwd.mkdir()
    monkeypatch.chdir(cwd)
    return cwd


@pytest.fixture
def multi_config() -> dict[str, Any]:
    """Two instances; X is mapped to b and a is the default."""
    return ConfigFactory.multi(
        {
            "a": ConfigFactory.instance("alpha", projects=["AAA"]),
            "b": ConfigFactory.instance("beta", projects=["BBB"]),
        },
        projects={"X": {"instance": "b"}},
        defaultInstance="a",
    )


@pytest.fixture
def env() -> dict[str, str]:
    """An isolated environment mapping."""
    return {}


@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def counting_reader() -> CountingReader:
    return CountingReader()


@pytest.fixture
def locator(env, home_dir, counting_reader) -> ConfigFileLocator:
    """A locator isolated from the real home directory and legacy locations."""
    return ConfigFileLocator(
        environ=env,
        reader=counting_reader,
        global_dir=home_dir / ".config" / "mcp-jira",
        include_legacy_locations=False,
        opencode=OpenCodeConfigReader(environ=env, home=home_dir),
    )
