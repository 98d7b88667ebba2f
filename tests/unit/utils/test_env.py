"""Tests for environment helpers."""

from mcp_jira.utils.env import apply_env_defaults, getenv, is_env_ssl_verify, is_env_truthy


def test_is_env_truthy(monkeypatch):
    monkeypatch.setenv("READ_ONLY_MODE", "Yes")
    assert is_env_truthy("READ_ONLY_MODE") is True
    monkeypatch.setenv("READ_ONLY_MODE", "off")
    assert is_env_truthy("READ_ONLY_MODE") is False
    monkeypatch.delenv("READ_ONLY_MODE")
    assert is_env_truthy("READ_ONLY_MODE") is False


def test_getenv_prefers_mapping(monkeypatch):
    monkeypatch.setenv("MCP_JIRA_TEST_VAR", "process")
    assert getenv({"MCP_JIRA_TEST_VAR": "mapping"}, "MCP_JIRA_TEST_VAR") == "mapping"
    assert getenv({}, "MCP_JIRA_TEST_VAR") == "process"
    monkeypatch.delenv("MCP_JIRA_TEST_VAR")
    assert getenv({"MCP_JIRA_TEST_VAR": ""}, "MCP_JIRA_TEST_VAR", "dflt") == "dflt"


def test_ssl_verify_defaults_to_true(monkeypatch):
    monkeypatch.delenv("JIRA_SSL_VERIFY", raising=False)
    assert is_env_ssl_verify({}, "JIRA_SSL_VERIFY") is True
    assert is_env_ssl_verify({"JIRA_SSL_VERIFY": "0"}, "JIRA_SSL_VERIFY") is False


def test_apply_env_defaults_never_overrides():
    environ = {"A": "set", "B": ""}

    applied = apply_env_defaults({"A": "new", "B": "filled", "C": "added"}, environ)

    assert applied == ["B", "C"]
    assert environ == {"A": "set", "B": "filled", "C": "added"}
