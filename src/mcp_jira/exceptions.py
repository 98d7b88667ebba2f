"""Exceptions raised by the Jira MCP server."""

from collections.abc import Sequence


class MCPJiraError(Exception):
    """Base exception for MCP Jira errors."""

    pass


class MCPJiraAuthenticationError(MCPJiraError):
    """Raised when Jira API authentication fails (401/403)."""

    pass


class ConfigNotFoundError(MCPJiraError):
    """Raised when no candidate location yields a usable configuration file."""

    def __init__(
        self,
        attempted_paths: Sequence[str],
        last_error: BaseException | None = None,
    ) -> None:
        self.attempted_paths = list(attempted_paths)
        self.last_error = last_error
        message = (
            "No valid .jira-config.json found. Tried: "
            f"{', '.join(self.attempted_paths) or 'no locations'}."
        )
        if last_error is not None:
            message += f" Last error: {last_error}"
        super().__init__(message)


class InvalidConfigFormatError(MCPJiraError):
    """Raised when a config file parses but matches neither supported schema."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class LegacyConfigIncompleteError(MCPJiraError):
    """Raised when a legacy config cannot be migrated for lack of credentials."""

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            "Legacy config requires JIRA_EMAIL, JIRA_API_TOKEN and JIRA_DOMAIN "
            f"environment variables (missing: {', '.join(self.missing)})"
        )


class InstanceNotFoundError(MCPJiraError):
    """Raised when a named instance is not present in the configuration."""

    def __init__(self, instance: str, available: Sequence[str]) -> None:
        self.instance = instance
        self.available = list(available)
        super().__init__(
            f"Instance '{instance}' not found. "
            f"Available instances: {', '.join(self.available) or 'none'}"
        )


class NoInstancesConfiguredError(MCPJiraError):
    """Raised when the configuration defines no Jira instances at all."""

    def __init__(self, source: str | None = None) -> None:
        self.source = source
        message = "No Jira instances configured"
        if source:
            message += f" in {source}"
        super().__init__(message)


class ProjectKeyRequiredError(MCPJiraError):
    """Raised when a tool needs a project key and none could be derived."""

    def __init__(self, tried: Sequence[str] = ()) -> None:
        self.tried = list(tried)
        super().__init__(
            "Project key is required. Either provide 'project_key' or use a tool "
            "that can derive it from an issue key"
            + (f" (looked at: {', '.join(self.tried)})" if self.tried else "")
        )
