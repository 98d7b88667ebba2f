"""Base client module for Jira API interactions."""

import logging
from typing import Any

from atlassian import Jira

from ..logging_config import mask_sensitive
from ..utils.decorators import handle_jira_api_errors
from .config import InstanceConfig, JiraConfig

# Configure logging
logger = logging.getLogger("mcp-jira.jira.client")

DEFAULT_SEARCH_FIELDS = "summary,status,assignee,issuetype,priority,updated"


class JiraClient:
    """Client for one Jira instance, built per tool call."""

    def __init__(self, config: JiraConfig) -> None:
        """Initialize the Jira client with a given configuration.

        Args:
            config: Connection settings of the resolved instance.
        """
        self.config = config
        # Basic auth: account email plus API token
        self.jira = Jira(
            url=self.config.url,
            username=self.config.username,
            password=self.config.api_token,
            cloud=self.config.is_cloud,
            verify_ssl=self.config.ssl_verify,
        )
        logger.debug(
            f"Jira client ready for instance '{config.instance_name}' ({config.url}), "
            f"user {config.username}, token {mask_sensitive(config.api_token)}"
        )

    @classmethod
    def for_instance(cls, instance: InstanceConfig) -> "JiraClient":
        return cls(JiraConfig.from_instance(instance))

    @property
    def instance_name(self) -> str:
        return self.config.instance_name

    @handle_jira_api_errors("Jira API")
    def get_issue(self, issue_key: str, fields: str | None = None) -> dict[str, Any]:
        """
        Get a single issue.

        Args:
            issue_key: Issue key (e.g. 'PROJ-123')
            fields: Comma-separated field list, all fields when None

        Returns:
            Raw issue payload
        """
        issue = self.jira.issue(issue_key, fields=fields or "*all")
        if not isinstance(issue, dict):
            msg = f"Unexpected return value type from `jira.issue`: {type(issue)}"
            logger.error(msg)
            raise TypeError(msg)
        return issue

    @handle_jira_api_errors("Jira API")
    def search_issues(
        self,
        jql: str,
        fields: str = DEFAULT_SEARCH_FIELDS,
        start: int = 0,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Search issues with JQL and return the raw issue payloads."""
        response = self.jira.jql(jql, fields=fields, start=start, limit=limit)
        if not isinstance(response, dict):
            msg = f"Unexpected return value type from `jira.jql`: {type(response)}"
            logger.error(msg)
            raise TypeError(msg)
        return response.get("issues", [])

    @handle_jira_api_errors("Jira API")
    def get_fields(self) -> list[dict[str, Any]]:
        """Get all field definitions (``/rest/api/2/field``)."""
        fields = self.jira.get_all_fields()
        logger.debug(f"Fetched {len(fields)} field definitions from {self.config.url}")
        return fields
