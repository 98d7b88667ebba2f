"""
Utility functions for the MCP Jira integration.
"""

from .decorators import handle_jira_api_errors
from .env import apply_env_defaults, getenv, is_env_ssl_verify, is_env_truthy
from .jsonc import loads_jsonc, strip_json_comments
from .urls import build_jira_base_url, is_atlassian_cloud_url

__all__ = [
    "apply_env_defaults",
    "build_jira_base_url",
    "getenv",
    "handle_jira_api_errors",
    "is_atlassian_cloud_url",
    "is_env_ssl_verify",
    "is_env_truthy",
    "loads_jsonc",
    "strip_json_comments",
]
