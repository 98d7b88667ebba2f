"""Jira configuration resolution and API access.

The :class:`JiraContextAssembler` is the entry point used by the tools.
"""

from .client import JiraClient
from .config import (
    InstanceConfig,
    JiraConfig,
    LegacyConfig,
    MultiInstanceConfig,
    ProjectConfig,
)
from .context import JiraContext, JiraContextAssembler, ToolOptions
from .discovery import ConfigFileLocator
from .instances import list_instances, resolve_instance_name

__all__ = [
    "ConfigFileLocator",
    "InstanceConfig",
    "JiraClient",
    "JiraConfig",
    "JiraContext",
    "JiraContextAssembler",
    "LegacyConfig",
    "MultiInstanceConfig",
    "ProjectConfig",
    "ToolOptions",
    "list_instances",
    "resolve_instance_name",
]
