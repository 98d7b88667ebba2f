"""Jira FastMCP server instance and tool definitions."""

import json
import logging
from collections.abc import Mapping
from typing import Annotated, Any

import anyio
from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from mcp_jira.exceptions import MCPJiraError
from mcp_jira.jira.context import JiraContext, ToolOptions
from mcp_jira.jira.field_detection import (
    detect_sprint,
    detect_story_points,
    format_sprint,
    format_story_points,
)
from mcp_jira.jira.fields import detect_project_field_ids
from mcp_jira.jira.instances import list_instances as summarize_instances
from mcp_jira.jira.utils import escape_jql_string
from mcp_jira.logging_config import log_operation
from mcp_jira.utils.urls import build_jira_base_url

from .dependencies import get_app_context, get_session

logger = logging.getLogger("mcp-jira.servers.jira")

jira_mcp = FastMCP(
    name="Jira MCP Service",
    instructions=(
        "Provides tools for Jira across multiple instances. Every tool takes the "
        "working directory holding .jira-config.json; the instance is chosen from "
        "the project key unless 'instance' is given."
    ),
)

ISSUE_TOOL = ToolOptions(requires_project=True, extract_project_from_issue_key=True)
PROJECT_TOOL = ToolOptions(requires_project=True)

EXAMPLE_CONFIG = {
    "instances": {
        "primary": {
            "email": "you@example.com",
            "apiToken": "your-api-token",
            "domain": "mycompany",
            "projects": ["PROJ"],
        }
    },
    "projects": {
        "PROJ": {"instance": "primary", "storyPointsField": "customfield_10016"}
    },
    "defaultInstance": "primary",
}

WorkingDir = Annotated[
    str,
    Field(description="Working directory containing .jira-config.json"),
]
InstanceOverride = Annotated[
    str | None,
    Field(
        description="Optional instance name overriding automatic instance selection",
    ),
]


def _tool_error(error: MCPJiraError) -> ToolError:
    step = getattr(error, "context_step", None)
    prefix = f"[{step}] " if step else ""
    return ToolError(f"{prefix}{error}")


async def _jira_context(
    ctx: Context, args: Mapping[str, Any], options: ToolOptions
) -> JiraContext:
    app_ctx = get_app_context(ctx)
    session = get_session(ctx)
    try:
        return await app_ctx.assembler.assemble(args, options, session)
    except MCPJiraError as e:
        logger.warning(f"Could not resolve Jira context: {e}")
        raise _tool_error(e) from e


def _with_guidance(text: str, context: JiraContext) -> str:
    if context.guidance:
        return f"{text}\n\n---\n\n{context.guidance}"
    return text


def _name(value: Any, default: str = "None") -> str:
    if isinstance(value, dict):
        return str(value.get("displayName") or value.get("name") or default)
    return default


@jira_mcp.tool(
    tags={"jira", "read"},
    annotations={"title": "List Instances", "readOnlyHint": True},
)
async def list_instances(ctx: Context, working_dir: WorkingDir) -> str:
    """List configured Jira instances and project-to-instance mappings.

    Args:
        ctx: The FastMCP context.
        working_dir: Directory whose .jira-config.json is used.

    Returns:
        Markdown overview of the configuration.
    """
    app_ctx = get_app_context(ctx)
    session = get_session(ctx)
    try:
        config = await app_ctx.assembler.load_config(working_dir, session)
    except MCPJiraError as e:
        raise _tool_error(e) from e

    lines = ["# Available Jira Instances", ""]
    summaries = summarize_instances(config)
    if not summaries:
        lines += [
            "No Jira instances configured.",
            "",
            "Create a .jira-config.json with this structure:",
            "```json",
            json.dumps(EXAMPLE_CONFIG, indent=2),
            "```",
        ]
        return "\n".join(lines)

    lines += ["## Configured Instances", ""]
    for index, summary in enumerate(summaries, 1):
        default = " (default)" if summary.is_default else ""
        lines += [
            f"### {index}. {summary.name}{default}",
            f"- **Domain**: {build_jira_base_url(summary.domain)}",
            f"- **Email**: {summary.email}",
            f"- **Projects**: {', '.join(summary.projects) or 'None'}",
            "",
        ]

    if config.projects:
        lines += ["## Project-to-Instance Mappings", ""]
        lines += [f"- **{key}** -> {p.instance}" for key, p in config.projects.items()]
        lines.append("")

    lines += [
        "## Instance Selection",
        "",
        "1. An explicit `instance` argument",
        "2. The project's entry in `projects`",
        "3. An instance listing the project",
        "4. `defaultInstance`",
        "5. The first configured instance",
    ]
    return "\n".join(lines)


@jira_mcp.tool(
    tags={"jira", "read"},
    annotations={"title": "Get Issue", "readOnlyHint": True},
)
async def get_issue(
    ctx: Context,
    working_dir: WorkingDir,
    issue_key: Annotated[str, Field(description="Jira issue key (e.g., 'PROJ-123')")],
    instance: InstanceOverride = None,
) -> str:
    """Get a Jira issue with its story points and sprint.

    Args:
        ctx: The FastMCP context.
        working_dir: Directory whose .jira-config.json is used.
        issue_key: Jira issue key.
        instance: Optional instance override.

    Returns:
        Markdown description of the issue.
    """
    args = {"working_dir": working_dir, "issue_key": issue_key, "instance": instance}
    context = await _jira_context(ctx, args, ISSUE_TOOL)

    with log_operation(logger, "get_issue", issue_key=issue_key):
        issue = await anyio.to_thread.run_sync(context.client.get_issue, issue_key)

    fields = issue.get("fields", {})
    story_points = detect_story_points(issue, context.fields.story_points_field)
    sprint = detect_sprint(issue, context.fields.sprint_field)
    epic = (
        fields.get(context.fields.epic_link_field)
        if context.fields.epic_link_field
        else None
    )
    lines = [
        f"# {issue.get('key', issue_key)}: {fields.get('summary', '')}",
        "",
        f"- **Instance**: {context.instance_name}",
        f"- **Type**: {_name(fields.get('issuetype'))}",
        f"- **Status**: {_name(fields.get('status'))}",
        f"- **Priority**: {_name(fields.get('priority'))}",
        f"- **Assignee**: {_name(fields.get('assignee'), 'Unassigned')}",
        f"- **Story Points**: {format_story_points(story_points)}",
        f"- **Sprint**: {format_sprint(sprint)}",
    ]
    if epic:
        lines.append(f"- **Epic**: {epic}")
    description = fields.get("description")
    if isinstance(description, str) and description.strip():
        lines += ["", "## Description", "", description.strip()]
    return _with_guidance("\n".join(lines), context)


@jira_mcp.tool(
    tags={"jira", "read"},
    annotations={"title": "List Issues", "readOnlyHint": True},
)
async def list_issues(
    ctx: Context,
    working_dir: WorkingDir,
    project_key: Annotated[str, Field(description="Jira project key (e.g., 'PROJ')")],
    status: Annotated[
        str | None,
        Field(description="Optional status name to filter by"),
    ] = None,
    limit: Annotated[
        int,
        Field(description="Maximum number of issues (1-100)", ge=1, le=100),
    ] = 25,
    instance: InstanceOverride = None,
) -> str:
    """List issues of a project, most recently updated first.

    Args:
        ctx: The FastMCP context.
        working_dir: Directory whose .jira-config.json is used.
        project_key: Jira project key.
        status: Optional status filter.
        limit: Maximum number of issues.
        instance: Optional instance override.

    Returns:
        Markdown list of issues.
    """
    args = {"working_dir": working_dir, "project_key": project_key, "instance": instance}
    context = await _jira_context(ctx, args, PROJECT_TOOL)

    jql = f"project = {escape_jql_string(context.project_key)}"
    if status:
        jql += f" AND status = {escape_jql_string(status)}"
    jql += " ORDER BY updated DESC"

    with log_operation(logger, "list_issues", project_key=context.project_key):
        issues = await anyio.to_thread.run_sync(
            lambda: context.client.search_issues(jql, limit=limit)
        )

    lines = [f"# Issues in {context.project_key} ({context.instance_name})", ""]
    if not issues:
        lines.append("No issues found.")
    for issue in issues:
        fields = issue.get("fields", {})
        lines.append(
            f"- **{issue.get('key')}** {fields.get('summary', '')} "
            f"[{_name(fields.get('status'))}] "
            f"({_name(fields.get('assignee'), 'Unassigned')})"
        )
    return _with_guidance("\n".join(lines), context)


@jira_mcp.tool(
    tags={"jira", "read"},
    annotations={"title": "Detect Project Fields", "readOnlyHint": True},
)
async def detect_project_fields(
    ctx: Context,
    working_dir: WorkingDir,
    project_key: Annotated[str, Field(description="Jira project key (e.g., 'PROJ')")],
    instance: InstanceOverride = None,
) -> str:
    """Detect story points, sprint and epic link field ids for a project.

    Args:
        ctx: The FastMCP context.
        working_dir: Directory whose .jira-config.json is used.
        project_key: Jira project key.
        instance: Optional instance override.

    Returns:
        Markdown report with a configuration snippet.
    """
    args = {"working_dir": working_dir, "project_key": project_key, "instance": instance}
    context = await _jira_context(ctx, args, PROJECT_TOOL)
    app_ctx = get_app_context(ctx)

    with log_operation(logger, "detect_project_fields", project_key=project_key):
        metadata = await app_ctx.assembler.get_field_metadata(context, get_session(ctx))
    detected = detect_project_field_ids(metadata)

    lines = [
        f'# Field detection for "{context.project_key}" '
        f'in instance "{context.instance_name}"',
        "",
    ]
    if not detected:
        lines += [
            f"No custom fields detected for project {context.project_key}.",
            "The project may not use story points, sprints or epics, or field "
            "metadata is not visible to this account.",
        ]
        return "\n".join(lines)

    for config_name, field in detected.items():
        lines.append(f"- **{config_name}**: {field.name} ({field.field_id})")

    snippet = {
        "projects": {
            context.project_key: {
                "instance": context.instance_name,
                **{name: field.field_id for name, field in detected.items()},
            }
        }
    }
    lines += [
        "",
        "Add this to your .jira-config.json:",
        "",
        "```json",
        json.dumps(snippet, indent=2),
        "```",
    ]
    return "\n".join(lines)
