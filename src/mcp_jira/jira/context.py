"""Per-call Jira context assembly.

Every tool call goes through :class:`JiraContextAssembler`: it derives the
project key, loads the configuration through the session cache, picks the
instance, merges field settings and builds the instance-scoped client. Field
settings given as names are resolved to ids through the field metadata.
"""

import logging
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import anyio

from ..exceptions import ProjectKeyRequiredError
from ..logging_config import log_context
from .client import JiraClient
from .config import InstanceConfig, MultiInstanceConfig, ProjectConfig
from .discovery import ConfigFileLocator
from .fields import (
    ResolvedFieldDefaults,
    format_missing_field_guidance,
    merge_field_defaults,
    resolve_field_names,
)
from .instances import resolve_instance_name

if TYPE_CHECKING:
    from ..sessions import Session, SessionStore

logger = logging.getLogger("mcp-jira.jira.context")

ClientFactory = Callable[[InstanceConfig], JiraClient]

# Context steps, attached to failures as ``context_step``
STEP_PROJECT_KEY = "project_key"
STEP_LOAD_CONFIG = "load_config"
STEP_RESOLVE_INSTANCE = "resolve_instance"
STEP_MERGE_FIELDS = "merge_fields"
STEP_BUILD_CLIENT = "build_client"
STEP_RESOLVE_FIELDS = "resolve_fields"


@dataclass(frozen=True)
class ToolOptions:
    """How a tool derives its project key."""

    requires_project: bool = False
    extract_project_from_issue_key: bool = False
    default_project_key: str | None = None


@dataclass
class JiraContext:
    """Everything a tool needs to talk to the right Jira instance."""

    working_dir: str
    project_key: str | None
    instance_name: str
    instance: InstanceConfig
    project: ProjectConfig | None
    fields: ResolvedFieldDefaults
    client: JiraClient
    config: MultiInstanceConfig
    guidance: str | None = None


def _arg(args: Mapping[str, Any], *names: str) -> str | None:
    for name in names:
        value = args.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _key_prefix(issue_key: str) -> str:
    return issue_key.split("-", 1)[0].upper()


def extract_project_key(args: Mapping[str, Any], options: ToolOptions) -> str | None:
    """Work out the project key for a tool call.

    Order: explicit ``project_key``, the prefix of ``issue_key`` then
    ``epic_key`` (when the tool allows it), ``options.default_project_key``.

    Raises:
        ProjectKeyRequiredError: If the tool requires a project and none was found.
    """
    explicit = _arg(args, "project_key", "projectKey")
    if explicit:
        return explicit

    tried = ["project_key"]
    if options.extract_project_from_issue_key:
        for names in (("issue_key", "issueKey"), ("epic_key", "epicKey")):
            tried.append(names[0])
            key = _arg(args, *names)
            if key:
                return _key_prefix(key)

    if options.default_project_key:
        return options.default_project_key

    if options.requires_project:
        raise ProjectKeyRequiredError(tried)
    return None


@contextmanager
def _step(name: str) -> Iterator[None]:
    try:
        yield
    except Exception as e:
        if getattr(e, "context_step", None) is None:
            e.context_step = name  # type: ignore[attr-defined]
        logger.debug(f"Context assembly failed at step '{name}': {e}")
        raise


class JiraContextAssembler:
    """Builds a :class:`JiraContext` for each tool call."""

    def __init__(
        self,
        locator: ConfigFileLocator | None = None,
        client_factory: ClientFactory | None = None,
        store: "SessionStore | None" = None,
    ) -> None:
        self.locator = locator or ConfigFileLocator()
        self.client_factory = client_factory or JiraClient.for_instance
        self.store = store

    async def load_config(
        self, working_dir: str, session: "Session"
    ) -> MultiInstanceConfig:
        """Return the config for ``working_dir``, parsed at most once per session.

        Two concurrent misses may both parse the file; the later result is kept.
        """
        cached = session.config_cache.get(working_dir)
        if cached is not None:
            logger.debug(f"Config cache hit for {working_dir}")
            return cached

        config = await anyio.to_thread.run_sync(self.locator.load, working_dir)
        session.config_cache[working_dir] = config
        return config

    async def assemble(
        self,
        args: Mapping[str, Any],
        options: ToolOptions,
        session: "Session | None",
    ) -> JiraContext:
        """Resolve project, configuration, instance, fields and client.

        Failures are re-raised unchanged, tagged with ``context_step``.

        Raises:
            RuntimeError: If called without a session.
        """
        if session is None:
            raise RuntimeError("Jira context requires a session")

        working_dir = _arg(args, "working_dir") or "."
        instance_override = _arg(args, "instance")

        with log_context(session=session.session_id):
            with _step(STEP_PROJECT_KEY):
                project_key = extract_project_key(args, options)

            with _step(STEP_LOAD_CONFIG):
                config = await self.load_config(working_dir, session)

            with _step(STEP_RESOLVE_INSTANCE):
                instance_name = resolve_instance_name(
                    config, project_key, instance_override
                )
                instance = config.instances[instance_name]
                project = config.projects.get(project_key) if project_key else None

            with _step(STEP_MERGE_FIELDS):
                fields = merge_field_defaults(instance, project)

            with _step(STEP_BUILD_CLIENT):
                client = self.client_factory(instance)

            if fields.field_names():
                with _step(STEP_RESOLVE_FIELDS):
                    metadata = await self._field_metadata(
                        instance_name, client, session
                    )
                    fields = resolve_field_names(fields, metadata)

            logger.info(
                f"Resolved project {project_key or '-'} to instance "
                f"'{instance_name}' ({instance.domain})"
            )

            guidance = None
            if project_key and self._first_access(session, instance_name, project_key):
                missing = fields.missing_fields()
                if missing:
                    guidance = format_missing_field_guidance(
                        instance_name, project_key, missing
                    )

        return JiraContext(
            working_dir=working_dir,
            project_key=project_key,
            instance_name=instance_name,
            instance=instance,
            project=project,
            fields=fields,
            client=client,
            config=config,
            guidance=guidance,
        )

    async def get_field_metadata(
        self, context: JiraContext, session: "Session"
    ) -> list[dict[str, Any]]:
        """``/field`` metadata for the context's instance, cached per session."""
        return await self._field_metadata(context.instance_name, context.client, session)

    async def _field_metadata(
        self, instance_name: str, client: JiraClient, session: "Session"
    ) -> list[dict[str, Any]]:
        cached = session.field_cache.get(instance_name)
        if cached is not None:
            return cached
        fields = await anyio.to_thread.run_sync(client.get_fields)
        session.field_cache[instance_name] = fields
        return fields

    def _first_access(
        self, session: "Session", instance_name: str, project_key: str
    ) -> bool:
        if self.store is not None:
            return self.store.track_project_access(
                session.session_id, instance_name, project_key
            )
        projects = session.accessed_projects.setdefault(instance_name, set())
        if project_key in projects:
            return False
        projects.add(project_key)
        return True
