"""Choosing the Jira instance that serves a project."""

import logging
from dataclasses import dataclass, field

from ..exceptions import InstanceNotFoundError, NoInstancesConfiguredError
from .config import MultiInstanceConfig

logger = logging.getLogger("mcp-jira.jira.instances")


def resolve_instance_name(
    config: MultiInstanceConfig,
    project_key: str | None,
    instance_override: str | None = None,
) -> str:
    """Pick the instance for ``project_key``.

    Priority, first match wins:

    1. ``instance_override``
    2. the instance of ``config.projects[project_key]``
    3. the first instance (in file order) listing the project
    4. ``config.default_instance`` when it names a configured instance
    5. the first configured instance

    Raises:
        NoInstancesConfiguredError: If the config has no instances.
        InstanceNotFoundError: If the override or the project mapping names an
            unknown instance.
    """
    if not config.instances:
        raise NoInstancesConfiguredError(config.source)

    available = config.instance_names

    if instance_override:
        if instance_override not in config.instances:
            raise InstanceNotFoundError(instance_override, available)
        logger.debug(f"Using explicit instance '{instance_override}'")
        return instance_override

    if project_key:
        project = config.projects.get(project_key)
        if project is not None:
            if project.instance not in config.instances:
                raise InstanceNotFoundError(project.instance, available)
            logger.debug(
                f"Project {project_key} mapped to instance '{project.instance}'"
            )
            return project.instance

        for name, instance in config.instances.items():
            if project_key in instance.projects:
                logger.debug(f"Project {project_key} listed by instance '{name}'")
                return name

    if config.default_instance and config.default_instance in config.instances:
        return config.default_instance

    first = available[0]
    logger.debug(f"Falling back to first configured instance '{first}'")
    return first


@dataclass
class InstanceSummary:
    """What the ``list_instances`` tool shows for one instance."""

    name: str
    domain: str
    email: str
    projects: list[str] = field(default_factory=list)
    is_default: bool = False


def list_instances(config: MultiInstanceConfig) -> list[InstanceSummary]:
    """Summarise configured instances in file order.

    A project is attributed to an instance when the instance lists it or a
    project mapping points at it.
    """
    summaries = []
    for name, instance in config.instances.items():
        projects = list(instance.projects)
        for key, project in config.projects.items():
            if project.instance == name and key not in projects:
                projects.append(key)
        summaries.append(
            InstanceSummary(
                name=name,
                domain=instance.domain,
                email=instance.email,
                projects=projects,
                is_default=name == config.default_instance,
            )
        )
    return summaries
