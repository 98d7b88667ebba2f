"""Configuration models for multi-instance Jira access.

A ``.jira-config.json`` file comes in two shapes:

* multi-instance: ``{"instances": {...}, "projects": {...}, "defaultInstance": ...}``
* legacy single-instance: ``{"projectKey": "ABC", "storyPointsField": ...}``

The shape is decided once by :func:`parse_config_document`; legacy documents are
turned into the multi-instance shape by :func:`migrate_legacy_config` so the
rest of the code only ever sees :class:`MultiInstanceConfig`.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from ..exceptions import InvalidConfigFormatError, LegacyConfigIncompleteError
from ..utils.env import (
    JIRA_API_TOKEN_ENV,
    JIRA_DOMAIN_ENV,
    JIRA_EMAIL_ENV,
    is_env_ssl_verify,
)
from ..utils.urls import CLOUD_SUFFIX, build_jira_base_url, is_atlassian_cloud_url

logger = logging.getLogger("mcp-jira.jira.config")

DEFAULT_INSTANCE_NAME = "default"
PLACEHOLDER_TOKENS = frozenset({"TEST_TOKEN", "YOUR_API_TOKEN"})
MIN_TOKEN_LENGTH = 20


class _ConfigModel(BaseModel):
    """Base for config file models: camelCase on disk, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class FieldIdDefaults(_ConfigModel):
    """Custom-field ids for the logical fields every tool cares about."""

    story_points_field: str | None = None
    sprint_field: str | None = None
    epic_link_field: str | None = None
    rank_field: str | None = None


class InstanceConfig(_ConfigModel):
    """One configured Jira tenant."""

    name: str = ""
    email: str = ""
    api_token: str = ""
    domain: str = ""
    projects: list[str] = Field(default_factory=list)
    field_defaults: dict[str, Any] | None = None
    default_fields: FieldIdDefaults | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_projects(cls, data: Any) -> Any:
        # Some files list projects as an object keyed by project key
        if isinstance(data, dict) and isinstance(data.get("projects"), dict):
            data = {**data, "projects": list(data["projects"])}
        return data

    @property
    def base_url(self) -> str:
        return build_jira_base_url(self.domain)


class ProjectConfig(_ConfigModel):
    """Project-to-instance mapping plus optional field overrides."""

    project_key: str = ""
    instance: str
    story_points_field: str | None = None
    sprint_field: str | None = None
    epic_link_field: str | None = None
    rank_field: str | None = None
    field_defaults: dict[str, Any] | None = None
    default_fields: FieldIdDefaults | None = None


class LegacyConfig(_ConfigModel):
    """Single-instance config predating multi-instance support."""

    kind: Literal["legacy"] = "legacy"
    project_key: str
    story_points_field: str | None = None
    sprint_field: str | None = None
    epic_link_field: str | None = None


class MultiInstanceConfig(_ConfigModel):
    """Parsed and migrated representation of a config file."""

    kind: Literal["multi"] = "multi"
    instances: dict[str, InstanceConfig] = Field(default_factory=dict)
    projects: dict[str, ProjectConfig] = Field(default_factory=dict)
    default_instance: str | None = None
    source: str | None = Field(default=None, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _attach_names(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        instances = data.get("instances")
        if isinstance(instances, dict):
            data["instances"] = {
                name: {"name": name, **value} if isinstance(value, dict) else value
                for name, value in instances.items()
            }
        projects = data.get("projects")
        if projects is None:
            data["projects"] = {}
        elif isinstance(projects, dict):
            data["projects"] = {
                key: {"projectKey": key, **value} if isinstance(value, dict) else value
                for key, value in projects.items()
            }
        return data

    @property
    def instance_names(self) -> list[str]:
        return list(self.instances)


ConfigDocument = MultiInstanceConfig | LegacyConfig


def parse_config_document(raw: Any, source: str | None = None) -> ConfigDocument:
    """Decide which config shape ``raw`` is and validate it.

    Raises:
        InvalidConfigFormatError: If ``raw`` matches neither shape.
    """
    if not isinstance(raw, dict):
        raise InvalidConfigFormatError("configuration must be a JSON object", source)
    try:
        if "instances" in raw:
            return MultiInstanceConfig.model_validate({**raw, "source": source})
        if raw.get("projectKey"):
            return LegacyConfig.model_validate(raw)
    except ValidationError as e:
        raise InvalidConfigFormatError(
            f"configuration does not match the expected schema: {e}", source
        ) from e
    raise InvalidConfigFormatError(
        "invalid configuration format - missing 'instances' or 'projectKey'", source
    )


def migrate_legacy_config(
    legacy: LegacyConfig,
    env: Mapping[str, str] | None = None,
    source: str | None = None,
) -> MultiInstanceConfig:
    """Convert a legacy config into a one-instance multi-instance config.

    Credentials come from ``JIRA_EMAIL``, ``JIRA_API_TOKEN`` and ``JIRA_DOMAIN``.

    Raises:
        LegacyConfigIncompleteError: If any of the three variables is unset.
    """
    env = os.environ if env is None else env
    credentials = {
        JIRA_EMAIL_ENV: env.get(JIRA_EMAIL_ENV, ""),
        JIRA_API_TOKEN_ENV: env.get(JIRA_API_TOKEN_ENV, ""),
        JIRA_DOMAIN_ENV: env.get(JIRA_DOMAIN_ENV, ""),
    }
    missing = [name for name, value in credentials.items() if not value]
    if missing:
        raise LegacyConfigIncompleteError(missing)

    logger.debug(f"Converting legacy configuration for project {legacy.project_key}")
    instance = InstanceConfig(
        name=DEFAULT_INSTANCE_NAME,
        email=credentials[JIRA_EMAIL_ENV],
        api_token=credentials[JIRA_API_TOKEN_ENV],
        domain=credentials[JIRA_DOMAIN_ENV],
    )
    project = ProjectConfig(
        project_key=legacy.project_key,
        instance=DEFAULT_INSTANCE_NAME,
        story_points_field=legacy.story_points_field,
        sprint_field=legacy.sprint_field,
        epic_link_field=legacy.epic_link_field,
    )
    return MultiInstanceConfig(
        instances={DEFAULT_INSTANCE_NAME: instance},
        projects={legacy.project_key: project},
        default_instance=DEFAULT_INSTANCE_NAME,
        source=source,
    )


def to_multi_instance(
    document: ConfigDocument,
    env: Mapping[str, str] | None = None,
    source: str | None = None,
) -> MultiInstanceConfig:
    """Return the canonical multi-instance form of a parsed document."""
    if isinstance(document, LegacyConfig):
        return migrate_legacy_config(document, env=env, source=source)
    return document


@dataclass
class ConfigValidationResult:
    """Errors and warnings found in a configuration."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_instance_config(
    name: str, instance: InstanceConfig
) -> ConfigValidationResult:
    """Check a single instance for missing or placeholder credentials."""
    result = ConfigValidationResult()

    email = instance.email.strip()
    if not email:
        result.errors.append(f"Instance '{name}': email is required")
    elif "@" not in email:
        result.warnings.append(f"Instance '{name}': email format may be invalid")

    token = instance.api_token.strip()
    if not token:
        result.errors.append(f"Instance '{name}': apiToken is required")
    elif token in PLACEHOLDER_TOKENS or "YOUR_" in token:
        result.errors.append(
            f"Instance '{name}': apiToken appears to be a placeholder - "
            "please set a real API token"
        )
    elif len(token) < MIN_TOKEN_LENGTH:
        result.warnings.append(f"Instance '{name}': apiToken appears too short")

    domain = instance.domain.strip().rstrip("/").lower()
    if not domain:
        result.errors.append(f"Instance '{name}': domain is required")
    elif domain.endswith(CLOUD_SUFFIX) and "://" not in domain:
        result.warnings.append(
            f"Instance '{name}': domain includes '{CLOUD_SUFFIX}' - "
            "the subdomain alone is enough"
        )
    return result


def validate_config(config: MultiInstanceConfig) -> ConfigValidationResult:
    """Validate instance credentials and cross references of a config.

    An empty ``instances`` map is left for instance resolution to report.
    """
    result = ConfigValidationResult()
    for name, instance in config.instances.items():
        instance_result = validate_instance_config(name, instance)
        result.errors.extend(instance_result.errors)
        result.warnings.extend(instance_result.warnings)

    if config.default_instance and config.default_instance not in config.instances:
        result.errors.append(
            f"Default instance '{config.default_instance}' is not defined in instances"
        )

    for project_key, project in config.projects.items():
        if project.instance not in config.instances:
            result.errors.append(
                f"Project '{project_key}' references undefined instance "
                f"'{project.instance}'"
            )
    return result


def format_validation_results(
    results: ConfigValidationResult, context: str = "Configuration"
) -> str:
    """Render validation results as a Markdown report."""
    lines = [f"{context} Validation:", ""]
    if results.is_valid:
        lines.append("Configuration is valid.")
    else:
        lines.append("Configuration has errors:")
        lines.append("")
        lines.extend(f"{i}. {error}" for i, error in enumerate(results.errors, 1))

    if results.warnings:
        lines.extend(["", "Warnings:", ""])
        lines.extend(f"{i}. {warning}" for i, warning in enumerate(results.warnings, 1))

    if not results.is_valid:
        lines.extend(
            [
                "",
                "How to fix:",
                "1. Update your .jira-config.json file with valid credentials",
                "2. Get API tokens from: "
                "https://id.atlassian.com/manage-profile/security/api-tokens",
                '3. Use your Jira subdomain (e.g., "mycompany" for '
                "mycompany.atlassian.net)",
                "4. Use your full email address for the email field",
            ]
        )
    return "\n".join(lines) + "\n"


@dataclass
class JiraConfig:
    """Connection settings for one Jira instance.

    Built from an :class:`InstanceConfig`; Jira Cloud uses basic auth with the
    account email and an API token.
    """

    url: str  # Base URL for Jira
    username: str  # Account email
    api_token: str
    instance_name: str = DEFAULT_INSTANCE_NAME
    ssl_verify: bool = True  # Whether to verify SSL certificates

    @property
    def is_cloud(self) -> bool:
        """True for atlassian.net style hosts, False for Server/Data Center."""
        return is_atlassian_cloud_url(self.url)

    @property
    def rest_api_url(self) -> str:
        return f"{self.url}/rest/api/2"

    @property
    def agile_api_url(self) -> str:
        return f"{self.url}/rest/agile/1.0"

    @classmethod
    def from_instance(
        cls, instance: InstanceConfig, env: Mapping[str, str] | None = None
    ) -> "JiraConfig":
        """Create connection settings for a configured instance.

        Raises:
            ValueError: If the instance has no domain.
        """
        env = {} if env is None else env
        return cls(
            url=instance.base_url,
            username=instance.email,
            api_token=instance.api_token,
            instance_name=instance.name or DEFAULT_INSTANCE_NAME,
            ssl_verify=is_env_ssl_verify(env, "JIRA_SSL_VERIFY"),
        )

