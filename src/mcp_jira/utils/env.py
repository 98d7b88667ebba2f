"""Environment variable utility functions for MCP Jira."""

import os
from collections.abc import Mapping, MutableMapping

# Environment variables understood by the config layer
JIRA_EMAIL_ENV = "JIRA_EMAIL"
JIRA_API_TOKEN_ENV = "JIRA_API_TOKEN"
JIRA_DOMAIN_ENV = "JIRA_DOMAIN"
JIRA_CONFIG_PATH_ENV = "JIRA_CONFIG_PATH"
JIRA_MCP_KEY_ENV = "JIRA_MCP_KEY"
OPENCODE_CONFIG_ENV = "OPENCODE_CONFIG"


def is_env_truthy(env_var_name: str, default: str = "") -> bool:
    """Check if environment variable is set to a standard truthy value.

    Considers 'true', '1', 'yes' as truthy values (case-insensitive).

    Args:
        env_var_name: Name of the environment variable to check
        default: Default value if environment variable is not set

    Returns:
        True if the environment variable is set to a truthy value, False otherwise
    """
    return os.getenv(env_var_name, default).lower() in ("true", "1", "yes")


def is_env_ssl_verify(
    env: Mapping[str, str], env_var_name: str, default: str = "true"
) -> bool:
    """Check SSL verification setting with secure defaults.

    Defaults to true unless explicitly set to false values.
    """
    return (getenv(env, env_var_name, default) or default).lower() not in (
        "false",
        "0",
        "no",
    )


def getenv(
    env: Mapping[str, str], env_var_name: str, default: str | None = None
) -> str | None:
    """Retrieve the value of an environment variable.

    Checks the provided ``env`` mapping first and falls back to the
    process environment. Empty strings count as unset.
    """
    value = env.get(env_var_name) or os.getenv(env_var_name)
    return value if value else default


def apply_env_defaults(
    values: Mapping[str, str], environ: MutableMapping[str, str] | None = None
) -> list[str]:
    """Set variables that are not already present in ``environ``.

    Existing values always win.

    Returns:
        Names of the variables that were set.
    """
    target = os.environ if environ is None else environ
    applied = []
    for key, value in values.items():
        if target.get(key):
            continue
        target[key] = value
        applied.append(key)
    return applied
