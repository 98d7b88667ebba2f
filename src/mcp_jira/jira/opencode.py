"""Read MCP server environment from OpenCode configuration files.

OpenCode keeps its MCP server definitions in ``opencode.json``/``opencode.jsonc``
(JSON with comments). When the entry for this server is enabled, its
``environment`` block supplies defaults for variables such as
``JIRA_CONFIG_PATH`` before the Jira config file is located.
"""

import json
import logging
import os
import threading
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cachetools import LRUCache

from ..utils.env import (
    JIRA_CONFIG_PATH_ENV,
    JIRA_MCP_KEY_ENV,
    OPENCODE_CONFIG_ENV,
    apply_env_defaults,
)
from ..utils.jsonc import loads_jsonc

logger = logging.getLogger("mcp-jira.jira.opencode")

DEFAULT_SERVER_KEY = "jira"
CONFIG_FILE_NAMES = ("opencode.json", "opencode.jsonc")
# Environment entries holding paths, resolved relative to the OpenCode file
PATH_VARIABLES = frozenset({JIRA_CONFIG_PATH_ENV})


@dataclass(frozen=True)
class OpenCodeEnvironment:
    """Environment found for one MCP server entry."""

    config_path: str
    server_key: str
    environment: dict[str, str] = field(default_factory=dict)


def normalize_potential_path(value: str, base_dir: str | Path | None = None) -> str:
    """Expand ``~`` and resolve relative paths against ``base_dir``."""
    path = Path(value.strip()).expanduser()
    if not path.is_absolute() and base_dir is not None:
        path = (Path(base_dir) / path).resolve()
    return str(path)


def find_mcp_entry(
    mcp_config: Mapping[str, Any], server_key: str
) -> tuple[str, dict[str, Any]] | None:
    """Find a server entry by exact key, then case-insensitively."""
    entry = mcp_config.get(server_key)
    if isinstance(entry, dict):
        return server_key, entry

    wanted = server_key.strip().lower()
    for key, value in mcp_config.items():
        if key.strip().lower() == wanted and isinstance(value, dict):
            return key, value
    return None


class OpenCodeConfigReader:
    """Discovers and caches OpenCode environment blocks per working directory."""

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        home: Path | None = None,
        cache_size: int = 64,
    ) -> None:
        self._environ = os.environ if environ is None else environ
        self._home = home
        self._cache: LRUCache[tuple[str, str], OpenCodeEnvironment | None] = LRUCache(
            maxsize=cache_size
        )
        self._lock = threading.Lock()

    @property
    def home(self) -> Path:
        return self._home if self._home is not None else Path.home()

    def candidate_paths(self, working_dir: str | None) -> list[Path]:
        """Ordered, de-duplicated OpenCode config locations for ``working_dir``."""
        candidates: list[Path] = []
        explicit = self._environ.get(OPENCODE_CONFIG_ENV)
        if explicit:
            candidates.append(Path(explicit).expanduser())

        if working_dir:
            current = Path(working_dir).expanduser().resolve()
            for directory in (current, *current.parents):
                for name in CONFIG_FILE_NAMES:
                    candidates.append(directory / name)
                for name in CONFIG_FILE_NAMES:
                    candidates.append(directory / ".opencode" / name)

        home_config = self.home / ".config" / "opencode"
        candidates.extend(home_config / name for name in CONFIG_FILE_NAMES)
        return list(dict.fromkeys(candidates))

    def load(
        self, working_dir: str | None, server_key: str | None = None
    ) -> OpenCodeEnvironment | None:
        """Return the environment block for ``server_key``, or None.

        A disabled entry (``"enabled": false``) yields None. Unreadable or
        malformed files are logged and skipped.
        """
        key = server_key or self._environ.get(JIRA_MCP_KEY_ENV) or DEFAULT_SERVER_KEY
        cache_key = (str(Path(working_dir or ".").resolve()), key)
        with self._lock:
            if cache_key in self._cache:
                return self._cache[cache_key]

        result = None
        for candidate in self.candidate_paths(working_dir):
            if not candidate.is_file():
                continue
            try:
                parsed = loads_jsonc(candidate.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
                logger.warning(f"Failed to parse OpenCode config {candidate}: {e}")
                continue

            mcp_config = parsed.get("mcp") if isinstance(parsed, dict) else None
            if not isinstance(mcp_config, dict):
                continue
            match = find_mcp_entry(mcp_config, key)
            if match is None:
                continue

            entry_key, entry = match
            if entry.get("enabled") is False:
                logger.debug(f"OpenCode entry '{entry_key}' in {candidate} is disabled")
                break

            raw_environment = entry.get("environment") or {}
            if not isinstance(raw_environment, dict):
                logger.warning(
                    f"Ignoring OpenCode environment of '{entry_key}' in {candidate}: "
                    f"expected an object, got {type(raw_environment).__name__}"
                )
                raw_environment = {}

            environment = {}
            for env_key, env_value in raw_environment.items():
                if not isinstance(env_value, str):
                    continue
                if env_key in PATH_VARIABLES:
                    env_value = normalize_potential_path(env_value, candidate.parent)
                environment[env_key] = env_value

            result = OpenCodeEnvironment(
                config_path=str(candidate),
                server_key=entry_key,
                environment=environment,
            )
            break

        with self._lock:
            self._cache[cache_key] = result
        return result

    def apply(
        self,
        working_dir: str | None,
        environ: MutableMapping[str, str],
        server_key: str | None = None,
    ) -> list[str]:
        """Apply the OpenCode environment to ``environ`` without overriding.

        Returns:
            Names of the variables that were set.
        """
        found = self.load(working_dir, server_key)
        if found is None:
            return []
        applied = apply_env_defaults(found.environment, environ)
        if applied:
            logger.info(
                f"Applied OpenCode environment from {found.config_path} "
                f"({found.server_key}): {', '.join(sorted(applied))}"
            )
        return applied
