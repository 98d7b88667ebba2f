"""Locating and loading ``.jira-config.json``."""

import json
import logging
import os
from collections.abc import Callable, MutableMapping
from pathlib import Path

from ..exceptions import ConfigNotFoundError, InvalidConfigFormatError, MCPJiraError
from ..utils.env import JIRA_CONFIG_PATH_ENV
from .config import (
    MultiInstanceConfig,
    format_validation_results,
    parse_config_document,
    to_multi_instance,
    validate_config,
)
from .opencode import OpenCodeConfigReader

logger = logging.getLogger("mcp-jira.jira.discovery")

CONFIG_FILE_NAME = ".jira-config.json"
GLOBAL_CONFIG_DIR = Path("~/.config/mcp-jira")


def find_checkout_root(module_file: str | Path = __file__) -> Path | None:
    """Project root when running from a source checkout (``src/mcp_jira/jira``).

    Installed wheels have no such root and yield None.
    """
    src_dir = Path(module_file).resolve().parents[2]
    root = src_dir.parent
    if src_dir.name == "src" and (root / "pyproject.toml").is_file():
        return root
    return None


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


class ConfigFileLocator:
    """Finds, parses and validates the Jira configuration for a working directory.

    Candidate locations, in priority order:

    1. ``JIRA_CONFIG_PATH`` (a file, or a directory holding ``.jira-config.json``),
       possibly supplied by an OpenCode ``environment`` block
    2. the working directory
    3. the global directory ``~/.config/mcp-jira``
    4. the process's current directory
    5. legacy locations: parent of the working directory, parent of the current
       directory and the package checkout root
    """

    def __init__(
        self,
        environ: MutableMapping[str, str] | None = None,
        reader: Callable[[Path], str] | None = None,
        global_dir: Path | None = None,
        include_legacy_locations: bool = True,
        opencode: OpenCodeConfigReader | None = None,
    ) -> None:
        self.environ = os.environ if environ is None else environ
        self._reader = reader or _read_text
        self.global_dir = (global_dir or GLOBAL_CONFIG_DIR).expanduser()
        self.include_legacy_locations = include_legacy_locations
        self.opencode = opencode or OpenCodeConfigReader(environ=self.environ)

    def candidate_paths(self, working_dir: str | None) -> list[Path]:
        """Ordered, de-duplicated list of config files to try."""
        base = Path(working_dir).expanduser() if working_dir else None
        cwd = Path.cwd()
        candidates: list[Path] = []

        explicit = self.environ.get(JIRA_CONFIG_PATH_ENV)
        if explicit:
            path = Path(explicit.strip()).expanduser()
            if not path.is_absolute():
                path = (base or cwd) / path
            candidates.append(path / CONFIG_FILE_NAME if path.is_dir() else path)

        if base is not None:
            candidates.append(base / CONFIG_FILE_NAME)
        candidates.append(self.global_dir / CONFIG_FILE_NAME)
        candidates.append(cwd / CONFIG_FILE_NAME)

        if self.include_legacy_locations:
            if base is not None:
                candidates.append(base.parent / CONFIG_FILE_NAME)
            candidates.append(cwd.parent / CONFIG_FILE_NAME)
            checkout_root = find_checkout_root()
            if checkout_root is not None:
                candidates.append(checkout_root / CONFIG_FILE_NAME)

        unique: dict[Path, None] = {}
        for candidate in candidates:
            unique.setdefault(candidate.resolve(), None)
        return list(unique)

    def load_file(self, path: Path) -> MultiInstanceConfig:
        """Parse, migrate and validate a single config file.

        Raises:
            OSError: If the file cannot be read.
            json.JSONDecodeError: If the file is not valid JSON.
            MCPJiraError: If the content is not a usable configuration.
        """
        raw = json.loads(self._reader(path))
        source = str(path)
        document = parse_config_document(raw, source=source)
        config = to_multi_instance(document, env=self.environ, source=source)

        validation = validate_config(config)
        for warning in validation.warnings:
            logger.warning(f"{source}: {warning}")
        if not validation.is_valid:
            report = format_validation_results(validation, "Jira Configuration")
            logger.error(f"Configuration validation failed for {source}:\n{report}")
            raise InvalidConfigFormatError("; ".join(validation.errors), source)
        return config

    def load(self, working_dir: str | None) -> MultiInstanceConfig:
        """Return the first usable configuration for ``working_dir``.

        Raises:
            ConfigNotFoundError: If no candidate yields a valid configuration;
                carries the attempted paths and the last underlying error.
        """
        self.opencode.apply(working_dir, self.environ)

        attempted: list[str] = []
        last_error: Exception | None = None
        for path in self.candidate_paths(working_dir):
            attempted.append(str(path))
            try:
                config = self.load_file(path)
            except FileNotFoundError as e:
                logger.debug(f"No config at {path}")
                # A missing file never hides a real parse or validation failure
                if last_error is None or isinstance(last_error, FileNotFoundError):
                    last_error = e
                continue
            except (OSError, UnicodeDecodeError, json.JSONDecodeError, MCPJiraError) as e:
                logger.warning(f"Config loading failed at {path}: {e}")
                last_error = e
                continue

            logger.info(
                f"Loaded Jira config from {path} "
                f"(instances: {', '.join(config.instances) or 'none'}; "
                f"projects: {', '.join(config.projects) or 'none'})"
            )
            return config

        logger.error(
            f"No valid configuration found for working_dir={working_dir}. "
            f"Attempted: {', '.join(attempted)}"
        )
        raise ConfigNotFoundError(attempted, last_error) from last_error

