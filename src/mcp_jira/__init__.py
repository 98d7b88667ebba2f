import asyncio
import logging
import os

import click
from dotenv import load_dotenv

from .logging_config import log_operation, setup_logger
from .utils.env import JIRA_CONFIG_PATH_ENV, is_env_truthy

__version__ = "0.3.0"

logger = logging.getLogger("mcp-jira")


@click.command()
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (can be used multiple times)",
)
@click.option(
    "--env-file", type=click.Path(exists=True, dir_okay=False), help="Path to .env file"
)
@click.option(
    "--transport",
    type=click.Choice(["stdio", "sse", "streamable-http"]),
    default="stdio",
    help="Transport type (stdio, sse or streamable-http)",
)
@click.option(
    "--host",
    default="127.0.0.1",
    help="Host to bind for HTTP transports",
)
@click.option(
    "--port",
    default=8000,
    help="Port to listen on for HTTP transports",
)
@click.option(
    "--log-dir",
    help="Directory to store log files",
)
@click.option(
    "--log-to-file/--no-log-to-file",
    default=False,
    help="Enable/disable file logging",
)
@click.option(
    "--jira-config-path",
    help="Path to .jira-config.json (or a directory containing it)",
)
def main(
    verbose: int,
    env_file: str | None,
    transport: str,
    host: str,
    port: int,
    log_dir: str | None,
    log_to_file: bool,
    jira_config_path: str | None,
) -> None:
    """MCP Jira Server - multi-instance Jira tools for MCP

    Each tool call names a working directory; the Jira instance and field
    mapping are resolved from the .jira-config.json found for it.
    """
    logging_level = "DEBUG" if verbose >= 2 else "INFO"
    setup_logger(
        name="mcp-jira",
        level=logging_level,
        log_to_file=log_to_file,
        log_dir=log_dir,
    )

    with log_operation(logger, "application_startup", app_version=__version__):
        # Load environment variables from file if specified, otherwise try default .env
        if env_file:
            logger.info(f"Loading environment from file: {env_file}")
            load_dotenv(env_file)
        else:
            logger.debug("Attempting to load environment from default .env file")
            load_dotenv()

        if jira_config_path:
            os.environ[JIRA_CONFIG_PATH_ENV] = jira_config_path
        if log_dir:
            os.environ["LOG_DIR"] = log_dir

        if is_env_truthy("READ_ONLY_MODE"):
            logger.info("READ_ONLY_MODE is set; all bundled tools are read-only")

        from .servers import main_mcp

        run_kwargs: dict = {"transport": transport}
        if transport != "stdio":
            run_kwargs.update(host=host, port=port)

        logger.info(f"Starting MCP Jira v{__version__} with {transport} transport")

    asyncio.run(main_mcp.run_async(**run_kwargs))


__all__ = ["main", "__version__", "setup_logger", "log_operation"]
