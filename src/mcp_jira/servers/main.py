"""Main FastMCP server setup for the Jira MCP server."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from mcp_jira.jira.context import JiraContextAssembler
from mcp_jira.jira.discovery import ConfigFileLocator
from mcp_jira.sessions import SessionStore
from mcp_jira.utils.env import is_env_truthy

from .context import MainAppContext
from .jira import jira_mcp

logger = logging.getLogger("mcp-jira.servers.main")


async def health_check(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


def create_app_context(
    locator: ConfigFileLocator | None = None,
    store: SessionStore | None = None,
) -> MainAppContext:
    store = store or SessionStore()
    return MainAppContext(
        session_store=store,
        assembler=JiraContextAssembler(locator=locator, store=store),
        read_only=is_env_truthy("READ_ONLY_MODE"),
    )


@asynccontextmanager
async def main_lifespan(app: FastMCP[MainAppContext]) -> AsyncIterator[dict]:
    logger.info("Main Jira MCP server lifespan starting...")
    app_context = create_app_context()
    logger.info(f"Read-only mode: {'ENABLED' if app_context.read_only else 'DISABLED'}")

    try:
        yield {"app_lifespan_context": app_context}
    except Exception as e:
        logger.error(f"Error during lifespan: {e}", exc_info=True)
        raise
    finally:
        logger.info("Main Jira MCP server lifespan shutting down...")
        # Transport closed: every session of this process ends here
        await app_context.session_store.aclose()
        logger.info("Main Jira MCP server lifespan shutdown complete.")


main_mcp = FastMCP(name="Jira MCP", lifespan=main_lifespan)
main_mcp.mount(jira_mcp)


@main_mcp.custom_route("/healthz", methods=["GET"], include_in_schema=False)
async def _health_check_route(request: Request) -> JSONResponse:
    return await health_check(request)
