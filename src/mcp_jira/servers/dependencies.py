"""Access to lifespan-owned state from inside tools."""

import logging

from fastmcp import Context

from mcp_jira.sessions import Session, SessionStore

from .context import MainAppContext

logger = logging.getLogger("mcp-jira.servers.dependencies")


def get_app_context(ctx: Context) -> MainAppContext:
    """Return the :class:`MainAppContext` yielded by the server lifespan."""
    lifespan_ctx = ctx.request_context.lifespan_context  # type: ignore
    app_ctx = (
        lifespan_ctx.get("app_lifespan_context")
        if isinstance(lifespan_ctx, dict)
        else lifespan_ctx
    )
    if not isinstance(app_ctx, MainAppContext):
        logger.error("MainAppContext is missing from the lifespan context.")
        raise ValueError("Jira server is not initialised. Lifespan context missing.")
    return app_ctx


def get_session_id(ctx: Context) -> str:
    """Session id of the calling client connection.

    HTTP transports provide one; for stdio the connection object itself
    identifies the session.
    """
    session_id = getattr(ctx, "session_id", None)
    if session_id:
        return session_id
    return f"stdio-{id(ctx.session):x}"


def get_session(ctx: Context) -> Session:
    """Return the caller's session, creating it for unknown ids.

    A new session is removed from the store when its MCP connection closes.
    """
    store = get_app_context(ctx).session_store
    session_id = get_session_id(ctx)
    session = store.get_session(session_id)
    if session is None:
        session = store.create_session(session_id)
        _remove_on_disconnect(ctx, store, session_id)
    return session


def _remove_on_disconnect(ctx: Context, store: SessionStore, session_id: str) -> None:
    # ServerSession closes this stack when its transport goes away
    exit_stack = getattr(ctx.session, "_exit_stack", None)
    if exit_stack is None:
        logger.debug(f"No connection teardown hook for session {session_id}")
        return
    exit_stack.callback(store.remove_session, session_id)
