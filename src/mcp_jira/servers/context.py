from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mcp_jira.jira.context import JiraContextAssembler
    from mcp_jira.sessions import SessionStore


@dataclass(frozen=True)
class MainAppContext:
    """Context holding the session store and context assembler for all tools."""

    session_store: SessionStore
    assembler: JiraContextAssembler
    read_only: bool = False
