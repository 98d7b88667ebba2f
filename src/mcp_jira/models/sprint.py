"""
Jira sprint models.
"""

from typing import Any

from .base import ApiModel

SPRINT_KEYS = frozenset({"id", "name", "state"})


class JiraSprintInfo(ApiModel):
    """
    Model representing a sprint as embedded in an issue's sprint field.
    """

    id: int | None = None
    name: str | None = None
    state: str | None = None
    board_id: int | None = None

    @classmethod
    def looks_like_sprint(cls, value: Any) -> bool:
        """True for a dict carrying the ``id``, ``name`` and ``state`` keys."""
        return isinstance(value, dict) and SPRINT_KEYS <= value.keys()

    @classmethod
    def from_api_response(cls, data: dict[str, Any], **kwargs: Any) -> "JiraSprintInfo":
        """
        Create a JiraSprintInfo from a Jira API response.
        """
        if not data:
            return cls()

        return cls(
            id=data.get("id"),
            name=data.get("name"),
            state=data.get("state"),
            board_id=data.get("boardId") or data.get("originBoardId"),
        )
