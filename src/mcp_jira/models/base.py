"""
Base model for Jira API payloads.
"""

from typing import Any

from pydantic import BaseModel


class ApiModel(BaseModel):
    """
    Base for models built from Jira REST responses.
    """

    @classmethod
    def from_api_response(cls, data: dict[str, Any], **kwargs: Any) -> "ApiModel":
        raise NotImplementedError
