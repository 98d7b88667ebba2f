"""
Pydantic models for Jira API responses.
"""

from .base import ApiModel
from .sprint import JiraSprintInfo

__all__ = ["ApiModel", "JiraSprintInfo"]
