"""URL-related utility functions for MCP Jira."""

import re
from urllib.parse import urlparse

CLOUD_SUFFIX = ".atlassian.net"


def is_atlassian_cloud_url(url: str) -> bool:
    """Determine if a URL belongs to Atlassian Cloud or Server/Data Center.

    Args:
        url: The URL to check

    Returns:
        True if the URL is for an Atlassian Cloud instance, False for Server/Data Center
    """
    if not url:
        return False

    hostname = urlparse(url).hostname or ""

    # Localhost and private addresses are always Server/Data Center
    if (
        hostname == "localhost"
        or re.match(r"^127\.", hostname)
        or re.match(r"^192\.168\.", hostname)
        or re.match(r"^10\.", hostname)
        or re.match(r"^172\.(1[6-9]|2[0-9]|3[0-1])\.", hostname)
    ):
        return False

    return (
        ".atlassian.net" in hostname
        or ".jira.com" in hostname
        or ".jira-dev.com" in hostname
        or "api.atlassian.com" in hostname
        or ".atlassian-us-gov-mod.net" in hostname
        or ".atlassian-us-gov.net" in hostname
    )


def build_jira_base_url(domain: str) -> str:
    """Turn a configured instance domain into a base URL.

    ``mycompany`` becomes ``https://mycompany.atlassian.net``; full hostnames
    and URLs are kept as given (minus trailing slashes).
    """
    value = domain.strip().rstrip("/")
    if not value:
        raise ValueError("Jira domain must not be empty")
    if "://" in value:
        return value
    if "." in value or ":" in value:
        return f"https://{value}"
    return f"https://{value}{CLOUD_SUFFIX}"
