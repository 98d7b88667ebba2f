"""Utility functions for building Jira requests."""


def escape_jql_string(value: str) -> str:
    """
    Quote a value as a JQL string literal.

    Backslashes and double quotes are escaped, in that order.
    """
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
