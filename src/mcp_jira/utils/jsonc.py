"""Helpers for JSON documents that may contain comments."""

import json
from typing import Any


def strip_json_comments(content: str) -> str:
    """Remove ``//`` and ``/* */`` comments outside of string literals.

    Line comments keep their terminating newline so error positions reported
    by the JSON parser still point at the right line.
    """
    result: list[str] = []
    in_string = False
    i = 0
    length = len(content)
    while i < length:
        char = content[i]
        nxt = content[i + 1] if i + 1 < length else ""

        if in_string:
            result.append(char)
            if char == "\\" and nxt:
                result.append(nxt)
                i += 2
                continue
            if char == '"':
                in_string = False
            i += 1
            continue

        if char == '"':
            in_string = True
            result.append(char)
            i += 1
        elif char == "/" and nxt == "/":
            end = content.find("\n", i)
            if end == -1:
                break
            i = end
        elif char == "/" and nxt == "*":
            end = content.find("*/", i + 2)
            i = length if end == -1 else end + 2
        else:
            result.append(char)
            i += 1
    return "".join(result)


def loads_jsonc(content: str) -> Any:
    """Parse JSON-with-comments text."""
    return json.loads(strip_json_comments(content))
