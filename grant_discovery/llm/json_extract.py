"""Pull the first JSON object out of free-form model text.

Models are told to return only JSON but routinely wrap it in prose or code
fences. We scan for the first balanced ``{...}`` span (ignoring braces inside
string literals) and parse that span alone.
"""

import json
from typing import Any

from ..errors import MalformedJsonError, NoJsonObjectError


def find_json_object(text: str) -> str:
    """Return the first balanced brace-delimited substring of ``text``.

    Raises:
        NoJsonObjectError: no ``{`` present, or the first object never closes.
    """
    start = text.find("{")
    if start == -1:
        raise NoJsonObjectError("No JSON object found in model response")

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]

    raise NoJsonObjectError("Unterminated JSON object in model response")


def extract_first_json_object(text: str) -> dict[str, Any]:
    """Parse the first JSON object embedded in ``text``.

    Raises:
        NoJsonObjectError: nothing brace-delimited to parse.
        MalformedJsonError: the span was found but is not valid JSON.
    """
    candidate = find_json_object(text or "")
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise MalformedJsonError(f"Malformed JSON in model response: {exc.msg}") from exc
    return parsed
