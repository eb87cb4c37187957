"""
Tolerant JSON Extraction

Model output is not guaranteed to be well-formed JSON. These helpers form
the fallback tier used after a strict schema decode fails: they locate the
JSON payload inside surrounding prose, walk bracket-balanced structures and
pull individual fields with targeted patterns, so trailing commas, stray
text or unescaped characters do not lose the whole response.

Only flat (scalar) parameter maps are recovered by this tier.
"""

import json
import re
from typing import Any

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)
_STRING_VALUE = r'"((?:[^"\\]|\\.)*)"'
_SCALAR_VALUE = r'(true|false|null|-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)'
_PAIR_PATTERN = re.compile(rf'"([^"\\]+)"\s*:\s*(?:{_STRING_VALUE}|{_SCALAR_VALUE})')

_OPENERS = {"{": "}", "[": "]"}


def extract_json_block(text: str) -> str | None:
    """
    Locate the JSON object inside a model response.

    A fenced ```json block wins; otherwise the span from the first '{' to the
    last '}' is returned. None if the text holds no object at all.
    """
    if not text:
        return None

    fenced = _FENCE_PATTERN.search(text)
    if fenced:
        return fenced.group(1)

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def strip_trailing_commas(text: str) -> str:
    """Drop commas that directly precede a closing bracket, outside string literals."""
    out: list[str] = []
    comma_at = -1
    in_string = False
    escaped = False

    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char in "}]":
            if comma_at >= 0:
                del out[comma_at]
                comma_at = -1
        elif char == ",":
            comma_at = len(out)
        elif not char.isspace():
            comma_at = -1
            in_string = char == '"'
        out.append(char)

    return "".join(out)


def find_matching_bracket(text: str, start: int) -> int:
    """
    Return the index of the bracket closing the one at text[start].

    Brackets inside string literals are ignored. Returns -1 if text[start]
    is not an opening bracket or the structure never closes.
    """
    if start < 0 or start >= len(text) or text[start] not in _OPENERS:
        return -1

    opener = text[start]
    closer = _OPENERS[opener]
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
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return index
    return -1


def split_objects(array_text: str) -> list[str]:
    """Split the body of a JSON array into its top-level brace-balanced objects."""
    objects = []
    index = 0
    while True:
        start = array_text.find("{", index)
        if start == -1:
            break
        end = find_matching_bracket(array_text, start)
        if end == -1:
            break
        objects.append(array_text[start : end + 1])
        index = end + 1
    return objects


def _find_value_start(text: str, key: str, opener: str) -> int:
    match = re.search(rf'"{re.escape(key)}"\s*:\s*{re.escape(opener)}', text)
    if not match:
        return -1
    return match.end() - 1


def extract_array(text: str, key: str) -> str | None:
    """Return the bracket-balanced array text stored under key, or None."""
    start = _find_value_start(text, key, "[")
    if start == -1:
        return None
    end = find_matching_bracket(text, start)
    if end == -1:
        return None
    return text[start : end + 1]


def extract_object(text: str, key: str) -> str | None:
    """Return the brace-balanced object text stored under key, or None."""
    start = _find_value_start(text, key, "{")
    if start == -1:
        return None
    end = find_matching_bracket(text, start)
    if end == -1:
        return None
    return text[start : end + 1]


def remove_object(text: str, key: str) -> str:
    """Return text with the object stored under key blanked out."""
    start = _find_value_start(text, key, "{")
    if start == -1:
        return text
    end = find_matching_bracket(text, start)
    if end == -1:
        return text
    return text[:start] + "{}" + text[end + 1 :]


def _unescape(raw: str) -> str:
    try:
        return json.loads(f'"{raw}"')
    except json.JSONDecodeError:
        return raw


def _convert_scalar(raw: str) -> Any:
    if raw == "true":
        return True
    if raw == "false":
        return False
    if raw == "null":
        return None
    try:
        return int(raw)
    except ValueError:
        return float(raw)


def extract_string_field(text: str, key: str) -> str | None:
    """Return the first string value stored under key, or None."""
    match = re.search(rf'"{re.escape(key)}"\s*:\s*{_STRING_VALUE}', text, re.DOTALL)
    if not match:
        return None
    return _unescape(match.group(1))


def extract_scalar_field(text: str, key: str) -> Any:
    """Return the first string, number, boolean or null stored under key."""
    match = re.search(
        rf'"{re.escape(key)}"\s*:\s*(?:{_STRING_VALUE}|{_SCALAR_VALUE})', text, re.DOTALL
    )
    if not match:
        return None
    if match.group(1) is not None:
        return _unescape(match.group(1))
    return _convert_scalar(match.group(2))


def extract_flat_parameters(object_text: str | None) -> dict[str, Any]:
    """
    Recover the scalar key/value pairs of a parameters object.

    Nested objects and arrays are skipped.
    """
    if not object_text:
        return {}

    body = object_text.strip()
    if body.startswith("{") and body.endswith("}"):
        body = body[1:-1]
    body = _blank_nested(body)

    parameters: dict[str, Any] = {}
    for match in _PAIR_PATTERN.finditer(body):
        key = match.group(1)
        if match.group(2) is not None:
            parameters[key] = _unescape(match.group(2))
        else:
            parameters[key] = _convert_scalar(match.group(3))
    return parameters


def _blank_nested(body: str) -> str:
    """Replace nested objects and arrays with empty placeholders."""
    result = []
    index = 0
    in_string = False
    escaped = False
    while index < len(body):
        char = body[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            result.append(char)
            index += 1
            continue

        if char == '"':
            in_string = True
        elif char in _OPENERS:
            end = find_matching_bracket(body, index)
            if end == -1:
                break
            result.append(char + _OPENERS[char])
            index = end + 1
            continue
        result.append(char)
        index += 1
    return "".join(result)
