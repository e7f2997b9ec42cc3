from __future__ import annotations

import json
from typing import Any, Iterator


def balanced_object_end(text: str, start: int) -> int | None:
    """Return the index just past the ``{...}`` span opening at ``text[start]``.

    Braces inside JSON string literals (including escaped quotes) do not
    count towards nesting. Returns None when the span never closes.
    """
    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def iter_balanced_objects(text: str) -> Iterator[str]:
    """Yield the balanced ``{...}`` span opening at each ``{`` of ``text``, left to right.

    Every opening brace is a candidate, so nested spans are yielded after
    the span that encloses them, and an unterminated ``{`` does not hide the
    objects that follow it.
    """
    start = text.find("{")
    while start != -1:
        end = balanced_object_end(text, start)
        if end is not None:
            yield text[start:end]
        start = text.find("{", start + 1)


def extract_first_json_object(text: str) -> dict[str, Any] | None:
    """Return the first balanced span of ``text`` that parses as a JSON object.

    When a span parses, the objects nested inside it are not considered.
    """
    for span in iter_balanced_objects(text):
        try:
            data = json.loads(span)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    return None
