"""Locate the first balanced JSON object inside free-form model output.

LLMs wrap JSON in prose and markdown fences despite being told not to.
Rather than trusting a bare ``json.loads`` on the whole response, the
analysis engine scans for the first ``{`` and walks forward until the
matching ``}``, ignoring braces inside string literals.
"""

from __future__ import annotations


def find_first_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` span in *text*, or ``None``.

    The scan is string-aware: braces inside double-quoted strings (including
    escaped quotes) do not affect nesting depth.  If an opening brace never
    closes, the scan restarts from the next ``{`` so a stray brace in a
    preamble does not hide a later, well-formed object.
    """
    start = text.find("{")
    while start != -1:
        end = _match_closing_brace(text, start)
        if end is not None:
            return text[start : end + 1]
        start = text.find("{", start + 1)
    return None


def _match_closing_brace(text: str, start: int) -> int | None:
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
                return index
    return None
