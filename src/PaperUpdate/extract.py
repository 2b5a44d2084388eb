# === NAVMAP v1 ===
# {
#   "module": "PaperUpdate.extract",
#   "purpose": "Recover the version catalog object literal embedded in a download script",
#   "sections": [
#     {"id": "scanner", "name": "Object Span Scanner", "anchor": "SCAN", "kind": "helpers"},
#     {"id": "sanitize", "name": "Sanitisation & Lexing", "anchor": "LEX", "kind": "helpers"},
#     {"id": "api", "name": "Public API", "anchor": "API", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Lenient extraction of an object literal from script-like text.

The catalog is published as a JavaScript file, not as a JSON document, so the
interesting object has to be located inside arbitrary script text before it
can be parsed. Location and parsing are split into two passes:

1. :func:`find_object_span` walks the text with an explicit depth counter,
   skipping string literals and comments, and stops at the first top-level
   object that contains at least one nested object. Flat objects such as
   ``{ passive: true }`` option bags are skipped.
2. :func:`sanitize_object_text` lexes the located snippet, drops comments and
   trailing commas, quotes bare keys, and re-emits the result as strict JSON
   that :func:`json.loads` validates.

Only the dialect the catalog actually uses is supported: quoted or bare keys,
nested objects, strings, numbers, booleans, ``null`` and arrays.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Tuple

from .errors import ExtractionFailure

__all__ = ["find_object_span", "sanitize_object_text", "extract_object"]

LOGGER = logging.getLogger("PaperUpdate.extract")

_QUOTES = frozenset("\"'`")

# --- Object Span Scanner -------------------------------------------------------


def _skip_string(text: str, index: int) -> int:
    """Return the index just past the string literal opening at ``index``."""

    quote = text[index]
    position = index + 1
    while position < len(text):
        char = text[position]
        if char == "\\":
            position += 2
            continue
        if char == quote:
            return position + 1
        if char == "\n" and quote != "`":
            # Unterminated single-line literal; resume scanning on the next line.
            return position
        position += 1
    return position


def _skip_comment(text: str, index: int) -> int:
    """Return the index just past the comment opening at ``index``."""

    if text.startswith("//", index):
        end = text.find("\n", index)
        return len(text) if end == -1 else end
    end = text.find("*/", index + 2)
    return len(text) if end == -1 else end + 2


def find_object_span(text: str) -> Tuple[int, int]:
    """Locate the first top-level object literal that contains a nested object.

    Args:
        text: Arbitrary script text.

    Returns:
        ``(start, end)`` such that ``text[start:end]`` is the object literal.

    Raises:
        ExtractionFailure: If no qualifying object closes before the text ends.
    """

    depth = 0
    start = -1
    has_nested = False
    index = 0
    length = len(text)

    while index < length:
        char = text[index]
        if char in _QUOTES:
            index = _skip_string(text, index)
            continue
        if char == "/" and (text.startswith("//", index) or text.startswith("/*", index)):
            index = _skip_comment(text, index)
            continue

        if char == "{":
            if depth == 0:
                start = index
                has_nested = False
            else:
                has_nested = True
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                if has_nested:
                    return start, index + 1
                LOGGER.debug(
                    "skipping flat object literal",
                    extra={"stage": "extract", "start": start, "end": index + 1},
                )
                start = -1
        index += 1

    if depth > 0:
        raise ExtractionFailure(
            f"Object literal starting at offset {start} is never closed"
        )
    raise ExtractionFailure("No object literal with nested objects found in catalog text")


# --- Sanitisation & Lexing -----------------------------------------------------

_TOKEN_PATTERN = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<comment>//[^\n]*|/\*.*?\*/)
    |(?P<dstring>"(?:[^"\\\n]|\\.)*")
    |(?P<sstring>'(?:[^'\\\n]|\\.)*')
    |(?P<number>-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?)
    |(?P<ident>[A-Za-z_$][A-Za-z0-9_$]*)
    |(?P<punct>[{}\[\]:,])
    """,
    re.VERBOSE | re.DOTALL,
)

_LITERALS = frozenset({"true", "false", "null"})

Token = Tuple[str, str, int]


def _tokenize(snippet: str) -> List[Token]:
    tokens: List[Token] = []
    position = 0
    while position < len(snippet):
        match = _TOKEN_PATTERN.match(snippet, position)
        if match is None:
            raise ExtractionFailure(
                f"Unexpected character {snippet[position]!r} at offset {position} of catalog object"
            )
        kind = match.lastgroup or ""
        if kind not in {"ws", "comment"}:
            tokens.append((kind, match.group(), position))
        position = match.end()
    return tokens


def _single_to_double(literal: str) -> str:
    """Re-quote a single-quoted string literal as a JSON string."""

    def _swap(match: "re.Match[str]") -> str:
        token = match.group(0)
        if token == "\\'":
            return "'"
        if token == '"':
            return '\\"'
        return token

    return '"' + re.sub(r'\\.|"', _swap, literal[1:-1], flags=re.DOTALL) + '"'


def sanitize_object_text(snippet: str) -> str:
    """Convert a lenient object literal into strict JSON text.

    Comments are removed, commas directly before a closing brace or bracket
    are dropped, bare keys are quoted, and single-quoted strings are
    re-quoted.

    Raises:
        ExtractionFailure: On characters outside the supported dialect or a
            bare identifier used as a value.
    """

    tokens = _tokenize(snippet)
    parts: List[str] = []
    for index, (kind, value, offset) in enumerate(tokens):
        following = tokens[index + 1][1] if index + 1 < len(tokens) else ""
        if kind == "punct":
            if value == "," and following in {"}", "]"}:
                continue
            parts.append(value)
        elif kind == "dstring" or kind == "number":
            parts.append(value)
        elif kind == "sstring":
            parts.append(_single_to_double(value))
        elif kind == "ident":
            if following == ":":
                parts.append(json.dumps(value))
            elif value in _LITERALS:
                parts.append(value)
            else:
                raise ExtractionFailure(
                    f"Unsupported bare value {value!r} at offset {offset} of catalog object"
                )
    return "".join(parts)


# --- Public API ----------------------------------------------------------------


def extract_object(text: str) -> Dict[str, Any]:
    """Recover and parse the catalog object embedded in ``text``.

    Args:
        text: Raw catalog script.

    Returns:
        Parsed mapping, preserving the key order of the source.

    Raises:
        ExtractionFailure: If no qualifying object exists or it is malformed.

    Examples:
        >>> extract_object('var v = { "a": { "x": 1, }, }; // end')
        {'a': {'x': 1}}
    """

    start, end = find_object_span(text)
    sanitized = sanitize_object_text(text[start:end])
    try:
        parsed = json.loads(sanitized)
    except json.JSONDecodeError as exc:
        raise ExtractionFailure(f"Catalog object is not well-formed: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ExtractionFailure("Catalog object did not parse to a mapping")
    LOGGER.debug(
        "extracted catalog object",
        extra={"stage": "extract", "start": start, "end": end, "keys": len(parsed)},
    )
    return parsed
