"""Placeholder substitution for note templates and file names.

Placeholders take the form ``{{ field }}``, ``{{ ENUM:field }}`` or
``{{ LIST:field }}`` with exactly one space inside each pair of braces.
Dotted names such as ``userData.personalRating`` walk nested mappings. Any
other ``{{ ... }}`` text is left untouched.

``ENUM`` repeats the line containing it once per element of the referenced
sequence and concatenates the copies, so ``{{ title }} (by {{ ENUM:artists }})``
yields one title per artist.
"""
from __future__ import annotations

import copy
import re
import unicodedata
from collections.abc import Mapping, Sequence
from typing import Any

from .models import MediaTypeModel

TOKEN_RE = re.compile(r"\{\{ (?:(?P<operator>ENUM|LIST):)?(?P<field>[A-Za-z_][A-Za-z0-9_.]*) \}\}")

LIST_SEPARATOR = ", "
MAX_FILE_NAME_BYTES = 250

ILLEGAL_FILE_NAME_CHARACTERS = re.compile(r'[\\/,#%&{}*<>$"@.?|]')
COLON_RUN_RE = re.compile(r":+")
WHITESPACE_RE = re.compile(r"\s+")

PLACEHOLDER_MASK = "__mediadb_placeholder_{}__"
PLACEHOLDER_MASK_RE = re.compile(r"__mediadb_placeholder_(\d+)__")

_MISSING = object()


def template_context(source: MediaTypeModel | Mapping[str, Any]) -> dict[str, Any]:
    """Values a template can reference for ``source``.

    For records this is the export payload with ``userData`` kept nested and
    its fields also available at the top level.
    """

    if isinstance(source, MediaTypeModel):
        user_data = source.user_data.model_dump(by_alias=True, mode="json")
        context = {**user_data, **source.get_without_user_data()}
        context["userData"] = user_data
        return context
    return dict(source)


def _resolve(context: Mapping[str, Any], path: str) -> Any:
    value: Any = context
    for part in path.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def stringify(value: Any) -> str:
    """String form used when substituting ``value`` into a template."""

    if value is None or value is _MISSING:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if _is_sequence(value):
        return LIST_SEPARATOR.join(stringify(item) for item in value)
    return str(value)


def _enum_values(value: Any) -> list[Any]:
    if value is _MISSING or value is None:
        return []
    if _is_sequence(value):
        return list(value)
    return [value]


def _bullet_list(value: Any) -> str:
    return "\n".join(f"- {stringify(item)}" for item in _enum_values(value))


def _render_segment(segment: str, context: Mapping[str, Any]) -> str:
    enum_fields = [
        match.group("field")
        for match in TOKEN_RE.finditer(segment)
        if match.group("operator") == "ENUM"
    ]
    enum_values = {field: _enum_values(_resolve(context, field)) for field in enum_fields}
    repeats = max((len(values) for values in enum_values.values()), default=1) or 1

    def substitute(match: re.Match[str], index: int) -> str:
        field = match.group("field")
        operator = match.group("operator")
        if operator == "ENUM":
            values = enum_values[field]
            return stringify(values[index]) if index < len(values) else ""
        value = _resolve(context, field)
        if operator == "LIST":
            return _bullet_list(value)
        return stringify(value)

    return "".join(
        TOKEN_RE.sub(lambda match: substitute(match, index), segment) for index in range(repeats)
    )


def render_template(template: str, source: MediaTypeModel | Mapping[str, Any]) -> str:
    """Substitute every recognised placeholder in ``template``.

    Fields missing from ``source`` render as an empty string.
    """

    context = template_context(source)
    return "".join(_render_segment(segment, context) for segment in template.splitlines(keepends=True))


def mask_placeholders(text: str) -> tuple[str, list[re.Match[str]]]:
    """Swap placeholders in ``text`` for plain markers that survive YAML parsing.

    Returns the masked text and the replaced tokens, indexed by marker number.
    """

    tokens: list[re.Match[str]] = []

    def replace(match: re.Match[str]) -> str:
        tokens.append(match)
        return PLACEHOLDER_MASK.format(len(tokens) - 1)

    return TOKEN_RE.sub(replace, text), tokens


def _token_text(token: re.Match[str], context: Mapping[str, Any] | None) -> str:
    if context is None:
        return token.group(0)
    value = _resolve(context, token.group("field"))
    if token.group("operator") == "LIST":
        return _bullet_list(value)
    return stringify(value)


def _fill_text(text: str, tokens: list[re.Match[str]], context: Mapping[str, Any] | None) -> str:
    return PLACEHOLDER_MASK_RE.sub(lambda match: _token_text(tokens[int(match.group(1))], context), text)


def _fill(value: Any, tokens: list[re.Match[str]], context: Mapping[str, Any] | None) -> Any:
    if isinstance(value, str):
        whole = PLACEHOLDER_MASK_RE.fullmatch(value)
        if whole is not None and context is not None:
            token = tokens[int(whole.group(1))]
            resolved = _resolve(context, token.group("field"))
            if token.group("operator") == "ENUM":
                return [copy.deepcopy(item) for item in _enum_values(resolved)]
            if token.group("operator") is None and resolved is not _MISSING and resolved is not None:
                return copy.deepcopy(resolved)
        return _fill_text(value, tokens, context)
    if isinstance(value, list):
        filled: list[Any] = []
        for item in value:
            result = _fill(item, tokens, context)
            # a lone placeholder item holding a sequence expands in place
            if isinstance(item, str) and isinstance(result, list) and PLACEHOLDER_MASK_RE.fullmatch(item):
                filled.extend(result)
            else:
                filled.append(result)
        return filled
    if isinstance(value, dict):
        return {
            _fill_text(key, tokens, context) if isinstance(key, str) else key: _fill(item, tokens, context)
            for key, item in value.items()
        }
    return value


def fill_placeholders(
    data: Any, tokens: list[re.Match[str]], source: MediaTypeModel | Mapping[str, Any] | None = None
) -> Any:
    """Substitute masked placeholders inside parsed structured ``data``.

    A string made of a single placeholder takes the referenced value itself,
    and an ``ENUM`` placeholder that is a whole list item expands to one item
    per element. Without ``source`` the original placeholder text is restored.
    """

    context = template_context(source) if source is not None else None
    return _fill(data, tokens, context)


def sanitize_file_name(name: str) -> str:
    """Strip characters that are unsafe in file names on common platforms."""

    cleaned = "".join(" " if unicodedata.category(char) == "Cc" else char for char in name)
    cleaned = ILLEGAL_FILE_NAME_CHARACTERS.sub("", cleaned)
    cleaned = COLON_RUN_RE.sub(" -", cleaned)
    return WHITESPACE_RE.sub(" ", cleaned).strip()


def truncate_file_name(name: str, max_bytes: int = MAX_FILE_NAME_BYTES) -> str:
    """Cut ``name`` to at most ``max_bytes`` of UTF-8 on a code point boundary."""

    encoded = name.encode("utf-8")
    if len(encoded) <= max_bytes:
        return name
    return encoded[:max_bytes].decode("utf-8", errors="ignore").rstrip()
