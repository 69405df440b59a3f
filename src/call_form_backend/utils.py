"""
Helpers for turning webhook input into safe text.

This module provides helper functions for:
- Collapsing whitespace in submitted values
- Defanging markdown before text reaches the tracker's note renderer
- Decoding bracket-notation form bodies into nested mappings
- Generating request identifiers
"""

from __future__ import annotations

import re
import secrets
import time
from pathlib import Path
from typing import Any, Dict, Iterable, Tuple

# Markdown control characters, list markers after a line break and horizontal rules
MARKDOWN_PATTERN = re.compile(r"([#*_~>`\[\]()]|\n(\d+\.|-) )|---+")
SPACES_PATTERN = re.compile(r" +")
FORM_KEY_PATTERN = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
REQUEST_ID_PATTERN = re.compile(r"\d{13}-\d{4}", re.ASCII)


def escape_value(value: str) -> str:
    """
    Flatten a submitted value onto a single, trimmed line.

    Example:
        >>> escape_value("  Jane \\n  Doe ")
        "Jane Doe"
    """
    return SPACES_PATTERN.sub(" ", value.replace("\n", " ")).strip()


def escape_mtmd(value: str) -> str:
    """
    Replace markdown syntax with spaces so task notes render as plain text.

    Example:
        >>> escape_mtmd("**bold** [link](x)")
        "  bold    link  x "
    """
    return MARKDOWN_PATTERN.sub(" ", value)


def escape_task_text(value: str) -> str:
    return escape_value(escape_mtmd(value))


def parse_form_pairs(pairs: Iterable[Tuple[str, Any]]) -> Dict[str, Any]:
    """
    Decode bracket-notation form keys into nested dictionaries.

    ``fields[name][value]=Jane`` becomes ``{"fields": {"name": {"value": "Jane"}}}``.
    Repeated keys keep the last value; a scalar on the path is replaced by a mapping.

    Args:
        pairs: Decoded ``(key, value)`` pairs in body order

    Returns:
        The nested mapping
    """
    result: Dict[str, Any] = {}
    for key, value in pairs:
        match = FORM_KEY_PATTERN.match(key)
        if match is None:
            result[key] = value
            continue
        path = [match.group(1), *re.findall(r"\[([^\[\]]*)\]", match.group(2))]
        node = result
        for part in path[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[path[-1]] = value
    return result


def new_request_id() -> str:
    """Millisecond timestamp plus a four digit random suffix, e.g. ``1718000000000-4821``."""
    return f"{int(time.time() * 1000)}-{secrets.randbelow(9000) + 1000}"


def is_request_id(value: str) -> bool:
    return bool(REQUEST_ID_PATTERN.fullmatch(value or ""))


def ensure_directory(path: Path) -> Path:
    """
    Create a directory if it doesn't exist, including parent directories.

    Raises:
        OSError: If directory creation fails due to permissions or other I/O errors
    """
    path.mkdir(parents=True, exist_ok=True)
    return path
