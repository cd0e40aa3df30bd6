#!/usr/bin/env python3
"""Flatten nested locale JSON into dotted keys and back.

Flat keys join path segments with ".". A literal "." inside a key segment is
escaped as PERIOD_ESC so splitting stays unambiguous:

    {"menu": {"file.open": "Open"}}  <->  {"menu.file~|~open": "Open"}

Arrays are walked like objects keyed by index ("arr.0", "arr.1", ...), and
every leaf value becomes a string. Unflattening therefore returns plain
objects with numeric string keys where the source had arrays.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

PERIOD_ESC = "~|~"


def escape_key(key: str) -> str:
    return key.replace(".", PERIOD_ESC)


def unescape_key(segment: str) -> str:
    return segment.replace(PERIOD_ESC, ".")


def leaf_to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    # bool/int/float keep their JSON spelling (true, 1.5, ...)
    return json.dumps(value, ensure_ascii=False)


def flatten_json(
    node: Any,
    parent_key: str = "",
    result: dict[str, str] | None = None,
) -> dict[str, str]:
    if result is None:
        result = {}

    if isinstance(node, dict):
        items = node.items()
    elif isinstance(node, list):
        items = enumerate(node)
    else:
        return result

    for key, value in items:
        escaped = escape_key(str(key))
        new_key = f"{parent_key}.{escaped}" if parent_key else escaped
        if isinstance(value, (dict, list)):
            flatten_json(value, new_key, result)
        elif value is not None:
            result[new_key] = leaf_to_text(value)
    return result


def unflatten_json(flat: dict[str, str]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for flat_key, value in flat.items():
        parts = [unescape_key(part) for part in flat_key.split(".")]
        node = result
        for part in parts[:-1]:
            current = node.get(part)
            if current is None:
                current = node[part] = {}
            if not isinstance(current, dict):
                raise ValueError(
                    f"Cannot set nested key under non-object segment: {part} ({flat_key})"
                )
            node = current
        node[parts[-1]] = value
    return result


def load_json_text(text: str) -> dict[str, Any] | list[Any]:
    raw = text.lstrip("\ufeff").strip()
    if not raw:
        return {}
    data = json.loads(raw)
    if not isinstance(data, (dict, list)):
        raise ValueError("Locale JSON root must be an object or an array")
    return data


def read_flat_json_file(path: Path, *, required: bool = False) -> dict[str, str]:
    """Read and flatten a locale file.

    A missing file is an empty mapping unless ``required`` is set. Malformed
    JSON is never swallowed.
    """
    if not path.is_file():
        if required:
            raise FileNotFoundError(f"Locale file not found: {path}")
        return {}
    try:
        tree = load_json_text(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise json.JSONDecodeError(f"{path}: {exc.msg}", exc.doc, exc.pos) from exc
    return flatten_json(tree)


def dumps_locale_json(tree: dict[str, Any]) -> str:
    text = json.dumps(tree, ensure_ascii=False, indent=2)
    # Blank line after each closed object keeps diffs readable.
    return text.replace("},\n", "},\n\n") + "\n"


def unique_keys(*key_lists: list[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for keys in key_lists:
        for key in keys:
            if key not in seen:
                ordered.append(key)
                seen.add(key)
    return ordered
