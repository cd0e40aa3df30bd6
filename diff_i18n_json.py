#!/usr/bin/env python3
"""Compute which keys of a locale JSON file changed since the last commit.

The previous snapshot comes from a pluggable provider; by default the file's
content at git HEAD. A file that is not tracked yet, a missing git binary or
a directory outside any repository all count as "no previous version", so
every current key is reported as added.

Examples:
    python diff_i18n_json.py locales/en/common.json
    python diff_i18n_json.py locales/en.json --revision HEAD~3 --json
"""

from __future__ import annotations

import argparse
import json
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from i18n_json_codec import (
    flatten_json,
    load_json_text,
    read_flat_json_file,
    unique_keys,
)

SnapshotProvider = Callable[[Path], "str | None"]


@dataclass
class ChangeSet:
    added: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    replaced: list[str] = field(default_factory=list)

    @property
    def changed(self) -> list[str]:
        return unique_keys(self.added, self.replaced)

    def is_empty(self) -> bool:
        return not (self.added or self.deleted or self.replaced)


def run_git(cwd: Path, *args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        ["git", "-C", str(cwd), *args],
        text=True,
        encoding="utf-8",
        capture_output=True,
        check=False,
    )


class GitSnapshotProvider:
    """Return a file's text at ``revision``, or None when git has no copy."""

    def __init__(self, revision: str = "HEAD") -> None:
        self.revision = revision

    def __call__(self, path: Path) -> str | None:
        path = path.resolve()
        try:
            proc = run_git(path.parent, "show", f"{self.revision}:./{path.name}")
        except (OSError, UnicodeDecodeError):
            return None
        if proc.returncode != 0:
            return None
        return proc.stdout


def no_snapshot(path: Path) -> str | None:
    return None


def diff_flat_json(previous: dict[str, str], current: dict[str, str]) -> ChangeSet:
    changes = ChangeSet()
    for key, old_value in previous.items():
        if key not in current:
            changes.deleted.append(key)
        elif current[key] != old_value:
            changes.replaced.append(key)
    for key in current:
        if key not in previous:
            changes.added.append(key)
    return changes


def extract_change_set(
    path: Path,
    snapshot_provider: SnapshotProvider,
    *,
    force_all: bool = False,
) -> ChangeSet:
    current = read_flat_json_file(path, required=True)
    if force_all:
        return ChangeSet(replaced=list(current))

    previous_text = snapshot_provider(path)
    previous = flatten_json(load_json_text(previous_text or ""))
    return diff_flat_json(previous, current)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Show added/changed/deleted keys of a locale JSON file versus git."
    )
    parser.add_argument("file", type=Path, help="Locale JSON file to compare.")
    parser.add_argument(
        "--revision",
        default="HEAD",
        help="Git revision holding the previous version. Default: HEAD",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Ignore history and report every key as replaced.",
    )
    parser.add_argument("--json", action="store_true", help="Print JSON output.")
    args = parser.parse_args()

    try:
        changes = extract_change_set(
            args.file,
            GitSnapshotProvider(args.revision),
            force_all=args.force,
        )
    except (OSError, ValueError) as exc:
        print(f"[error] {exc}")
        return 2

    if args.json:
        print(
            json.dumps(
                {
                    "added": changes.added,
                    "replaced": changes.replaced,
                    "deleted": changes.deleted,
                },
                ensure_ascii=False,
                indent=2,
            )
        )
        return 0

    for label, keys in (
        ("added", changes.added),
        ("replaced", changes.replaced),
        ("deleted", changes.deleted),
    ):
        print(f"{label}: {len(keys)}")
        for key in keys:
            print(f"  - {key}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
