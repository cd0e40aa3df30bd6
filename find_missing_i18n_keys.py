#!/usr/bin/env python3
"""Find main-locale keys that other locales have not translated yet.

A key counts as missing when the locale's value is absent or empty. Keys
missing in every locale of a file are "common" and can be translated for all
locales in one call; the rest are specific to a locale (typically a locale
that was just added).

Examples:
    python find_missing_i18n_keys.py --dir locales --main en
    python find_missing_i18n_keys.py --dir locales --main en --fail-on-missing
"""

from __future__ import annotations

import argparse
import json
from dataclasses import dataclass, field
from pathlib import Path

from i18n_locales import (
    LocaleConfigError,
    LocaleInfo,
    detect_layout,
    find_locale,
    load_locales,
)


@dataclass
class MissingKeys:
    locale: str
    files: dict[str, list[str]] = field(default_factory=dict)


def find_missing_keys(
    locales_info: list[LocaleInfo], main_locale: str
) -> list[MissingKeys]:
    main_info = find_locale(locales_info, main_locale)
    if main_info is None:
        return []

    missing: list[MissingKeys] = []
    for info in locales_info:
        if info.locale == main_locale:
            continue
        entry = MissingKeys(locale=info.locale)
        for file_name, main_flat in main_info.files.items():
            locale_flat = info.files.get(file_name, {})
            # Empty strings count as missing, same as absent keys.
            keys = [key for key in main_flat if not locale_flat.get(key)]
            if keys:
                entry.files[file_name] = keys
        missing.append(entry)
    return missing


def common_missing_keys(missing: list[MissingKeys]) -> dict[str, list[str]]:
    if len(missing) < 2:
        return {}

    common: dict[str, list[str]] = {}
    for file_name, keys in missing[0].files.items():
        others = [set(entry.files.get(file_name, [])) for entry in missing[1:]]
        shared = [key for key in keys if all(key in other for other in others)]
        if shared:
            common[file_name] = shared
    return common


def locale_specific_missing_keys(
    missing: list[MissingKeys], common: dict[str, list[str]]
) -> list[MissingKeys]:
    specific: list[MissingKeys] = []
    for entry in missing:
        remaining = MissingKeys(locale=entry.locale)
        for file_name, keys in entry.files.items():
            shared = set(common.get(file_name, []))
            keys = [key for key in keys if key not in shared]
            if keys:
                remaining.files[file_name] = keys
        specific.append(remaining)
    return specific


def count_missing_keys(missing: list[MissingKeys]) -> int:
    return sum(len(keys) for entry in missing for keys in entry.files.values())


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Report keys of the main locale missing from other locales."
    )
    parser.add_argument("--dir", type=Path, required=True, help="Locale directory.")
    parser.add_argument("--main", required=True, help="Main locale code, e.g. en.")
    parser.add_argument(
        "--fail-on-missing",
        action="store_true",
        help="Exit with code 1 when any key is missing.",
    )
    args = parser.parse_args()

    try:
        layout = detect_layout(args.dir, args.main)
        locales_info = load_locales(layout)
    except (LocaleConfigError, FileNotFoundError, json.JSONDecodeError) as exc:
        print(f"[error] {exc}")
        return 2

    missing = find_missing_keys(locales_info, args.main)
    common = common_missing_keys(missing)
    specific = locale_specific_missing_keys(missing, common)

    for file_name, keys in common.items():
        print(f"[common] {layout.display_name(file_name)}: {len(keys)}")
        for key in keys:
            print(f"  - {key}")
    for entry in specific:
        for file_name, keys in entry.files.items():
            print(f"[{entry.locale}] {layout.display_name(file_name)}: {len(keys)}")
            for key in keys:
                print(f"  - {key}")

    total = count_missing_keys(missing)
    print(f"Locales checked: {len(missing)}")
    print(f"Missing keys: {total}")
    if args.fail_on_missing and total:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
