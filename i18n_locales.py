#!/usr/bin/env python3
"""Discover locales under a source directory and load their resource files.

Two on-disk layouts are supported:
  - subfolder layout: <dir>/<locale>/<name>.json (one or more files per locale)
  - flat layout:      <dir>/<locale>.json       (one file per locale)

Subfolders are probed first; the flat layout is only used when no subfolder
is named like a locale.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from i18n_json_codec import read_flat_json_file

LOCALE_RE = re.compile(r"^[a-z]{2,3}(-[A-Z][a-z]{3})?(-[A-Z]{2})?$")
RESOURCE_SUFFIX = ".json"


class LocaleConfigError(ValueError):
    """Locale directory or main locale setup cannot be used."""


@dataclass
class LocaleInfo:
    locale: str
    files: dict[str, dict[str, str]] = field(default_factory=dict)


@dataclass(frozen=True)
class LocaleLayout:
    root: Path
    main_locale: str
    locales: list[str]
    resource_files: list[str]
    use_subfolders: bool

    def resource_path(self, root: Path, locale: str, file_name: str) -> Path:
        if self.use_subfolders:
            return root / locale / file_name
        return root / f"{locale}{file_name}"

    def display_name(self, file_name: str) -> str:
        if self.use_subfolders:
            return file_name
        return f"{self.main_locale}{file_name}"


def is_valid_locale(locale: str) -> bool:
    return bool(LOCALE_RE.match(locale))


def list_folders(path: Path) -> list[str]:
    return sorted(
        p.name for p in path.iterdir() if p.is_dir() and not p.name.startswith(".")
    )


def list_files(path: Path, suffix: str = RESOURCE_SUFFIX) -> list[str]:
    if not path.is_dir():
        return []
    return sorted(
        p.name for p in path.iterdir() if p.is_file() and p.suffix == suffix
    )


def detect_layout(source_dir: Path, main_locale: str) -> LocaleLayout:
    if not source_dir.is_dir():
        raise LocaleConfigError(f"Locale directory does not exist: {source_dir}")
    if not main_locale:
        raise LocaleConfigError("Main locale must be specified, e.g. --main en")

    folders = list_folders(source_dir)
    folder_locales = [name for name in folders if is_valid_locale(name)]

    if folder_locales:
        invalid = [name for name in folders if not is_valid_locale(name)]
        if invalid:
            raise LocaleConfigError(
                f"Invalid locale codes found in {source_dir}: {', '.join(invalid)}"
            )
        locales = folder_locales
        use_subfolders = True
    else:
        locales = [
            Path(name).stem
            for name in list_files(source_dir)
            if is_valid_locale(Path(name).stem)
        ]
        if not locales:
            raise LocaleConfigError(
                f"No locale folders or <locale>{RESOURCE_SUFFIX} files found in {source_dir}"
            )
        use_subfolders = False

    if main_locale not in locales:
        raise LocaleConfigError(
            f"Main locale {main_locale} not found in {source_dir} "
            f"(found: {', '.join(locales)})"
        )

    if use_subfolders:
        resource_files = list_files(source_dir / main_locale)
    else:
        resource_files = [RESOURCE_SUFFIX]

    return LocaleLayout(
        root=source_dir,
        main_locale=main_locale,
        locales=locales,
        resource_files=resource_files,
        use_subfolders=use_subfolders,
    )


def load_locales(layout: LocaleLayout) -> list[LocaleInfo]:
    locales_info: list[LocaleInfo] = []
    for code in layout.locales:
        files: dict[str, dict[str, str]] = {}
        for file_name in layout.resource_files:
            path = layout.resource_path(layout.root, code, file_name)
            files[file_name] = read_flat_json_file(
                path, required=code == layout.main_locale
            )
        locales_info.append(LocaleInfo(locale=code, files=files))
    return locales_info


def find_locale(locales_info: list[LocaleInfo], code: str) -> LocaleInfo | None:
    for info in locales_info:
        if info.locale == code:
            return info
    return None
