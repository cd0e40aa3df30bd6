#!/usr/bin/env python3
"""Translate changed and missing keys of locale JSON files with an AI model.

Steps:
  1) read every locale file and flatten it to dotted keys
  2) diff the main locale against git HEAD (added/changed/deleted keys)
  3) translate changed keys, plus keys missing in every locale, in batches
  4) translate keys missing only in some locales, one locale at a time
  5) write each touched locale file back, nested and in main-locale key order

Examples:
    python translate_i18n_json.py --dir locales --main en
    python translate_i18n_json.py --dir locales --main en --provider anthropic \
      --no-translate Acme --no-translate "Acme Cloud"
    python translate_i18n_json.py --dir locales --dest build/locales --main en --force
"""

from __future__ import annotations

import argparse
import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from ai_translation_client import (
    DEFAULT_ANTHROPIC_API_BASE,
    DEFAULT_ANTHROPIC_MODEL,
    DEFAULT_OPENAI_API_BASE,
    DEFAULT_OPENAI_MODEL,
    AnthropicClient,
    OpenAICompatClient,
    TranslateFn,
    extract_json_text,
    load_env_file,
    make_translate_fn,
    parse_api_keys,
)
from diff_i18n_json import GitSnapshotProvider, SnapshotProvider, extract_change_set
from find_missing_i18n_keys import (
    common_missing_keys,
    count_missing_keys,
    find_missing_keys,
)
from i18n_json_codec import dumps_locale_json, leaf_to_text, unflatten_json, unique_keys
from i18n_locales import (
    LocaleConfigError,
    LocaleInfo,
    LocaleLayout,
    detect_layout,
    find_locale,
    load_locales,
)

DEFAULT_BATCH_SIZE = 25


class TranslationError(RuntimeError):
    """The translation backend failed or replied with unusable JSON."""


@dataclass(frozen=True)
class TranslationConfig:
    source_dir: Path
    main_locale: str
    dest_dir: Path | None = None
    no_translate: tuple[str, ...] = ()
    batch_size: int = DEFAULT_BATCH_SIZE
    quiet: bool = False
    force_all: bool = False
    dry_run: bool = False

    @property
    def output_dir(self) -> Path:
        return self.dest_dir if self.dest_dir is not None else self.source_dir


@dataclass(frozen=True)
class SyncResult:
    modified: int
    deleted: int
    added: int


def chunked(items: list[str], size: int) -> list[list[str]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


def build_prompt(
    main_locale: str, target_locales: list[str], no_translate: tuple[str, ...] = ()
) -> str:
    targets = ", ".join(locale for locale in target_locales if locale != main_locale)
    lines = [
        f"Translate the following JSON from the locale {main_locale} "
        f"into the languages: {targets}."
    ]
    if no_translate:
        terms = ", ".join(f'"{term}"' for term in no_translate)
        lines.append(f"Do not translate the following terms: {terms}.")
    lines.append(
        "Reply in JSON, grouped by locale, mapping each locale code to an object "
        f"with the same keys. Do not include the locale {main_locale}."
    )
    lines.append("Do not include any code block formatting, only respond with raw JSON.")
    return "\n".join(lines)


def parse_translation_reply(content: str) -> dict[str, dict[str, str]]:
    if not content or not content.strip():
        return {}
    try:
        payload = json.loads(extract_json_text(content))
    except json.JSONDecodeError as exc:
        raise TranslationError(f"Reply is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise TranslationError("Reply must be a JSON object grouped by locale")

    result: dict[str, dict[str, str]] = {}
    for locale, values in payload.items():
        if not isinstance(values, dict):
            raise TranslationError(f"Reply for locale {locale} is not an object")
        result[locale] = {
            str(key): leaf_to_text(value)
            for key, value in values.items()
            if value is not None
        }
    return result


def reorder_like_main(
    main_flat: dict[str, str], locale_flat: dict[str, str]
) -> dict[str, str]:
    # Unflatten nests in iteration order, so follow the main file exactly.
    return {key: locale_flat[key] for key in main_flat if key in locale_flat}


def write_locale_file(path: Path, flat: dict[str, str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps_locale_json(unflatten_json(flat)), encoding="utf-8")


def echo_translation(prompt: str, json_payload: str, locales: list[str]) -> str:
    values = json.loads(json_payload)
    return json.dumps({locale: values for locale in locales}, ensure_ascii=False)


@dataclass
class LocaleSyncRunner:
    config: TranslationConfig
    translate_fn: TranslateFn
    snapshot_provider: SnapshotProvider = field(default_factory=GitSnapshotProvider)
    layout: LocaleLayout | None = field(default=None, init=False)
    touched: dict[str, list[str]] = field(default_factory=dict, init=False)

    def log(self, message: str) -> None:
        if not self.config.quiet:
            print(message)

    def translate_batch(
        self, target_locales: list[str], values: dict[str, str]
    ) -> dict[str, dict[str, str]]:
        prompt = build_prompt(
            self.config.main_locale, target_locales, self.config.no_translate
        )
        payload = json.dumps(values, ensure_ascii=False)
        try:
            reply = self.translate_fn(prompt, payload, target_locales)
        except Exception as exc:
            raise TranslationError(f"Translation backend failed: {exc}") from exc
        return parse_translation_reply(reply)

    def mark_touched(self, locale: str, file_name: str) -> None:
        files = self.touched.setdefault(locale, [])
        if file_name not in files:
            files.append(file_name)

    def update_locale_file(
        self,
        file_name: str,
        main_info: LocaleInfo,
        keys: list[str],
        locales_info: list[LocaleInfo],
    ) -> None:
        main_flat = main_info.files[file_name]
        values = {key: main_flat[key] for key in keys if key in main_flat}
        if not values:
            return

        target_locales = [
            info.locale
            for info in locales_info
            if info.locale != self.config.main_locale
        ]
        result = self.translate_batch(target_locales, values)
        for locale, translated in result.items():
            info = find_locale(locales_info, locale)
            if info is None or info.locale == self.config.main_locale:
                continue
            info.files.setdefault(file_name, {}).update(translated)

    def update_all_locale_files(
        self,
        main_info: LocaleInfo,
        keys_for_file: dict[str, list[str]],
        locales_info: list[LocaleInfo],
        deleted_for_file: dict[str, list[str]],
        label: str,
    ) -> None:
        total = sum(len(keys) for keys in keys_for_file.values())
        if total:
            self.log(f"{label}: Processing {total} keys")

        for file_name in main_info.files:
            keys = keys_for_file.get(file_name, [])
            deleted = deleted_for_file.get(file_name, [])
            if not keys and not deleted:
                continue

            for info in locales_info:
                if info.locale == self.config.main_locale:
                    continue
                flat = info.files.setdefault(file_name, {})
                for key in deleted:
                    flat.pop(key, None)
                self.mark_touched(info.locale, file_name)

            display = self.layout.display_name(file_name)
            processed = 0
            for batch in chunked(keys, self.config.batch_size):
                self.update_locale_file(file_name, main_info, batch, locales_info)
                processed += len(batch)
                self.log(f"{label} [{display}]: Processed {processed} of {len(keys)}")

    def write_touched_files(self, locales_info: list[LocaleInfo], main_info: LocaleInfo) -> int:
        written = 0
        for info in locales_info:
            if info.locale == self.config.main_locale:
                continue
            for file_name in self.touched.get(info.locale, []):
                flat = reorder_like_main(
                    main_info.files[file_name], info.files.get(file_name, {})
                )
                path = self.layout.resource_path(
                    self.config.output_dir, info.locale, file_name
                )
                if self.config.dry_run:
                    self.log(f"[dry-run] {path}")
                    continue
                write_locale_file(path, flat)
                written += 1
        return written

    def run(self) -> SyncResult:
        main_locale = self.config.main_locale
        self.layout = detect_layout(self.config.source_dir, main_locale)
        self.touched = {}
        locales_info = load_locales(self.layout)
        main_info = find_locale(locales_info, main_locale)
        if main_info is None:
            raise LocaleConfigError(f"Main locale {main_locale} was not loaded")

        changed: dict[str, list[str]] = {}
        deleted: dict[str, list[str]] = {}
        for file_name in main_info.files:
            path = self.layout.resource_path(self.layout.root, main_locale, file_name)
            changes = extract_change_set(
                path, self.snapshot_provider, force_all=self.config.force_all
            )
            changed[file_name] = changes.changed
            deleted[file_name] = changes.deleted

        # Keys missing everywhere ride along with the changed keys, so one
        # call covers all locales.
        missing = find_missing_keys(locales_info, main_locale)
        common = common_missing_keys(missing)
        keys_for_file = {
            file_name: unique_keys(keys, common.get(file_name, []))
            for file_name, keys in changed.items()
        }

        self.update_all_locale_files(
            main_info, keys_for_file, locales_info, deleted, "Added/Changed Keys"
        )

        # What is still missing is specific to some locales, e.g. a locale
        # that was just added. Translate those one locale at a time.
        missing = find_missing_keys(locales_info, main_locale)
        for entry in missing:
            if not entry.files:
                continue
            self.update_all_locale_files(
                main_info,
                entry.files,
                [info for info in locales_info if info.locale == entry.locale],
                {},
                f"Missing Keys [{entry.locale}]",
            )

        written = self.write_touched_files(locales_info, main_info)
        if written:
            self.log(f"Locale files written: {written}")

        return SyncResult(
            modified=sum(len(keys) for keys in keys_for_file.values()),
            deleted=sum(len(keys) for keys in deleted.values()),
            added=count_missing_keys(missing),
        )


def build_translate_fn(args: argparse.Namespace) -> TranslateFn:
    if args.dry_run:
        return echo_translation

    if args.provider == "anthropic":
        api_key = args.api_key or os.getenv("ANTHROPIC_API_KEY")
        if not parse_api_keys(api_key):
            raise ValueError(
                "Missing API key. Provide --api-key or set ANTHROPIC_API_KEY in .env."
            )
        client = AnthropicClient(
            api_key=api_key,
            model=args.model or os.getenv("ANTHROPIC_MODEL") or DEFAULT_ANTHROPIC_MODEL,
            api_base=args.api_base
            or os.getenv("ANTHROPIC_BASE_URL")
            or DEFAULT_ANTHROPIC_API_BASE,
            timeout_sec=args.timeout_sec,
            retries=args.retries,
        )
    else:
        api_key = args.api_key or os.getenv("OPENAI_API_KEY")
        if not parse_api_keys(api_key):
            raise ValueError(
                "Missing API key. Provide --api-key or set OPENAI_API_KEY in .env."
            )
        client = OpenAICompatClient(
            api_base=args.api_base
            or os.getenv("OPENAI_BASE_URL")
            or DEFAULT_OPENAI_API_BASE,
            api_key=api_key,
            model=args.model or os.getenv("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL,
            timeout_sec=args.timeout_sec,
            retries=args.retries,
        )
    if not args.quiet:
        print(f"Using {args.provider} model {client.model}")
    return make_translate_fn(client)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Translate changed/missing keys of locale JSON files using AI."
    )
    parser.add_argument(
        "--dir",
        type=Path,
        required=True,
        help="Locale directory: <dir>/<locale>/*.json or <dir>/<locale>.json.",
    )
    parser.add_argument(
        "--dest",
        type=Path,
        default=None,
        help="Output directory with the same layout. Default: --dir",
    )
    parser.add_argument("--main", required=True, help="Main locale code, e.g. en.")
    parser.add_argument(
        "--provider",
        choices=["openai", "anthropic"],
        default="openai",
    )
    parser.add_argument("--api-key", default=None, help="Comma-separated for rotation.")
    parser.add_argument("--api-base", default=None)
    parser.add_argument("--model", default=None)
    parser.add_argument(
        "--env-file",
        type=Path,
        default=Path(".env"),
        help="Path to dotenv file used for API/model defaults. Default: .env",
    )
    parser.add_argument(
        "--no-translate",
        action="append",
        default=[],
        metavar="TERM",
        help="Term to keep untranslated (repeatable).",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Re-translate every key of the main locale, ignoring git history.",
    )
    parser.add_argument("--quiet", action="store_true", help="Only print the summary.")
    parser.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE)
    parser.add_argument("--timeout-sec", type=int, default=120)
    parser.add_argument("--retries", type=int, default=3)
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Do not call the API and do not write files.",
    )
    args = parser.parse_args()

    env_file = args.env_file.resolve()
    loaded_vars = load_env_file(env_file)
    if loaded_vars and not args.quiet:
        print(f"Loaded {loaded_vars} env var(s) from {env_file}")

    if args.batch_size <= 0:
        print("[error] --batch-size must be > 0")
        return 2

    try:
        translate_fn = build_translate_fn(args)
    except ValueError as exc:
        print(f"[error] {exc}")
        return 2

    config = TranslationConfig(
        source_dir=args.dir,
        main_locale=args.main,
        dest_dir=args.dest,
        no_translate=tuple(args.no_translate),
        batch_size=args.batch_size,
        quiet=args.quiet,
        force_all=args.force,
        dry_run=args.dry_run,
    )
    runner = LocaleSyncRunner(config, translate_fn, GitSnapshotProvider())
    try:
        result = runner.run()
    except (LocaleConfigError, FileNotFoundError, json.JSONDecodeError) as exc:
        print(f"[error] {exc}")
        return 2
    except TranslationError as exc:
        print(f"[error] Translation failed: {exc}")
        return 1

    print(
        "Completed updating i18n resources. "
        f"{result.modified} keys updated, "
        f"{result.deleted} keys deleted, "
        f"{result.added} keys added"
    )
    if args.dry_run:
        print("Dry run only. No files were modified.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
