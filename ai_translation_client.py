#!/usr/bin/env python3
"""HTTP adapters that turn a chat model into a text-to-text translation call.

Both clients only use the standard library (urllib). Keys may be given as a
comma-separated list; failed requests rotate to the next key and back off on
transient HTTP errors.
"""

from __future__ import annotations

import json
import os
import re
import time
import urllib.error
import urllib.request
from pathlib import Path
from typing import Callable, Protocol

ENV_ASSIGN_RE = re.compile(
    r"^(?:export\s+)?(?P<key>[A-Za-z_][A-Za-z0-9_]*)\s*=\s*(?P<value>.*)$"
)
TRANSIENT_HTTP_CODES = {408, 425, 429, 500, 502, 503, 504}
DEFAULT_OPENAI_API_BASE = "https://api.openai.com"
DEFAULT_OPENAI_MODEL = "gpt-4o"
DEFAULT_ANTHROPIC_API_BASE = "https://api.anthropic.com"
DEFAULT_ANTHROPIC_MODEL = "claude-3-5-sonnet-latest"
ANTHROPIC_VERSION = "2023-06-01"

TranslateFn = Callable[[str, str, "list[str]"], str]


class ChatClient(Protocol):
    model: str

    def complete(self, prompt: str) -> str: ...


def parse_api_keys(raw: str | None) -> list[str]:
    if raw is None:
        return []
    return [key.strip() for key in raw.split(",") if key.strip()]


def parse_env_value(raw: str) -> str:
    value = raw.strip()
    if not value:
        return ""

    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        quote = value[0]
        value = value[1:-1]
        if quote == '"':
            value = (
                value.replace("\\n", "\n")
                .replace('\\"', '"')
                .replace("\\\\", "\\")
            )
        return value

    # KEY=abc # comment
    for idx, ch in enumerate(value):
        if ch == "#" and (idx == 0 or value[idx - 1].isspace()):
            return value[:idx].rstrip()
    return value


def load_env_file(env_file: Path) -> int:
    if not env_file.is_file():
        return 0

    loaded = 0
    for raw_line in env_file.read_text(encoding="utf-8", errors="ignore").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        match = ENV_ASSIGN_RE.match(line)
        if not match:
            continue
        key = match.group("key")
        if key in os.environ:
            continue
        os.environ[key] = parse_env_value(match.group("value"))
        loaded += 1
    return loaded


def normalize_api_base(raw: str, suffix: str) -> str:
    api_base = raw.strip().rstrip("/")
    if api_base.endswith(suffix):
        return api_base[: -len(suffix)]
    return api_base


def extract_json_text(content: str) -> str:
    content = content.strip()
    if content.startswith("```"):
        fence_match = re.search(r"```(?:json)?\s*(.*?)\s*```", content, re.DOTALL)
        if fence_match:
            return fence_match.group(1).strip()

    first = content.find("{")
    last = content.rfind("}")
    if first != -1 and last != -1 and first < last:
        return content[first : last + 1]
    return content


def post_json_with_retries(
    url: str,
    payload: dict,
    *,
    api_keys: list[str],
    build_headers: Callable[[str], dict[str, str]],
    timeout_sec: int,
    retries: int,
) -> dict:
    body = json.dumps(payload).encode("utf-8")
    last_error: Exception | None = None
    max_attempts = (retries + 1) * len(api_keys)
    for attempt in range(max_attempts):
        api_key = api_keys[attempt % len(api_keys)]
        request = urllib.request.Request(
            url=url,
            data=body,
            method="POST",
            headers=build_headers(api_key),
        )
        try:
            with urllib.request.urlopen(  # noqa: S310 - user-provided endpoint
                request,
                timeout=timeout_sec,
            ) as response:
                data = response.read().decode("utf-8")
            return json.loads(data)
        except (urllib.error.HTTPError, urllib.error.URLError, TimeoutError) as exc:
            last_error = exc
            if attempt >= max_attempts - 1:
                break
            # Rotate keys right away; only sleep on transient failures.
            if isinstance(exc, urllib.error.HTTPError) and (
                exc.code not in TRANSIENT_HTTP_CODES
            ):
                continue
            time.sleep(min(8, 2 ** min(attempt, retries)))

    if last_error is None:
        raise RuntimeError("Chat request failed without explicit exception")
    raise RuntimeError(f"Chat request failed: {last_error}") from last_error


class OpenAICompatClient:
    def __init__(
        self,
        api_base: str,
        api_key: str,
        model: str,
        timeout_sec: int = 120,
        retries: int = 3,
    ) -> None:
        self.api_base = normalize_api_base(api_base, "/v1/chat/completions")
        self.api_keys = parse_api_keys(api_key)
        if not self.api_keys:
            raise ValueError("At least one API key is required")
        self.model = model
        self.timeout_sec = timeout_sec
        self.retries = retries

    def complete(self, prompt: str) -> str:
        data = post_json_with_retries(
            f"{self.api_base}/v1/chat/completions",
            {
                "model": self.model,
                "messages": [{"role": "user", "content": prompt}],
                "stream": False,
                "temperature": 0.0,
            },
            api_keys=self.api_keys,
            build_headers=lambda key: {
                "Content-Type": "application/json",
                "Authorization": f"Bearer {key}",
            },
            timeout_sec=self.timeout_sec,
            retries=self.retries,
        )
        return chat_content_from_response(data)


class AnthropicClient:
    def __init__(
        self,
        api_key: str,
        model: str,
        api_base: str = DEFAULT_ANTHROPIC_API_BASE,
        timeout_sec: int = 120,
        retries: int = 3,
        max_tokens: int = 8192,
    ) -> None:
        self.api_base = normalize_api_base(api_base, "/v1/messages")
        self.api_keys = parse_api_keys(api_key)
        if not self.api_keys:
            raise ValueError("At least one API key is required")
        self.model = model
        self.timeout_sec = timeout_sec
        self.retries = retries
        self.max_tokens = max_tokens

    def complete(self, prompt: str) -> str:
        data = post_json_with_retries(
            f"{self.api_base}/v1/messages",
            {
                "model": self.model,
                "max_tokens": self.max_tokens,
                "messages": [{"role": "user", "content": prompt}],
            },
            api_keys=self.api_keys,
            build_headers=lambda key: {
                "Content-Type": "application/json",
                "x-api-key": key,
                "anthropic-version": ANTHROPIC_VERSION,
            },
            timeout_sec=self.timeout_sec,
            retries=self.retries,
        )
        return message_text_from_response(data)


def chat_content_from_response(data: dict) -> str:
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        raise ValueError("Invalid response: choices is empty")
    first = choices[0]
    if not isinstance(first, dict):
        raise ValueError("Invalid response: choices[0] is not an object")
    message = first.get("message")
    if not isinstance(message, dict):
        raise ValueError("Invalid response: choices[0].message is missing")
    content = message.get("content")
    if not isinstance(content, str):
        raise ValueError("Invalid response: message.content is not string")
    return content


def message_text_from_response(data: dict) -> str:
    blocks = data.get("content")
    if not isinstance(blocks, list) or not blocks:
        raise ValueError("Invalid response: content is empty")
    texts = [
        block["text"]
        for block in blocks
        if isinstance(block, dict)
        and block.get("type") == "text"
        and isinstance(block.get("text"), str)
    ]
    if not texts:
        raise ValueError("Invalid response: no text block in content")
    return "".join(texts)


def make_translate_fn(client: ChatClient) -> TranslateFn:
    def translate(prompt: str, json_payload: str, locales: list[str]) -> str:
        return client.complete(f"{prompt}\n{json_payload}")

    return translate
