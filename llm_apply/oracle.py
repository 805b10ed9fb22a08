"""Path oracle: ask a chat model which file a code snippet belongs to.

The oracle only ever sees a small context window around one fenced block
and must answer with a single relative path or ``NO_PATH``. Any failure
(missing key, transport error, malformed or unsafe reply) becomes
``NO_PATH`` for that block.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from time import perf_counter
from typing import Protocol

import httpx

from llm_apply.cache import OracleCache
from llm_apply.config import OracleConfig, Settings
from llm_apply.parsers.markdown import DocumentNode
from llm_apply.paths import check_path
from llm_apply.tools.directory_structure import (
    get_directory_structure,
    render_directory_structure,
)

logger = logging.getLogger(__name__)

NO_PATH = "NO_PATH"

ORACLE_SYSTEM_PROMPT = " ".join(
    [
        "You are an assistant that assigns the full relative file path to a code snippet.",
        "Analyze the snippet content and any surrounding context provided.",
        "Determine the most likely full relative file path (e.g., src/components/Button.tsx,"
        " packages/utils/src/helpers.js) based on common project structures, comments,"
        " or import statements within the snippet.",
        "Ensure the path is relative to a project root and uses forward slashes (/).",
        "Do not include absolute paths (e.g., /home/user/...) or URLs.",
        f"If you cannot confidently determine a reasonable file path for the snippet,"
        f" respond with exactly the string {NO_PATH}.",
        "Do not add any explanation, preamble, or markdown formatting to your response."
        f" Respond only with the path or {NO_PATH}.",
    ]
)

OPENING_FENCE = re.compile(r"^```[\w.+-]*[ \t]*$")


class PathOracle(Protocol):
    """Anything that maps a context window to a path or NO_PATH."""

    async def ask(self, context: str) -> str: ...


class NullOracle:
    """Oracle that never knows; used when the oracle is switched off."""

    async def ask(self, context: str) -> str:
        return NO_PATH


def strip_outer_fences(content: str) -> str:
    """Remove one pair of markdown fences wrapping the whole string.

    Blank lines just inside the fences are dropped; anything that is not
    fully wrapped is returned unchanged.
    """
    lines = content.split("\n")
    if len(lines) < 2:
        return content
    if not OPENING_FENCE.match(lines[0].rstrip()) or lines[-1].strip() != "```":
        return content
    inner = lines[1:-1]
    while inner and not inner[0].strip():
        inner.pop(0)
    while inner and not inner[-1].strip():
        inner.pop()
    return "\n".join(inner)


def clean_reply(reply: str | None) -> str:
    """Turn a raw model reply into a validated path or NO_PATH."""
    content = (reply or "").strip()
    if not content or content == NO_PATH:
        return NO_PATH
    content = strip_outer_fences(content).strip()
    content = re.sub(r"^```[^\n]*\n?", "", content)
    content = re.sub(r"\n?```$", "", content).strip()
    if not content or content == NO_PATH or "\n" in content:
        if content and content != NO_PATH:
            logger.warning("Oracle reply has commentary, treating as %s: %r", NO_PATH, content[:80])
        return NO_PATH
    check = check_path(content)
    if not check.valid:
        logger.warning(
            "Oracle returned invalid/unsafe path %r (%s), treating as %s.",
            content,
            check.reason,
            NO_PATH,
        )
        return NO_PATH
    return check.path


def build_context_window(
    text: str,
    node: DocumentNode,
    *,
    lines_before: int = 4,
    code_lines: int = 2,
) -> str:
    """Few lines before the fence, the fence line and the first code lines."""
    before = text[: node.start].splitlines()
    before = before[-lines_before:] if lines_before else []
    fence_line = node.raw.split("\n", 1)[0].rstrip("\r")
    code = node.text.split("\n")[:code_lines] if code_lines else []
    return "\n".join([*before, fence_line, *code])


class ChatCompletionsOracle:
    """Path oracle backed by an OpenAI-compatible chat completions endpoint."""

    def __init__(
        self,
        config: OracleConfig,
        *,
        client: httpx.AsyncClient | None = None,
        cache: OracleCache | None = None,
        directories: list[str] | None = None,
    ) -> None:
        self.config = config
        self.cache = cache
        self.directories = directories
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url.rstrip("/"), timeout=config.timeout
        )
        self._warned_missing_key = False

    async def ask(self, context: str) -> str:
        if not self.config.has_credentials:
            if not self._warned_missing_key:
                logger.error(
                    "LLM_API_KEY is not configured; path detection for markdown blocks"
                    " without explicit markers is disabled."
                )
                self._warned_missing_key = True
            return NO_PATH

        if self.cache is not None:
            cached = self.cache.get(self.config.model, context)
            if cached:
                logger.debug("Oracle cache hit: %s", cached)
                return cached

        preview = context[:80].replace("\n", "\\n")
        logger.info('Asking oracle for a path for snippet starting with: "%s..."', preview)

        payload = {
            "model": self.config.model,
            "messages": self._build_messages(context),
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        headers = {"Authorization": f"Bearer {self.config.api_key}"}
        start = perf_counter()
        try:
            response = await self._client.post("/chat/completions", json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
            reply = data["choices"][0]["message"]["content"]
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as exc:
            logger.error("Error calling path oracle: %s", exc)
            return NO_PATH
        finally:
            latency_ms = (perf_counter() - start) * 1000
            logger.debug("Oracle call took %.0f ms", latency_ms)

        path = clean_reply(reply)
        if path == NO_PATH:
            logger.info("Oracle answered %s.", NO_PATH)
            return NO_PATH

        logger.info("Oracle determined path: %s", path)
        if self.cache is not None:
            self.cache.set(self.config.model, context, path)
        return path

    def _build_messages(self, context: str) -> list[dict[str, str]]:
        user_prompt = f"Assign a file path to the following code snippet:\n\n```\n{context}\n```"
        if self.directories is not None:
            user_prompt += (
                "\n\nExisting project directories:\n"
                + render_directory_structure(self.directories)
            )
        return [
            {"role": "system", "content": ORACLE_SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ]

    async def aclose(self) -> None:
        await self._client.aclose()
        if self.cache is not None:
            self.cache.close()

    async def __aenter__(self) -> ChatCompletionsOracle:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()


def create_oracle(settings: Settings, *, root: str | Path | None = None) -> PathOracle:
    """Build the oracle the settings ask for."""
    if settings.extraction.oracle_policy == "off":
        return NullOracle()

    config = settings.oracle
    cache = OracleCache() if config.cache else None
    directories = None
    if config.include_directory_structure:
        directories = get_directory_structure(root or Path.cwd())
    return ChatCompletionsOracle(config, cache=cache, directories=directories)


__all__ = [
    "ChatCompletionsOracle",
    "NO_PATH",
    "NullOracle",
    "ORACLE_SYSTEM_PROMPT",
    "PathOracle",
    "build_context_window",
    "clean_reply",
    "create_oracle",
    "strip_outer_fences",
]
