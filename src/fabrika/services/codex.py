"""Codex CLI completion provider."""

import json
import logging
import subprocess
from collections.abc import Iterator
from pathlib import Path

from ..constants import VALIDATE_KEY_TIMEOUT
from ..errors import ProviderError
from .provider import CompletionOptions, CompletionResponse, ResolvedOptions, merge_options
from .streaming import run_subprocess, stream_subprocess

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "default"


def _output_texts(content: object) -> str | None:
    if not isinstance(content, list):
        return None
    texts = [item.get("text", "") for item in content if item.get("type") == "output_text"]
    return "".join(texts) if texts else None


def _extract_text_from_codex_json(line: str) -> str | None:
    """Extract text content from a Codex JSONL line.

    Codex CLI with --json emits JSONL events. Agent messages appear in
    item.agent_message events with content array.

    Args:
        line: A single line from Codex JSON output

    Returns:
        Extracted text or None if line doesn't contain text content
    """
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    if data.get("type") == "item.agent_message":
        return _output_texts(data.get("content"))
    if data.get("type") == "turn.completed":
        return _output_texts(data.get("message", {}).get("content"))
    return None


class CodexProvider:
    """Drive the ``codex`` CLI in a read-only sandbox.

    Codex takes no separate system prompt, so one is prepended to the
    prompt text.
    """

    name = "codex"

    def __init__(
        self,
        exec_path: str = "codex",
        model: str | None = None,
        sandbox: str = "read-only",
        cwd: Path | None = None,
    ) -> None:
        self.exec_path = exec_path
        self.model = model
        self.sandbox = sandbox
        self.cwd = cwd

    def _command(self, prompt: str, options: ResolvedOptions, json_output: bool) -> list[str]:
        if options.system_prompt:
            prompt = f"{options.system_prompt}\n\n{prompt}"
        cmd = [self.exec_path, "-p", prompt, "--sandbox", self.sandbox]
        if self.model:
            cmd.extend(["--model", self.model])
        if json_output:
            cmd.append("--json")
        return cmd

    def complete(
        self, prompt: str, options: CompletionOptions | None = None
    ) -> CompletionResponse:
        """Run one completion and return the generated text.

        Raises:
            ProviderError: On timeout, missing executable, failed exit,
                empty prompt or empty response
        """
        if not prompt.strip():
            raise ProviderError.invalid_response("empty prompt")
        resolved = merge_options(options)
        logger.debug("Running codex (timeout=%ss, model=%s)", resolved.timeout, self.model)

        output = run_subprocess(
            self._command(prompt, resolved, json_output=False),
            cwd=self.cwd,
            timeout=resolved.timeout,
            service_name="Codex",
        )
        if not output.strip():
            raise ProviderError.invalid_response("Codex returned no content")
        return CompletionResponse(
            content=output, provider=self.name, model=self.model or DEFAULT_MODEL
        )

    def stream(self, prompt: str, options: CompletionOptions | None = None) -> Iterator[str]:
        """Yield text chunks from Codex JSONL events."""
        if not prompt.strip():
            raise ProviderError.invalid_response("empty prompt")
        resolved = merge_options(options)
        yield from stream_subprocess(
            self._command(prompt, resolved, json_output=True),
            text_extractor=_extract_text_from_codex_json,
            cwd=self.cwd,
            timeout=resolved.timeout,
            service_name="Codex",
        )

    def validate_key(self) -> bool:
        """Check that the CLI is installed and responds."""
        try:
            result = subprocess.run(
                [self.exec_path, "--version"],
                capture_output=True,
                text=True,
                timeout=VALIDATE_KEY_TIMEOUT,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug("Codex availability check failed: %s", e)
            return False
        return result.returncode == 0
