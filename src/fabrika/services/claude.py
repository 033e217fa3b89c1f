"""Claude CLI completion provider."""

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


def _extract_text_from_stream_json(line: str) -> str | None:
    """Extract text content from a stream-json line.

    Claude CLI stream-json format emits JSON objects, one per line.
    Text content appears in objects with structure:
    {"type": "assistant", "message": {"content": [{"type": "text", "text": "..."}]}}

    Args:
        line: A single line from stream-json output

    Returns:
        Extracted text or None if line doesn't contain text content
    """
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    content = None
    if data.get("type") == "assistant":
        content = data.get("message", {}).get("content")
    elif isinstance(data.get("content"), list):
        content = data["content"]

    if isinstance(content, list):
        texts = [item.get("text", "") for item in content if item.get("type") == "text"]
        if texts:
            return "".join(texts)
    return None


class ClaudeProvider:
    """Drive the ``claude`` CLI in print mode.

    The CLI has no flags for temperature or token limits; those options
    are accepted and ignored. Timeout and system prompt are honored.
    """

    name = "claude"

    def __init__(
        self,
        exec_path: str = "claude",
        model: str | None = None,
        cwd: Path | None = None,
    ) -> None:
        self.exec_path = exec_path
        self.model = model
        self.cwd = cwd

    def _command(self, prompt: str, options: ResolvedOptions, output_format: str) -> list[str]:
        cmd = [self.exec_path, "-p", prompt, "--output-format", output_format]
        if output_format == "stream-json":
            cmd.append("--verbose")
        if self.model:
            cmd.extend(["--model", self.model])
        if options.system_prompt:
            cmd.extend(["--append-system-prompt", options.system_prompt])
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
        logger.debug("Running claude (timeout=%ss, model=%s)", resolved.timeout, self.model)

        output = run_subprocess(
            self._command(prompt, resolved, "text"),
            cwd=self.cwd,
            timeout=resolved.timeout,
            service_name="Claude",
        )
        if not output.strip():
            raise ProviderError.invalid_response("Claude returned no content")
        return CompletionResponse(
            content=output, provider=self.name, model=self.model or DEFAULT_MODEL
        )

    def stream(self, prompt: str, options: CompletionOptions | None = None) -> Iterator[str]:
        """Yield text chunks as Claude produces them."""
        if not prompt.strip():
            raise ProviderError.invalid_response("empty prompt")
        resolved = merge_options(options)
        yield from stream_subprocess(
            self._command(prompt, resolved, "stream-json"),
            text_extractor=_extract_text_from_stream_json,
            cwd=self.cwd,
            timeout=resolved.timeout,
            service_name="Claude",
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
            logger.debug("Claude availability check failed: %s", e)
            return False
        return result.returncode == 0
