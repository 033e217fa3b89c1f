"""Completion provider contract and factory.

A completion provider turns a prompt into generated text. The engine
only depends on the ``CompletionProvider`` protocol; concrete adapters
drive an external CLI (see ``claude`` and ``codex``).
"""

from collections.abc import Iterator
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from ..config import ProviderConfig
from ..errors import ConfigError

DEFAULT_TIMEOUT = 30.0
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 4096
DEFAULT_SYSTEM_PROMPT = ""


class CompletionOptions(BaseModel):
    """Per-request options. ``None`` means "use the default"."""

    timeout: float | None = Field(default=None, gt=0, description="Seconds")
    temperature: float | None = Field(default=None, ge=0.0, le=1.0)
    max_tokens: int | None = Field(default=None, gt=0)
    system_prompt: str | None = None


class ResolvedOptions(BaseModel):
    """Options with every default filled in."""

    timeout: float = DEFAULT_TIMEOUT
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    system_prompt: str = DEFAULT_SYSTEM_PROMPT


class CompletionResponse(BaseModel):
    """Generated text and where it came from."""

    content: str
    provider: str
    model: str


def merge_options(options: CompletionOptions | None = None) -> ResolvedOptions:
    """Fill omitted options with their documented defaults."""
    if options is None:
        return ResolvedOptions()
    return ResolvedOptions(**options.model_dump(exclude_none=True))


def options_from_config(config: ProviderConfig) -> CompletionOptions:
    """Request options taken from the ``[provider]`` config section."""
    return CompletionOptions(
        timeout=config.timeout,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        system_prompt=config.system_prompt,
    )


@runtime_checkable
class CompletionProvider(Protocol):
    """Text-generation collaborator used by the step executor."""

    name: str

    def complete(
        self, prompt: str, options: CompletionOptions | None = None
    ) -> CompletionResponse: ...

    def stream(self, prompt: str, options: CompletionOptions | None = None) -> Iterator[str]: ...

    def validate_key(self) -> bool: ...


def create_provider(config: ProviderConfig) -> CompletionProvider:
    """Build the provider named in config.

    Raises:
        ConfigError: If the provider name is unknown
    """
    from .claude import ClaudeProvider
    from .codex import CodexProvider

    name = config.name.lower()
    if name == "claude":
        return ClaudeProvider(exec_path=config.exec or "claude", model=config.model)
    if name == "codex":
        return CodexProvider(exec_path=config.exec or "codex", model=config.model)
    raise ConfigError(
        f"Unknown provider: {config.name}", f"Bilinmeyen sağlayıcı: {config.name}"
    )
