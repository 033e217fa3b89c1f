"""External service integrations for fabrika.

This package provides the completion providers used by the step executor:
- provider: protocol, request options and factory
- claude: Claude CLI integration
- codex: OpenAI Codex CLI integration
- streaming: shared subprocess helpers
"""

from .claude import ClaudeProvider
from .codex import CodexProvider
from .provider import (
    CompletionOptions,
    CompletionProvider,
    CompletionResponse,
    ResolvedOptions,
    create_provider,
    merge_options,
    options_from_config,
)

__all__ = [
    "ClaudeProvider",
    "CodexProvider",
    "CompletionOptions",
    "CompletionProvider",
    "CompletionResponse",
    "ResolvedOptions",
    "create_provider",
    "merge_options",
    "options_from_config",
]
