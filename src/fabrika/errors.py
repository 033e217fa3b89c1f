"""Error taxonomy for fabrika.

Every failure the engine reports carries an ``ErrorCode``, a user-facing
message (Turkish, shown to the operator) and a ``retryable`` flag. Technical
details stay in the exception text and in logs.
"""

from enum import Enum
from pathlib import Path


class ErrorCode(str, Enum):
    """Stable error codes persisted into checkpoints."""

    TIMEOUT = "E001"
    RATE_LIMIT = "E002"
    AUTH_FAILED = "E003"
    NETWORK = "E004"
    INVALID_RESPONSE = "E005"
    CHECKPOINT_READ_FAILED = "E020"
    CHECKPOINT_WRITE_FAILED = "E021"
    OUTPUT_READ_FAILED = "E030"
    VALIDATION_FAILED = "E040"
    UNKNOWN = "E999"


class FabrikaError(Exception):
    """Base exception for fabrika errors."""

    code: ErrorCode = ErrorCode.UNKNOWN
    retryable: bool = False

    def __init__(self, message: str, user_message: str | None = None) -> None:
        super().__init__(message)
        self.user_message = user_message or message


class ConfigError(FabrikaError):
    """Configuration file is missing required values or malformed."""


class RegistryError(FabrikaError):
    """Step registry is incomplete or its dependency order is broken."""


class InvalidTransition(FabrikaError):
    """Requested step status change is not allowed."""


class LockError(FabrikaError):
    """Error acquiring or managing the project lock."""


class TemplateError(FabrikaError):
    """Prompt template exists but could not be read."""


class CheckpointReadFailed(FabrikaError):
    """Checkpoint exists but could not be read or parsed."""

    code = ErrorCode.CHECKPOINT_READ_FAILED

    def __init__(self, step_id: str, path: Path, cause: BaseException | str) -> None:
        self.step_id = step_id
        self.path = path
        self.cause = cause
        super().__init__(
            f"Failed to read checkpoint for {step_id} at {path}: {cause}",
            f"Checkpoint okunamadı: {step_id}",
        )


class CheckpointWriteFailed(FabrikaError):
    """Checkpoint could not be written durably."""

    code = ErrorCode.CHECKPOINT_WRITE_FAILED

    def __init__(self, step_id: str, path: Path, cause: BaseException | str) -> None:
        self.step_id = step_id
        self.path = path
        self.cause = cause
        super().__init__(
            f"Failed to write checkpoint for {step_id} at {path}: {cause}",
            f"Checkpoint yazılamadı: {step_id}",
        )


class OutputReadFailed(FabrikaError):
    """Manual output file vanished or became unreadable after detection."""

    code = ErrorCode.OUTPUT_READ_FAILED
    retryable = True

    def __init__(self, path: Path, cause: BaseException | str) -> None:
        self.path = path
        self.cause = cause
        super().__init__(
            f"Failed to read manual output {path}: {cause}",
            f"Manuel çıktı dosyası okunamadı: {path}",
        )


class ProviderErrorKind(str, Enum):
    """Failure classes reported by completion providers."""

    TIMEOUT = "timeout"
    RATE_LIMIT = "rate-limit"
    AUTH_FAILED = "auth-failed"
    NETWORK = "network"
    INVALID_RESPONSE = "invalid-response"


_KIND_CODES: dict[ProviderErrorKind, ErrorCode] = {
    ProviderErrorKind.TIMEOUT: ErrorCode.TIMEOUT,
    ProviderErrorKind.RATE_LIMIT: ErrorCode.RATE_LIMIT,
    ProviderErrorKind.AUTH_FAILED: ErrorCode.AUTH_FAILED,
    ProviderErrorKind.NETWORK: ErrorCode.NETWORK,
    ProviderErrorKind.INVALID_RESPONSE: ErrorCode.INVALID_RESPONSE,
}

_KIND_MESSAGES: dict[ProviderErrorKind, str] = {
    ProviderErrorKind.TIMEOUT: "LLM yanıt vermedi, lütfen tekrar deneyin.",
    ProviderErrorKind.RATE_LIMIT: "Çok fazla istek gönderildi, lütfen biraz bekleyin.",
    ProviderErrorKind.AUTH_FAILED: "API anahtarı geçersiz veya süresi dolmuş.",
    ProviderErrorKind.NETWORK: "Bağlantı hatası oluştu, internet bağlantınızı kontrol edin.",
    ProviderErrorKind.INVALID_RESPONSE: "LLM beklenmedik bir yanıt döndü.",
}

RETRYABLE_KINDS = frozenset(
    {ProviderErrorKind.TIMEOUT, ProviderErrorKind.RATE_LIMIT, ProviderErrorKind.AUTH_FAILED}
)


class ProviderError(FabrikaError):
    """Completion provider failure with a preserved classification.

    Attributes:
        kind: Failure class assigned by the provider.
        details: Technical details for logs (not shown to the user).
    """

    def __init__(self, kind: ProviderErrorKind, details: str | None = None) -> None:
        self.kind = kind
        self.details = details
        self.code = _KIND_CODES[kind]
        self.retryable = kind in RETRYABLE_KINDS
        message = f"[{self.code.value}] {_KIND_MESSAGES[kind]}"
        if details:
            message = f"{message} ({details})"
        super().__init__(message, _KIND_MESSAGES[kind])

    @classmethod
    def timeout(cls, details: str | None = None) -> "ProviderError":
        return cls(ProviderErrorKind.TIMEOUT, details)

    @classmethod
    def rate_limit(cls, details: str | None = None) -> "ProviderError":
        return cls(ProviderErrorKind.RATE_LIMIT, details)

    @classmethod
    def auth_failed(cls, details: str | None = None) -> "ProviderError":
        return cls(ProviderErrorKind.AUTH_FAILED, details)

    @classmethod
    def network(cls, details: str | None = None) -> "ProviderError":
        return cls(ProviderErrorKind.NETWORK, details)

    @classmethod
    def invalid_response(cls, details: str | None = None) -> "ProviderError":
        return cls(ProviderErrorKind.INVALID_RESPONSE, details)

    @classmethod
    def from_message(cls, message: str) -> "ProviderError":
        """Classify raw provider error text by keyword.

        Unknown failures default to ``INVALID_RESPONSE``.
        """
        lower = message.lower()
        if "timeout" in lower or "timed out" in lower:
            return cls.timeout(message)
        if "rate limit" in lower or "429" in lower or "overloaded" in lower:
            return cls.rate_limit(message)
        if (
            "unauthorized" in lower
            or "401" in lower
            or "invalid api key" in lower
            or "authentication" in lower
        ):
            return cls.auth_failed(message)
        if (
            "network" in lower
            or "connection" in lower
            or "econnrefused" in lower
            or "enotfound" in lower
        ):
            return cls.network(message)
        return cls.invalid_response(message)

    @classmethod
    def from_exception(cls, error: BaseException) -> "ProviderError":
        """Wrap an arbitrary exception, keeping an existing classification."""
        if isinstance(error, ProviderError):
            return error
        if isinstance(error, TimeoutError):
            return cls.timeout(str(error) or type(error).__name__)
        if isinstance(error, ConnectionError):
            return cls.network(str(error) or type(error).__name__)
        return cls.from_message(str(error) or type(error).__name__)
