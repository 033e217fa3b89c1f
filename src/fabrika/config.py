"""Configuration management for fabrika."""

import tomllib
from pathlib import Path

import tomli_w
from pydantic import BaseModel, Field, ValidationError, field_validator

from .constants import PROVIDER_TIMEOUT
from .errors import ConfigError
from .models import StepId


class ProjectConfig(BaseModel):
    """Project-level configuration."""

    name: str = "unnamed-project"
    idea: str = ""


class ProviderConfig(BaseModel):
    """Completion provider selection and default request options."""

    name: str = "claude"  # claude or codex
    exec: str | None = None  # Override executable path
    model: str | None = None  # Specific model name
    timeout: int = Field(default=PROVIDER_TIMEOUT, gt=0)
    temperature: float = Field(default=0.7, ge=0.0, le=1.0)
    max_tokens: int = Field(default=4096, gt=0)
    system_prompt: str = ""


class WorkflowConfig(BaseModel):
    """Retry policy for failed steps."""

    max_retries: int = Field(default=3, ge=0)
    retry_delays: list[float] = Field(default=[10, 30, 60])
    auto_retry: bool = False

    def delay_for(self, attempt: int) -> float:
        """Delay in seconds before retry ``attempt`` (1-based).

        Attempts past the end of ``retry_delays`` reuse the last delay.
        """
        if not self.retry_delays:
            return 0.0
        index = min(max(attempt, 1), len(self.retry_delays)) - 1
        return self.retry_delays[index]


class PathsConfig(BaseModel):
    """Locations inside the .fabrika directory."""

    checkpoints: str = "checkpoints"
    outputs: str = "outputs"
    templates: str = "templates"
    logs: str = "logs"


class ValidationConfig(BaseModel):
    """Overrides for the per-step required section table."""

    required_sections: dict[StepId, list[str]] = Field(default_factory=dict)

    @field_validator("required_sections", mode="before")
    @classmethod
    def check_step_ids(cls, value: object) -> object:
        """Give a readable error for unknown step ids."""
        if isinstance(value, dict):
            known = {step.value for step in StepId}
            unknown = sorted(str(key) for key in value if str(key) not in known)
            if unknown:
                raise ValueError(f"unknown step id(s): {', '.join(unknown)}")
        return value


class FabrikaConfig(BaseModel):
    """Root configuration for fabrika."""

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)


def load_config(fabrika_dir: Path) -> FabrikaConfig:
    """Load config from .fabrika/config.toml.

    Args:
        fabrika_dir: Path to .fabrika directory

    Returns:
        Loaded configuration, or defaults if config.toml doesn't exist

    Raises:
        ConfigError: If the file is not valid TOML or fails validation
    """
    config_path = fabrika_dir / "config.toml"
    if not config_path.exists():
        return FabrikaConfig()
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
        return FabrikaConfig.model_validate(data)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(
            f"Invalid TOML in {config_path}: {e}", "Yapılandırma dosyası okunamadı"
        ) from e
    except ValidationError as e:
        raise ConfigError(
            f"Invalid configuration in {config_path}: {e}", "Yapılandırma geçersiz"
        ) from e


def write_config_template(fabrika_dir: Path) -> Path:
    """Write default config.toml template.

    Args:
        fabrika_dir: Path to .fabrika directory

    Returns:
        Path to the written config file
    """
    config_path = fabrika_dir / "config.toml"
    template = {
        "project": {"name": "your-project", "idea": ""},
        # Provider can be "claude" or "codex"; model is optional
        "provider": {
            "name": "claude",
            "timeout": PROVIDER_TIMEOUT,
            "temperature": 0.7,
            "max_tokens": 4096,
            "system_prompt": "",
        },
        "workflow": {"max_retries": 3, "retry_delays": [10, 30, 60], "auto_retry": False},
        "paths": {
            "checkpoints": "checkpoints",
            "outputs": "outputs",
            "templates": "templates",
            "logs": "logs",
        },
        "validation": {"required_sections": {}},
    }
    with open(config_path, "wb") as f:
        tomli_w.dump(template, f)
    return config_path
