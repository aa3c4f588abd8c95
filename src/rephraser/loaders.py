"""Settings file loading.

Reads ``~/.rephraser/config.toml`` (or ``$REPHRASER_CONFIG``), validates it
through a Pydantic schema, and converts it into the frozen ``Config``
snapshot. A missing file yields the defaults. Writing the file is left to
the caller.

Example file::

    [llm]
    provider = "anthropic"
    model = "claude-3-5-haiku-latest"
    api_key_env = "ANTHROPIC_API_KEY"

    [llm.parameters]
    temperature = 0.3
    max_tokens = 800

    [output]
    method = "clipboard"

    [[actions]]
    name = "polite"
    display_name = "Polite"
    prompt_template = "Rewrite politely: {text}"
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
import tomllib
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from rephraser.actions import ActionDefinition, build_registry
from rephraser.config import (
    DEFAULT_MAX_INPUT_CHARS,
    Config,
    GenerationParameters,
    OutputConfig,
    OutputMethod,
    ProviderConfig,
    ProviderKind,
)
from rephraser.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "REPHRASER_CONFIG"
CONFIG_DIRNAME = ".rephraser"
CONFIG_FILENAME = "config.toml"

# --- Schema (Pydantic wall) ---


class LlmParameters(BaseModel):
    """``[llm.parameters]``; unknown keys pass through to the provider."""

    model_config = {"extra": "allow"}

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=500, ge=1)


class LlmSection(BaseModel):
    """``[llm]``: provider selection and call limits."""

    provider: ProviderKind = "openai"
    model: str = Field(default="gpt-4o-mini", min_length=1)
    api_key_env: str | None = None
    timeout_s: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=2, ge=0)
    parameters: LlmParameters = Field(default_factory=LlmParameters)

    @field_validator("provider", "model", mode="before")
    @classmethod
    def normalize_identifier(cls, v: Any) -> Any:
        """Trim surrounding whitespace on identifiers."""
        if isinstance(v, str):
            return v.strip()
        return v


class OutputSection(BaseModel):
    """``[output]``: sink selection."""

    method: OutputMethod = "notification"
    title: str = "Rephraser"


class LimitsSection(BaseModel):
    """``[limits]``: input guards."""

    max_input_chars: int = Field(default=DEFAULT_MAX_INPUT_CHARS, ge=1)


class ActionEntry(BaseModel):
    """One ``[[actions]]`` table."""

    name: str = Field(min_length=1)
    display_name: str | None = None
    prompt_template: str


class SettingsFile(BaseModel):
    """Schema for the whole settings file."""

    llm: LlmSection = Field(default_factory=LlmSection)
    output: OutputSection = Field(default_factory=OutputSection)
    limits: LimitsSection = Field(default_factory=LimitsSection)
    actions: list[ActionEntry] = Field(default_factory=list)

    def to_config(self) -> Config:
        """Convert validated settings into the frozen runtime snapshot."""
        params = self.llm.parameters
        return Config(
            provider=ProviderConfig(
                kind=self.llm.provider,
                model=self.llm.model,
                credential_source=self.llm.api_key_env,
                timeout_s=self.llm.timeout_s,
                max_retries=self.llm.max_retries,
            ),
            generation=GenerationParameters(
                temperature=params.temperature,
                max_output_tokens=params.max_tokens,
                extra=dict(params.model_extra or {}),
            ),
            output=OutputConfig(
                method=self.output.method,
                title=self.output.title,
            ),
            actions=build_registry(
                ActionDefinition(
                    name=entry.name,
                    display_name=entry.display_name or entry.name,
                    prompt_template=entry.prompt_template,
                )
                for entry in self.actions
            ),
            max_input_chars=self.limits.max_input_chars,
        )


# --- Loading ---


def default_config_path() -> Path:
    """Return the settings path, honouring ``$REPHRASER_CONFIG``."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / CONFIG_DIRNAME / CONFIG_FILENAME


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(
            f"Invalid TOML in {path}: {e}",
            hint="Check the file for syntax errors.",
        ) from e
    except OSError as e:
        raise ConfigurationError(f"Could not read {path}: {e}") from e


def parse_settings(data: dict[str, Any], *, source: str = "<settings>") -> Config:
    """Validate a raw settings mapping and build a Config."""
    try:
        settings = SettingsFile.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(
            f"Invalid settings in {source}: {problems}",
            hint="See the example in rephraser.loaders for the expected layout.",
        ) from e
    return settings.to_config()


def load_config(path: str | Path | None = None) -> Config:
    """Load the settings file into a Config snapshot.

    Args:
        path: Settings file; defaults to ``default_config_path()``.

    Returns:
        The validated Config. Defaults are returned when the file is absent.

    Raises:
        ConfigurationError: Unreadable file, invalid TOML, or invalid values.
    """
    resolved = Path(path).expanduser() if path is not None else default_config_path()
    if not resolved.exists():
        logger.debug("No settings file at %s; using defaults", resolved)
        return SettingsFile().to_config()

    logger.debug("Loading settings from %s", resolved)
    return parse_settings(_read_toml(resolved), source=str(resolved))
