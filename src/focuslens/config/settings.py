"""Configuration management for focuslens.

One pydantic model per concern (capture, triggers, analysis, tracker,
telemetry, server, logging) under a pydantic-settings root. Values come
from the YAML file, a .env file and the environment; the OpenAI key is
kept as a SecretStr so it never shows up in logs.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/focuslens.yaml")


class CaptureConfig(BaseModel):
    monitor: int = Field(default=1, ge=0, description="mss monitor index (0 = all displays)")
    jpeg_quality: int = Field(default=90, ge=1, le=100)
    max_dimension: int | None = Field(
        default=None, gt=0, description="Downscale frames whose longest side exceeds this"
    )


class TriggerConfig(BaseModel):
    periodic_interval: float = Field(default=30.0, gt=0)
    keystroke_threshold: int = Field(default=20, gt=0)
    clicks_enabled: bool = Field(default=True)
    keystrokes_enabled: bool = Field(default=True)
    focus_enabled: bool = Field(default=True)
    focus_poll_interval: float = Field(default=0.5, gt=0)


class AnalysisConfig(BaseModel):
    mode: Literal["client", "server", "fake"] = Field(default="client")
    model: str = Field(default="gpt-4o")
    base_url: str | None = Field(default=None)
    max_tokens: int = Field(default=500, gt=0)
    proxy_url: str = Field(default="http://localhost:8000")
    timeout: float = Field(default=60.0, gt=0)
    prompt_override: str | None = Field(default=None)
    fake_delay: float = Field(default=0.0, ge=0)


class TrackerConfig(BaseModel):
    goal: str = Field(default="Complete project documentation")
    log_display_limit: int = Field(default=5, gt=0)
    metrics_mode: Literal["latest", "moving_average"] = Field(default="latest")
    metrics_window: int = Field(default=5, gt=0)
    screenshot_dir: str | None = Field(default=None)


class TelemetryConfig(BaseModel):
    backend: Literal["log", "http"] = Field(default="log")
    url: str = Field(default="http://localhost:8000/api/sessions")
    timeout: float = Field(default=5.0, gt=0)


class ServerConfig(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1, le=65535)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for focuslens.

    Nested sections can be overridden from the environment, e.g.
    ``FOCUSLENS_TRIGGERS__PERIODIC_INTERVAL=10``.
    """

    model_config = {
        "env_prefix": "FOCUSLENS_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # API key used by the client-side analysis and by the proxy server
    openai_api_key: SecretStr = Field(default=SecretStr(""))

    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    triggers: TriggerConfig = Field(default_factory=TriggerConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML values arrive as init kwargs; the environment must win over them
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Build the settings for one focuslens run.

    Sources, strongest first: ``FOCUSLENS_*`` environment variables,
    the unprefixed OpenAI variables (``OPENAI_API_KEY``,
    ``OPENAI_BASE_URL``, ``VISION_MODEL``, also read from ``.env``),
    the YAML file, then the model defaults.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    _export_dotenv(Path(".env"))
    data = _read_yaml(path)
    _merge_plain_env(data)
    return Settings(**data)


def _read_yaml(path: Path) -> dict:
    if not path.is_file():
        logger.warning("No config file at %s, using defaults and environment", path)
        return {}
    with path.open() as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    logger.info("Read configuration from %s", path)
    return data


def _export_dotenv(env_path: Path) -> None:
    """Copy KEY=VALUE pairs from ``env_path`` into os.environ.

    Variables already set in the environment are left alone.
    """
    if not env_path.is_file():
        return
    for raw in env_path.read_text().splitlines():
        entry = raw.strip()
        if not entry or entry.startswith("#") or "=" not in entry:
            continue
        name, _, value = entry.partition("=")
        name = name.strip().removeprefix("export ").strip()
        value = value.strip().strip('"').strip("'")
        if not os.environ.get(name):
            os.environ[name] = value


# Unprefixed variable -> (section, field); section None means top level
_PLAIN_ENV = {
    "OPENAI_API_KEY": (None, "openai_api_key"),
    "OPENAI_BASE_URL": ("analysis", "base_url"),
    "VISION_MODEL": ("analysis", "model"),
}


def _merge_plain_env(data: dict) -> None:
    """Fill values from the unprefixed variables unless the YAML sets them."""
    for var, (section, field) in _PLAIN_ENV.items():
        value = os.environ.get(var)
        if not value:
            continue
        if section is None:
            target = data
        else:
            target = data[section] = data.get(section) or {}
        if not target.get(field):
            target[field] = value
