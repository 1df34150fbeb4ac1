"""Configuration schema and loading."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

GMAIL_SCOPES = [
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/gmail.send",
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.compose",
]

# Model name prefix -> environment variable litellm reads the key from.
PROVIDER_KEY_ENV: dict[str, str] = {
    "anthropic": "ANTHROPIC_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
}

# Plain environment names accepted for compatibility with existing .env files.
_LEGACY_ENV: dict[str, tuple[str, str]] = {
    "AGENT_NAME": ("agent", "name"),
    "MAX_TOKENS": ("agent", "max_tokens"),
    "TEMPERATURE": ("agent", "temperature"),
    "GMAIL_CREDENTIALS_PATH": ("gmail", "credentials_path"),
    "GMAIL_TOKEN_PATH": ("gmail", "token_path"),
}


class AgentConfig(BaseModel):
    name: str = "CodingAgent"
    model: str = "gpt-4"
    api_key: str = ""
    api_base: str = ""
    max_tokens: int = 4000
    temperature: float = 0.1
    history_window: int = 10
    recent_files_in_prompt: int = 10
    data_preview_chars: int = 200
    native_tool_calls: bool = True
    llm_max_retries: int = 3
    llm_retry_base_delay: float = 1.0


class ToolsConfig(BaseModel):
    exec_timeout: int = 0  # seconds; 0 = wait for completion
    max_output_bytes: int = 10 * 1024 * 1024
    restrict_to_workspace: bool = False


class GmailConfig(BaseModel):
    enabled: bool = True
    credentials_path: str = "credentials.json"
    token_path: str = "token.json"
    scopes: list[str] = Field(default_factory=lambda: list(GMAIL_SCOPES))

    @property
    def available(self) -> bool:
        return self.enabled and Path(self.credentials_path).expanduser().exists()


class LogConfig(BaseModel):
    level: str = "WARNING"
    format: str = "{time:HH:mm:ss} | {level:<7} | {message}"
    json_format: bool = False
    file: str = ""           # empty = no file output
    rotation: str = "10 MB"  # loguru rotation param
    retention: str = "7 days"


class EventLogConfig(BaseModel):
    enabled: bool = False
    file: str = ""  # empty = ./.codeagent/events.jsonl


class CodeAgentConfig(BaseSettings):
    agent: AgentConfig = Field(default_factory=AgentConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    gmail: GmailConfig = Field(default_factory=GmailConfig)
    log: LogConfig = Field(default_factory=LogConfig)
    event_log: EventLogConfig = Field(default_factory=EventLogConfig)

    model_config = SettingsConfigDict(
        env_prefix="CODEAGENT_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings):
        # env > dotenv > file (init) > defaults -- environment variables always win
        return (env_settings, dotenv_settings, init_settings, file_secret_settings)


def _camel_to_snake(name: str) -> str:
    s = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    s = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s)
    return s.lower()


def _convert_keys(data: Any) -> Any:
    if isinstance(data, dict):
        return {_camel_to_snake(k): _convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_convert_keys(i) for i in data]
    return data


def _legacy_overrides(file_data: dict[str, Any]) -> dict[str, Any]:
    """Fold plain env names (AGENT_NAME, GMAIL_TOKEN_PATH, ...) under the file data."""
    for env_name, (section, key) in _LEGACY_ENV.items():
        value = os.getenv(env_name)
        if value:
            file_data.setdefault(section, {}).setdefault(key, value)
    return file_data


def load_config(config_path: str | None = None) -> CodeAgentConfig:
    """Load config from an optional JSON file, .env and environment variables."""
    load_dotenv()
    file_data: dict[str, Any] = {}
    if config_path:
        path = Path(config_path).expanduser()
        if not path.exists():
            raise ValueError(f"Config file not found: {path}")
        try:
            file_data = _convert_keys(json.loads(path.read_text(encoding="utf-8")))
        except json.JSONDecodeError as e:
            raise ValueError(f"Config file {path} is not valid JSON: {e}") from e

    # Pass file data as kwargs so BaseSettings still applies env var overrides
    return CodeAgentConfig(**_legacy_overrides(file_data))


def resolve_api_key(config: CodeAgentConfig) -> str:
    """The configured key, else the provider key litellm would read for this model."""
    if config.agent.api_key:
        return config.agent.api_key
    model = config.agent.model.lower()
    for prefix, env_var in PROVIDER_KEY_ENV.items():
        if prefix in model:
            return os.getenv(env_var, "")
    return os.getenv("OPENAI_API_KEY", "")


def validate_startup(config: CodeAgentConfig) -> None:
    """Validate config before the loop starts. Raises ValueError with all errors."""
    errors: list[str] = []

    if not resolve_api_key(config) and not config.agent.api_base:
        errors.append(
            "No model credential. Set OPENAI_API_KEY (or the provider key for "
            f"'{config.agent.model}') or CODEAGENT_AGENT__API_KEY"
        )
    if config.agent.history_window < 1:
        errors.append(f"agent.history_window must be >= 1, got {config.agent.history_window}")
    if not 0.0 <= config.agent.temperature <= 2.0:
        errors.append(f"agent.temperature must be within [0, 2], got {config.agent.temperature}")
    if config.tools.exec_timeout < 0:
        errors.append(f"tools.exec_timeout must be >= 0, got {config.tools.exec_timeout}")

    valid_levels = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
    if config.log.level.upper() not in valid_levels:
        errors.append(f"log.level '{config.log.level}' invalid, must be one of {valid_levels}")

    if errors:
        raise ValueError(
            "codeagent configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
        )
