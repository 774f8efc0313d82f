from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .settings import TeleflowSettings

# Environment variable names for secrets
ENV_BOT_TOKEN = "TELEFLOW_BOT_TOKEN"
ENV_WEBHOOK_SECRET = "TELEFLOW_WEBHOOK_SECRET"

LOCAL_CONFIG_NAME = Path(".teleflow") / "teleflow.toml"
HOME_CONFIG_PATH = Path.home() / ".teleflow" / "teleflow.toml"


class ConfigError(RuntimeError):
    pass


def _config_candidates() -> list[Path]:
    candidates = [Path.cwd() / LOCAL_CONFIG_NAME, HOME_CONFIG_PATH]
    if candidates[0] == candidates[1]:
        return [candidates[0]]
    return candidates


def _read_config(cfg_path: Path) -> dict:
    try:
        raw = cfg_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Missing config file {cfg_path}.") from None
    except OSError as e:
        raise ConfigError(f"Failed to read config file {cfg_path}: {e}") from e
    try:
        return tomllib.loads(raw)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Malformed TOML in {cfg_path}: {e}") from None


def load_config(path: str | Path | None = None) -> tuple[dict, Path | None]:
    """Return the raw config table and the file it came from.

    Without an explicit path the local ``.teleflow/teleflow.toml`` wins over
    the one in the home directory. A missing file is not an error here: the
    bot token may still come from the environment.
    """
    if path:
        cfg_path = Path(path).expanduser()
        return _read_config(cfg_path), cfg_path

    for candidate in _config_candidates():
        if candidate.is_file():
            return _read_config(candidate), candidate
    return {}, None


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    merged = dict(config)
    env_token = os.environ.get(ENV_BOT_TOKEN)
    if env_token and env_token.strip():
        merged["bot_token"] = env_token.strip()
    env_secret = os.environ.get(ENV_WEBHOOK_SECRET)
    if env_secret and env_secret.strip():
        webhook = merged.get("webhook")
        webhook = dict(webhook) if isinstance(webhook, dict) else {}
        webhook["secret_token"] = env_secret.strip()
        merged["webhook"] = webhook
    return merged


def _format_validation_error(exc: ValidationError, source: str) -> str:
    lines = [f"Invalid config in {source}:"]
    for error in exc.errors():
        loc = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
        lines.append(f"  {loc}: {error.get('msg')}")
    return "\n".join(lines)


def validate_settings(config: dict[str, Any], config_path: Path | None) -> TeleflowSettings:
    source = str(config_path) if config_path is not None else "environment"
    data = _apply_env_overrides(config)
    if "bot_token" not in data:
        raise ConfigError(
            f"Missing bot token. Set {ENV_BOT_TOKEN} environment variable "
            f"or add `bot_token` to {config_path or LOCAL_CONFIG_NAME}."
        )
    try:
        return TeleflowSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(_format_validation_error(e, source)) from None


def load_settings(path: str | Path | None = None) -> TeleflowSettings:
    config, config_path = load_config(path)
    return validate_settings(config, config_path)
