"""
Configuration loading for the bot.

The configuration is a YAML mapping. Only ``token`` is required; it may also
come from the ``SBOT_TELEGRAM_TOKEN`` environment variable, which takes
precedence over the file.

Example ``sbot.yaml``::

    token: "123456:ABC"
    chat_id: -1001234567890
    prefix_len: 3
    database:
      host: localhost
      dbname: tts
      user: sbot
"""

import os
from dataclasses import dataclass, field, fields

import yaml

TOKEN_ENV_VAR = "SBOT_TELEGRAM_TOKEN"


class ConfigError(ValueError):
    """Raised when the configuration file is missing or invalid."""


@dataclass
class BotConfig:
    token: str
    chat_id: int = 0
    database: dict = field(default_factory=dict)
    prefix_len: int = 3
    reply_words: int = 100
    poll_interval: float = 300.0
    rebuild_interval: float = 0.0
    corpus_days: int = 730
    fallback_reply: str = "Что?"


_TYPES = {
    "token": str,
    "chat_id": int,
    "database": dict,
    "prefix_len": int,
    "reply_words": int,
    "poll_interval": (int, float),
    "rebuild_interval": (int, float),
    "corpus_days": int,
    "fallback_reply": str,
}


def load_config(path):
    """
    Load the bot configuration from a YAML file.

    Args:
        path (str): Path to the YAML file

    Returns:
        BotConfig: The parsed configuration

    Raises:
        ConfigError: If the file cannot be read, is not a mapping, lacks a
            token, or holds a value of the wrong type or out of range.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    env_token = os.getenv(TOKEN_ENV_VAR, "").strip()
    if env_token:
        data["token"] = env_token

    known = {f.name for f in fields(BotConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

    for key, value in data.items():
        expected = _TYPES[key]
        # bool is an int subclass, but never a valid number here
        if isinstance(value, bool) or not isinstance(value, expected):
            raise ConfigError(f"Config key '{key}' has invalid value {value!r}")

    if not data.get("token"):
        raise ConfigError(
            f"Telegram token is missing (set 'token' or {TOKEN_ENV_VAR})")

    if data.get("prefix_len", 3) < 1:
        raise ConfigError("Config key 'prefix_len' must be at least 1")

    if data.get("poll_interval", 300.0) <= 0:
        raise ConfigError("Config key 'poll_interval' must be positive")

    if data.get("rebuild_interval", 0.0) < 0:
        raise ConfigError(
            "Config key 'rebuild_interval' must not be negative (0 disables rebuilds)")

    return BotConfig(**data)
