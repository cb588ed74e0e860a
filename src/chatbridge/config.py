"""Configuration for the bridge.

Two layers:

* :class:`BridgeConfig` -- the JSON document describing the IRC server, the
  Discord bot, the channel mapping and the filter characters.  Loaded with
  :func:`load_config`.
* :class:`BridgeSettings` -- process settings from environment variables
  (with ``.env`` file support via *python-dotenv*), validated by
  ``pydantic-settings``.  Tells the bridge where the JSON document lives and
  may override the Discord token so it does not have to sit on disk.

Usage::

    from chatbridge.config import get_settings, load_config

    settings = get_settings()
    config = load_config(settings.BRIDGE_CONFIG, settings)
"""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chatbridge.errors import ConfigError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Config document
# ---------------------------------------------------------------------------


class IrcConfig(BaseModel):
    """IRC server connection parameters."""

    server: str
    port: int = Field(default=6697, ge=1, le=65535)
    use_tls: bool = True
    tls_verify: bool = True
    nickname: str
    username: str | None = None
    realname: str | None = None
    password: str | None = Field(
        default=None,
        description="Server password (PASS), not NickServ.",
    )
    channels: list[str] = Field(
        default_factory=list,
        description="Channels to join.  Filled from the mapping when empty.",
    )

    def __repr__(self) -> str:
        password = "***" if self.password else None
        return (
            f"IrcConfig(server={self.server!r}, port={self.port!r}, "
            f"use_tls={self.use_tls!r}, nickname={self.nickname!r}, "
            f"password={password!r}, channels={self.channels!r})"
        )


class DiscordConfig(BaseModel):
    bot_token: str = ""

    def __repr__(self) -> str:
        return f"DiscordConfig(bot_token={'***' if self.bot_token else None!r})"


class MappingConfig(BaseModel):
    """The two directional channel tables.

    JSON object keys are strings; pydantic coerces the Discord ids to ``int``.
    """

    discord2irc: dict[int, str] = Field(default_factory=dict)
    irc2discord: dict[str, int] = Field(default_factory=dict)


class BridgeConfig(BaseModel):
    """The full bridge configuration document."""

    irc_config: IrcConfig
    discord_config: DiscordConfig = Field(default_factory=DiscordConfig)
    mapping: MappingConfig = Field(default_factory=MappingConfig)
    filterchars: str = Field(
        default="",
        description="Messages starting with any of these characters are not relayed.",
    )

    @model_validator(mode="after")
    def _default_irc_channels(self) -> BridgeConfig:
        """Join every mapped IRC channel unless channels are listed explicitly."""
        if not self.irc_config.channels:
            channels = list(self.mapping.irc2discord)
            for name in self.mapping.discord2irc.values():
                if name not in channels:
                    channels.append(name)
            self.irc_config.channels = channels
        return self

    def __repr__(self) -> str:
        return (
            f"BridgeConfig(irc_config={self.irc_config!r}, "
            f"discord_config={self.discord_config!r}, "
            f"mapping={self.mapping!r}, filterchars={self.filterchars!r})"
        )


# ---------------------------------------------------------------------------
# Process settings
# ---------------------------------------------------------------------------


class BridgeSettings(BaseSettings):
    """Environment-driven settings for the bridge process.

    Every setting carries a default so the bridge can start with only a
    config file in the working directory.
    """

    model_config = SettingsConfigDict(
        # .env loading is handled by load_dotenv() in __main__.py.
        env_file_encoding="utf-8",
        extra="ignore",
    )

    BRIDGE_CONFIG: Path = Field(
        default=Path("config.json"),
        description="Path of the JSON configuration document.",
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root logging level.",
    )
    DISCORD_TOKEN: str | None = Field(
        default=None,
        description="Overrides discord_config.bot_token from the config file.",
    )
    RECEIVE_ERROR_DELAY: float = Field(
        default=1.0,
        ge=0.0,
        description=(
            "Seconds a relay worker waits after a receive error before "
            "listening again.  0 retries immediately."
        ),
    )

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _normalise_level(cls, value: object) -> str:
        level = str(value).strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value!r}")
        return level

    _SENSITIVE_FIELDS: ClassVar[set[str]] = {"DISCORD_TOKEN"}

    def __repr__(self) -> str:
        fields = []
        for name in type(self).model_fields:
            val = getattr(self, name)
            if name in self._SENSITIVE_FIELDS:
                val = "***" if val else None
            fields.append(f"{name}={val!r}")
        return f"BridgeSettings({', '.join(fields)})"


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_config(path: str | Path, settings: BridgeSettings | None = None) -> BridgeConfig:
    """Read and validate the JSON configuration document at *path*.

    When *settings* carries a ``DISCORD_TOKEN`` it replaces the token from
    the file.

    Raises:
        ConfigError: If the file cannot be read, is not valid JSON, fails
            validation, or no Discord token is available at all.
    """
    path = Path(path)
    try:
        data = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigError(f"Failed to decode configuration file {path}: not UTF-8 ({e})") from e

    try:
        config = BridgeConfig.model_validate_json(data)
    except ValidationError as e:
        raise ConfigError(f"Failed to decode configuration file {path}: {e}") from e

    if settings is not None and settings.DISCORD_TOKEN:
        config.discord_config.bot_token = settings.DISCORD_TOKEN
    if not config.discord_config.bot_token:
        raise ConfigError(
            "No Discord bot token: set discord_config.bot_token or DISCORD_TOKEN."
        )

    logger.debug("Loaded configuration from %s: %r", path, config)
    return config


@functools.lru_cache(maxsize=1)
def get_settings() -> BridgeSettings:
    """Return the global :class:`BridgeSettings` singleton.

    Created on first call so importing this module never reads the
    environment before ``.env`` files have been loaded.
    """
    logger.debug("Initialising BridgeSettings from environment.")
    return BridgeSettings()
