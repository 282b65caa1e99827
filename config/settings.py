"""Runtime settings for the approval server and the hook client."""

import logging
import os
from typing import Mapping

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

# Environment variable names
WEBSOCKET_PORT_ENV = "WEBSOCKET_PORT"
HOST_ENV = "HOST"
TIMEOUT_ENV = "CC_NOTIFY_TIMEOUT"
WS_URL_ENV = "CC_NOTIFY_WS_URL"
LOG_LEVEL_ENV = "LOG_LEVEL"
DISCORD_BOT_TOKEN_ENV = "DISCORD_BOT_TOKEN"
DISCORD_CHANNEL_ID_ENV = "DISCORD_CHANNEL_ID"
DISCORD_PUBLIC_KEY_ENV = "DISCORD_PUBLIC_KEY"

# Default values
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3847
DEFAULT_TIMEOUT_MS = 600_000
DEFAULT_WS_URL = f"ws://localhost:{DEFAULT_PORT}"
DEFAULT_LOG_LEVEL = "INFO"


class DiscordSettings(BaseModel):
    """Credentials for the Discord notification channel."""

    bot_token: str = Field(min_length=1)
    channel_id: str = Field(min_length=1)
    public_key: str = Field(min_length=1, description="Application public key (hex)")


class ServerSettings(BaseModel):
    """Approval server configuration."""

    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    log_level: str = DEFAULT_LOG_LEVEL
    discord: DiscordSettings | None = None

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ServerSettings":
        """
        Build settings from environment variables.

        Discord settings are only populated when all three Discord variables
        are present.

        Raises:
            ValidationError: If a variable holds an invalid value
        """
        env = os.environ if environ is None else environ

        data: dict = {}
        if env.get(HOST_ENV):
            data["host"] = env[HOST_ENV]
        if env.get(WEBSOCKET_PORT_ENV):
            data["port"] = env[WEBSOCKET_PORT_ENV]
        if env.get(TIMEOUT_ENV):
            data["timeout_ms"] = env[TIMEOUT_ENV]
        if env.get(LOG_LEVEL_ENV):
            data["log_level"] = env[LOG_LEVEL_ENV]

        token = env.get(DISCORD_BOT_TOKEN_ENV)
        channel_id = env.get(DISCORD_CHANNEL_ID_ENV)
        public_key = env.get(DISCORD_PUBLIC_KEY_ENV)
        if token and channel_id and public_key:
            data["discord"] = {
                "bot_token": token,
                "channel_id": channel_id,
                "public_key": public_key,
            }
        elif token or channel_id or public_key:
            logger.warning(
                "Discord disabled: %s, %s and %s must all be set",
                DISCORD_BOT_TOKEN_ENV,
                DISCORD_CHANNEL_ID_ENV,
                DISCORD_PUBLIC_KEY_ENV,
            )

        return cls.model_validate(data)


class HookSettings(BaseModel):
    """Hook client configuration."""

    ws_url: str = DEFAULT_WS_URL
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "HookSettings":
        """
        Build settings from environment variables.

        Never raises: the hook must always answer, so invalid values fall back
        to the defaults.
        """
        env = os.environ if environ is None else environ

        data: dict = {}
        if env.get(WS_URL_ENV):
            data["ws_url"] = env[WS_URL_ENV]
        if env.get(TIMEOUT_ENV):
            data["timeout_ms"] = env[TIMEOUT_ENV]

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            logger.warning("Invalid hook settings, using defaults: %s", e)
            return cls()
