"""gemrelay configuration management."""

import os

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class RelaySettings(BaseSettings):
    """Settings loaded from environment variables or .env file."""

    # Secrets — both required
    gemini_api_key: str = Field(
        validation_alias=AliasChoices("GEMINI_API_KEY", "GEMRELAY_GEMINI_API_KEY"),
        description="Gemini API key",
    )
    discord_bot_token: str = Field(
        validation_alias=AliasChoices("DISCORD_BOT_TOKEN", "GEMRELAY_DISCORD_BOT_TOKEN"),
        description="Discord bot token",
    )

    # Runtime
    debug: bool = Field(default=False, description="Debug logging")
    log_file: str = Field(default="~/gemrelay.log", description="Log file path")

    # Bot profile, applied once on login
    avatar_path: str = Field(default="icon.png", description="PNG used as bot avatar")
    bot_username: str = Field(default="Gemini Relay", description="Bot username")

    model_config = {
        "env_prefix": "GEMRELAY_",
        "env_file": ".env",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @property
    def log_path(self) -> str:
        return os.path.expanduser(self.log_file)


def load_settings() -> RelaySettings:
    """Load settings from environment."""
    return RelaySettings()
