from __future__ import annotations

from pydantic_settings import BaseSettings


class ConfigError(Exception):
    """Raised when startup configuration is missing or invalid."""


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Slack (bot token needs chat:write)
    slack_bot_token: str = ""
    slack_channel_id: str = ""

    # Services file (JSON or YAML, relative to CWD)
    services_file: str = "services.json"

    # Where the board message ts is kept between restarts
    board_ts_path: str = ".board_ts"

    # Consecutive failed probes before a service is reported down
    fail_threshold: int = 4

    # API (serve mode)
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Logging
    log_level: str = "INFO"

    def validate_runtime(self) -> None:
        """Raise ConfigError if settings needed by run/serve are missing or invalid."""
        if not self.slack_bot_token:
            raise ConfigError("SLACK_BOT_TOKEN is not set")
        if not self.slack_channel_id:
            raise ConfigError("SLACK_CHANNEL_ID is not set")
        if self.fail_threshold < 1:
            raise ConfigError("FAIL_THRESHOLD must be at least 1")


settings = Settings()
