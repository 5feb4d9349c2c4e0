import re
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


_WEBHOOK_ORIGIN_RE = re.compile(r"^https://[^/]+$")


class ConfigurationError(RuntimeError):
    """
    Raised at startup when required configuration is missing.
    """

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required configuration: {', '.join(self.missing)}")


class Settings(BaseSettings):
    # Read from OS env and optional .env file in project root.
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Telegram bot credentials and the support group layout.
    bot_token: Optional[str] = Field(
        default=None,
        alias="BOT_TOKEN",
        description="Telegram bot token issued by @BotFather",
    )
    admin_group_id: Optional[str] = Field(
        default=None,
        alias="ADMIN_GROUP_ID",
        description="Support supergroup chat id, e.g. '-1001234567890'",
    )
    requests_thread_id: Optional[int] = Field(
        default=None,
        alias="REQUESTS_THREAD_ID",
        description="Forum topic receiving one card per new conversation",
    )
    logs_thread_id: Optional[int] = Field(
        default=None,
        alias="LOGS_THREAD_ID",
        description="Forum topic receiving the create/close audit log",
    )

    # When set to a bare https origin, updates are pushed via webhook;
    # otherwise the bridge long-polls getUpdates.
    public_origin: Optional[str] = Field(default=None, alias="PUBLIC_ORIGIN")

    host: str = Field("0.0.0.0", alias="HOST")
    port: int = Field(3001, alias="PORT")

    telegram_api_base: str = Field(
        "https://api.telegram.org",
        alias="TELEGRAM_API_BASE",
    )
    # HTTP timeout for every Bot API call, in seconds.
    telegram_timeout: float = Field(10.0, alias="TELEGRAM_TIMEOUT")
    # Long-poll timeout passed to getUpdates, in seconds.
    polling_timeout: int = Field(30, alias="POLLING_TIMEOUT")

    cors_allow_origins: str = Field(
        "*",
        alias="CORS_ALLOW_ORIGINS",
        description="Comma-separated list of allowed origins, '*' for any",
    )

    # Bearer token for the read-only session inspection API.
    # The API is disabled when this is unset.
    admin_api_token: Optional[str] = Field(default=None, alias="ADMIN_API_TOKEN")

    log_level: str = Field(
        "INFO",
        alias="LOG_LEVEL",
        description="Application log level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_timezone: Optional[str] = Field(
        default=None,
        alias="LOG_TIMEZONE",
        description="Timezone name for log timestamps, e.g. 'Europe/Moscow'. Defaults to system local time.",
    )
    log_dir: str = Field("logs", alias="LOG_DIR")

    def missing_required(self) -> List[str]:
        """
        Return env names of required values that are not configured.
        """
        missing: List[str] = []
        if not self.bot_token:
            missing.append("BOT_TOKEN")
        if not self.admin_group_id:
            missing.append("ADMIN_GROUP_ID")
        if self.requests_thread_id is None:
            missing.append("REQUESTS_THREAD_ID")
        if self.logs_thread_id is None:
            missing.append("LOGS_THREAD_ID")
        return missing

    def ensure_configured(self) -> None:
        missing = self.missing_required()
        if missing:
            raise ConfigurationError(missing)

    def get_cors_origins(self) -> List[str]:
        return [
            item.strip()
            for item in self.cors_allow_origins.split(",")
            if item.strip()
        ]

    @property
    def wants_webhook(self) -> bool:
        return bool(self.public_origin) and bool(
            _WEBHOOK_ORIGIN_RE.match(self.public_origin or "")
        )

    @property
    def webhook_path(self) -> str:
        return f"/telegram/{self.bot_token}"

    @property
    def webhook_url(self) -> Optional[str]:
        if not self.wants_webhook:
            return None
        return f"{self.public_origin}{self.webhook_path}"


settings = Settings()  # Reads from environment if available


__all__ = ["ConfigurationError", "Settings", "settings"]
