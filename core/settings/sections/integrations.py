from pydantic import Field
from pydantic_settings import BaseSettings

from core.settings.base import BASE_MODEL_CONFIG


class TelegramSettings(BaseSettings):
    """
    Telegram integration settings.
    Loaded from environment / .env with exact variable name matching.
    """

    enabled: bool = Field(default=False, alias="FIRE22_TELEGRAM_ENABLED")
    token: str = Field(default="", alias="TELEGRAM_BOT_TOKEN")
    chat_id: str = Field(default="", alias="TELEGRAM_CHAT_ID")
    prefix: str = Field(default="[FIRE22]", alias="FIRE22_TELEGRAM_PREFIX")
    min_severity: int = Field(default=50, alias="FIRE22_TELEGRAM_MIN_SEVERITY")

    model_config = BASE_MODEL_CONFIG
