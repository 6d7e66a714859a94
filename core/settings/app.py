# core/settings/app.py
from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, ConfigDict

from core.settings.sections.integrations import TelegramSettings
from core.settings.sections.orchestration import OrchestrationSettings


class AppSettings(BaseModel):
    """
    Central application settings aggregator.
    Sections are instantiated in get_app_settings() so nothing is read
    from the environment at import time.
    """

    model_config = ConfigDict(extra="ignore")

    orchestration: OrchestrationSettings
    telegram: TelegramSettings

    @property
    def environment(self) -> str:
        return self.orchestration.environment

    @property
    def is_production(self) -> bool:
        return self.orchestration.environment == "production"


@lru_cache()
def get_app_settings() -> AppSettings:
    """Return cached global settings for the entire app."""
    return AppSettings(
        orchestration=OrchestrationSettings(),
        telegram=TelegramSettings(),
    )
