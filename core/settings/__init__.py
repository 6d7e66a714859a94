# Settings package
from core.settings.app import AppSettings, get_app_settings
from core.settings.sections.integrations import TelegramSettings
from core.settings.sections.orchestration import OrchestrationSettings

__all__ = ["AppSettings", "get_app_settings", "OrchestrationSettings", "TelegramSettings"]
