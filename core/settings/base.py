# core/settings/base.py
from pydantic_settings import SettingsConfigDict

# Shared by every settings section: optional .env next to the process CWD,
# unknown variables ignored.
BASE_MODEL_CONFIG = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    extra="ignore",
    populate_by_name=True,
)
