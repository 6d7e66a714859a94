from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

from core.settings.base import BASE_MODEL_CONFIG


class OrchestrationSettings(BaseSettings):
    """
    Event bus, workflow engine and orchestrator settings.
    Loaded from environment / .env with exact variable name matching.
    """

    environment: Literal["development", "test", "production"] = Field(
        default="development", alias="FIRE22_ENVIRONMENT"
    )
    high_value_bet_threshold: float = Field(
        default=5000.0, alias="FIRE22_HIGH_VALUE_BET_THRESHOLD"
    )
    deposit_currency: str = Field(default="USD", alias="FIRE22_DEPOSIT_CURRENCY")

    # Timeouts and retry counts on workflow definitions are configuration
    # only unless this is switched on.
    enforce_step_policies: bool = Field(default=False, alias="FIRE22_ENFORCE_STEP_POLICIES")
    retry_backoff_seconds: float = Field(default=0.5, alias="FIRE22_RETRY_BACKOFF_SECONDS")

    workflow_retention_minutes: int = Field(default=60, alias="FIRE22_WORKFLOW_RETENTION_MINUTES")
    process_retention_hours: int = Field(default=24, alias="FIRE22_PROCESS_RETENTION_HOURS")

    model_config = BASE_MODEL_CONFIG
