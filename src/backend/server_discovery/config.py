"""AppSettings -- server discovery configuration.

All environment variables are read via pydantic-settings.
DB_URL is required and will cause a startup failure if missing.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Server discovery settings, loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Database - Required, application fails to start if missing
    DB_URL: str

    # Scheduled discovery
    DISCOVERY_SCHEDULER_ENABLED: bool = True
    DISCOVERY_INTERVAL_MINUTES: int = 15
    DISCOVERY_PROFILES: str = "windows,linux"

    # Passes allowed to overlap within one batch (1 = strictly sequential)
    DISCOVERY_CONCURRENCY: int = 1

    # Fixed seed for the metric simulator; unset means time-derived
    DISCOVERY_RANDOM_SEED: int | None = None

    # Read side
    SERVICE_HISTORY_LIMIT: int = 10

    LOG_LEVEL: str = "INFO"

    @property
    def profile_names(self) -> list[str]:
        return [name.strip() for name in self.DISCOVERY_PROFILES.split(",") if name.strip()]


settings = AppSettings()
