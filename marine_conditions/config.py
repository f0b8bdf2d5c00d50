"""Engine configuration pulled from environment variables via pydantic."""
from datetime import timedelta

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the marine conditions engine."""
    model_config = SettingsConfigDict(env_prefix="MARINE_", extra="ignore")

    tide_source: str = "worldtides"  # options: worldtides
    weather_source: str = "open_meteo"  # options: open_meteo
    worldtides_api_key: str | None = None
    tide_datum: str = "MLLW"
    cache_redis_url: str | None = None
    cache_key_prefix: str = "marine:"
    cache_max_entries: int | None = 512
    current_tide_ttl_seconds: int = 30 * 60
    tide_forecast_ttl_seconds: int = 6 * 60 * 60
    current_weather_ttl_seconds: int = 30 * 60
    weather_forecast_ttl_seconds: int = 3 * 60 * 60
    max_forecast_days: int = 7
    tide_window_hours: int = 24
    request_timeout_seconds: float = 10.0

    @field_validator(
        "current_tide_ttl_seconds",
        "tide_forecast_ttl_seconds",
        "current_weather_ttl_seconds",
        "weather_forecast_ttl_seconds",
        "tide_window_hours",
        mode="after",
    )
    @classmethod
    def require_positive(cls, v: int) -> int:
        """TTLs and windows must be strictly positive."""
        if v <= 0:
            raise ValueError("must be a positive number")
        return v

    @field_validator("max_forecast_days", mode="after")
    @classmethod
    def cap_forecast_days(cls, v: int) -> int:
        """Forecast horizon is limited to 1-7 days."""
        if not 1 <= v <= 7:
            raise ValueError("max_forecast_days must be between 1 and 7")
        return v

    @property
    def tide_window(self) -> timedelta:
        return timedelta(hours=self.tide_window_hours)


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")
