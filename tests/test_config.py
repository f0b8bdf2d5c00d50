import os
import unittest
from datetime import timedelta

from pydantic import ValidationError

from marine_conditions.config import Settings


class TestConfig(unittest.TestCase):
    def test_settings_defaults(self):
        previous = os.environ.pop("MARINE_CURRENT_TIDE_TTL_SECONDS", None)
        try:
            s = Settings()
            self.assertEqual(s.current_tide_ttl_seconds, 1800)
            self.assertEqual(s.tide_forecast_ttl_seconds, 6 * 3600)
            self.assertEqual(s.current_weather_ttl_seconds, 1800)
            self.assertEqual(s.weather_forecast_ttl_seconds, 3 * 3600)
            self.assertEqual(s.max_forecast_days, 7)
            self.assertEqual(s.tide_window, timedelta(hours=24))
        finally:
            if previous is not None:
                os.environ["MARINE_CURRENT_TIDE_TTL_SECONDS"] = previous

    def test_settings_env_override(self):
        previous = os.environ.get("MARINE_CACHE_REDIS_URL")
        try:
            os.environ["MARINE_CACHE_REDIS_URL"] = "redis://example.com:6379/0"
            s = Settings()
            self.assertEqual(s.cache_redis_url, "redis://example.com:6379/0")
        finally:
            if previous is None:
                os.environ.pop("MARINE_CACHE_REDIS_URL", None)
            else:
                os.environ["MARINE_CACHE_REDIS_URL"] = previous

    def test_ttl_must_be_positive(self):
        with self.assertRaises(ValidationError):
            Settings(current_weather_ttl_seconds=0)

    def test_forecast_days_limited_to_a_week(self):
        self.assertEqual(Settings(max_forecast_days=3).max_forecast_days, 3)
        with self.assertRaises(ValidationError):
            Settings(max_forecast_days=8)
        with self.assertRaises(ValidationError):
            Settings(max_forecast_days=0)


if __name__ == "__main__":
    unittest.main()
