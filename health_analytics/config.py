from pathlib import Path
from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # MongoDB settings
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "health_analytics"
    MONGO_USER: str | None = None
    MONGO_PASSWORD: str | None = None
    MONGO_SERVER_SELECTION_TIMEOUT_MS: int = 5000
    MONGO_MAX_POOL_SIZE: int = 50

    # Kafka settings
    KAFKA_BROKERS: str = "localhost:9092"
    KAFKA_AUTO_OFFSET_RESET: str = "earliest"
    KAFKA_MEDICAL_RECORD_TOPIC: str = "medical_records"
    KAFKA_GENETIC_DATA_TOPIC: str = "genetic_data"
    KAFKA_LIFESTYLE_DATA_TOPIC: str = "lifestyle_data"
    KAFKA_WEARABLE_DATA_TOPIC: str = "wearable_data"
    KAFKA_HEALTH_RECOMMENDATION_TOPIC: str = "health_recommendations"

    # Redis settings (notification store)
    REDIS_URL: str = "redis://localhost:6379/0"

    # Summaries are windowed on calendar days in this zone
    SUMMARY_TIMEZONE: str = "UTC"

    NOTIFICATION_QUEUE_SIZE: int = 1000

    # Deadline applied to query facade calls; None disables it
    QUERY_TIMEOUT_SECONDS: float | None = 10.0

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def kafka_bootstrap_servers(self) -> list[str]:
        """Split the comma-separated broker list."""
        return [broker.strip() for broker in self.KAFKA_BROKERS.split(",") if broker.strip()]

    def topic_for(self, topic_setting: str) -> str:
        """Resolve a topic name from its setting name, e.g. KAFKA_GENETIC_DATA_TOPIC."""
        return getattr(self, topic_setting)

    def get_mongo_client_config(self) -> dict[str, Any]:
        """
        Get MongoDB client configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config: dict[str, Any] = {
            "serverSelectionTimeoutMS": self.MONGO_SERVER_SELECTION_TIMEOUT_MS,
            "maxPoolSize": self.MONGO_MAX_POOL_SIZE,
            "tz_aware": True,
        }

        if self.MONGO_USER:
            config.update({"username": self.MONGO_USER, "password": self.MONGO_PASSWORD})

        if self.environment == "development":
            config.update({"maxPoolSize": min(self.MONGO_MAX_POOL_SIZE, 10)})

        return config


settings = Settings()
