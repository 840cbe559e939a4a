# app/config.py
"""
Application configuration using Pydantic-Settings.
All settings can be overridden via environment variables or .env file.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # ── Database (user accounts only) ─────────────────────────────────────
    DATABASE_URL: str = "sqlite:///./smart_office.db"

    # ── Network ───────────────────────────────────────────────────────────
    BACKEND_IP: str = "0.0.0.0"
    BACKEND_PORT: int = 3001
    CORS_ORIGINS: list[str] = ["*"]

    # ── Auth ──────────────────────────────────────────────────────────────
    JWT_SECRET: str = "fallback_secret"    # Always override in .env
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 60
    BCRYPT_ROUNDS: int = 10
    MIN_PASSWORD_LENGTH: int = 6
    AUTH_ENABLED: bool = True

    # ── ThingSpeak telemetry ──────────────────────────────────────────────
    THINGSPEAK_BASE_URL: str = "https://api.thingspeak.com"
    THINGSPEAK_CHANNEL_ID: Optional[str] = None   # Unset = telemetry disabled
    THINGSPEAK_READ_API_KEY: Optional[str] = None
    THINGSPEAK_WRITE_API_KEY: Optional[str] = None  # Only used by the simulator script
    TELEMETRY_TIMEOUT_SECONDS: float = 5.0
    TELEMETRY_RESULTS: int = 1

    # Which ThingSpeak field carries which signal
    LDR_FIELD: int = 1
    AQI_FIELD: int = 2
    TEMPERATURE_FIELD: int = 3
    FIRE_FIELD: int = 4
    RFID_FIELD: int = 5
    MOTION_FIELD: int = 6

    # ── Thresholds ────────────────────────────────────────────────────────
    RECENCY_THRESHOLD_SECONDS: float = 30.0   # Older samples are stale
    LDR_THRESHOLD: int = 500                  # LDR below this = dark = light on
    AQI_GOOD_BELOW: int = 100
    AQI_MODERATE_BELOW: int = 200
    GATE_CLOSE_DELAY_SECONDS: float = 3.0
    EVENT_LOG_CAPACITY: int = 20

    # ── Polling (seconds) ─────────────────────────────────────────────────
    POLLING_ENABLED: bool = True
    MONITORING_POLL_SECONDS: float = 3.0
    ACCESS_SAFETY_POLL_SECONDS: float = 2.0
    ALERTS_POLL_SECONDS: float = 4.0

    # ── Hardware (NodeMCU light controller) ───────────────────────────────
    ESP_URL: Optional[str] = None   # e.g. http://10.143.96.200 — unset = no hardware
    ESP_TIMEOUT_SECONDS: float = 2.0

    # ── Logging ───────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = True
    LOG_DIR: str = "logs"

    @property
    def TELEMETRY_ENABLED(self) -> bool:
        return bool(self.THINGSPEAK_CHANNEL_ID)

    @property
    def POLL_INTERVALS(self) -> dict:
        return {
            "monitoring":    self.MONITORING_POLL_SECONDS,
            "access-safety": self.ACCESS_SAFETY_POLL_SECONDS,
            "alerts":        self.ALERTS_POLL_SECONDS,
        }

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
