"""
Application configuration

Reads every tunable from environment variables (loaded from .env by the
entry points) into a single immutable AppConfig.
"""

import os
from dataclasses import dataclass


REQUIRED_VARS = [
    "GOOGLE_API_KEY",
    "GRADIENT_AGENT_ACCESS_KEY",
    "GRADIENT_AGENT_ENDPOINT",
]


@dataclass(frozen=True)
class AppConfig:
    """Runtime configuration for services, delays and the web server"""
    google_api_key: str = ""
    gradient_access_key: str = ""
    gradient_endpoint: str = ""
    gradient_model: str = "llama3.3-70b-instruct"
    gemini_vision_model: str = "gemini-2.5-flash"
    gemini_image_model: str = "gemini-3-pro-image-preview"
    output_folder: str = "output"
    upload_folder: str = "uploads"
    weather_provider: str = "open-meteo"
    delay_scale: float = 1.0
    suggestion_delay_ms: int = 500
    session_timeout_minutes: int = 60
    port: int = 5001
    secret_key: str = "wearly-secret-key-change-in-production"
    log_level: str = "INFO"

    def delay_seconds(self, delay_ms: int) -> float:
        """Convert a millisecond delay to scaled seconds"""
        return max(delay_ms, 0) * self.delay_scale / 1000.0


def load_config() -> AppConfig:
    """
    Build an AppConfig from environment variables.

    Returns:
        AppConfig populated from the environment with defaults

    Raises:
        ValueError: If a numeric variable cannot be parsed
    """
    return AppConfig(
        google_api_key=os.getenv("GOOGLE_API_KEY", ""),
        gradient_access_key=os.getenv("GRADIENT_AGENT_ACCESS_KEY", ""),
        gradient_endpoint=os.getenv("GRADIENT_AGENT_ENDPOINT", ""),
        gradient_model=os.getenv("GRADIENT_MODEL", "llama3.3-70b-instruct"),
        gemini_vision_model=os.getenv("GEMINI_VISION_MODEL", "gemini-2.5-flash"),
        gemini_image_model=os.getenv("GEMINI_IMAGE_MODEL", "gemini-3-pro-image-preview"),
        output_folder=os.getenv("OUTPUT_FOLDER", "output"),
        upload_folder=os.getenv("UPLOAD_FOLDER", "uploads"),
        weather_provider=os.getenv("WEATHER_PROVIDER", "open-meteo").lower(),
        delay_scale=float(os.getenv("DELAY_SCALE", "1.0")),
        suggestion_delay_ms=int(os.getenv("SUGGESTION_DELAY_MS", "500")),
        session_timeout_minutes=int(os.getenv("SESSION_TIMEOUT_MINUTES", "60")),
        port=int(os.getenv("PORT", "5001")),
        secret_key=os.getenv("SECRET_KEY", "wearly-secret-key-change-in-production"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def check_environment():
    """
    Check that required environment variables are set.

    Returns:
        list[str]: Names of the missing variables (empty when all are set)
    """
    return [var for var in REQUIRED_VARS if not os.getenv(var)]
