"""
Configuration for the emotion tracker.
"""
from typing import List
from pydantic import BaseModel
from dotenv import load_dotenv
import os

from core.errors import ConfigurationError

# Pick up credentials from a local .env without overriding the real environment
load_dotenv()

HUME_KEY_SLOTS = 10
GEMINI_KEY_SLOTS = 3


def collect_keys(prefix: str, slots: int) -> List[str]:
    """
    Read PREFIX_1..PREFIX_<slots> from the environment, dropping absent/blank entries.
    """
    keys = []
    for i in range(1, slots + 1):
        value = (os.getenv(f"{prefix}_{i}") or "").strip()
        if value:
            keys.append(value)
    return keys


class Settings(BaseModel):
    """
    Runtime settings with environment-variable overrides.
    """
    HUME_STREAM_URL: str = os.getenv("HUME_STREAM_URL", "wss://api.hume.ai/v0/stream/models")
    HUME_BATCH_URL: str = os.getenv("HUME_BATCH_URL", "https://api.hume.ai/v0/batch/jobs")
    GEMINI_URL: str = os.getenv(
        "GEMINI_URL",
        "https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent",
    )

    HUME_API_KEYS: List[str] = collect_keys("HUME_API_KEY", HUME_KEY_SLOTS)
    GEMINI_API_KEYS: List[str] = collect_keys("GEMINI_API_KEY", GEMINI_KEY_SLOTS)
    # Server-held key for the analysis proxy
    HUME_API_KEY: str | None = os.getenv("HUME_API_KEY") or None

    EXCHANGE_TIMEOUT: float = float(os.getenv("EXCHANGE_TIMEOUT", "5"))
    WS_CLOSE_TIMEOUT: float = float(os.getenv("WS_CLOSE_TIMEOUT", "0.2"))
    CAPTURE_INTERVAL: float = float(os.getenv("CAPTURE_INTERVAL", "1.5"))
    READY_RETRY_DELAY: float = float(os.getenv("READY_RETRY_DELAY", "0.5"))
    ROTATION_COOLDOWN_MS: int = int(os.getenv("ROTATION_COOLDOWN_MS", "1000"))
    MAX_SESSION_POINTS: int = int(os.getenv("MAX_SESSION_POINTS", "800"))
    PERF_WINDOW: int = int(os.getenv("PERF_WINDOW", "50"))
    RETRY_ATTEMPTS: int = int(os.getenv("RETRY_ATTEMPTS", "3"))
    RETRY_BASE_DELAY: float = float(os.getenv("RETRY_BASE_DELAY", "0.5"))
    JPEG_QUALITY: int = int(os.getenv("JPEG_QUALITY", "70"))
    CAMERA_INDEX: int = int(os.getenv("CAMERA_INDEX", "0"))

    MIN_SUMMARY_POINTS: int = int(os.getenv("MIN_SUMMARY_POINTS", "5"))
    GEMINI_TIMEOUT: float = float(os.getenv("GEMINI_TIMEOUT", "30"))
    PROXY_TIMEOUT: float = float(os.getenv("PROXY_TIMEOUT", "30"))
    SUMMARY_TEMPERATURE: float = float(os.getenv("SUMMARY_TEMPERATURE", "0.7"))
    SUMMARY_MAX_TOKENS: int = int(os.getenv("SUMMARY_MAX_TOKENS", "1000"))

    def __init__(self, **data):
        super().__init__(**data)
        # Keys may come in through the constructor with stray whitespace / blanks
        for name in ("HUME_API_KEYS", "GEMINI_API_KEYS"):
            cleaned = [k.strip() for k in getattr(self, name) if k and k.strip()]
            object.__setattr__(self, name, cleaned)
        quality = max(1, min(100, int(self.JPEG_QUALITY)))
        object.__setattr__(self, "JPEG_QUALITY", quality)

    def validate_credentials(self) -> None:
        """
        Raise ConfigurationError when either service has no usable key.
        """
        if not self.HUME_API_KEYS:
            raise ConfigurationError(
                "No Hume API keys configured. Please add HUME_API_KEY_1 to your .env file."
            )
        if not self.GEMINI_API_KEYS:
            raise ConfigurationError(
                "No Gemini API keys configured. Please add GEMINI_API_KEY_1 to your .env file."
            )

    def proxy_key(self) -> str | None:
        if self.HUME_API_KEY:
            return self.HUME_API_KEY
        return self.HUME_API_KEYS[0] if self.HUME_API_KEYS else None
