from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


# Valor de ejemplo que viene en los .env de plantilla; equivale a no tener clave.
PLACEHOLDER_API_KEY = "your_google_gemini_api_key_here"


def _default_env_file() -> str:
    repo_root = Path(__file__).resolve().parents[2]
    return str(repo_root / ".env")


@dataclass(frozen=True)
class Settings:
    api_base_url: str
    stream_path: str
    stream_buffer_capacity: int

    intent_db_url: str

    gemini_api_key: str
    gemini_model: str
    gemini_base_url: str
    ai_timeout_seconds: float

    anomaly_check_interval_seconds: float
    http_timeout_seconds: float

    @property
    def stream_url(self) -> str:
        return self.api_base_url.rstrip("/") + self.stream_path

    @property
    def ai_configured(self) -> bool:
        key = self.gemini_api_key.strip()
        return bool(key) and key != PLACEHOLDER_API_KEY


def get_settings() -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("WAZAP_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    return Settings(
        api_base_url=os.getenv("API_BASE_URL", "http://localhost:5000"),
        stream_path=os.getenv("STREAM_PATH", "/api/data/stream/raw"),
        stream_buffer_capacity=int(os.getenv("STREAM_BUFFER_CAPACITY", "20")),
        intent_db_url=os.getenv("INTENT_DB_URL", "sqlite:///wazap_state.db"),
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        gemini_base_url=os.getenv(
            "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
        ),
        ai_timeout_seconds=float(os.getenv("AI_TIMEOUT_SECONDS", "20")),
        anomaly_check_interval_seconds=float(os.getenv("ANOMALY_CHECK_INTERVAL_SECONDS", "300")),
        http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", "10")),
    )
