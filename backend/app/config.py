from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    google_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    analyze_timeout_s: float = 60.0

    # Local testing without a Gemini key.
    use_mock_data: bool = False
    mock_error: str = ""
    mock_delay_s: float = 1.5

    default_booth_size_m2: float = 9.0
    monitor_max_sessions: int = 32
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Read settings from the environment (a .env file is loaded on import)."""
    origins = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]
    return Settings(
        google_api_key=os.environ.get("GOOGLE_AI_API_KEY", ""),
        gemini_model=os.environ.get("GEMINI_MODEL", "gemini-2.5-flash"),
        gemini_api_base=os.environ.get("GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta").rstrip("/"),
        analyze_timeout_s=_env_float("ANALYZE_TIMEOUT_S", 60.0),
        use_mock_data=_env_bool("USE_MOCK_DATA"),
        mock_error=os.environ.get("MOCK_ERROR", "").strip().lower(),
        mock_delay_s=_env_float("MOCK_DELAY_S", 1.5),
        default_booth_size_m2=_env_float("DEFAULT_BOOTH_SIZE_M2", 9.0),
        monitor_max_sessions=max(1, int(_env_float("MONITOR_MAX_SESSIONS", 32))),
        cors_origins=origins or ["*"],
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )
