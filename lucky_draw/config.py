"""Application configuration using Pydantic Settings."""

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # App
    APP_NAME: str = "LED Lucky Draw"
    APP_ENV: str = "development"
    DEBUG: bool = True
    CORS_ORIGIN: str = "http://localhost:5173"

    # Google Sheets (public GViz read)
    SHEET_ID: str = ""
    SHEET_PARTICIPANTS: str = "Participants"
    SHEET_PRIZES: str = "Prizes"
    SHEET_WINNERS: str = "winners_log"
    UPSTREAM_TIMEOUT_SECONDS: float = 30.0
    CACHE_TTL_SECONDS: float = 10.0

    # Optional write-back (Apps Script web app)
    WRITE_WEBAPP_URL: str = ""

    # Draw
    RNG_SALT: str = ""

    # Realtime
    WS_PATH: str = "/ws"
    WS_SEND_TIMEOUT_SECONDS: float = 5.0

    # Roster prefetch
    ROSTER_PREFETCH_ENABLED: bool = False
    ROSTER_PREFETCH_SECONDS: int = 30

    # Console / realtime client
    SERVER_HTTP: str = "http://localhost:8787"
    WS_URL: str = "ws://localhost:8787/ws"
    CLIENT_QUEUE_LIMIT: int = 80
    CLIENT_BACKOFF_BASE_SECONDS: float = 0.5
    CLIENT_BACKOFF_STEP_SECONDS: float = 0.25
    CLIENT_BACKOFF_MAX_SECONDS: float = 2.5
    PREFERENCES_PATH: Path = Path("./.lucky_draw_prefs.json")

    @property
    def allowed_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGIN.split(",") if o.strip()]

    @property
    def sheet_names(self) -> dict[str, str]:
        return {
            "participants": self.SHEET_PARTICIPANTS,
            "prizes": self.SHEET_PRIZES,
            "winners": self.SHEET_WINNERS,
        }


settings = Settings()
