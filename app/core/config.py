from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://momentum:momentum@db:5432/momentum"
    APP_ENV: str = "development"
    SECRET_KEY: str = "changeme-secret-key"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://myapp.com,https://api.myapp.com"
    CORS_ORIGINS: str = "*"

    LOG_LEVEL: str = "INFO"
    # "text" or "json"; production always logs JSON.
    LOG_FORMAT: str = "text"

    # Shared secret identifying the elevated principal (shield revocation).
    ADMIN_TOKEN: str = "changeme-admin-token"

    # --- Cycle / scoring ---
    CYCLE_WEEKS: int = 12
    MONK_MODE_MAX_TASKS: int = 3

    # --- Shield ledger ---
    SHIELD_QUOTA: int = 3
    SHIELD_REASON_MIN_LENGTH: int = 10

    # Chronic-low-effort heuristic. Tunable; the defaults carry no derivation.
    ABUSE_HISTORY_WINDOW: int = 12
    ABUSE_RECENT_WINDOW: int = 4
    ABUSE_MIN_HISTORY: int = 8
    ABUSE_RATIO: float = 0.6
    ABUSE_BASELINE_CEILING: float = 60.0

    # --- Coach context fallbacks ---
    DEFAULT_VISION: str = "Build a meaningful legacy"
    DEFAULT_GOAL: str = "Focus on execution"

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def cycle_days(self) -> int:
        return self.CYCLE_WEEKS * 7


settings = Settings()
