from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./streakflame.db"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://streaks.example.com,http://localhost:5173"
    CORS_ORIGINS: str = "*"

    # Undo log entries older than this many days are pruned.
    ACTION_RETENTION_DAYS: int = 7
    # Recovery audit log is a ring buffer of this size.
    RECOVERY_LOG_LIMIT: int = 100
    # Global activity keeps at most this many active days.
    GLOBAL_ACTIVITY_CAP: int = 365
    STREAK_NAME_MAX_LENGTH: int = 50

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
