"""Application configuration loaded from environment variables via pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Values are loaded from environment variables and/or a .env file located
    in the working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # --- Database ---
    DATABASE_URL: str = "sqlite+aiosqlite:///./git_activity.sqlite"

    # --- Git ---
    GIT_EXECUTABLE: str = "git"
    GIT_COMMAND_TIMEOUT_SECONDS: float = 10.0

    # --- Import ---
    IMPORT_AUTHORS: str = ""
    IMPORT_DAYS: int = 30
    REPOSITORIES_BASE_PATH: str | None = None
    AUTO_IMPORT_ENABLED: bool = False
    SYNC_INTERVAL_HOURS: int = 6

    # --- Calendar ---
    GIT_AUTHOR_FILTER: str = ""
    CALENDAR_WINDOW_DAYS: int = 30
    COMMIT_RETENTION_DAYS: int | None = None

    # --- Localisation / Logging ---
    DEFAULT_TIMEZONE: str | None = None
    LOG_LEVEL: str = "INFO"

    @property
    def import_authors(self) -> list[str]:
        """``IMPORT_AUTHORS`` split on commas; an empty list means no filter."""
        return [a.strip() for a in self.IMPORT_AUTHORS.split(",") if a.strip()]


settings = Settings()
