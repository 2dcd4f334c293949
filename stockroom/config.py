from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Stockroom"
    DATABASE_URL: str = "sqlite:///./stockroom.db"

    # Seconds a SQLite writer waits for the database lock before failing
    SQLITE_BUSY_TIMEOUT: float = 30.0

    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 72

    # Created on startup when the users table is empty
    DEFAULT_ADMIN_USERNAME: str = "admin"
    DEFAULT_ADMIN_PASSWORD: str = "admin"
    MIN_PASSWORD_LENGTH: int = 5

    LOG_LEVEL: str = "INFO"

    # Stock at or below reorder_level * ratio counts as critical
    CRITICAL_STOCK_RATIO: float = 0.5

    MAX_NOTE_LENGTH: int = 500
    DEFAULT_MOVEMENT_LIMIT: int = 50

    model_config = {"env_file": ".env"}


settings = Settings()
