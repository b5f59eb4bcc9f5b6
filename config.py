from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./bookings.db"
    STORE_PROVIDER: str = "sql"

    TIMEZONE: str = "Asia/Kolkata"
    LOG_LEVEL: str = "INFO"

    BOOKING_NUMBER_MAX_ATTEMPTS: int = 5

    CORS_ORIGINS: list[str] = ["*"]


settings = Settings()
