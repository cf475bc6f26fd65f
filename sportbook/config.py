# sportbook/config.py
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./sportbook.db"
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    SESSION_EXPIRE_MINUTES: float = 60 * 24 * 7  # supports decimal durations

    # "database" keeps sessions in the sessions table, "memory" in-process
    SESSION_BACKEND: str = "database"
    SESSION_COOKIE_NAME: str = "sessionId"

    # Minimum lead time before a booking starts for a customer to ask for a cancellation
    CANCELLATION_NOTICE_HOURS: float = 2

    # Booking dates and times are wall-clock times at the venues: UTC plus this offset
    VENUE_UTC_OFFSET_HOURS: float = 0

    CORS_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"

    @property
    def cors_origins(self) -> list:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    class Config:
        env_file = ".env"

settings = Settings()
