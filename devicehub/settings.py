import logging
import os

from pydantic import BaseModel


class Settings(BaseModel):
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./devicehub.db")
    db_echo: bool = os.getenv("DB_ECHO", "false").lower() in ("1", "true", "yes")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

settings = Settings()


def configure_logging():
    logging.basicConfig(level=settings.log_level)
