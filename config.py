"""
Runtime settings for the splitter host, read from the environment.
"""
import logging
import os

from pydantic import BaseModel

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 5000
    log_level: str = "INFO"
    currency: str = "$"


def load_settings() -> Settings:
    env = {
        "host": os.environ.get("SPLITTER_HOST"),
        "port": os.environ.get("SPLITTER_PORT"),
        "log_level": os.environ.get("SPLITTER_LOG_LEVEL"),
        "currency": os.environ.get("SPLITTER_CURRENCY"),
    }
    return Settings(**{k: v for k, v in env.items() if v is not None})


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)
