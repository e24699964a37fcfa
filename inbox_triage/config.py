# inbox_triage/config.py

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from .email_source import DEFAULT_DATA_PATH

STRATEGIES = ("batch", "streaming")


@dataclass
class Settings:
    data_path: str = DEFAULT_DATA_PATH
    batch_size: int = 10
    strategy: str = "batch"
    log_level: str = "WARNING"
    log_file: Optional[str] = None
    reset_inbox: bool = False
    debug: bool = False

    def validate(self) -> None:
        if self.batch_size <= 0:
            raise ValueError(f"batch size must be positive, got {self.batch_size}")
        if self.strategy not in STRATEGIES:
            raise ValueError(
                f"strategy must be one of {', '.join(STRATEGIES)}, got {self.strategy!r}"
            )
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"unknown log level {self.log_level!r}")


def load_settings() -> Settings:
    """
    Read settings from the environment (and a .env file if present).

    INBOX_DATA_PATH, INBOX_BATCH_SIZE, INBOX_STRATEGY,
    INBOX_LOG_LEVEL, INBOX_LOG_FILE
    """
    load_dotenv()

    raw_size = os.getenv("INBOX_BATCH_SIZE", "10")
    try:
        batch_size = int(raw_size)
    except ValueError as e:
        raise ValueError(f"INBOX_BATCH_SIZE must be an integer, got {raw_size!r}") from e

    settings = Settings(
        data_path=os.getenv("INBOX_DATA_PATH", DEFAULT_DATA_PATH),
        batch_size=batch_size,
        strategy=os.getenv("INBOX_STRATEGY", "batch").lower(),
        log_level=os.getenv("INBOX_LOG_LEVEL", "WARNING"),
        log_file=os.getenv("INBOX_LOG_FILE") or None,
    )
    settings.validate()
    return settings


def configure_logging(settings: Settings) -> None:
    level = logging.DEBUG if settings.debug else settings.log_level.upper()

    if settings.log_file:
        handler: logging.Handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    else:
        handler = RichHandler(console=Console(stderr=True), show_path=False)

    logging.basicConfig(level=level, handlers=[handler], force=True)
