"""Environment-driven configuration and logging setup."""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from rich.logging import RichHandler

load_dotenv()

DEFAULT_DB_PATH = os.environ.get(
    "CFE_PREP_DB_PATH", str(Path.home() / ".cfe_prep" / "prep.db")
)
DEFAULT_USER_ID = os.environ.get("CFE_PREP_USER", "demo-user")
LOG_LEVEL = os.environ.get("CFE_PREP_LOG_LEVEL", "WARNING")


def configure_logging(level: str | None = None) -> None:
    """Route library logging through rich. Level falls back to CFE_PREP_LOG_LEVEL."""
    level = (level or LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
