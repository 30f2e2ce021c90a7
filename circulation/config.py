import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_key: str = os.getenv("API_KEY", "super-secret-key")

    # Client settings (used by the CLI to reach a running API)
    api_url: str = os.getenv("API_URL", f"http://{api_host}:{api_port}")
    http_timeout: float = float(os.getenv("HTTP_TIMEOUT", "10"))
    http_retries: int = int(os.getenv("HTTP_RETRIES", "3"))

    # Circulation policy
    due_days: int = int(os.getenv("DUE_DAYS", "14"))
    late_fee_per_day: float = float(os.getenv("LATE_FEE_PER_DAY", "1.0"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: Optional[str] = os.getenv("LOG_FILE")

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Library Circulation")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = _env_flag("DEBUG")


settings = Settings()


def setup_logging(level: Optional[str] = None, logfile: Optional[str] = None) -> None:
    """Configure the root logger once.

    Attaches a console handler and, when ``logfile`` is given, a file handler.
    Calling it again (tests, repeated app start-up) is a no-op.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    level = level or settings.log_level
    logfile = logfile or settings.log_file
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if logfile:
        file_handler = logging.FileHandler(Path(logfile).resolve(), encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
