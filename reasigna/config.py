from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

PACKAGE_DIR = Path(__file__).resolve().parent


def _split_origins(raw: str) -> list[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@dataclass(frozen=True)
class Settings:
    store_backend: str = "json"
    data_file: Path = Path("./data.json")
    session_ttl_hours: float = 8
    session_codec: str = "plain"
    session_secret: str = ""
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000
    environment: str = "local"
    static_dir: Path = PACKAGE_DIR / "static"
    templates_dir: Path = PACKAGE_DIR / "templates"


def get_settings() -> Settings:
    """Build settings from the current environment.

    Read on every call so that a changed environment (tests, reloads) is
    picked up without restarting the process.
    """
    return Settings(
        store_backend=os.getenv("STORE_BACKEND", "json").strip().lower(),
        data_file=Path(os.getenv("DATA_FILE", "./data.json")),
        session_ttl_hours=float(os.getenv("SESSION_TTL_HOURS", "8")),
        session_codec=os.getenv("SESSION_CODEC", "plain").strip().lower(),
        session_secret=os.getenv("SESSION_SECRET", ""),
        cors_origins=_split_origins(os.getenv("CORS_ORIGINS", "*")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
        environment=os.getenv("ENVIRONMENT", "local"),
    )


def load_environment() -> None:
    load_dotenv(override=False)


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
