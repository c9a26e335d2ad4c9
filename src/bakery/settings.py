"""Application settings, read once from the environment at startup."""

import os
from dataclasses import dataclass, field


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {raw!r}")
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ValueError(f"{name} must be at least 1, got {raw!r}")
    return value


@dataclass(frozen=True)
class BakerySettings:
    environment: str = "development"
    delivery_fee: float = 0.0
    default_page_size: int = 10
    max_page_size: int = 100
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_dir: str = "logs"


def load_settings() -> BakerySettings:
    """Build settings from environment variables."""
    environment = (os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()
    origins = [origin.strip() for origin in os.getenv("BAKERY_CORS_ORIGINS", "*").split(",") if origin.strip()]

    settings = BakerySettings(
        environment=environment,
        delivery_fee=_env_float("BAKERY_DELIVERY_FEE", 0.0),
        default_page_size=_env_int("BAKERY_PAGE_SIZE", 10),
        cors_origins=origins or ["*"],
        log_dir=os.getenv("BAKERY_LOG_DIR", "logs"),
    )
    if settings.default_page_size > settings.max_page_size:
        raise ValueError(f"BAKERY_PAGE_SIZE must not exceed {settings.max_page_size}")
    return settings
