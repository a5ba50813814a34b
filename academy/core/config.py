from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it’s easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _getint(name: str, default: str, *, minimum: int) -> int:
    raw = _getenv(name, default)
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    jwt_public_key_pem: str | None = None
    rejection_reason_min_length: int = 10
    certificate_code_attempts: int = 5
    default_currency: str = "MZN"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    port = _getint("PORT", "8000", minimum=1)
    reason_min = _getint("REJECTION_REASON_MIN_LENGTH", "10", minimum=0)
    code_attempts = _getint("CERTIFICATE_CODE_ATTEMPTS", "5", minimum=1)

    currency = _getenv("DEFAULT_CURRENCY", "MZN").upper()
    if len(currency) != 3 or not currency.isalpha():
        raise ValueError(
            f"DEFAULT_CURRENCY must be a 3-letter ISO code (got {currency!r})"
        )

    database_url = _getenv("DATABASE_URL", "") or None
    # PEM blocks arrive through env files with literal \n sequences
    jwt_public_key_pem = _getenv("JWT_PUBLIC_KEY_PEM", "").replace("\\n", "\n") or None

    if app_env_raw == "prod" and jwt_public_key_pem is None:
        raise ValueError("JWT_PUBLIC_KEY_PEM is required when APP_ENV=prod")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in ("1", "true", "yes"),
        port=port,
        database_url=database_url,
        jwt_public_key_pem=jwt_public_key_pem,
        rejection_reason_min_length=reason_min,
        certificate_code_attempts=code_attempts,
        default_currency=currency,
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
