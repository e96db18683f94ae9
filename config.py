from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parent
load_dotenv(dotenv_path=ROOT_DIR / ".env")


def _get_env(*keys: str, default: Optional[str] = None) -> Optional[str]:
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return default


def _get_int(*keys: str, default: Optional[int] = None) -> Optional[int]:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return int(v)


def _get_float(*keys: str, default: float) -> float:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return float(v)


def _get_list(*keys: str) -> Tuple[str, ...]:
    v = _get_env(*keys, default="") or ""
    return tuple(p.strip() for p in v.split(",") if p.strip())


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str] = None
    database_name: Optional[str] = None
    merchant_id: str = "crypto_storefront"
    payment_base_url: str = "https://shop.example.com"
    default_payment_currency: str = "USDT"
    payment_session_minutes: int = 30
    processing_delay: float = 2.0
    failure_threshold: float = 0.1
    random_seed: Optional[int] = None
    installed_wallet_packages: Tuple[str, ...] = field(default_factory=tuple)
    log_level: str = "INFO"
    port: int = 8000

    def __post_init__(self) -> None:
        if not 0.0 <= self.failure_threshold <= 1.0:
            raise ValueError("PAYMENT_FAILURE_THRESHOLD must be between 0 and 1")
        if self.processing_delay < 0:
            raise ValueError("PAYMENT_PROCESSING_DELAY must be >= 0")
        if self.payment_session_minutes <= 0:
            raise ValueError("PAYMENT_SESSION_MINUTES must be > 0")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=_get_env("DATABASE_URL"),
            database_name=_get_env("DATABASE_NAME"),
            merchant_id=_get_env("MERCHANT_ID", default="crypto_storefront") or "crypto_storefront",
            payment_base_url=(_get_env("PAYMENT_BASE_URL", default="https://shop.example.com") or "").rstrip("/"),
            default_payment_currency=(_get_env("DEFAULT_PAYMENT_CURRENCY", default="USDT") or "USDT").upper(),
            payment_session_minutes=_get_int("PAYMENT_SESSION_MINUTES", default=30) or 30,
            processing_delay=_get_float("PAYMENT_PROCESSING_DELAY", default=2.0),
            failure_threshold=_get_float("PAYMENT_FAILURE_THRESHOLD", default=0.1),
            random_seed=_get_int("PAYMENT_RANDOM_SEED"),
            installed_wallet_packages=_get_list("INSTALLED_WALLET_PACKAGES"),
            log_level=(_get_env("LOG_LEVEL", default="INFO") or "INFO").upper(),
            port=_get_int("PORT", default=8000) or 8000,
        )
