# backend/posapp/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite file by default; point DATABASE_URL at Postgres in production
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///pos.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Tax applied to (subtotal - discount), in basis points (825 = 8.25%)
    TAX_RATE_BPS = _env_int("TAX_RATE_BPS", 0)

    SESSION_TTL_HOURS = _env_int("SESSION_TTL_HOURS", 12)
    BCRYPT_ROUNDS = _env_int("BCRYPT_ROUNDS", 12)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    ]


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    TAX_RATE_BPS = 0
    # bcrypt minimum; keeps the suite fast
    BCRYPT_ROUNDS = 4
    LOG_LEVEL = "WARNING"
