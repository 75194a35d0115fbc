# Overview: Application configuration loaded from the environment.

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

    # SQLite DB stored in backend/instance/pawnshop.sqlite3 unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///pawnshop.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Loan terms
    LOAN_TERM_DAYS = _env_int("LOAN_TERM_DAYS", 30)
    DEFAULT_INTEREST_RATE_BPS = _env_int("DEFAULT_INTEREST_RATE_BPS", 350)  # 3.5%
    MAX_INTEREST_RATE_BPS = _env_int("MAX_INTEREST_RATE_BPS", 400)  # platform cap, 4.0%
    SERVICE_FEE_CENTS = _env_int("SERVICE_FEE_CENTS", 5000)
    AUCTION_MARKUP_BPS = _env_int("AUCTION_MARKUP_BPS", 11000)  # 110% of principal

    SESSION_HOURS = _env_int("SESSION_HOURS", 12)
    BCRYPT_ROUNDS = _env_int("BCRYPT_ROUNDS", 12)

    CORS_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
        ).split(",")
        if origin.strip()
    }


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "WARNING"
    BCRYPT_ROUNDS = 4
