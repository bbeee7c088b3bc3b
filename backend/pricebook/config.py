# backend/pricebook/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/pricebook.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///pricebook.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Session lifetime (see services/session_service.py)
    SESSION_ABSOLUTE_TIMEOUT_HOURS = int(os.environ.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", "24"))
    SESSION_IDLE_TIMEOUT_HOURS = int(os.environ.get("SESSION_IDLE_TIMEOUT_HOURS", "2"))

    # A ban is a time-bounded suspension: banned_until = now + this many days
    BAN_DURATION_DAYS = int(os.environ.get("BAN_DURATION_DAYS", "365"))

    # Seconds between keep-alive comments on the user directory event stream
    CHANGE_FEED_KEEPALIVE_SECONDS = float(os.environ.get("CHANGE_FEED_KEEPALIVE_SECONDS", "15"))

    # bcrypt cost factor (tests lower this)
    BCRYPT_LOG_ROUNDS = int(os.environ.get("BCRYPT_LOG_ROUNDS", "12"))
