# backend/azwork/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/azwork.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///azwork.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Department slug whose staff act in a finance capacity
    FINANCE_DEPARTMENT_SLUG = os.environ.get("FINANCE_DEPARTMENT_SLUG", "finance")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    ALLOCATION_PAGE_LIMIT_MAX = int(os.environ.get("ALLOCATION_PAGE_LIMIT_MAX", "100"))
