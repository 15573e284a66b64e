# backend/erp/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/erp.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location (postgresql+psycopg://...)
        "sqlite:///erp.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Balances and payment gaps smaller than this are treated as exactly zero
    STOCK_EPSILON = os.environ.get("STOCK_EPSILON", "0.0001")

    # Payment method stamped on payments the system creates on its own
    DEFAULT_PAYMENT_METHOD = os.environ.get("DEFAULT_PAYMENT_METHOD", "Cash")
