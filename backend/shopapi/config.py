"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent


class Settings:
    ENV: str
    DATABASE_URL: str
    SQL_LOG: bool
    BATCH_FETCH_SIZE: int
    ORDER_SEARCH_LIMIT: int
    DEFAULT_PAGE_LIMIT: int
    MAX_PAGE_LIMIT: int
    INIT_DB: bool
    LOG_LEVEL: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'shop.db'}")
        self.SQL_LOG = os.getenv("SQL_LOG", "true" if self.ENV == "dev" else "false").lower() == "true"
        self.BATCH_FETCH_SIZE = int(os.getenv("BATCH_FETCH_SIZE", "100"))
        self.ORDER_SEARCH_LIMIT = int(os.getenv("ORDER_SEARCH_LIMIT", "1000"))
        self.DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", "100"))
        self.MAX_PAGE_LIMIT = int(os.getenv("MAX_PAGE_LIMIT", "1000"))
        self.INIT_DB = os.getenv("INIT_DB", "true").lower() == "true"
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self._validate()

    def _validate(self):
        for name in ("BATCH_FETCH_SIZE", "ORDER_SEARCH_LIMIT", "DEFAULT_PAGE_LIMIT", "MAX_PAGE_LIMIT"):
            if getattr(self, name) <= 0:
                raise RuntimeError(f"{name} must be a positive integer")
        if self.DEFAULT_PAGE_LIMIT > self.MAX_PAGE_LIMIT:
            raise RuntimeError("DEFAULT_PAGE_LIMIT must not exceed MAX_PAGE_LIMIT")


settings = Settings()
