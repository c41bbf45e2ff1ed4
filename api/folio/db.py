from __future__ import annotations

import os
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase

from .settings import DATABASE_URL


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""


def build_engine(url: str) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        # Read-side fan-out issues queries from worker threads
        connect_args["check_same_thread"] = False
    return create_engine(
        url,
        future=True,
        echo=os.getenv("LOG_LEVEL", "INFO").upper() == "DEBUG",
        pool_pre_ping=True,
        connect_args=connect_args,
    )


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return build_engine(DATABASE_URL)
