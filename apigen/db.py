# apigen/db.py
from __future__ import annotations
import os
from functools import lru_cache
from typing import AsyncGenerator

from dotenv import load_dotenv
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

load_dotenv()


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    DATABASE_URL: str
    LOG_LEVEL: str
    CREATE_TABLES: bool
    STRICT_KEYS: bool
    SEARCH_IGNORE_CASE: bool
    DEFAULT_PAGE_SIZE: int
    MAX_PAGE_SIZE: int

    def __init__(self) -> None:
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./app.db")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.CREATE_TABLES = _flag("APIGEN_CREATE_TABLES", "1")
        self.STRICT_KEYS = _flag("APIGEN_STRICT_KEYS")
        self.SEARCH_IGNORE_CASE = _flag("APIGEN_SEARCH_IGNORE_CASE")
        self.DEFAULT_PAGE_SIZE = int(os.getenv("APIGEN_DEFAULT_PAGE_SIZE", "20"))
        self.MAX_PAGE_SIZE = int(os.getenv("APIGEN_MAX_PAGE_SIZE", "100"))


@lru_cache
def get_settings() -> Settings:
    return Settings()


def build_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # handlers serialize entities after commit
    return async_sessionmaker(engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.session_factory() as db:
        yield db
