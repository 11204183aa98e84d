# apigen/app_factory.py
from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import Iterable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute
from sqlalchemy import text

from apigen.db import Settings, build_engine, get_settings, make_session_factory
from apigen.declarative import Base
from apigen.discovery import discover_entities
from apigen.routes import register_entities

logger = logging.getLogger(__name__)


def _unique_op_id(route: APIRoute) -> str:
    method = next(iter(route.methods or {"GET"})).lower()
    tag = (route.tags[0] if route.tags else "default").lower().replace(" ", "_")
    name = (route.name or route.endpoint.__name__).lower().replace(" ", "_")
    return f"{tag}__{name}__{method}"


def create_app(declarations: Optional[Iterable[type]] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    1) discover API entities among `declarations` (default: everything mapped on Base)
    2) bind the generic routers
    3) on startup create the entities' tables (APIGEN_CREATE_TABLES), on shutdown dispose the engine
    """
    settings = settings or get_settings()
    specs = discover_entities(declarations, strict_keys=settings.STRICT_KEYS)

    engine = build_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.CREATE_TABLES:
            tables = [s.model.__table__ for s in specs]
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all, tables=tables)
            logger.info("Ensured tables: %s", ", ".join(t.name for t in tables))
        yield
        await engine.dispose()

    app = FastAPI(
        title="Mini API Gen",
        version="0.1.0",
        lifespan=lifespan,
        generate_unique_id_function=_unique_op_id,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.entities = specs

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.route_tables = register_entities(app, specs, settings)

    @app.get("/entities")
    def list_entities():
        return [
            {
                "name": s.name,
                "key": s.key.name if s.key else None,
                "searchable": [f.name for f in s.searchable_fields],
                "routes": app.state.route_tables[s.name],
            }
            for s in specs
        ]

    @app.get("/healthz")
    async def healthz():
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return {"status": "ok"}
        except Exception as e:
            logger.warning("Health check failed: %s", e)
            return {"status": "error", "detail": str(e)}

    @app.get("/readyz")
    def readyz():
        return {"status": "ready"}

    return app
