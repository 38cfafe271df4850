from __future__ import annotations

import sqlite3
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sportcamp import __version__
from sportcamp.config import Config, load_config
from sportcamp.db import Database, IntegrityError

from .routes import (
    access,
    attendance,
    auth,
    billing,
    clubs,
    dashboard,
    join_requests,
    memberships,
    notifications,
    reports,
    sessions,
    settings,
    sports,
    wallets,
)


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


def create_app(cfg: Optional[Config] = None) -> FastAPI:
    cfg = cfg or load_config()
    app = FastAPI(title="Sportcamp Club Management", version=__version__)
    app.state.cfg = cfg

    # CORS is mainly needed for local development (frontend dev server -> API).
    cors_origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.on_event("startup")
    def _on_startup() -> None:
        # Ensure schema exists, then open the shared handle used by every request.
        db = Database.from_config(cfg).open()
        db.init_schema()
        app.state.db = db
        _debug(f"Started (db={app.state.db.dialect})")

    @app.on_event("shutdown")
    def _on_shutdown() -> None:
        db = getattr(app.state, "db", None)
        if db is not None:
            db.close()
            app.state.db = None

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": "invalid_request"})

    @app.exception_handler(sqlite3.IntegrityError)
    @app.exception_handler(IntegrityError)
    async def _duplicate(request: Request, exc: Exception) -> JSONResponse:
        _debug(f"Integrity error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=409, content={"detail": "duplicate"})

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok"}

    for module in (
        auth,
        access,
        sports,
        clubs,
        memberships,
        join_requests,
        sessions,
        attendance,
        wallets,
        settings,
        billing,
        notifications,
        reports,
        dashboard,
    ):
        app.include_router(module.router)

    return app


app = create_app()
