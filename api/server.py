"""
api/server.py
-------------
FastAPI application entry point.

Run dev server:
    uvicorn api.server:app --reload --port 8000

Endpoints:
    GET  /v1/health
    POST /v1/schedules/generate
    POST /v1/routes/optimize
    POST /v1/maps/distance-matrix
"""
from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
from api.routes import health, maps, routes, schedule

logging.basicConfig(level=config.LOG_LEVEL)

app = FastAPI(
    title="Shooting Schedule API",
    version="1.0.0",
    description=(
        "Generates day-by-day shooting schedules: constrained route ordering, "
        "work-hours fitting, automatic lunch insertion and overtime detection."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
)

# Schedule editor origins from CORS_ALLOW_ORIGINS; cookies only with explicit origins
_any_origin = "*" in config.CORS_ALLOW_ORIGINS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if _any_origin else config.CORS_ALLOW_ORIGINS,
    allow_credentials=not _any_origin,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(health.router,    prefix="/v1",           tags=["Health"])
app.include_router(schedule.router,  prefix="/v1/schedules", tags=["Schedules"])
app.include_router(routes.router,    prefix="/v1/routes",    tags=["Routes"])
app.include_router(maps.router,      prefix="/v1/maps",      tags=["Maps"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.server:app", host=config.API_HOST, port=config.API_PORT, reload=True)
