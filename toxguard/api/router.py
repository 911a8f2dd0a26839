"""Router aggregator — collects all route modules into a single APIRouter."""

from fastapi import APIRouter

from toxguard.api.routes import analyze, health, history

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(analyze.router)
api_router.include_router(history.router)
