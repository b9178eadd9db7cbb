"""
Router principal de l'API.
"""
from fastapi import APIRouter

from .routes import control, health, websocket

api_router = APIRouter()

api_router.include_router(control.router, prefix="/api", tags=["control"])
api_router.include_router(health.router, prefix="", tags=["health"])
api_router.include_router(websocket.router, prefix="", tags=["websocket"])
