# lulemo/app/api/router.py
from fastapi import APIRouter

from lulemo.app.api.endpoints import admin, auth, health

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
