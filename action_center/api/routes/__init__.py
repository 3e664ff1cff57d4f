from fastapi import APIRouter

from action_center.api.routes import action_center, health

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(action_center.router, prefix="/action-center", tags=["action-center"])
