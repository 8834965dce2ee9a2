"""
API routes package
"""
from fastapi import APIRouter
from locationdata.api.routes import settings, tracking, locations, data, agent

api_router = APIRouter()

# Include all route modules
api_router.include_router(settings.router)
api_router.include_router(tracking.router)
api_router.include_router(locations.router)
api_router.include_router(data.router)
api_router.include_router(agent.router)
