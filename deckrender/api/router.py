from fastapi import APIRouter

from deckrender.api.health import router as health_router
from deckrender.features.slide_export.endpoint import router as slide_export_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(slide_export_router)
