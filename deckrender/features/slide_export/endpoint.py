from __future__ import annotations

from fastapi import APIRouter

from .routes import router as slide_export_routes

router = APIRouter()
router.include_router(slide_export_routes)
