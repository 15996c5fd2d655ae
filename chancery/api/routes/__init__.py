"""API Routes module"""
from fastapi import APIRouter

from .staff import router as staff_router
from .seats import router as seats_router

# Main API router
api_router = APIRouter()

api_router.include_router(staff_router, prefix="/staff", tags=["Staff"])
api_router.include_router(seats_router, prefix="/seats", tags=["Seats"])

__all__ = ["api_router"]
