"""Main API router."""

from fastapi import APIRouter

from rentacar.api.v1.endpoints import auth, damages, health, rentals

api_router = APIRouter()

api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Authentication"],
)

api_router.include_router(
    rentals.router,
    prefix="/rentals",
    tags=["Rentals"],
)

api_router.include_router(
    damages.router,
    prefix="/damages",
    tags=["Damages"],
)

api_router.include_router(
    health.router,
    prefix="/health",
    tags=["Health"],
)
