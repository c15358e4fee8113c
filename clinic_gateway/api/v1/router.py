"""API v1 router configuration."""

from fastapi import APIRouter

from clinic_gateway.api.v1.endpoints import agenda, appointments, auth, health

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
api_router.include_router(agenda.router, prefix="/agenda", tags=["Agenda"])
