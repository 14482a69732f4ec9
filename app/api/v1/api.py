from fastapi import APIRouter

from app.api.v1.endpoints import scheduling

api_router = APIRouter()

# Availability endpoints
api_router.include_router(scheduling.router, prefix="/scheduling", tags=["scheduling"])
