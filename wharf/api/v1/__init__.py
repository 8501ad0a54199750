"""API v1 router."""

from fastapi import APIRouter

from wharf.api.v1.deployments import router as deployments_router
from wharf.api.v1.processes import router as processes_router

router = APIRouter()

router.include_router(deployments_router, prefix="/deployments", tags=["deployments"])
router.include_router(processes_router, prefix="/processes", tags=["processes"])
