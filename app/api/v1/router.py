from fastapi import APIRouter

from app.api.v1.health import router as health_router
from app.api.v1.reconciliation import router as reconciliation_router
from app.api.v1.projects import router as projects_router
from app.api.v1.contracts import router as contracts_router
from app.api.v1.admin.projects import router as admin_projects_router


v1_router = APIRouter()

# ------------------------------------------------------------------
# SYSTEM / CORE
# ------------------------------------------------------------------
v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(reconciliation_router, tags=["reconciliation"])

# ------------------------------------------------------------------
# PROJECTS / CONTRACTS
# ------------------------------------------------------------------
v1_router.include_router(projects_router, tags=["projects"])
v1_router.include_router(contracts_router, tags=["contracts"])

# ------------------------------------------------------------------
# ADMIN
# ------------------------------------------------------------------
v1_router.include_router(admin_projects_router, tags=["admin"])
