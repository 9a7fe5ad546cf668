"""
API v1 router aggregating all endpoints.
"""

from fastapi import APIRouter

from api.v1.admin_elections import router as admin_elections_router
from api.v1.elections import router as elections_router
from api.v1.ledger import router as ledger_router

router = APIRouter()

router.include_router(elections_router, prefix="/elections", tags=["Elections"])
router.include_router(
    admin_elections_router,
    prefix="/admin/elections",
    tags=["Admin - Elections"],
)
router.include_router(ledger_router, prefix="/admin/ledger", tags=["Admin - Ledger"])
