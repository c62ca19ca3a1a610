from fastapi import APIRouter
from gridquery.api import grid

router = APIRouter()
router.include_router(grid.router, prefix="/grid", tags=["Grid"])
