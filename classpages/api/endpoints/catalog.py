from __future__ import annotations

from fastapi import APIRouter, Depends

from classpages.api.deps import get_service
from classpages.core.aggregation.pipeline import ClassPagesService

router = APIRouter(prefix="/api/v1/catalog", tags=["catalog"])


@router.get("/sources")
async def list_catalog_sources(svc: ClassPagesService = Depends(get_service)):
    """Sources an admin can pick from when configuring the three families."""
    return {"sources": [s.to_dict() for s in svc.available_sources()]}
