from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response
from pydantic import BaseModel, Field

from classpages.api.deps import get_service
from classpages.core.aggregation.pipeline import ClassPagesService
from classpages.core.catalog.constants import parse_record_type
from classpages.core.overlay import ImportMode

router = APIRouter(prefix="/api/v1/settings", tags=["settings"])


class SpellListsRequest(BaseModel):
    lists: Dict[str, List[str]] = Field(default_factory=dict)


class OverrideRequest(BaseModel):
    # Omitted = unchanged, blank string = back to default
    label: Optional[str] = None
    backdrop: Optional[str] = None


class SourcesRequest(BaseModel):
    keys: List[str] = Field(default_factory=list)


@router.get("/spell-lists/export")
async def export_spell_lists(svc: ClassPagesService = Depends(get_service)):
    doc = await svc.overlay.export_assignments()
    return Response(
        content=doc.content,
        media_type=doc.content_type,
        headers={"Content-Disposition": f'attachment; filename="{doc.filename}"'},
    )


@router.post("/spell-lists/import")
async def import_spell_lists(
    request: Request,
    mode: ImportMode = Query(...),
    svc: ClassPagesService = Depends(get_service),
):
    body = await request.body()
    result = await svc.overlay.import_assignments(body, mode)
    return result.to_dict()


@router.put("/spell-lists")
async def put_spell_lists(req: SpellListsRequest, svc: ClassPagesService = Depends(get_service)):
    ack = await svc.overlay.set_spell_lists(req.lists)
    return ack.to_dict()


@router.get("/spell-lists/editor")
async def spell_list_editor(
    q: Optional[str] = None,
    svc: ClassPagesService = Depends(get_service),
):
    editor = await svc.spell_list_editor(q)
    return editor.to_dict()


@router.get("/overrides")
async def list_overrides(svc: ClassPagesService = Depends(get_service)):
    return {"overrides": await svc.list_overrides()}


@router.put("/overrides/{identifier}")
async def put_override(identifier: str, req: OverrideRequest, svc: ClassPagesService = Depends(get_service)):
    overrides = await svc.overlay.set_override(identifier, label=req.label, backdrop=req.backdrop)
    ov = overrides.get(identifier.strip())
    return {
        "identifier": identifier.strip(),
        "label": ov.label if ov else None,
        "backdrop": ov.backdrop if ov else None,
    }


@router.get("/sources")
async def get_sources(svc: ClassPagesService = Depends(get_service)):
    return {"sources": await svc.overlay.sources()}


@router.put("/sources/{record_type}")
async def put_sources(record_type: str, req: SourcesRequest, svc: ClassPagesService = Depends(get_service)):
    try:
        rt = parse_record_type(record_type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    ack = await svc.overlay.set_sources(rt, req.keys)
    return {"ack": ack.to_dict(), "sources": await svc.overlay.sources()}
