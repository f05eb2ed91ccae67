from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from classpages.api.deps import get_service
from classpages.core.aggregation.pipeline import ClassPagesService
from classpages.core.navigation import (
    PAGE_SCOPE,
    ActionType,
    NavigationAction,
    NavigationState,
    Stimulus,
    action_for,
    transition,
)

router = APIRouter(prefix="/api/v1/pages", tags=["pages"])


class ViewRequest(BaseModel):
    class_identifier: Optional[str] = None
    subtab: Optional[str] = None
    # Selection state returned by a previous view; lets tabs survive a rebuild.
    navigation: Optional[Dict[str, Any]] = None


class ActionModel(BaseModel):
    type: ActionType
    scope: Optional[str] = None
    member: Optional[str] = None


class StimulusModel(BaseModel):
    kind: Literal["click", "direction", "wheel"]
    scope: Optional[str] = None
    member: Optional[str] = None
    direction: Optional[Literal["left", "right"]] = None
    delta_y: float = 0.0


class TransitionRequest(BaseModel):
    state: Dict[str, Any] = Field(default_factory=dict)
    action: Optional[ActionModel] = None
    stimulus: Optional[StimulusModel] = None


@router.get("/view")
async def get_view(
    class_identifier: Optional[str] = Query(default=None, alias="class"),
    subtab: Optional[str] = None,
    svc: ClassPagesService = Depends(get_service),
):
    view = await svc.build_view(class_identifier, subtab)
    return view.to_dict()


@router.post("/view")
async def post_view(req: ViewRequest, svc: ClassPagesService = Depends(get_service)):
    previous = NavigationState.from_dict(req.navigation) if req.navigation else None
    view = await svc.build_view(req.class_identifier, req.subtab, navigation=previous)
    return view.to_dict()


@router.post("/navigation/transition")
def navigation_transition(req: TransitionRequest):
    """
    Pure tab transition. ``rebuild`` is true when the active class changed,
    meaning the caller should fetch a fresh view with the returned state.
    """
    if (req.action is None) == (req.stimulus is None):
        raise HTTPException(status_code=400, detail="Provide exactly one of action or stimulus")

    state = NavigationState.from_dict(req.state)
    if req.action is not None:
        action: Optional[NavigationAction] = NavigationAction(
            type=req.action.type, scope=req.action.scope, member=req.action.member
        )
    else:
        action = action_for(Stimulus(**req.stimulus.model_dump()))

    new_state = state if action is None else transition(state, action)
    return {
        "navigation": new_state.to_dict(),
        "rebuild": new_state.active_member(PAGE_SCOPE) != state.active_member(PAGE_SCOPE),
    }
