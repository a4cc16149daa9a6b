"""Guided bake API router.

Endpoints:
- POST /bakes/start - Start a bake on a recipe's first step
- POST /bakes/{id}/steps/complete - Close the current step, open the next
- PUT /bakes/{id}/status - Pause, resume, complete or abandon
- PATCH /bakes/{id} - Overall notes
- GET /bakes/active - Active and paused bakes with their current step
- GET /bakes/history - Every bake of the caller
- GET /bakes/{id} - One bake with its step history and recipe
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..auth.dependencies import get_current_user
from ..auth.models import CurrentUser
from ..db import get_db
from ..infra.idempotency import idempotency_clear_key, idempotency_precheck, idempotency_store_result
from ..schemas import (
    ActiveBakesResponse,
    BakeDetail,
    BakeHistoryResponse,
    BakeSummary,
    CompleteStepRequest,
    CompleteStepResponse,
    NotesUpdateRequest,
    StartBakeRequest,
    StartBakeResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
)
from ..services.bake_sessions import BakeSessionOrchestrator

router = APIRouter(prefix="/bakes", tags=["bakes"])
logger = logging.getLogger("sourdough.bakes")


@router.post("/start", response_model=StartBakeResponse, status_code=201)
async def start_bake(
    body: StartBakeRequest,
    request: Request,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Start a bake. Honors an optional Idempotency-Key header."""
    pre = await idempotency_precheck(request, user_id=user.user_id, route_key="bake_start")
    if isinstance(pre, JSONResponse):
        return pre

    orchestrator = BakeSessionOrchestrator(db)
    if pre is None:
        return await run_in_threadpool(orchestrator.start, user.user_id, body.recipe_id)

    redis_key, req_hash = pre
    try:
        resp = await run_in_threadpool(orchestrator.start, user.user_id, body.recipe_id)
    except Exception:
        await idempotency_clear_key(redis_key)
        raise

    await idempotency_store_result(
        redis_key, req_hash, status=201, body=resp.model_dump(mode="json", by_alias=True)
    )
    return resp


@router.get("/active", response_model=ActiveBakesResponse)
def list_active_bakes(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    bakes = BakeSessionOrchestrator(db).get_active(user.user_id)
    return ActiveBakesResponse(active_bakes=bakes)


@router.get("/history", response_model=BakeHistoryResponse)
def list_bake_history(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return BakeHistoryResponse(bakes=BakeSessionOrchestrator(db).list_history(user.user_id))


@router.get("/{bake_log_id}", response_model=BakeDetail)
def get_bake(
    bake_log_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return BakeSessionOrchestrator(db).get_history_detail(user.user_id, bake_log_id)


@router.post("/{bake_log_id}/steps/complete", response_model=CompleteStepResponse)
def complete_step(
    bake_log_id: str,
    body: CompleteStepRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return BakeSessionOrchestrator(db).complete_current_step(
        user.user_id,
        bake_log_id,
        body.current_bake_step_log_id,
        body.user_notes_for_completed_step,
    )


@router.put("/{bake_log_id}/status", response_model=StatusUpdateResponse)
def update_bake_status(
    bake_log_id: str,
    body: StatusUpdateRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return BakeSessionOrchestrator(db).set_status(user.user_id, bake_log_id, body.status)


@router.patch("/{bake_log_id}", response_model=BakeSummary)
def update_bake_notes(
    bake_log_id: str,
    body: NotesUpdateRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return BakeSessionOrchestrator(db).update_notes(user.user_id, bake_log_id, body.user_overall_notes)
