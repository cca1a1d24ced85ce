"""
forkman.api.routes.economy — Economy read and admin endpoints
===============================================================

Public reads (catalog, leaderboard, a user's points) plus the admin
surface for awarding, reconciliation, and the module lifecycle.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, ValidationError

from forkman.api.deps import get_current_admin, get_engine
from forkman.constants import ECONOMY_MODULE
from forkman.database.engine import run_db
from forkman.errors import (
    AlreadyDisabled,
    AlreadyEnabled,
    ModuleNotLoaded,
    OccurrenceLimitReached,
    StoreFailure,
    UnknownEvent,
)
from forkman.services import ledger_service, module_service
from forkman.services.award_service import award_event, award_event_to_all
from forkman.services.reconciliation_service import reconcile_points

public_router = APIRouter(tags=["public"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class AwardRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    event_key: str = Field(..., min_length=1)


class BulkAwardRequest(BaseModel):
    event_key: str = Field(..., min_length=1)
    user_ids: list[str] = Field(default_factory=list)
    concurrency: int | None = Field(None, ge=1, le=50)


# ---------------------------------------------------------------------------
# Public reads
# ---------------------------------------------------------------------------
@public_router.get("/economy/events")
def list_events(engine=Depends(get_engine)):
    return {"events": [e.to_dict() for e in ledger_service.list_events(engine)]}


@public_router.get("/guilds/{guild_id}/economy/leaderboard")
def leaderboard(
    guild_id: str,
    limit: int = Query(10),
    engine=Depends(get_engine),
):
    try:
        rows = ledger_service.get_top_users(engine, guild_id, limit)
    except ValueError as exc:
        raise HTTPException(422, str(exc))
    return {"guild_id": guild_id, "leaderboard": [r.to_dict() for r in rows]}


@public_router.get("/guilds/{guild_id}/economy/users/{user_id}/points")
def user_points(guild_id: str, user_id: str, engine=Depends(get_engine)):
    return {
        "guild_id": guild_id,
        "user_id": user_id,
        "points": ledger_service.get_user_total(engine, guild_id, user_id),
        "rank": ledger_service.get_user_rank(engine, guild_id, user_id),
    }


@public_router.get("/guilds/{guild_id}/economy/users/{user_id}/history")
def user_history(guild_id: str, user_id: str, engine=Depends(get_engine)):
    return {
        "guild_id": guild_id,
        "user_id": user_id,
        "history": ledger_service.get_user_history(engine, guild_id, user_id),
    }


# ---------------------------------------------------------------------------
# Admin — module lifecycle
# ---------------------------------------------------------------------------
@admin_router.get("/guilds/{guild_id}/economy/status")
def economy_status(
    guild_id: str,
    admin: dict = Depends(get_current_admin),
    engine=Depends(get_engine),
):
    try:
        state = module_service.module_status(engine, guild_id, ECONOMY_MODULE)
    except ModuleNotLoaded as exc:
        raise HTTPException(404, str(exc))
    return {"message": ECONOMY_MODULE.upper(), "status": state.enabled, **state.to_dict()}


@admin_router.post("/guilds/{guild_id}/economy/enable")
def economy_enable(
    guild_id: str,
    admin: dict = Depends(get_current_admin),
    engine=Depends(get_engine),
):
    try:
        module_service.enable_module(engine, guild_id, ECONOMY_MODULE)
    except AlreadyEnabled:
        return {"message": "Module already enabled!", "status": True}
    except ModuleNotLoaded as exc:
        raise HTTPException(404, str(exc))
    logger.info("Economy enabled for guild %s by %s", guild_id, admin.get("sub"))
    return {"message": "Module enabled!", "status": True}


@admin_router.post("/guilds/{guild_id}/economy/disable")
def economy_disable(
    guild_id: str,
    admin: dict = Depends(get_current_admin),
    engine=Depends(get_engine),
):
    try:
        module_service.disable_module(engine, guild_id, ECONOMY_MODULE)
    except AlreadyDisabled:
        return {"message": "Module already disabled!", "status": False}
    except ModuleNotLoaded as exc:
        raise HTTPException(404, str(exc))
    logger.info("Economy disabled for guild %s by %s", guild_id, admin.get("sub"))
    return {"message": "Module disabled!", "status": False}


@admin_router.get("/guilds/{guild_id}/economy/config")
def get_economy_config(
    guild_id: str,
    admin: dict = Depends(get_current_admin),
    engine=Depends(get_engine),
):
    cfg = module_service.get_module_config(engine, guild_id, ECONOMY_MODULE)
    return {"guild_id": guild_id, "config": cfg.model_dump()}


@admin_router.put("/guilds/{guild_id}/economy/config")
def update_economy_config(
    guild_id: str,
    body: dict[str, Any],
    admin: dict = Depends(get_current_admin),
    engine=Depends(get_engine),
):
    try:
        cfg = module_service.update_module_config(engine, guild_id, ECONOMY_MODULE, body)
    except ModuleNotLoaded as exc:
        raise HTTPException(404, str(exc))
    except ValidationError as exc:
        raise HTTPException(422, exc.errors(include_url=False, include_context=False))
    except ValueError as exc:
        raise HTTPException(422, str(exc))
    return {"guild_id": guild_id, "config": cfg.model_dump()}


# ---------------------------------------------------------------------------
# Admin — awards
# ---------------------------------------------------------------------------
@admin_router.post("/guilds/{guild_id}/economy/award")
def award(
    guild_id: str,
    body: AwardRequest,
    admin: dict = Depends(get_current_admin),
    engine=Depends(get_engine),
):
    try:
        result = award_event(engine, guild_id, body.user_id, body.event_key)
    except UnknownEvent as exc:
        raise HTTPException(404, str(exc))
    except OccurrenceLimitReached as exc:
        raise HTTPException(409, str(exc))
    except StoreFailure:
        raise HTTPException(500, "Could not record the award")

    logger.info(
        "Admin %s awarded %s to %s in guild %s",
        admin.get("sub"), body.event_key, body.user_id, guild_id,
    )
    return {
        "user_id": result.user_id,
        "event_key": result.event_key,
        "points_awarded": result.points_awarded,
        "new_total": result.new_total,
        "occurrence": result.occurrence,
    }


@admin_router.post("/guilds/{guild_id}/economy/award-all")
async def award_all(
    guild_id: str,
    body: BulkAwardRequest,
    admin: dict = Depends(get_current_admin),
    engine=Depends(get_engine),
):
    try:
        await run_db(ledger_service.get_event, engine, body.event_key)
    except UnknownEvent as exc:
        raise HTTPException(404, str(exc))

    concurrency = body.concurrency
    if concurrency is None:
        cfg = await run_db(module_service.get_module_config, engine, guild_id, ECONOMY_MODULE)
        concurrency = cfg.giveall_concurrency

    result = await award_event_to_all(
        engine, guild_id, body.event_key, body.user_ids, concurrency=concurrency,
    )
    logger.info(
        "Admin %s mass-awarded %s in guild %s: %d/%d",
        admin.get("sub"), body.event_key, guild_id, result.awarded, result.attempted,
    )
    return result.to_dict()


# ---------------------------------------------------------------------------
# Admin — reconciliation
# ---------------------------------------------------------------------------
@admin_router.post("/guilds/{guild_id}/economy/reconcile")
def reconcile(
    guild_id: str,
    admin: dict = Depends(get_current_admin),
    engine=Depends(get_engine),
):
    logger.info("Admin %s triggered reconciliation for guild %s", admin.get("sub"), guild_id)
    return reconcile_points(engine, guild_id)
