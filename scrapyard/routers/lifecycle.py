from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from scrapyard import config
from scrapyard.db import get_db
from scrapyard.schemas import (
    GeneratedCodes,
    LifecycleStats,
    LifecycleUpdateOut,
    StageInfo,
    StageProgressOut,
    StagesOut,
)
from scrapyard.services import lifecycle_stats
from scrapyard.services.audit_log import LifecycleAuditLog
from scrapyard.services.errors import StorageError
from scrapyard.services.inventory_store import InventoryStore
from scrapyard.utils.enums import INVENTORY_STATUSES, LIFECYCLE_STAGES
from scrapyard.utils.tokens import make_barcode, make_qr_code

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))
router = APIRouter(tags=["lifecycle"])


def _window(window_days: Optional[int]) -> int:
    return config.RECENT_WINDOW_DAYS if window_days is None else window_days


# ---------- HISTORY ----------
@router.get("/api/lifecycle-updates", response_model=List[LifecycleUpdateOut])
def list_lifecycle_updates(
    inventory_id: Optional[int] = Query(None, alias="inventoryId"),
    db: Session = Depends(get_db),
):
    log = LifecycleAuditLog(db)
    try:
        if inventory_id is not None:
            return log.list_by_inventory(inventory_id)
        return log.list_all()
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to fetch lifecycle updates")


@router.get("/api/lifecycle-updates/{inventory_id}", response_model=List[LifecycleUpdateOut])
def list_lot_lifecycle_updates(inventory_id: int, db: Session = Depends(get_db)):
    try:
        return LifecycleAuditLog(db).list_by_inventory(inventory_id)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to fetch inventory lifecycle updates")


# ---------- STATS ----------
@router.get("/api/lifecycle/stats", response_model=LifecycleStats)
def lifecycle_stats_view(
    window_days: Optional[int] = Query(None, alias="windowDays", ge=0, le=3650),
    db: Session = Depends(get_db),
):
    try:
        return lifecycle_stats.lifecycle_summary(db, _window(window_days))
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to fetch statistics")


@router.get("/api/lifecycle/stages", response_model=StagesOut)
def lifecycle_stages():
    return StagesOut(
        stages=[StageInfo(value=s, progress=lifecycle_stats.stage_progress(s)) for s in LIFECYCLE_STAGES],
        statuses=INVENTORY_STATUSES,
    )


@router.get("/api/lifecycle/progress/{stage}", response_model=StageProgressOut)
def stage_progress(stage: str):
    return StageProgressOut(stage=stage, progress=lifecycle_stats.stage_progress(stage))


@router.post("/api/lifecycle/codes", response_model=GeneratedCodes)
def generate_codes():
    return GeneratedCodes(barcode=make_barcode(), qr_code=make_qr_code())


# ---------- DASHBOARD PAGE ----------
@router.get("/admin/lifecycle", response_class=HTMLResponse)
def lifecycle_dashboard(
    request: Request,
    limit: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
):
    try:
        summary = lifecycle_stats.lifecycle_summary(db, config.RECENT_WINDOW_DAYS)
        recent = LifecycleAuditLog(db).list_all(limit=limit)
        lots = InventoryStore(db).get_many(u.inventory_id for u in recent)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to fetch statistics")

    return templates.TemplateResponse(request, "admin/lifecycle.html", {
        "summary": summary,
        "stages": [(s, lifecycle_stats.stage_progress(s)) for s in LIFECYCLE_STAGES],
        "recent": recent,
        "lots": lots,
    })
