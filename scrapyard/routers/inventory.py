import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from scrapyard.db import get_db
from scrapyard.middleware.rbac import current_user_id
from scrapyard.schemas import InventoryCreate, InventoryOut, LifecyclePatch
from scrapyard.services.errors import InvalidArgument, NotFound, StorageError
from scrapyard.services.inventory_store import InventoryStore
from scrapyard.services.lifecycle import LifecycleEngine

logger = logging.getLogger("scrapyard.inventory")
router = APIRouter(prefix="/api/inventory", tags=["inventory"])


@router.get("", response_model=List[InventoryOut])
def list_inventory(db: Session = Depends(get_db)):
    try:
        return InventoryStore(db).list_all()
    except StorageError:
        logger.exception("inventory list failed")
        raise HTTPException(status_code=500, detail="Failed to fetch inventory")


@router.post("", response_model=InventoryOut, status_code=201)
def create_inventory(body: InventoryCreate, db: Session = Depends(get_db)):
    try:
        lot = InventoryStore(db).create(**body.model_dump())
    except InvalidArgument as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StorageError:
        logger.exception("inventory intake failed")
        raise HTTPException(status_code=500, detail="Failed to create inventory item")
    logger.info("intake: lot %s (%s)", lot.id, lot.item_id)
    return lot


@router.get("/{lot_id}", response_model=InventoryOut)
def get_inventory(lot_id: int, db: Session = Depends(get_db)):
    try:
        return InventoryStore(db).get(lot_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageError:
        logger.exception("inventory read failed")
        raise HTTPException(status_code=500, detail="Failed to fetch inventory item")


# ---------- LIFECYCLE TRANSITION ----------
@router.patch("/{lot_id}", response_model=InventoryOut)
def update_lifecycle(
    lot_id: int,
    body: LifecyclePatch,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    engine = LifecycleEngine(db)
    try:
        return engine.apply_transition(lot_id, body.model_dump(exclude_unset=True), updated_by=user_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidArgument as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to update lifecycle")
