# scrapyard/services/lifecycle_stats.py
"""Dashboard roll-ups over lots and their transition history.

Everything is computed on demand from the current rows; nothing is cached.
"""
from datetime import datetime, timedelta
from typing import Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scrapyard.db import utcnow
from scrapyard.models.inventory import InventoryLot
from scrapyard.models.lifecycle_update import LifecycleUpdate
from scrapyard.services.errors import StorageError
from scrapyard.utils.enums import DEFAULT_STAGE, LIFECYCLE_STAGES


def stage_distribution(db: Session) -> Dict[str, int]:
    """Lot count per stage. A missing stage counts as ``collection``."""
    try:
        rows = db.execute(
            select(InventoryLot.lifecycle_stage, func.count(InventoryLot.id))
            .group_by(InventoryLot.lifecycle_stage)
        ).all()
    except SQLAlchemyError as e:
        raise StorageError("failed to compute stage distribution") from e

    out: Dict[str, int] = {}
    for stage, n in rows:
        key = stage or DEFAULT_STAGE
        out[key] = out.get(key, 0) + n
    return out


def recent_transition_count(db: Session, window_days: int = 7, now: Optional[datetime] = None) -> int:
    # lower bound is inclusive: an entry exactly window_days old still counts
    since = (now or utcnow()) - timedelta(days=window_days)
    try:
        return db.scalar(
            select(func.count(LifecycleUpdate.id)).where(LifecycleUpdate.updated_at >= since)
        ) or 0
    except SQLAlchemyError as e:
        raise StorageError("failed to count recent lifecycle updates") from e


def total_transition_count(db: Session) -> int:
    try:
        return db.scalar(select(func.count(LifecycleUpdate.id))) or 0
    except SQLAlchemyError as e:
        raise StorageError("failed to count lifecycle updates") from e


def stage_progress(stage: Optional[str]) -> float:
    """Percent of the pipeline reached: collection=20 ... distribution=100.

    Unknown stages have made no progress and return 0.
    """
    if stage not in LIFECYCLE_STAGES:
        return 0.0
    return (LIFECYCLE_STAGES.index(stage) + 1) * 100 / len(LIFECYCLE_STAGES)


def lifecycle_summary(db: Session, window_days: int = 7) -> dict:
    distribution = stage_distribution(db)
    return {
        "total_inventory": sum(distribution.values()),
        "lifecycle_stages": distribution,
        "recent_lifecycle_updates": recent_transition_count(db, window_days),
        "total_lifecycle_updates": total_transition_count(db),
        "window_days": window_days,
    }
