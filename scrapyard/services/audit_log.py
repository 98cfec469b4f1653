from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scrapyard.models.lifecycle_update import LifecycleUpdate
from scrapyard.services.errors import StorageError


class LifecycleAuditLog:
    """Append-only history of lifecycle transitions.

    No update or delete is offered here, and the model refuses both at
    flush time.
    """

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        inventory_id: int,
        previous_stage: Optional[str],
        new_stage: str,
        updated_by: int,
        status: Optional[str] = None,
        barcode: Optional[str] = None,
        qr_code: Optional[str] = None,
        batch_number: Optional[str] = None,
        inspection_notes: Optional[str] = None,
    ) -> LifecycleUpdate:
        entry = LifecycleUpdate(
            inventory_id=inventory_id,
            previous_stage=previous_stage,
            new_stage=new_stage,
            status=status,
            barcode=barcode,
            qr_code=qr_code,
            batch_number=batch_number,
            inspection_notes=inspection_notes,
            updated_by=updated_by,
        )
        self.db.add(entry)
        try:
            self.db.flush()
        except SQLAlchemyError as e:
            raise StorageError(f"failed to record lifecycle update for lot {inventory_id}") from e
        return entry

    def _list(self, stmt, limit: Optional[int] = None) -> List[LifecycleUpdate]:
        stmt = stmt.order_by(LifecycleUpdate.updated_at.desc(), LifecycleUpdate.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            return list(self.db.scalars(stmt))
        except SQLAlchemyError as e:
            raise StorageError("failed to read lifecycle updates") from e

    def list_all(self, limit: Optional[int] = None) -> List[LifecycleUpdate]:
        return self._list(select(LifecycleUpdate), limit)

    def list_by_inventory(self, inventory_id: int) -> List[LifecycleUpdate]:
        return self._list(select(LifecycleUpdate).where(LifecycleUpdate.inventory_id == inventory_id))
