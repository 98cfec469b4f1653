from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from scrapyard.models.inventory import InventoryLot
from scrapyard.services.errors import InvalidArgument, NotFound, StorageError
from scrapyard.utils.enums import DEFAULT_STAGE, DEFAULT_STATUS

# attributes a lifecycle transition may overwrite
LIFECYCLE_FIELDS = (
    "lifecycle_stage",
    "status",
    "barcode",
    "qr_code",
    "batch_number",
    "inspection_notes",
)


class InventoryStore:
    """Current state of every inventory lot.

    ``update`` only flushes; committing is left to the caller so a lot change
    and its audit row can share one transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, lot_id: int) -> InventoryLot:
        try:
            lot = self.db.get(InventoryLot, lot_id)
        except SQLAlchemyError as e:
            raise StorageError(f"failed to load inventory lot {lot_id}") from e
        if lot is None:
            raise NotFound(f"Inventory item {lot_id} not found")
        return lot

    def list_all(self) -> List[InventoryLot]:
        try:
            stmt = select(InventoryLot).order_by(InventoryLot.created_at.desc(), InventoryLot.id.desc())
            return list(self.db.scalars(stmt))
        except SQLAlchemyError as e:
            raise StorageError("failed to list inventory lots") from e

    def get_many(self, lot_ids) -> Dict[int, InventoryLot]:
        ids = set(lot_ids)
        if not ids:
            return {}
        try:
            rows = self.db.scalars(select(InventoryLot).where(InventoryLot.id.in_(ids)))
            return {lot.id: lot for lot in rows}
        except SQLAlchemyError as e:
            raise StorageError("failed to load inventory lots") from e

    def update(self, lot_id: int, fields: dict) -> InventoryLot:
        """Merge ``fields`` into the lot as given. Stage/status legality is checked by the caller."""
        lot = self.get(lot_id)
        for name, value in fields.items():
            setattr(lot, name, value)
        try:
            self.db.flush()
        except SQLAlchemyError as e:
            raise StorageError(f"failed to update inventory lot {lot_id}") from e
        return lot

    def create(
        self,
        item_id: str,
        metal_type: str,
        grade: str,
        quantity: Decimal,
        unit: str,
        ferrous_type: Optional[str] = None,
        location: Optional[str] = None,
        inspection_notes: Optional[str] = None,
    ) -> InventoryLot:
        """Intake of a new lot: always starts in ``collection`` / ``available``."""
        lot = InventoryLot(
            item_id=item_id,
            metal_type=metal_type,
            grade=grade,
            quantity=quantity,
            unit=unit,
            ferrous_type=ferrous_type,
            location=location,
            inspection_notes=inspection_notes,
            lifecycle_stage=DEFAULT_STAGE,
            status=DEFAULT_STATUS,
        )
        self.db.add(lot)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise InvalidArgument(f"Item id {item_id!r} already exists") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError("failed to create inventory lot") from e
        self.db.refresh(lot)
        return lot
