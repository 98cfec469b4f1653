# scrapyard/models/lifecycle_update.py
from typing import Optional
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scrapyard.db import Base, utcnow

__all__ = ["LifecycleUpdate", "AuditImmutableError"]


class AuditImmutableError(RuntimeError):
    pass


class LifecycleUpdate(Base):
    """One recorded lifecycle transition. Rows are written once and never changed."""

    __tablename__ = "lifecycle_updates"

    id: Mapped[int] = mapped_column(primary_key=True)
    inventory_id: Mapped[int] = mapped_column(ForeignKey("inventory_lots.id"), index=True)

    previous_stage: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    new_stage: Mapped[str] = mapped_column(String(32))

    # snapshot of what the transition submitted, not the whole lot
    status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    barcode: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    qr_code: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    batch_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    inspection_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    updated_by: Mapped[int] = mapped_column(ForeignKey("users.id"))
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    inventory = relationship("InventoryLot", back_populates="lifecycle_updates")


Index("ix_lifecycle_updates_inventory_time", LifecycleUpdate.inventory_id, LifecycleUpdate.updated_at)


@event.listens_for(LifecycleUpdate, "before_update")
def _forbid_update(mapper, connection, target):
    raise AuditImmutableError(f"lifecycle update {target.id} is immutable")


@event.listens_for(LifecycleUpdate, "before_delete")
def _forbid_delete(mapper, connection, target):
    raise AuditImmutableError(f"lifecycle update {target.id} cannot be deleted")
