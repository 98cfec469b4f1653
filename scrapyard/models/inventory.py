# scrapyard/models/inventory.py
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scrapyard.db import Base, utcnow
from scrapyard.utils.enums import DEFAULT_STAGE, DEFAULT_STATUS

__all__ = ["InventoryLot"]


class InventoryLot(Base):
    __tablename__ = "inventory_lots"

    id: Mapped[int] = mapped_column(primary_key=True)
    item_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)

    # descriptive, never touched by lifecycle transitions
    metal_type: Mapped[str] = mapped_column(String(64))
    grade: Mapped[str] = mapped_column(String(64))
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3))
    unit: Mapped[str] = mapped_column(String(16))  # tons | kg | lbs
    ferrous_type: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)  # ferrous | non_ferrous
    location: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    # === LIFECYCLE STATE ===
    # nullable only for rows written outside the app; stats count NULL as collection
    lifecycle_stage: Mapped[Optional[str]] = mapped_column(
        String(32), default=DEFAULT_STAGE, server_default=DEFAULT_STAGE, nullable=True, index=True
    )
    status: Mapped[str] = mapped_column(String(32), default=DEFAULT_STATUS, server_default=DEFAULT_STATUS, index=True)

    barcode: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    qr_code: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    batch_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    inspection_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

    lifecycle_updates: Mapped[List["LifecycleUpdate"]] = relationship(
        "LifecycleUpdate", back_populates="inventory", passive_deletes="all"
    )
