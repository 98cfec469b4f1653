# scrapyard/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    # wire names are camelCase (itemId, lifecycleStage, qrCode ...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---------- inventory ----------
class InventoryCreate(CamelModel):
    item_id: str = Field(min_length=1, max_length=64)
    metal_type: str = Field(min_length=1, max_length=64)
    grade: str = Field(min_length=1, max_length=64)
    quantity: Decimal = Field(ge=0)
    unit: str = Field(min_length=1, max_length=16)
    ferrous_type: Optional[str] = None
    location: Optional[str] = None
    inspection_notes: Optional[str] = None


class InventoryOut(CamelModel):
    id: int
    item_id: str
    metal_type: str
    grade: str
    quantity: Decimal
    unit: str
    ferrous_type: Optional[str] = None
    location: Optional[str] = None
    lifecycle_stage: Optional[str] = None
    status: str
    barcode: Optional[str] = None
    qr_code: Optional[str] = None
    batch_number: Optional[str] = None
    inspection_notes: Optional[str] = None
    created_at: datetime


class LifecyclePatch(CamelModel):
    """Only the fields actually sent are applied (exclude_unset). Unknown keys are a 422."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    lifecycle_stage: Optional[str] = Field(None, max_length=32)
    status: Optional[str] = Field(None, max_length=32)
    barcode: Optional[str] = Field(None, max_length=64)
    qr_code: Optional[str] = Field(None, max_length=64)
    batch_number: Optional[str] = Field(None, max_length=64)
    inspection_notes: Optional[str] = None


class LifecycleUpdateOut(CamelModel):
    id: int
    inventory_id: int
    previous_stage: Optional[str] = None
    new_stage: str
    status: Optional[str] = None
    barcode: Optional[str] = None
    qr_code: Optional[str] = None
    batch_number: Optional[str] = None
    inspection_notes: Optional[str] = None
    updated_by: int
    updated_at: datetime


# ---------- lifecycle read side ----------
class LifecycleStats(CamelModel):
    total_inventory: int
    lifecycle_stages: Dict[str, int]
    recent_lifecycle_updates: int
    total_lifecycle_updates: int
    window_days: int


class StageInfo(CamelModel):
    value: str
    progress: float


class StagesOut(CamelModel):
    stages: List[StageInfo]
    statuses: List[str]


class StageProgressOut(CamelModel):
    stage: str
    progress: float


class GeneratedCodes(CamelModel):
    barcode: str
    qr_code: str


# ---------- users / auth ----------
class LoginIn(BaseModel):
    username: str
    password: str


class UserCreate(CamelModel):
    username: str = Field(min_length=1, max_length=50)
    email: str = Field(min_length=3, max_length=120)
    password: str = Field(min_length=6)
    name: str = Field(min_length=1, max_length=120)
    role: str = "yard_staff"


class UserUpdate(CamelModel):
    username: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[str] = Field(None, min_length=3, max_length=120)
    password: Optional[str] = Field(None, min_length=6)
    name: Optional[str] = None
    role: Optional[str] = None
    is_active: Optional[bool] = None


class UserOut(CamelModel):
    id: int
    username: str
    email: str
    name: str
    role: str
    is_active: bool
    created_at: datetime
