from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    EXPORT_MANAGER = "export_manager"
    YARD_STAFF = "yard_staff"


class LifecycleStage(str, Enum):
    COLLECTION = "collection"
    SORTING = "sorting"
    CLEANING = "cleaning"
    MELTING = "melting"
    DISTRIBUTION = "distribution"


class InventoryStatus(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    SOLD = "sold"
    RECYCLED = "recycled"
    DISPOSED = "disposed"


# processing pipeline order
LIFECYCLE_STAGES = [s.value for s in LifecycleStage]
INVENTORY_STATUSES = [s.value for s in InventoryStatus]

DEFAULT_STAGE = LifecycleStage.COLLECTION.value
DEFAULT_STATUS = InventoryStatus.AVAILABLE.value
