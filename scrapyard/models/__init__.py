# scrapyard/models/__init__.py
from .user import *              # User
from .inventory import *         # InventoryLot
from .lifecycle_update import *  # LifecycleUpdate (append-only)
