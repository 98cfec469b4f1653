# python -m scrapyard.seed
import logging
from decimal import Decimal

from sqlalchemy.orm import configure_mappers

from scrapyard.db import Base, engine, SessionLocal
import scrapyard.models  # noqa: F401  all models must be registered
from scrapyard.models.user import User
from scrapyard.services.inventory_store import InventoryStore
from scrapyard.services.lifecycle import LifecycleEngine
from scrapyard.utils.enums import UserRole
from scrapyard.utils.security import hash_password

logger = logging.getLogger("scrapyard.seed")

USERS = [
    ("admin", "admin@scrapyard.local", "Admin", UserRole.ADMIN.value),
    ("export", "export@scrapyard.local", "Export Manager", UserRole.EXPORT_MANAGER.value),
    ("yard", "yard@scrapyard.local", "Yard Staff", UserRole.YARD_STAFF.value),
]

LOTS = [
    ("INV-0001", "Steel", "HMS 1&2", Decimal("24.500"), "tons", "ferrous", "Yard A"),
    ("INV-0002", "Copper", "Berry", Decimal("3.200"), "tons", "non_ferrous", "Shed 2"),
    ("INV-0003", "Aluminium", "Taint Tabor", Decimal("8.000"), "tons", "non_ferrous", "Shed 1"),
    ("INV-0004", "Brass", "Honey", Decimal("1250"), "kg", "non_ferrous", "Shed 2"),
]


def reset_and_seed(password: str = "changeme"):
    # === RESET ===
    Base.metadata.drop_all(bind=engine)
    logger.info("all tables dropped")

    configure_mappers()
    Base.metadata.create_all(bind=engine)
    logger.info("all tables created")

    # === SEED ===
    db = SessionLocal()
    try:
        users = {}
        for username, email, name, role in USERS:
            user = User(username=username, email=email, name=name, role=role,
                        password_hash=hash_password(password))
            db.add(user)
            users[role] = user
        db.commit()
        logger.info("users created: %s", ", ".join(u[0] for u in USERS))

        store = InventoryStore(db)
        lots = [
            store.create(item_id=i, metal_type=m, grade=g, quantity=q, unit=u, ferrous_type=f, location=loc)
            for i, m, g, q, u, f, loc in LOTS
        ]
        logger.info("lots created: %d", len(lots))

        # a little history so the dashboard is not empty
        yard_id = users[UserRole.YARD_STAFF.value].id
        lifecycle = LifecycleEngine(db)
        lifecycle.apply_transition(lots[0].id, {"lifecycle_stage": "sorting"}, updated_by=yard_id)
        lifecycle.apply_transition(lots[1].id, {"lifecycle_stage": "cleaning", "batch_number": "B-100"},
                                   updated_by=yard_id)
        lifecycle.apply_transition(lots[1].id, {"lifecycle_stage": "melting", "status": "reserved"},
                                   updated_by=yard_id)
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    reset_and_seed()
