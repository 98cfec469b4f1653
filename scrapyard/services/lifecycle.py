import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scrapyard import config
from scrapyard.models.inventory import InventoryLot
from scrapyard.services.audit_log import LifecycleAuditLog
from scrapyard.services.errors import InvalidArgument, LifecycleError, StorageError
from scrapyard.services.inventory_store import LIFECYCLE_FIELDS, InventoryStore
from scrapyard.utils.enums import DEFAULT_STAGE, INVENTORY_STATUSES, LIFECYCLE_STAGES

logger = logging.getLogger("scrapyard.lifecycle")

# lot state that may not be cleared by a transition
_NON_NULLABLE = ("lifecycle_stage", "status")


class LifecycleEngine:
    """Applies stage/status changes to inventory lots and records each one.

    The lot update and the audit row are written in a single transaction:
    either both commit or the session is rolled back and neither exists.

    Stage order is not enforced (a lot may go back from melting to collection
    or skip stages). Values are stored as given unless ``strict`` is on, in
    which case stage and status must belong to the fixed sets.
    """

    def __init__(
        self,
        db: Session,
        store: Optional[InventoryStore] = None,
        audit_log: Optional[LifecycleAuditLog] = None,
        strict: Optional[bool] = None,
    ):
        self.db = db
        self.store = store or InventoryStore(db)
        self.audit_log = audit_log or LifecycleAuditLog(db)
        self.strict = config.LIFECYCLE_STRICT if strict is None else strict

    def _clean_payload(self, payload: dict) -> dict:
        fields = {}
        for name, value in payload.items():
            if name not in LIFECYCLE_FIELDS:
                raise InvalidArgument(f"Unknown lifecycle field {name!r}")
            if value is None and name in _NON_NULLABLE:
                continue
            fields[name] = value

        if self.strict:
            stage = fields.get("lifecycle_stage")
            if stage is not None and stage not in LIFECYCLE_STAGES:
                raise InvalidArgument(f"Unknown lifecycle stage {stage!r}")
            status = fields.get("status")
            if status is not None and status not in INVENTORY_STATUSES:
                raise InvalidArgument(f"Unknown inventory status {status!r}")
        return fields

    def apply_transition(self, inventory_id: int, payload: dict, updated_by: int) -> InventoryLot:
        if updated_by is None:
            raise InvalidArgument("updated_by is required")
        fields = self._clean_payload(payload)

        try:
            lot = self.store.get(inventory_id)
            previous_stage = lot.lifecycle_stage
            # a transition without a stage keeps the current one (NULL heals to collection)
            fields.setdefault("lifecycle_stage", previous_stage or DEFAULT_STAGE)

            self.store.update(inventory_id, fields)
            self.audit_log.append(
                inventory_id=inventory_id,
                previous_stage=previous_stage,
                new_stage=fields["lifecycle_stage"],
                updated_by=updated_by,
                status=fields.get("status"),
                barcode=fields.get("barcode"),
                qr_code=fields.get("qr_code"),
                batch_number=fields.get("batch_number"),
                inspection_notes=fields.get("inspection_notes"),
            )
            self.db.commit()
        except StorageError:
            self.db.rollback()
            logger.exception("lifecycle update failed for lot %s", inventory_id)
            raise
        except LifecycleError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("lifecycle update failed for lot %s", inventory_id)
            raise StorageError(f"Failed to update lifecycle of lot {inventory_id}") from e

        logger.info(
            "lot %s: %s -> %s (status=%s, by user %s)",
            inventory_id, previous_stage, lot.lifecycle_stage, lot.status, updated_by,
        )
        return lot
