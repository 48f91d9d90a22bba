"""Staff records managed by the admin."""
import logging
from typing import List, Optional

from database import utcnow
from errors import NotFoundError, ValidationError
from schemas import STAFF, STAFF_ROLES, Staff

logger = logging.getLogger(__name__)


def get_staff(store, staff_id: str) -> Staff:
    doc = store.get_by_id(STAFF, staff_id)
    if not doc:
        raise NotFoundError("Staff member not found")
    return Staff(**doc)


def list_staff(store, role: Optional[str] = None, active_only: bool = False) -> List[Staff]:
    filt = {}
    if role:
        if role not in STAFF_ROLES:
            raise ValidationError(f"Unknown staff role {role!r}")
        filt["role"] = role
    if active_only:
        filt["is_active"] = True
    return [Staff(**doc) for doc in store.get_all(STAFF, filt, sort=[("name", 1)])]


def create_staff(store, member: Staff) -> str:
    data = member.model_dump(exclude={"id"})
    data["joining_date"] = data["joining_date"] or utcnow()
    staff_id = store.create(STAFF, data)
    logger.info("Staff member %s (%s) added as %s", staff_id, member.name, member.role)
    return staff_id


def update_staff(store, staff_id: str, changes: dict) -> None:
    changes = {k: v for k, v in changes.items() if v is not None}
    # joining date is fixed once recorded
    changes.pop("joining_date", None)
    get_staff(store, staff_id)
    store.update(STAFF, staff_id, changes)


def delete_staff(store, staff_id: str) -> None:
    store.delete(STAFF, staff_id)
    logger.info("Staff member %s deleted", staff_id)


def staff_summary(store) -> dict:
    members = list_staff(store)
    return {
        "total": len(members),
        "active": sum(1 for m in members if m.is_active),
        "waiters": sum(1 for m in members if m.role == "waiter"),
        "kitchen": sum(1 for m in members if m.role == "kitchen"),
    }
