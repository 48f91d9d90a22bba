"""
Customer loyalty ledger.

Customers are keyed by phone number within the restaurant. Every paid order
for a phone bumps the visit count, spend and loyalty points. The update is a
plain read-then-write; two simultaneous bills for one phone can under-count.

Back-office staff may also keep customer records by hand; those edits never
touch the loyalty figures.
"""
import logging
from decimal import ROUND_FLOOR
from typing import List, Optional

from config import get_settings
from database import utcnow
from errors import NotFoundError, ValidationError
from pricing import Number, round_money, to_decimal
from schemas import CUSTOMERS, Customer
from settings_service import get_restaurant_settings

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "phone", "email", "address")


def loyalty_points(amount: Number, ratio: Optional[int] = None, enabled: Optional[bool] = None) -> int:
    """One point per `ratio` currency units spent, rounded down, never negative."""
    settings = get_settings()
    if enabled is None:
        enabled = settings.enable_loyalty_points
    if not enabled:
        return 0
    ratio = ratio or settings.loyalty_points_ratio
    points = (to_decimal(amount) / ratio).to_integral_value(rounding=ROUND_FLOOR)
    return max(int(points), 0)


def _earned_points(store, amount: Number) -> int:
    rules = get_restaurant_settings(store)
    return loyalty_points(amount, rules.loyalty_points_ratio, rules.enable_loyalty_points)


def find_by_phone(store, phone: str) -> Optional[Customer]:
    if not phone or phone.strip() == "":
        return None
    docs = store.get_all(CUSTOMERS, {"phone": phone.strip()}, limit=1)
    return Customer(**docs[0]) if docs else None


def get_customer(store, customer_id: str) -> Customer:
    doc = store.get_by_id(CUSTOMERS, customer_id)
    if not doc:
        raise NotFoundError("Customer not found")
    return Customer(**doc)


def list_customers(store) -> List[Customer]:
    return [Customer(**doc) for doc in store.get_all(CUSTOMERS, sort=[("name", 1)])]


def search_customers(store, query: str) -> List[Customer]:
    """Name contains the query (any case) or phone contains it."""
    query = (query or "").strip()
    customers = list_customers(store)
    if not query:
        return customers
    lowered = query.lower()
    return [c for c in customers if lowered in c.name.lower() or query in c.phone]


def _clean_contact(changes: dict) -> dict:
    cleaned = {}
    for field in EDITABLE_FIELDS:
        if changes.get(field) is None:
            continue
        value = changes[field].strip()
        if field in ("name", "phone") and not value:
            raise ValidationError(f"Customer {field} is required")
        # blank optional fields are left out
        if value:
            cleaned[field] = value
    return cleaned


def _check_phone_free(store, phone: str, customer_id: Optional[str] = None) -> None:
    existing = find_by_phone(store, phone)
    if existing and existing.id != customer_id:
        raise ValidationError(f"A customer with phone {phone} already exists")


def create_customer(store, name: str, phone: str, email: Optional[str] = None,
                    address: Optional[str] = None) -> str:
    contact = _clean_contact({"name": name or "", "phone": phone or "", "email": email, "address": address})
    _check_phone_free(store, contact["phone"])
    customer = Customer(**contact, last_visit=utcnow())
    customer_id = store.create(CUSTOMERS, customer)
    logger.info("Customer %s added by staff", customer_id)
    return customer_id


def update_customer(store, customer_id: str, changes: dict) -> None:
    get_customer(store, customer_id)
    contact = _clean_contact(changes)
    if "phone" in contact:
        _check_phone_free(store, contact["phone"], customer_id)
    if contact:
        store.update(CUSTOMERS, customer_id, contact)


def delete_customer(store, customer_id: str) -> None:
    store.delete(CUSTOMERS, customer_id)
    logger.info("Customer %s deleted", customer_id)


def update_customer_stats(store, customer_id: str, order_amount: Number) -> None:
    customer = get_customer(store, customer_id)
    store.update(CUSTOMERS, customer_id, {
        "total_orders": customer.total_orders + 1,
        "total_spent": float(round_money(to_decimal(customer.total_spent) + to_decimal(order_amount))),
        "last_visit": utcnow(),
        "loyalty_points": customer.loyalty_points + _earned_points(store, order_amount),
    })


def upsert_from_order(store, phone: str, name: str, order_amount: Number,
                      email: Optional[str] = None) -> str:
    """Record a paid order against the customer with this phone, creating them if new."""
    existing = find_by_phone(store, phone)
    if existing:
        update_customer_stats(store, existing.id, order_amount)
        logger.info("Customer %s stats updated", existing.id)
        return existing.id

    customer = Customer(
        name=name.strip(),
        phone=phone.strip(),
        total_orders=1,
        total_spent=float(round_money(order_amount)),
        last_visit=utcnow(),
        loyalty_points=_earned_points(store, order_amount),
    )
    if email and email.strip() != "":
        customer.email = email.strip()
    customer_id = store.create(CUSTOMERS, customer)
    logger.info("Customer %s created for phone %s", customer_id, customer.phone)
    return customer_id
