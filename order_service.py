"""
Order lifecycle: creation, status changes, discounts and completion.

Status moves pending -> preparing -> ready -> served -> completed, with
cancelled reachable at any point. Staff may pick any known status (and any
payment status) at any time so mistakes can be corrected; only unknown
values are rejected.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from cart import OrderSession
from customer_service import find_by_phone
from database import utcnow
from errors import BusinessRuleError, NotFoundError, ValidationError
from numbering import generate_order_number
from pricing import calculate_discount, calculate_order_totals
from schemas import (
    ACTIVE_KITCHEN_STATUSES,
    MENU_ITEMS,
    ORDER_STATUSES,
    ORDERS,
    PAYMENT_METHODS,
    PAYMENT_STATUSES,
    MenuItem,
    Order,
    OrderCreate,
    StaffMember,
)
from settings_service import local_timezone
from table_service import get_table, occupy_table, release_table

logger = logging.getLogger(__name__)


def get_order(store, order_id: str) -> Order:
    doc = store.get_by_id(ORDERS, order_id)
    if not doc:
        raise NotFoundError("Order not found")
    return Order(**doc)


def list_orders(store, status: Optional[str] = None, table_id: Optional[str] = None) -> List[Order]:
    filt = {}
    if status:
        filt["status"] = status
    if table_id:
        filt["table_id"] = table_id
    return [Order(**doc) for doc in store.get_all(ORDERS, filt, sort=[("created_at", -1)])]


def _matches_query(order: Order, query: str) -> bool:
    lowered = query.lower()
    return (lowered in order.order_number.lower()
            or lowered in (order.customer_name or "").lower()
            or (order.table_number is not None and query in str(order.table_number)))


def search_orders(store, query: Optional[str] = None, status: Optional[str] = None) -> List[Order]:
    """Order list filtered by order number, customer name or table number, newest first."""
    orders = list_orders(store, status)
    query = (query or "").strip()
    if not query:
        return orders
    return [o for o in orders if _matches_query(o, query)]


def status_counts(store) -> dict:
    counts = dict.fromkeys(ORDER_STATUSES, 0)
    docs = store.get_all(ORDERS)
    for doc in docs:
        counts[doc.get("status", "pending")] += 1
    return {"all": len(docs), **counts}


def session_from_request(store, payload: OrderCreate) -> OrderSession:
    """Fill an OrderSession from an API request, pricing lines from the live menu."""
    session = OrderSession(payload.order_type)
    for line in payload.items:
        doc = store.get_by_id(MENU_ITEMS, line.item_id)
        if not doc:
            raise ValidationError(f"Invalid item_id {line.item_id}")
        session.add_item(MenuItem(**doc), line.quantity, line.special_instructions)
    if payload.table_id:
        table = get_table(store, payload.table_id)
        session.set_table(table.id, table.table_number)
    session.set_customer((payload.customer_name or "").strip(), (payload.customer_phone or "").strip())
    session.delivery_address = payload.delivery_address
    return session


def _validate_session(store, session: OrderSession):
    if not session.items:
        raise ValidationError("Please add items to the order")
    for item in session.items:
        if item.quantity < 1:
            raise ValidationError(f"Quantity for {item.item_name} must be at least 1")
    if session.order_type != "dine-in":
        return None
    if not session.table_id:
        raise ValidationError("Please select a table for dine-in orders")
    table = get_table(store, session.table_id)
    if table.status != "available":
        raise ValidationError(f"Table {table.table_number} is {table.status}")
    return table


def create_order(store, session: OrderSession, staff: StaffMember, now: Optional[datetime] = None) -> str:
    """Persist the session as a pending order and occupy its table (dine-in)."""
    table = _validate_session(store, session)
    totals = calculate_order_totals(session.items, 0)
    now = now or utcnow()

    order = Order(
        order_number=generate_order_number(now, local_timezone(store)),
        table_id=table.id if table else None,
        table_number=table.table_number if table else None,
        items=[item.model_copy() for item in session.items],
        subtotal=float(totals.subtotal),
        cgst=float(totals.cgst),
        sgst=float(totals.sgst),
        discount=0,
        total_amount=float(totals.total_amount),
        order_type=session.order_type,
        waiter_id=staff.id,
        waiter_name=staff.name,
        created_by=staff.id,
        created_at=now,
        updated_at=now,
    )
    if session.customer_name.strip():
        order.customer_name = session.customer_name.strip()
    if session.customer_phone.strip():
        order.customer_phone = session.customer_phone.strip()
        existing = find_by_phone(store, order.customer_phone)
        if existing:
            order.customer_id = existing.id
    if session.delivery_address and session.order_type == "delivery":
        order.delivery_address = session.delivery_address

    order_id = store.create(ORDERS, order)
    if table:
        occupy_table(store, table.id, order_id)
    logger.info("Order %s (%s) created, total %s", order.order_number, order_id, order.total_amount)
    return order_id


def update_order_status(store, order_id: str, status: str) -> None:
    if status not in ORDER_STATUSES:
        raise ValidationError(f"Unknown order status {status!r}")
    get_order(store, order_id)
    store.update(ORDERS, order_id, {"status": status})
    logger.info("Order %s status -> %s", order_id, status)


def update_payment_status(store, order_id: str, payment_status: str) -> None:
    if payment_status not in PAYMENT_STATUSES:
        raise ValidationError(f"Unknown payment status {payment_status!r}")
    get_order(store, order_id)
    store.update(ORDERS, order_id, {"payment_status": payment_status})
    logger.info("Order %s payment status -> %s", order_id, payment_status)


def apply_discount(store, order_id: str, value: float, discount_type: str = "flat") -> Order:
    """Set the order discount and recompute its total."""
    if value < 0:
        raise ValidationError("Discount cannot be negative")
    if discount_type not in ("flat", "percentage"):
        raise ValidationError(f"Unknown discount type {discount_type!r}")
    if discount_type == "percentage" and value > 100:
        raise ValidationError("Percentage discount cannot exceed 100")
    order = get_order(store, order_id)
    if order.status in ("completed", "cancelled"):
        raise BusinessRuleError(f"Order {order.order_number} is {order.status}")

    discount = calculate_discount(order.subtotal, value, discount_type)
    totals = calculate_order_totals(order.items, discount)
    if discount > totals.taxed_total:
        raise BusinessRuleError("Discount exceeds the order total")

    order.discount = float(discount)
    order.total_amount = float(totals.total_amount)
    store.update(ORDERS, order_id, {"discount": order.discount, "total_amount": order.total_amount})
    return order


def can_generate_bill(order: Order) -> bool:
    return order.status == "served" and order.payment_status == "paid"


def complete_order(store, order: Order, payment_method: str) -> None:
    """Mark the order completed and paid; a dine-in table is freed even if that write fails."""
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"Unknown payment method {payment_method!r}")
    try:
        store.update(ORDERS, order.id, {
            "status": "completed",
            "payment_status": "paid",
            "payment_method": payment_method,
            "completed_at": utcnow(),
        })
    finally:
        if order.order_type == "dine-in" and order.table_id:
            release_table(store, order.table_id)


def kitchen_queue(store) -> List[Order]:
    docs = store.get_all(ORDERS, sort=[("created_at", 1)])
    return [Order(**doc) for doc in docs if doc.get("status") in ACTIVE_KITCHEN_STATUSES]


def watch_kitchen_queue(store, on_change: Callable[[List[Order]], None]):
    """Live kitchen display: on_change receives the active orders, oldest first, after every change."""
    def push(docs):
        on_change([Order(**doc) for doc in docs if doc.get("status") in ACTIVE_KITCHEN_STATUSES])

    return store.subscribe(ORDERS, push, sort=[("created_at", 1)])
