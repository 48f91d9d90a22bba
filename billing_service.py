"""
Bill generation.

A bill is a frozen copy of the order's lines and amounts at the moment of
payment. It is inserted once and never updated, so later edits to the order
or the menu cannot change an issued invoice.
"""
import logging
from typing import List

from customer_service import upsert_from_order
from database import utcnow
from errors import NotFoundError, PosError, ValidationError
from numbering import generate_bill_number
from order_service import complete_order, get_order
from schemas import BILLS, PAYMENT_METHODS, Bill, StaffMember

logger = logging.getLogger(__name__)


def get_bill(store, bill_id: str) -> Bill:
    doc = store.get_by_id(BILLS, bill_id)
    if not doc:
        raise NotFoundError("Bill not found")
    return Bill(**doc)


def list_bills(store) -> List[Bill]:
    return [Bill(**doc) for doc in store.get_all(BILLS, sort=[("created_at", -1)])]


def generate_bill(store, order_id: str, payment_method: str, staff: StaffMember) -> str:
    """
    Issue a bill for an order and close the order.

    Steps, each its own write: insert bill, complete order and free the table,
    credit the customer's loyalty account. A loyalty failure is logged and does
    not undo the bill.
    """
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"Unknown payment method {payment_method!r}")
    order = get_order(store, order_id)

    bill = Bill(
        bill_number=generate_bill_number(),
        order_id=order.id,
        order_number=order.order_number,
        items=[item.model_copy() for item in order.items],
        subtotal=order.subtotal,
        cgst=order.cgst,
        sgst=order.sgst,
        discount=order.discount or 0,
        total_amount=order.total_amount,
        payment_method=payment_method,
        order_type=order.order_type,
        table_number=order.table_number,
        customer_name=order.customer_name,
        customer_phone=order.customer_phone,
        created_by=staff.id,
        created_by_name=staff.name,
        created_at=utcnow(),
    )
    bill_id = store.create(BILLS, bill)
    logger.info("Bill %s issued for order %s", bill.bill_number, order.order_number)

    complete_order(store, order, payment_method)

    if order.customer_phone and order.customer_name:
        try:
            upsert_from_order(store, order.customer_phone, order.customer_name, order.total_amount)
        except PosError:
            logger.exception("Error updating customer %s after bill %s", order.customer_phone, bill.bill_number)

    return bill_id
