"""
Bill generation tests.

Bills must be frozen copies of the order, close the order, free dine-in
tables, and survive a failing loyalty update.
"""
import logging
import re

import pytest

import billing_service
import customer_service
import menu_service
import order_service
import table_service
from cart import OrderSession
from config import get_settings
from errors import NotFoundError, StoreError, ValidationError
from numbering import BillNumberGenerator
from schemas import CUSTOMERS, ORDERS


@pytest.fixture
def served_order(store, menu, table, staff):
    session = OrderSession("dine-in")
    session.add_item(menu["paneer"], 2)
    session.add_item(menu["lassi"], 1)
    session.set_table(table.id, table.table_number)
    session.set_customer("Meera", "9876543210")
    order_id = order_service.create_order(store, session, staff)
    order_service.update_order_status(store, order_id, "served")
    order_service.update_payment_status(store, order_id, "paid")
    return order_service.get_order(store, order_id)


class TestGenerateBill:
    def test_bill_copies_order_amounts(self, store, served_order, staff):
        bill_id = billing_service.generate_bill(store, served_order.id, "upi", staff)

        bill = billing_service.get_bill(store, bill_id)
        assert re.fullmatch(r"BILL-\d{13}-\d{3}", bill.bill_number)
        assert bill.order_id == served_order.id
        assert bill.order_number == served_order.order_number
        assert bill.items == served_order.items
        assert bill.subtotal == 250.0
        assert bill.cgst == 9.5
        assert bill.sgst == 9.5
        assert bill.discount == 0
        assert bill.total_amount == 269.0
        assert bill.payment_method == "upi"
        assert bill.table_number == 1
        assert bill.customer_name == "Meera"
        assert bill.created_by == staff.id
        assert bill.created_by_name == "Ravi"

    def test_discount_is_carried_to_bill(self, store, served_order, staff):
        order_service.apply_discount(store, served_order.id, 19)

        bill = billing_service.get_bill(store, billing_service.generate_bill(store, served_order.id, "cash", staff))

        assert bill.discount == 19.0
        assert bill.total_amount == 250.0

    def test_order_is_completed(self, store, served_order, staff):
        billing_service.generate_bill(store, served_order.id, "card", staff)

        order = order_service.get_order(store, served_order.id)
        assert order.status == "completed"
        assert order.payment_status == "paid"
        assert order.payment_method == "card"
        assert order.completed_at is not None

    def test_dine_in_table_is_released(self, store, served_order, table, staff):
        billing_service.generate_bill(store, served_order.id, "cash", staff)

        table = table_service.get_table(store, table.id)
        assert table.status == "available"
        assert table.current_order_id is None

    def test_table_released_even_when_order_update_fails(self, store, served_order, table, staff):
        store.failing.add(ORDERS)

        with pytest.raises(StoreError):
            billing_service.generate_bill(store, served_order.id, "cash", staff)

        assert table_service.get_table(store, table.id).status == "available"

    def test_customer_is_credited(self, store, served_order, staff):
        billing_service.generate_bill(store, served_order.id, "cash", staff)

        customer = customer_service.find_by_phone(store, "9876543210")
        assert customer.total_orders == 1
        assert customer.total_spent == 269.0
        assert customer.loyalty_points == 26

    def test_loyalty_failure_does_not_block_bill(self, store, served_order, table, staff, caplog):
        store.failing.add(CUSTOMERS)

        with caplog.at_level(logging.ERROR, logger="billing_service"):
            bill_id = billing_service.generate_bill(store, served_order.id, "cash", staff)

        assert billing_service.get_bill(store, bill_id).total_amount == 269.0
        assert order_service.get_order(store, served_order.id).status == "completed"
        assert table_service.get_table(store, table.id).status == "available"
        assert "Error updating customer" in caplog.text

    def test_table_removed_while_order_open(self, store, served_order, table, staff):
        table_service.set_table_status(store, table.id, "available")
        table_service.delete_table(store, table.id)

        bill_id = billing_service.generate_bill(store, served_order.id, "cash", staff)

        assert billing_service.get_bill(store, bill_id).table_number == 1
        assert order_service.get_order(store, served_order.id).status == "completed"
        assert customer_service.find_by_phone(store, "9876543210").loyalty_points == 26

    def test_environment_change_after_startup_does_not_break_billing(self, store, served_order, staff,
                                                                       monkeypatch):
        get_settings()
        monkeypatch.setenv("LOYALTY_POINTS_RATIO", "ten")

        billing_service.generate_bill(store, served_order.id, "cash", staff)

        assert customer_service.find_by_phone(store, "9876543210").loyalty_points == 26

    def test_no_customer_without_name_and_phone(self, store, menu, staff):
        session = OrderSession("takeaway")
        session.add_item(menu["thali"])
        session.set_customer("", "9876543210")
        order_id = order_service.create_order(store, session, staff)

        billing_service.generate_bill(store, order_id, "cash", staff)

        assert customer_service.list_customers(store) == []

    def test_unknown_order(self, store, staff):
        with pytest.raises(NotFoundError):
            billing_service.generate_bill(store, "64b000000000000000000000", "cash", staff)

    def test_unknown_payment_method_writes_nothing(self, store, served_order, staff):
        with pytest.raises(ValidationError):
            billing_service.generate_bill(store, served_order.id, "cheque", staff)
        assert billing_service.list_bills(store) == []


class TestFrozenBill:
    def test_menu_price_change_does_not_alter_issued_bill(self, store, served_order, menu, staff):
        bill_id = billing_service.generate_bill(store, served_order.id, "cash", staff)

        menu_service.update_menu_item(store, menu["paneer"].id, {"price": 200})

        bill = billing_service.get_bill(store, bill_id)
        assert bill.items[0].price == 100
        assert bill.subtotal == 250.0

    def test_order_correction_does_not_alter_issued_bill(self, store, served_order, staff):
        bill_id = billing_service.generate_bill(store, served_order.id, "cash", staff)

        store.update(ORDERS, served_order.id, {"total_amount": 1.0, "items": []})

        assert billing_service.get_bill(store, bill_id).total_amount == 269.0


class TestBillNumbers:
    def test_unique_within_one_millisecond(self):
        generate = BillNumberGenerator(clock=lambda: 1700000000.0)

        numbers = [generate() for _ in range(10000)]

        assert len(set(numbers)) == 10000
        assert all(re.fullmatch(r"BILL-\d{13}-\d{3}", n) for n in numbers)

    def test_uses_epoch_millis(self):
        generate = BillNumberGenerator(clock=lambda: 1700000000.5)

        assert generate().startswith("BILL-1700000000500-")

    def test_two_orders_get_different_bill_numbers(self, store, menu, staff):
        bill_numbers = set()
        for _ in range(2):
            session = OrderSession("takeaway")
            session.add_item(menu["thali"])
            order_id = order_service.create_order(store, session, staff)
            bill_id = billing_service.generate_bill(store, order_id, "cash", staff)
            bill_numbers.add(billing_service.get_bill(store, bill_id).bill_number)

        assert len(bill_numbers) == 2
