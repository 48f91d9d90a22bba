"""
Order session: the cart a waiter builds before submitting an order.

One OrderSession per order being taken; it is passed to
order_service.create_order instead of living in global state.
"""
from decimal import Decimal
from typing import List, Optional

from errors import NotFoundError, ValidationError
from pricing import OrderTotals, calculate_order_totals, round_money, to_decimal
from schemas import ORDER_TYPES, MenuItem, OrderItem


class OrderSession:
    def __init__(self, order_type: str = "dine-in"):
        self._reset()
        self.set_order_type(order_type)

    def _reset(self) -> None:
        self.items: List[OrderItem] = []
        self.table_id: Optional[str] = None
        self.table_number: Optional[int] = None
        self.customer_name = ""
        self.customer_phone = ""
        self.delivery_address: Optional[str] = None
        self.order_type = "dine-in"

    def _find(self, item_id: str) -> OrderItem:
        for item in self.items:
            if item.item_id == item_id:
                return item
        raise NotFoundError(f"Item {item_id} is not in the cart")

    def add_item(self, menu_item: MenuItem, quantity: int = 1,
                 special_instructions: Optional[str] = None) -> OrderItem:
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        if not menu_item.is_available:
            raise ValidationError(f"{menu_item.name} is not available")
        for item in self.items:
            if item.item_id == menu_item.id and item.special_instructions == special_instructions:
                item.quantity += quantity
                return item
        # name, price and GST rate are frozen here; later menu edits don't reach this line
        line = OrderItem(
            item_id=menu_item.id,
            item_name=menu_item.name,
            quantity=quantity,
            price=menu_item.price,
            gst_rate=menu_item.gst_rate,
            special_instructions=special_instructions,
        )
        self.items.append(line)
        return line

    def remove_item(self, item_id: str) -> None:
        self.items = [item for item in self.items if item.item_id != item_id]

    def update_quantity(self, item_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove_item(item_id)
            return
        for item in self.items:
            if item.item_id == item_id:
                item.quantity = quantity

    def update_special_instructions(self, item_id: str, instructions: str) -> None:
        self._find(item_id).special_instructions = instructions

    def set_table(self, table_id: Optional[str], table_number: Optional[int]) -> None:
        self.table_id = table_id
        self.table_number = table_number

    def set_customer(self, name: str, phone: str) -> None:
        self.customer_name = name
        self.customer_phone = phone

    def set_order_type(self, order_type: str) -> None:
        if order_type not in ORDER_TYPES:
            raise ValidationError(f"Unknown order type {order_type!r}")
        self.order_type = order_type

    def clear(self) -> None:
        self._reset()

    def subtotal(self) -> Decimal:
        return round_money(sum((to_decimal(i.price) * i.quantity for i in self.items), Decimal("0")))

    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def totals(self) -> OrderTotals:
        return calculate_order_totals(self.items, 0)
