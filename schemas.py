"""
Database Schemas for the Restaurant POS

Each Pydantic model represents a MongoDB collection (see collection names
below). Money is stored as float rounded to 2 decimals; calculations are done
with Decimal in pricing.py.
"""
from datetime import datetime
from typing import List, Optional, Literal
import pytz
from pydantic import BaseModel, Field, field_validator

# -----------------------------
# Enumerations
# -----------------------------

OrderStatus = Literal["pending", "preparing", "ready", "served", "completed", "cancelled"]
PaymentStatus = Literal["pending", "paid", "refunded"]
PaymentMethod = Literal["cash", "upi", "card"]
OrderType = Literal["dine-in", "takeaway", "delivery"]
TableStatus = Literal["available", "occupied", "reserved"]
StaffRole = Literal["admin", "waiter", "kitchen"]
DiscountType = Literal["percentage", "flat"]

STAFF_ROLES = ("admin", "waiter", "kitchen")
ORDER_STATUSES = ("pending", "preparing", "ready", "served", "completed", "cancelled")
ACTIVE_KITCHEN_STATUSES = ("pending", "preparing", "ready")
PAYMENT_STATUSES = ("pending", "paid", "refunded")
PAYMENT_METHODS = ("cash", "upi", "card")
ORDER_TYPES = ("dine-in", "takeaway", "delivery")
TABLE_STATUSES = ("available", "occupied", "reserved")
GST_RATES = (5, 12, 18)

# Collection names
MENU_ITEMS = "menu_items"
MENU_CATEGORIES = "menu_categories"
TABLES = "tables"
ORDERS = "orders"
BILLS = "bills"
CUSTOMERS = "customers"
INVENTORY = "inventory"
STAFF = "staff"
RESTAURANT_SETTINGS = "restaurant_settings"

# -----------------------------
# Core Collections
# -----------------------------

class MenuCategory(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    order: int = Field(0, description="Display position")
    is_active: bool = True


class MenuItem(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, description="Dish name")
    description: Optional[str] = Field(None, description="Dish description")
    price: float = Field(..., ge=0, description="Price in local currency")
    gst_rate: int = Field(5, description="GST percentage: 5, 12 or 18")
    category_id: Optional[str] = Field(None, description="MenuCategory id")
    is_veg: bool = True
    is_available: bool = Field(True, description="Whether this item is currently available")
    preparation_time: int = Field(15, ge=0, description="Minutes")

    @field_validator("gst_rate")
    @classmethod
    def check_gst_rate(cls, value):
        if value not in GST_RATES:
            raise ValueError(f"gst_rate must be one of {GST_RATES}")
        return value


class Table(BaseModel):
    id: Optional[str] = None
    table_number: int = Field(..., ge=1, description="Table number visible in the restaurant")
    capacity: int = Field(4, ge=1)
    status: TableStatus = "available"
    current_order_id: Optional[str] = None
    section: Optional[str] = Field(None, description="Optional label like Terrace")


class OrderItem(BaseModel):
    item_id: str = Field(..., description="Menu item id")
    item_name: str = Field(..., description="Item name at the time of order")
    quantity: int = Field(..., ge=1, description="Quantity ordered")
    price: float = Field(..., ge=0, description="Unit price at the time of order")
    gst_rate: int = Field(..., description="GST rate at the time of order")
    special_instructions: Optional[str] = None


class Order(BaseModel):
    id: Optional[str] = None
    order_number: str
    table_id: Optional[str] = None
    table_number: Optional[int] = None
    items: List[OrderItem]
    subtotal: float = Field(..., ge=0)
    cgst: float = Field(..., ge=0)
    sgst: float = Field(..., ge=0)
    discount: float = Field(0, ge=0)
    total_amount: float = Field(..., ge=0)
    status: OrderStatus = "pending"
    payment_status: PaymentStatus = "pending"
    payment_method: Optional[PaymentMethod] = None
    order_type: OrderType
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_id: Optional[str] = None
    delivery_address: Optional[str] = None
    waiter_id: str = ""
    waiter_name: str = ""
    created_by: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class Bill(BaseModel):
    id: Optional[str] = None
    bill_number: str
    order_id: str
    order_number: str
    items: List[OrderItem]
    subtotal: float
    cgst: float
    sgst: float
    discount: float = 0
    total_amount: float
    payment_method: PaymentMethod
    order_type: OrderType
    table_number: Optional[int] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    created_by: str = ""
    created_by_name: str = ""
    created_at: Optional[datetime] = None


class Customer(BaseModel):
    id: Optional[str] = None
    name: str
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None
    total_orders: int = Field(0, ge=0)
    total_spent: float = Field(0, ge=0)
    loyalty_points: int = Field(0, ge=0)
    last_visit: Optional[datetime] = None


class StaffMember(BaseModel):
    """Identity of the signed-in staff member, supplied by the identity provider."""
    id: str = ""
    name: str = ""
    role: StaffRole = "waiter"


class Staff(BaseModel):
    """Staff record kept by the admin (distinct from the signed-in identity)."""
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    role: StaffRole = "waiter"
    phone: str = ""
    email: str = ""
    joining_date: Optional[datetime] = None
    is_active: bool = True
    salary: Optional[float] = Field(None, ge=0, description="Monthly salary")
    shifts: List[str] = Field(default_factory=list)


class InventoryItem(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    unit: str = Field(..., min_length=1, description="kg, liter, pieces")
    current_stock: float = Field(..., ge=0)
    minimum_stock: float = Field(..., ge=0, description="Restock at or below this level")
    price: float = Field(0, ge=0, description="Purchase price per unit")
    supplier: str = ""
    last_purchase_date: Optional[datetime] = None


def _check_timezone(value):
    if value is not None:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown time zone {value!r}")
    return value


class RestaurantSettings(BaseModel):
    id: Optional[str] = None
    name: str = "My Restaurant"
    gstin: str = ""
    address: str = ""
    phone: str = ""
    email: str = ""
    currency: str = "INR"
    timezone: str = "Asia/Kolkata"
    enable_loyalty_points: bool = True
    loyalty_points_ratio: int = Field(10, ge=1, description="Currency units spent per loyalty point")
    enable_online_ordering: bool = False

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value):
        return _check_timezone(value)

    def tzinfo(self):
        return pytz.timezone(self.timezone)


# -----------------------------
# Request bodies
# -----------------------------

class CartLineIn(BaseModel):
    item_id: str
    quantity: int = Field(1, ge=1)
    special_instructions: Optional[str] = None


class OrderCreate(BaseModel):
    items: List[CartLineIn]
    order_type: OrderType = "dine-in"
    table_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    delivery_address: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: str


class PaymentStatusUpdate(BaseModel):
    payment_status: str


class DiscountIn(BaseModel):
    value: float = Field(..., ge=0)
    discount_type: DiscountType = "flat"


class BillCreate(BaseModel):
    order_id: str
    payment_method: PaymentMethod = "cash"


class MenuItemUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    gst_rate: Optional[int] = None
    category_id: Optional[str] = None
    is_veg: Optional[bool] = None
    is_available: Optional[bool] = None
    preparation_time: Optional[int] = Field(None, ge=0)

    @field_validator("gst_rate")
    @classmethod
    def check_gst_rate(cls, value):
        if value is not None and value not in GST_RATES:
            raise ValueError(f"gst_rate must be one of {GST_RATES}")
        return value


class TableUpdate(BaseModel):
    table_number: Optional[int] = Field(None, ge=1)
    capacity: Optional[int] = Field(None, ge=1)
    section: Optional[str] = None


class TableStatusUpdate(BaseModel):
    status: str


class CustomerUpsert(BaseModel):
    phone: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0)
    email: Optional[str] = None


class TotalsPreview(BaseModel):
    items: List[CartLineIn]
    discount: float = Field(0, ge=0)


class MenuCategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    order: Optional[int] = None
    is_active: Optional[bool] = None


class CustomerIn(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: Optional[str] = None
    address: Optional[str] = None


class CustomerUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    unit: Optional[str] = Field(None, min_length=1)
    current_stock: Optional[float] = Field(None, ge=0)
    minimum_stock: Optional[float] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0)
    supplier: Optional[str] = None


class StaffUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    role: Optional[StaffRole] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    is_active: Optional[bool] = None
    salary: Optional[float] = Field(None, ge=0)
    shifts: Optional[List[str]] = None


class RestaurantSettingsUpdate(BaseModel):
    name: Optional[str] = None
    gstin: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    currency: Optional[str] = None
    timezone: Optional[str] = None
    enable_loyalty_points: Optional[bool] = None
    loyalty_points_ratio: Optional[int] = Field(None, ge=1)
    enable_online_ordering: Optional[bool] = None

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value):
        return _check_timezone(value)
