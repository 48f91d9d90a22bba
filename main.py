import logging
import os
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

import billing_service
import customer_service
import inventory_service
import menu_service
import order_service
import reports
import settings_service
import staff_service
import table_service
from cart import OrderSession
from config import get_settings
from database import get_store
from errors import BusinessRuleError, PermissionDeniedError, PosError
from pricing import calculate_order_totals
from schemas import (
    STAFF_ROLES,
    BillCreate,
    CustomerIn,
    CustomerUpdate,
    CustomerUpsert,
    DiscountIn,
    InventoryItem,
    InventoryItemUpdate,
    MenuCategory,
    MenuCategoryUpdate,
    MenuItem,
    MenuItemUpdate,
    OrderCreate,
    OrderStatusUpdate,
    PaymentStatusUpdate,
    RestaurantSettingsUpdate,
    Staff,
    StaffMember,
    StaffUpdate,
    Table,
    TableStatusUpdate,
    TableUpdate,
    TotalsPreview,
)

settings = get_settings()
logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="Restaurant POS API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PosError)
async def pos_error_handler(request, exc: PosError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def get_staff(
    x_staff_id: str = Header(""),
    x_staff_name: str = Header(""),
    x_staff_role: str = Header("waiter"),
) -> StaffMember:
    """Staff identity forwarded by the identity provider."""
    if x_staff_role not in STAFF_ROLES:
        raise HTTPException(400, f"Unknown staff role {x_staff_role!r}")
    return StaffMember(id=x_staff_id, name=x_staff_name, role=x_staff_role)


def require_role(*roles: str):
    """Dependency that lets only the given staff roles through."""
    def check(staff: StaffMember = Depends(get_staff)) -> StaffMember:
        if staff.role not in roles:
            raise PermissionDeniedError(f"Role {staff.role!r} is not allowed to do this")
        return staff
    return check


FRONT_OF_HOUSE = require_role("admin", "waiter")
KITCHEN = require_role("admin", "kitchen")
ANY_STAFF = require_role(*STAFF_ROLES)
ADMIN = require_role("admin")

# -----------------------------
# Health/Test
# -----------------------------

@app.get("/")
def root():
    return {"message": "Restaurant POS API running"}

@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set",
        "restaurant_id": settings.restaurant_id,
        "connection_status": "Not Connected",
        "collections": []
    }
    try:
        store = get_store()
        response["collections"] = store.db.list_collection_names()
        response["database"] = "✅ Connected & Working"
        response["connection_status"] = "Connected"
    except (PosError, PyMongoError) as e:
        response["database"] = f"⚠️ Error: {str(e)[:80]}"
    return response

# -----------------------------
# Menu Endpoints
# -----------------------------

@app.get("/api/menu/categories")
def list_categories(store=Depends(get_store)):
    return {"categories": [c.model_dump() for c in menu_service.list_categories(store)]}

@app.post("/api/menu/categories", dependencies=[Depends(ADMIN)])
def create_category(payload: MenuCategory, store=Depends(get_store)):
    return {"id": menu_service.create_category(store, payload)}

@app.put("/api/menu/categories/{category_id}", dependencies=[Depends(ADMIN)])
def update_category(category_id: str, payload: MenuCategoryUpdate, store=Depends(get_store)):
    menu_service.update_category(store, category_id, payload.model_dump())
    return {"success": True}

@app.delete("/api/menu/categories/{category_id}", dependencies=[Depends(ADMIN)])
def delete_category(category_id: str, store=Depends(get_store)):
    menu_service.delete_category(store, category_id)
    return {"success": True}

@app.get("/api/menu")
def list_menu(category_id: Optional[str] = None, include_unavailable: bool = False, store=Depends(get_store)):
    items = menu_service.list_menu(store, category_id, available_only=not include_unavailable)
    return {"items": [i.model_dump() for i in items]}

@app.post("/api/menu", dependencies=[Depends(ADMIN)])
def create_menu_item(payload: MenuItem, store=Depends(get_store)):
    return {"id": menu_service.create_menu_item(store, payload)}

@app.put("/api/menu/{item_id}", dependencies=[Depends(ADMIN)])
def update_menu_item(item_id: str, payload: MenuItemUpdate, store=Depends(get_store)):
    menu_service.update_menu_item(store, item_id, payload.model_dump())
    return {"success": True}

@app.delete("/api/menu/{item_id}", dependencies=[Depends(ADMIN)])
def delete_menu_item(item_id: str, store=Depends(get_store)):
    menu_service.delete_menu_item(store, item_id)
    return {"success": True}

# -----------------------------
# Table Endpoints
# -----------------------------

@app.get("/api/tables", dependencies=[Depends(FRONT_OF_HOUSE)])
def list_tables(status: Optional[str] = None, store=Depends(get_store)):
    return {"tables": [t.model_dump() for t in table_service.list_tables(store, status)]}

@app.post("/api/tables", dependencies=[Depends(ADMIN)])
def create_table(payload: Table, store=Depends(get_store)):
    return {"id": table_service.create_table(store, payload)}

@app.put("/api/tables/{table_id}", dependencies=[Depends(FRONT_OF_HOUSE)])
def update_table(table_id: str, payload: TableUpdate, store=Depends(get_store)):
    table_service.update_table(store, table_id, payload.model_dump())
    return {"success": True}

@app.delete("/api/tables/{table_id}", dependencies=[Depends(ADMIN)])
def delete_table(table_id: str, store=Depends(get_store)):
    table_service.delete_table(store, table_id)
    return {"success": True}

@app.patch("/api/tables/{table_id}/status", dependencies=[Depends(FRONT_OF_HOUSE)])
def set_table_status(table_id: str, payload: TableStatusUpdate, store=Depends(get_store)):
    table_service.set_table_status(store, table_id, payload.status)
    return {"success": True}

# -----------------------------
# Order Endpoints
# -----------------------------

@app.post("/api/orders/totals", dependencies=[Depends(FRONT_OF_HOUSE)])
def preview_totals(payload: TotalsPreview, store=Depends(get_store)):
    session = OrderSession("takeaway")
    for line in payload.items:
        session.add_item(menu_service.get_menu_item(store, line.item_id), line.quantity, line.special_instructions)
    totals = calculate_order_totals(session.items, payload.discount)
    if payload.discount > totals.taxed_total:
        raise BusinessRuleError("Discount exceeds the order total")
    return {field: float(value) for field, value in totals._asdict().items()}

@app.post("/api/orders")
def create_order(payload: OrderCreate, store=Depends(get_store), staff: StaffMember = Depends(FRONT_OF_HOUSE)):
    session = order_service.session_from_request(store, payload)
    order_id = order_service.create_order(store, session, staff)
    order = order_service.get_order(store, order_id)
    return {"order_id": order_id, "order_number": order.order_number, "total_amount": order.total_amount}

@app.get("/api/orders", dependencies=[Depends(FRONT_OF_HOUSE)])
def list_orders(status: Optional[str] = None, table_id: Optional[str] = Query(None), q: Optional[str] = None,
                store=Depends(get_store)):
    if q:
        orders = order_service.search_orders(store, q, status)
    else:
        orders = order_service.list_orders(store, status, table_id)
    return {"orders": [o.model_dump() for o in orders]}

@app.get("/api/orders/counts", dependencies=[Depends(FRONT_OF_HOUSE)])
def order_counts(store=Depends(get_store)):
    return order_service.status_counts(store)

@app.get("/api/orders/kitchen", dependencies=[Depends(KITCHEN)])
def kitchen_orders(store=Depends(get_store)):
    return {"orders": [o.model_dump() for o in order_service.kitchen_queue(store)]}

@app.get("/api/orders/{order_id}", dependencies=[Depends(FRONT_OF_HOUSE)])
def get_order(order_id: str, store=Depends(get_store)):
    order = order_service.get_order(store, order_id)
    return {**order.model_dump(), "can_generate_bill": order_service.can_generate_bill(order)}

@app.patch("/api/orders/{order_id}/status", dependencies=[Depends(ANY_STAFF)])
def set_order_status(order_id: str, payload: OrderStatusUpdate, store=Depends(get_store)):
    order_service.update_order_status(store, order_id, payload.status)
    return {"success": True}

@app.patch("/api/orders/{order_id}/payment-status", dependencies=[Depends(FRONT_OF_HOUSE)])
def set_payment_status(order_id: str, payload: PaymentStatusUpdate, store=Depends(get_store)):
    order_service.update_payment_status(store, order_id, payload.payment_status)
    return {"success": True}

@app.post("/api/orders/{order_id}/discount", dependencies=[Depends(FRONT_OF_HOUSE)])
def apply_discount(order_id: str, payload: DiscountIn, store=Depends(get_store)):
    order = order_service.apply_discount(store, order_id, payload.value, payload.discount_type)
    return {"discount": order.discount, "total_amount": order.total_amount}

# -----------------------------
# Billing Endpoints
# -----------------------------

@app.post("/api/bills")
def generate_bill(payload: BillCreate, store=Depends(get_store), staff: StaffMember = Depends(FRONT_OF_HOUSE)):
    order = order_service.get_order(store, payload.order_id)
    if not order_service.can_generate_bill(order):
        raise BusinessRuleError("Order must be served and paid before billing")
    bill_id = billing_service.generate_bill(store, payload.order_id, payload.payment_method, staff)
    return {"id": bill_id}

@app.get("/api/bills", dependencies=[Depends(FRONT_OF_HOUSE)])
def list_bills(store=Depends(get_store)):
    return {"bills": [b.model_dump() for b in billing_service.list_bills(store)]}

@app.get("/api/bills/{bill_id}", dependencies=[Depends(FRONT_OF_HOUSE)])
def get_bill(bill_id: str, store=Depends(get_store)):
    return billing_service.get_bill(store, bill_id).model_dump()

# -----------------------------
# Customer Endpoints
# -----------------------------

@app.get("/api/customers", dependencies=[Depends(FRONT_OF_HOUSE)])
def list_customers(q: Optional[str] = None, store=Depends(get_store)):
    return {"customers": [c.model_dump() for c in customer_service.search_customers(store, q)]}

@app.post("/api/customers", dependencies=[Depends(FRONT_OF_HOUSE)])
def create_customer(payload: CustomerIn, store=Depends(get_store)):
    customer_id = customer_service.create_customer(store, payload.name, payload.phone, payload.email, payload.address)
    return {"id": customer_id}

@app.get("/api/customers/lookup", dependencies=[Depends(FRONT_OF_HOUSE)])
def lookup_customer(phone: str, store=Depends(get_store)):
    customer = customer_service.find_by_phone(store, phone)
    if not customer:
        raise HTTPException(404, "Customer not found")
    return customer.model_dump()

@app.post("/api/customers/upsert", dependencies=[Depends(FRONT_OF_HOUSE)])
def upsert_customer(payload: CustomerUpsert, store=Depends(get_store)):
    customer_id = customer_service.upsert_from_order(store, payload.phone, payload.name, payload.amount, payload.email)
    return {"id": customer_id}

@app.get("/api/customers/{customer_id}", dependencies=[Depends(FRONT_OF_HOUSE)])
def get_customer(customer_id: str, store=Depends(get_store)):
    return customer_service.get_customer(store, customer_id).model_dump()

@app.put("/api/customers/{customer_id}", dependencies=[Depends(FRONT_OF_HOUSE)])
def update_customer(customer_id: str, payload: CustomerUpdate, store=Depends(get_store)):
    customer_service.update_customer(store, customer_id, payload.model_dump())
    return {"success": True}

@app.delete("/api/customers/{customer_id}", dependencies=[Depends(FRONT_OF_HOUSE)])
def delete_customer(customer_id: str, store=Depends(get_store)):
    customer_service.delete_customer(store, customer_id)
    return {"success": True}

# -----------------------------
# Inventory Endpoints
# -----------------------------

@app.get("/api/inventory", dependencies=[Depends(ADMIN)])
def list_inventory(store=Depends(get_store)):
    return {"items": [i.model_dump() for i in inventory_service.list_items(store)]}

@app.get("/api/inventory/low-stock", dependencies=[Depends(ADMIN)])
def low_stock(store=Depends(get_store)):
    return {"items": [i.model_dump() for i in inventory_service.low_stock_items(store)]}

@app.post("/api/inventory", dependencies=[Depends(ADMIN)])
def create_inventory_item(payload: InventoryItem, store=Depends(get_store)):
    return {"id": inventory_service.create_item(store, payload)}

@app.get("/api/inventory/{item_id}", dependencies=[Depends(ADMIN)])
def get_inventory_item(item_id: str, store=Depends(get_store)):
    return inventory_service.get_item(store, item_id).model_dump()

@app.put("/api/inventory/{item_id}", dependencies=[Depends(ADMIN)])
def update_inventory_item(item_id: str, payload: InventoryItemUpdate, store=Depends(get_store)):
    inventory_service.update_item(store, item_id, payload.model_dump())
    return {"success": True}

@app.delete("/api/inventory/{item_id}", dependencies=[Depends(ADMIN)])
def delete_inventory_item(item_id: str, store=Depends(get_store)):
    inventory_service.delete_item(store, item_id)
    return {"success": True}

# -----------------------------
# Staff Endpoints
# -----------------------------

@app.get("/api/staff", dependencies=[Depends(ADMIN)])
def list_staff(role: Optional[str] = None, active_only: bool = False, store=Depends(get_store)):
    return {"staff": [s.model_dump() for s in staff_service.list_staff(store, role, active_only)]}

@app.get("/api/staff/summary", dependencies=[Depends(ADMIN)])
def staff_summary(store=Depends(get_store)):
    return staff_service.staff_summary(store)

@app.post("/api/staff", dependencies=[Depends(ADMIN)])
def create_staff(payload: Staff, store=Depends(get_store)):
    return {"id": staff_service.create_staff(store, payload)}

@app.get("/api/staff/{staff_id}", dependencies=[Depends(ADMIN)])
def get_staff_member(staff_id: str, store=Depends(get_store)):
    return staff_service.get_staff(store, staff_id).model_dump()

@app.put("/api/staff/{staff_id}", dependencies=[Depends(ADMIN)])
def update_staff(staff_id: str, payload: StaffUpdate, store=Depends(get_store)):
    staff_service.update_staff(store, staff_id, payload.model_dump())
    return {"success": True}

@app.delete("/api/staff/{staff_id}", dependencies=[Depends(ADMIN)])
def delete_staff(staff_id: str, store=Depends(get_store)):
    staff_service.delete_staff(store, staff_id)
    return {"success": True}

# -----------------------------
# Settings / Admin helpers
# -----------------------------

@app.get("/api/settings", dependencies=[Depends(ADMIN)])
def get_restaurant_settings(store=Depends(get_store)):
    return settings_service.get_restaurant_settings(store).model_dump()

@app.put("/api/settings", dependencies=[Depends(ADMIN)])
def update_restaurant_settings(payload: RestaurantSettingsUpdate, store=Depends(get_store)):
    return settings_service.update_restaurant_settings(store, payload.model_dump()).model_dump()

@app.get("/api/admin/stats", dependencies=[Depends(ADMIN)])
def admin_stats(store=Depends(get_store)):
    return reports.dashboard_stats(store)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
