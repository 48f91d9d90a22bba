"""
Dashboard figures computed from orders and tables.

Days and months are local calendar days in the restaurant's time zone.
Revenue only counts paid orders.
"""
from collections import Counter
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Optional

from database import utcnow
from pricing import round_money, to_decimal
from schemas import ORDERS, PAYMENT_METHODS, TABLES
from settings_service import local_timezone

TREND_DAYS = 7


def _as_utc(value: datetime) -> datetime:
    # pymongo returns naive UTC datetimes unless the client is tz_aware
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _local_midnight(day, tz) -> datetime:
    return tz.localize(datetime.combine(day, time.min))


def _created_between(orders, start: datetime, end: Optional[datetime] = None) -> list:
    return [o for o in orders
            if o.get("created_at") and _as_utc(o["created_at"]) >= start
            and (end is None or _as_utc(o["created_at"]) < end)]


def _paid_revenue(orders: Iterable[dict]) -> Decimal:
    return sum((to_decimal(o["total_amount"]) for o in orders if o.get("payment_status") == "paid"),
               Decimal("0"))


def _item_counts(orders: Iterable[dict]) -> Counter:
    counts = Counter()
    for order in orders:
        for item in order.get("items", []):
            counts[item["item_name"]] += item["quantity"]
    return counts


def _money(value: Decimal) -> float:
    return float(round_money(value))


def dashboard_stats(store, now: Optional[datetime] = None, tz=None) -> dict:
    tz = tz or local_timezone(store)
    now = _as_utc(now or utcnow())
    today = now.astimezone(tz).date()
    start_of_day = _local_midnight(today, tz)
    start_of_month = _local_midnight(today.replace(day=1), tz)

    orders = store.get_all(ORDERS)
    tables = store.get_all(TABLES)

    today_orders = _created_between(orders, start_of_day)
    week_orders = _created_between(orders, now - timedelta(days=7))
    month_orders = _created_between(orders, start_of_month)

    revenue = _paid_revenue(today_orders)
    average = revenue / len(today_orders) if today_orders else Decimal("0")

    trend = []
    for offset in range(TREND_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        day_orders = _created_between(orders, _local_midnight(day, tz),
                                      _local_midnight(day + timedelta(days=1), tz))
        trend.append({"date": day.isoformat(), "revenue": _money(_paid_revenue(day_orders))})

    popular = _item_counts(today_orders)
    best_sellers = _item_counts(orders)
    methods = Counter(o.get("payment_method") for o in orders)

    return {
        "today_orders": len(today_orders),
        "today_revenue": _money(revenue),
        "average_order_value": _money(average),
        "week_orders": len(week_orders),
        "week_revenue": _money(_paid_revenue(week_orders)),
        "month_orders": len(month_orders),
        "month_revenue": _money(_paid_revenue(month_orders)),
        "revenue_trend": trend,
        "active_tables": sum(1 for t in tables if t.get("status") == "occupied"),
        "total_tables": len(tables),
        "popular_items": [{"item_name": name, "count": count} for name, count in popular.most_common(5)],
        "best_sellers": [{"item_name": name, "count": count} for name, count in best_sellers.most_common(10)],
        "payment_methods": {method: methods.get(method, 0) for method in PAYMENT_METHODS},
    }
