"""Aggregates derived on read for dashboards, reports and admin analytics.

Functions here take already-loaded rows (ORM objects or plain dicts) and never
touch the database, so routers decide what to load and these decide how to sum it.
"""
import math
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from config.plans import PLAN_DETAILS
from utils import resolve_commission_tier, next_commission_tier, bonus_progress

DATE_PRESETS = ("today", "7d", "30d", "this_month", "last_month", "this_year", "last_year", "custom")
REPORT_WINDOWS = {"30d": 30, "90d": 90, "all": None}

FUNNEL_STEPS = [
    "Step 1: Welcome",
    "Step 2: Add Product",
    "Step 3: Tracking",
    "Step 4: Invite Affiliate",
    "Step 5: Complete",
]


def _as_datetime(value) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def _in_range(value, start: datetime, end: datetime) -> bool:
    moment = _as_datetime(value)
    return moment is not None and start <= moment <= end


def _status(value) -> str:
    # Enum columns come back as members, dict rows carry plain strings
    return getattr(value, "value", value)


def resolve_date_range(preset: str, today: date | None = None,
                       custom_start: date | None = None, custom_end: date | None = None):
    """Start (00:00:00) and end (23:59:59.999999) datetimes for a range preset."""
    if preset not in DATE_PRESETS:
        raise ValueError(f"Unknown date range '{preset}'")
    today = today or date.today()
    start_day, end_day = today, today

    if preset == "7d":
        start_day = today - timedelta(days=6)
    elif preset == "30d":
        start_day = today - timedelta(days=29)
    elif preset == "this_month":
        start_day = today.replace(day=1)
    elif preset == "last_month":
        end_day = today.replace(day=1) - timedelta(days=1)
        start_day = end_day.replace(day=1)
    elif preset == "this_year":
        start_day = today.replace(month=1, day=1)
    elif preset == "last_year":
        start_day = date(today.year - 1, 1, 1)
        end_day = date(today.year - 1, 12, 31)
    elif preset == "custom":
        # Without both bounds the range collapses to the default window
        if custom_start is None or custom_end is None:
            return resolve_date_range("30d", today)
        start_day, end_day = custom_start, custom_end

    return datetime.combine(start_day, time.min), datetime.combine(end_day, time.max)


def previous_period(start: datetime, end: datetime):
    """The period of equal length that ends just before `start`."""
    duration = end - start
    prev_end = start - timedelta(microseconds=1)
    return prev_end - duration, prev_end


def month_label(value) -> str:
    return f"{value.strftime('%b')} '{value.strftime('%y')}"


def last_twelve_months(today: date) -> list[date]:
    months = []
    year, month = today.year, today.month
    for _ in range(12):
        months.append(date(year, month, 1))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(months))


# Creator dashboard

def monthly_sales_series(sales, today: date) -> list[dict]:
    """Sale amounts bucketed into the twelve months ending with `today`'s month."""
    months = last_twelve_months(today)
    buckets = {month_label(m): 0.0 for m in months}
    first_day = months[0]
    for sale in sales:
        if sale.date >= first_day and sale.date <= today:
            buckets[month_label(sale.date)] += sale.sale_amount
    return [{"name": name, "sales": round(amount, 2)} for name, amount in buckets.items()]


def commission_split(sales, start: datetime, end: datetime) -> dict:
    payable = 0.0
    pending = 0.0
    for sale in sales:
        if not _in_range(sale.date, start, end):
            continue
        status = _status(sale.status)
        if status == "Cleared":
            payable += sale.commission_amount
        elif status == "Pending":
            pending += sale.commission_amount
    return {"payable": round(payable, 2), "pending": round(pending, 2)}


def top_affiliates(affiliates: list[dict], limit: int = 5) -> list[dict]:
    active = [a for a in affiliates if a["status"] == "Active"]
    return sorted(active, key=lambda a: a.get("commission") or 0, reverse=True)[:limit]


def top_products(products, limit: int = 5):
    return sorted(products, key=lambda p: p.sales_count or 0, reverse=True)[:limit]


def plan_usage(plan: dict, affiliate_count: int, product_count: int) -> dict:
    return {
        "plan": plan["name"],
        "affiliates": {"used": affiliate_count, "limit": plan["limits"]["affiliates"]},
        "products": {"used": product_count, "limit": plan["limits"]["products"]},
    }


# Reports

def report_sales(sales, window: str, today: date):
    if window not in REPORT_WINDOWS:
        raise ValueError(f"Unknown report window '{window}'")
    days = REPORT_WINDOWS[window]
    if days is None:
        return list(sales)
    cutoff = today - timedelta(days=days)
    return [sale for sale in sales if sale.date >= cutoff]


def conversion_rate(sales: int, clicks: int) -> float:
    if not clicks:
        return 0.0
    return round(sales / clicks * 100, 2)


def _sales_by(sales, key: str) -> dict:
    stats = defaultdict(lambda: {"sales": 0, "commission": 0.0})
    for sale in sales:
        entry = stats[getattr(sale, key)]
        entry["sales"] += 1
        entry["commission"] += sale.commission_amount
    return stats


def affiliate_report(affiliates: list[dict], sales) -> list[dict]:
    # Clicks are lifetime totals on the creator's products, only sales are windowed
    stats = {str(key): entry for key, entry in _sales_by(sales, "affiliate_id").items()}
    rows = []
    for affiliate in affiliates:
        entry = stats.get(str(affiliate["id"]), {"sales": 0, "commission": 0.0})
        clicks = affiliate.get("clicks") or 0
        rows.append({
            "affiliateId": str(affiliate["id"]),
            "name": affiliate["name"],
            "clicks": clicks,
            "sales": entry["sales"],
            "conversionRate": conversion_rate(entry["sales"], clicks),
            "commission": round(entry["commission"], 2),
        })
    return sorted(rows, key=lambda row: row["commission"], reverse=True)


def product_report(products, sales) -> list[dict]:
    stats = _sales_by(sales, "product_id")
    rows = []
    for product in products:
        entry = stats.get(product.id, {"sales": 0, "commission": 0.0})
        clicks = product.clicks or 0
        rows.append({
            "productId": product.id,
            "name": product.name,
            "clicks": clicks,
            "sales": entry["sales"],
            "conversionRate": conversion_rate(entry["sales"], clicks),
            "commission": round(entry["commission"], 2),
        })
    return sorted(rows, key=lambda row: row["commission"], reverse=True)


# Super admin overview

def calculate_mrr(clients, end: datetime, plans: dict = PLAN_DETAILS) -> float:
    """Monthly recurring revenue of subscribed clients who joined by `end`."""
    total = 0.0
    for client in clients:
        join = _as_datetime(client.join_date)
        if not join or join > end or not client.billing_cycle or not client.current_plan:
            continue
        plan = plans.get(client.current_plan)
        if not plan:
            continue
        if _status(client.billing_cycle) == "annual":
            total += plan["annualPrice"] / 12
        else:
            total += plan["price"]
    return round(total, 2)


def period_stats(payments, clients, start: datetime, end: datetime) -> dict:
    in_period = [p for p in payments if _in_range(p.date, start, end)]
    new_clients = [c for c in clients if _in_range(c.join_date or date(1970, 1, 1), start, end)]
    return {
        "totalRevenue": round(sum(p.amount for p in in_period), 2),
        "activeCustomers": len({p.user_id for p in in_period}),
        "newCustomers": len(new_clients),
        "mrr": calculate_mrr(clients, end),
    }


def change_percent(current: float, previous: float) -> str:
    if previous == 0:
        return "100.0%" if current > 0 else "0.0%"
    return f"{(current - previous) / previous * 100:.1f}%"


def revenue_series(payments, start: datetime, end: datetime) -> list[dict]:
    """Revenue per day, or per month once the range spans more than 90 days."""
    diff_days = math.ceil((end - start).total_seconds() / 86400)
    monthly = diff_days > 90
    buckets = defaultdict(float)
    for payment in payments:
        if not _in_range(payment.date, start, end):
            continue
        key = payment.date.strftime("%Y-%m") if monthly else payment.date.isoformat()
        buckets[key] += payment.amount
    return [{"name": key, "revenue": round(buckets[key], 2)} for key in sorted(buckets)]


def recent_clients(clients, limit: int = 5):
    dated = [c for c in clients if c.join_date]
    return sorted(dated, key=lambda c: c.join_date, reverse=True)[:limit]


def admin_overview(payments, clients, start: datetime, end: datetime) -> dict:
    prev_start, prev_end = previous_period(start, end)
    current = period_stats(payments, clients, start, end)
    previous = period_stats(payments, clients, prev_start, prev_end)
    return {
        "current": current,
        "previous": previous,
        "change": {key: change_percent(current[key], previous[key]) for key in current},
    }


# Super admin analytics

def _has_role(user, role: str) -> bool:
    return role in (user.roles or [])


def new_in_period(users, products, sales, start: datetime, end: datetime) -> dict:
    return {
        "creators": sum(1 for u in users if _has_role(u, "creator") and _in_range(u.join_date, start, end)),
        "affiliates": sum(1 for u in users if _has_role(u, "affiliate") and _in_range(u.join_date, start, end)),
        "products": sum(1 for p in products if _in_range(p.creation_date, start, end)),
        "commissions": round(sum(s.commission_amount for s in sales if _in_range(s.date, start, end)), 2),
    }


def _month_start(key: str) -> datetime:
    return datetime.strptime(key + "-01", "%Y-%m-%d")


def user_growth(users, end: datetime) -> list[dict]:
    """Cumulative creators and affiliates per join month, up to `end`."""
    monthly = defaultdict(lambda: {"creators": 0, "affiliates": 0})
    for user in users:
        if not user.join_date:
            continue
        month = user.join_date.strftime("%Y-%m")
        if _has_role(user, "creator"):
            monthly[month]["creators"] += 1
        if _has_role(user, "affiliate"):
            monthly[month]["affiliates"] += 1

    rows = []
    creators = affiliates = 0
    for month in sorted(monthly):
        creators += monthly[month]["creators"]
        affiliates += monthly[month]["affiliates"]
        if _month_start(month) <= end:
            rows.append({"name": month, "creators": creators, "affiliates": affiliates})
    return rows


def product_growth(products, end: datetime) -> list[dict]:
    monthly = defaultdict(int)
    for product in products:
        if product.creation_date:
            monthly[product.creation_date.strftime("%Y-%m")] += 1

    rows = []
    total = 0
    for month in sorted(monthly):
        total += monthly[month]
        if _month_start(month) <= end:
            rows.append({"name": month, "products": total})
    return rows


def commission_by_month(sales, start: datetime, end: datetime) -> list[dict]:
    monthly = defaultdict(float)
    for sale in sales:
        if _in_range(sale.date, start, end):
            monthly[sale.date.strftime("%Y-%m")] += sale.commission_amount
    return [{"name": month, "commission": round(monthly[month], 2)} for month in sorted(monthly)]


def onboarding_funnel(users) -> dict:
    creators = [u for u in users if _has_role(u, "creator")]
    total = len(creators)
    if total == 0:
        return {"completionRate": 0.0, "steps": []}

    counts = [0] * len(FUNNEL_STEPS)
    for creator in creators:
        completed = creator.onboarding_step_completed or 0
        for index in range(len(FUNNEL_STEPS)):
            if completed >= index + 1:
                counts[index] += 1

    steps = [
        {"name": name, "count": counts[i], "previousCount": counts[i - 1] if i > 0 else total}
        for i, name in enumerate(FUNNEL_STEPS)
    ]
    return {"completionRate": round(counts[-1] / total * 100, 2), "steps": steps}


# Affiliate portal

def affiliate_portal_stats(affiliate, payouts, products, sales) -> dict:
    """Totals and per-product commission progress for one affiliate.

    `sales` are the affiliate's own sales; the tier in force is resolved from the
    product's overall sales count while bonus progress counts the affiliate's own
    sales on the product, refunded ones included, the same count goals are matched on.
    """
    own_sales = defaultdict(int)
    for sale in sales:
        own_sales[sale.product_id] += 1

    due = sum(p.amount for p in payouts if _status(p.status) in ("Due", "Scheduled"))
    paid = sum(p.amount for p in payouts if _status(p.status) == "Paid")

    product_rows = []
    for product in products:
        tiers = product.commission_tiers or []
        count = product.sales_count or 0
        product_rows.append({
            "productId": product.id,
            "name": product.name,
            "currentTier": resolve_commission_tier(tiers, count),
            "nextTier": next_commission_tier(tiers, count),
            "bonuses": bonus_progress(product.bonuses, own_sales.get(product.id, 0)),
        })

    clicks = affiliate.clicks or 0
    return {
        "clicks": clicks,
        "sales": affiliate.sales or 0,
        "commission": round(affiliate.commission or 0, 2),
        "conversionRate": conversion_rate(affiliate.sales or 0, clicks),
        "payouts": {"due": round(due, 2), "paid": round(paid, 2)},
        "products": product_rows,
    }
