import pandas as pd

from models import db, Merchant, Order
from utils.timezone import to_local

REPORT_COLUMNS = [
    "merchant", "period", "total_orders", "delivered", "cancelled",
    "items_total", "delivery_total", "revenue",
]


def orders_frame(merchant_id=None, date_from=None, date_to=None):
    query = (
        db.session.query(
            Merchant.shop_name.label("merchant"),
            Order.created_at,
            Order.status,
            Order.items_total,
            Order.delivery_charge,
        )
        .join(Merchant, Order.merchant_id == Merchant.id)
    )
    if merchant_id:
        query = query.filter(Order.merchant_id == merchant_id)
    if date_from:
        query = query.filter(Order.created_at >= date_from)
    if date_to:
        query = query.filter(Order.created_at < date_to)

    rows = [row._asdict() for row in query.all()]
    return pd.DataFrame(rows, columns=["merchant", "created_at", "status", "items_total", "delivery_charge"])


def merchant_report(df, report_type="day"):
    """Aggregate orders per merchant and per day (or ISO-ish week)."""
    if df.empty:
        return []

    df = df.copy()
    fmt = "%Y-%m-%d" if report_type == "day" else "%Y-%W"
    df["period"] = df["created_at"].map(lambda dt: to_local(dt).strftime(fmt))
    delivered = df["status"] == "delivered"
    df["delivered"] = delivered.astype(int)
    df["cancelled"] = (df["status"] == "cancelled").astype(int)
    df["items_total"] = df["items_total"].fillna(0).where(delivered, 0)
    df["delivery_total"] = df["delivery_charge"].fillna(0).where(delivered, 0)

    grouped = (
        df.groupby(["merchant", "period"])
        .agg(
            total_orders=("status", "size"),
            delivered=("delivered", "sum"),
            cancelled=("cancelled", "sum"),
            items_total=("items_total", "sum"),
            delivery_total=("delivery_total", "sum"),
        )
        .reset_index()
    )
    grouped["revenue"] = (grouped["items_total"] + grouped["delivery_total"]).round(2)
    grouped = grouped.sort_values(["period", "merchant"], ascending=[False, True])

    records = []
    for row in grouped[REPORT_COLUMNS].to_dict(orient="records"):
        records.append({
            "merchant": row["merchant"],
            "period": row["period"],
            "total_orders": int(row["total_orders"]),
            "delivered": int(row["delivered"]),
            "cancelled": int(row["cancelled"]),
            "items_total": float(row["items_total"]),
            "delivery_total": float(row["delivery_total"]),
            "revenue": float(row["revenue"]),
        })
    return records
