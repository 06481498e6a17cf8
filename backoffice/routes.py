from datetime import datetime, timedelta

from flask import Blueprint, jsonify, request
from flask_jwt_extended import current_user
from sqlalchemy import case, func, or_

from health_checks import check_database, check_pricing
from models import db, DeliveryPerson, Merchant, Order, User, ACCOUNT_STATUSES
from services.reports import merchant_report, orders_frame
from users.auth import admin_required
from utils import get_json
from utils.errors import ApiError
from utils.logger import log_crud
from utils.timezone import utcnow

backoffice_bp = Blueprint("backoffice", __name__)

RANGES = {
    "today": timedelta(days=1),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
}


def _range_start(name):
    if name in (None, "", "all"):
        return None
    if name not in RANGES:
        raise ApiError("range must be today, week, month or all", 400)
    return utcnow() - RANGES[name]


def _parse_date(value, field):
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise ApiError(f"{field} must be YYYY-MM-DD", 400)


# ---------------- ADMIN STATISTICS ----------------
@backoffice_bp.route("/stats", methods=["GET"])
@admin_required
def stats():
    start = _range_start(request.args.get("range", "week"))

    q = Order.query
    if start is not None:
        q = q.filter(Order.created_at >= start)
    orders = q.all()

    delivered = [o for o in orders if o.status == "delivered"]
    pending = [o for o in orders if o.status not in ("delivered", "cancelled")]
    durations = [
        (o.delivered_at - o.created_at).total_seconds() / 60
        for o in delivered
        if o.delivered_at and o.created_at
    ]

    total = len(orders)
    return jsonify({
        "stats": {
            "total_deliveries": total,
            "completed_deliveries": len(delivered),
            "pending_deliveries": len(pending),
            "cancelled": len([o for o in orders if o.status == "cancelled"]),
            "completion_rate": round(len(delivered) * 100 / total, 1) if total else 0.0,
            "average_delivery_time": round(sum(durations) / len(durations), 1) if durations else 0.0,
            "total_revenue": round(sum(o.get_final_total() for o in delivered), 2),
            "merchants": Merchant.query.count(),
            "active_merchants": Merchant.query.filter_by(status="active").count(),
            "delivery_people": DeliveryPerson.query.count(),
        }
    })


# ---------------- MERCHANTS ----------------
@backoffice_bp.route("/merchants", methods=["GET"])
@admin_required
def merchants():
    query = Merchant.query

    term = request.args.get("q", "").strip()
    if term:
        owners = db.session.query(User.merchant_id).filter(
            User.email.ilike(f"%{term}%"), User.role == "commercant"
        )
        query = query.filter(or_(Merchant.shop_name.ilike(f"%{term}%"), Merchant.id.in_(owners)))

    status = request.args.get("status")
    if status and status != "all":
        query = query.filter(Merchant.status == status)

    totals = dict(
        (row.merchant_id, (row.orders, row.revenue))
        for row in db.session.query(
            Order.merchant_id,
            func.count(Order.id).label("orders"),
            func.coalesce(
                func.sum(case((Order.status == "delivered", Order.total), else_=0)), 0
            ).label("revenue"),
        ).group_by(Order.merchant_id)
    )

    result = []
    for m in query.order_by(Merchant.created_at.desc()).all():
        owner = next((u for u in m.users if u.role == "commercant"), None)
        orders_count, revenue = totals.get(m.id, (0, 0))
        result.append({
            **m.to_dict(),
            "email": owner.email if owner else None,
            "phone": owner.phone if owner else None,
            "total_orders": orders_count,
            "total_revenue": round(float(revenue), 2),
        })
    return jsonify({"merchants": result, "total": len(result)})


@backoffice_bp.route("/merchants/<int:merchant_id>/status", methods=["PATCH"])
@admin_required
def merchant_status(merchant_id):
    merchant = db.session.get(Merchant, merchant_id)
    if merchant is None:
        raise ApiError("Merchant not found", 404)

    status = get_json().get("status")
    if status not in ACCOUNT_STATUSES:
        raise ApiError("status must be active, inactive or suspended", 400)

    merchant.status = status
    users = set(merchant.users)
    users.update(dp.user for dp in merchant.delivery_persons if dp.user is not None)
    for user in users:
        user.status = status
    db.session.commit()
    log_crud("UPDATE", "MERCHANT_STATUS", current_user, True, merchant_id=merchant.id, status=status)
    return jsonify({"success": True, "merchant": merchant.to_dict()})


# ---------------- ORDERS ----------------
@backoffice_bp.route("/orders", methods=["GET"])
@admin_required
def orders():
    q = Order.query

    term = request.args.get("q", "").strip()
    if term:
        q = q.filter(or_(
            Order.code.contains(term),
            Order.customer_name.contains(term),
            Order.customer_phone.contains(term),
        ))

    status = request.args.get("status")
    if status and status != "all":
        q = q.filter(Order.status == status)

    page = request.args.get("page", 1, type=int)
    pagination = q.order_by(Order.created_at.desc()).paginate(page=page, per_page=20, error_out=False)
    return jsonify({
        "orders": [o.to_dict() for o in pagination.items],
        "page": pagination.page,
        "pages": pagination.pages,
        "total": pagination.total,
    })


@backoffice_bp.route("/delivery-people", methods=["GET"])
@admin_required
def delivery_people():
    people = DeliveryPerson.query.order_by(DeliveryPerson.created_at.desc()).all()
    return jsonify({"delivery_people": [dp.to_dict() for dp in people]})


# ---------------- REPORTS ----------------
@backoffice_bp.route("/reports", methods=["GET"])
@admin_required
def reports():
    report_type = request.args.get("type", "day")
    if report_type not in ("day", "week"):
        raise ApiError("type must be day or week", 400)

    date_to = _parse_date(request.args.get("to"), "to")
    df = orders_frame(
        merchant_id=request.args.get("merchant_id", type=int),
        date_from=_parse_date(request.args.get("from"), "from"),
        date_to=date_to + timedelta(days=1) if date_to else None,
    )
    rows = merchant_report(df, report_type)
    return jsonify({"type": report_type, "reports": rows})


@backoffice_bp.route("/system-health", methods=["GET"])
@admin_required
def system_health():
    checks = [check_database()]
    checks.extend(check_pricing(m) for m in Merchant.query.all())
    return jsonify({
        "healthy": all(c["status"] for c in checks),
        "checks": checks,
    })
