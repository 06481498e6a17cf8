import base64
import binascii
import os
import re
from datetime import timedelta

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import current_user
from sqlalchemy import or_

from models import db, Order, ACTIVE_STATUSES, ORDER_STATUSES
from services.notifications import notify_merchant
from services.push import register_subscription
from users.auth import delivery_required
from utils import get_json
from utils.errors import ApiError
from utils.logger import log_crud
from utils.timezone import local_today, to_local

delivery_bp = Blueprint("delivery", __name__)

DATA_URL_RE = re.compile(r"^data:image/(png|jpe?g|webp);base64,(.+)$", re.DOTALL)


def _profile():
    profile = current_user.delivery_profile
    if profile is None:
        raise ApiError("No delivery profile for this account", 403)
    return profile


def _my_order(order_id):
    order = Order.query.filter_by(id=order_id, delivery_person_id=_profile().id).first()
    if not order:
        raise ApiError("Order not found", 404)
    return order


def _newest_first(orders):
    return sorted(orders, key=lambda o: o.best_time, reverse=True)


# ---------- GET ORDERS ----------
@delivery_bp.route("/orders", methods=["GET"])
@delivery_required
def my_orders():
    query = Order.query.filter(Order.delivery_person_id == _profile().id)

    status = request.args.get("status")
    if status and status != "all":
        query = query.filter(Order.status == status)

    q = request.args.get("q", "").strip()
    if q:
        like = f"%{q}%"
        query = query.filter(or_(
            Order.code.ilike(like),
            Order.customer_name.ilike(like),
            Order.customer_address.ilike(like),
            Order.customer_phone.ilike(like),
        ))

    orders = query.all()
    pending = _newest_first([o for o in orders if o.status == "assigned"])
    active = _newest_first([o for o in orders if o.status in ACTIVE_STATUSES])
    completed = _newest_first([o for o in orders if o.status == "delivered"])

    return jsonify({
        "orders": [o.to_dict() for o in _newest_first(orders)],
        "pending": [o.to_dict() for o in pending],
        "active": [o.to_dict() for o in active],
        "completed": [o.to_dict() for o in completed],
    })


@delivery_bp.route("/status", methods=["POST"])
@delivery_required
def set_availability():
    status = get_json().get("status")
    if status not in ("online", "offline"):
        raise ApiError("Status must be online or offline", 400)

    profile = _profile()
    profile.availability = status
    db.session.commit()
    return jsonify({"success": True, "status": profile.availability})


@delivery_bp.route("/orders/<int:order_id>/accept", methods=["POST"])
@delivery_required
def accept_order(order_id):
    order = _my_order(order_id)
    order.set_status("accepted")
    notify_merchant(order, f"{current_user.full_name or current_user.email} accepted order {order.code}")
    db.session.commit()
    log_crud("ACCEPT", "ORDER", current_user, True, order_id=order.id)
    return jsonify({"success": True, "order": order.to_dict()})


@delivery_bp.route("/orders/<int:order_id>/status", methods=["POST"])
@delivery_required
def update_order_status(order_id):
    order = _my_order(order_id)
    status = get_json().get("status")
    if status not in ORDER_STATUSES:
        raise ApiError(f"Unknown status: {status}", 400)

    order.set_status(status)
    if status == "delivered":
        notify_merchant(order, f"Order {order.code} delivered")
    db.session.commit()
    log_crud("UPDATE", "ORDER_STATUS", current_user, True, order_id=order.id, status=status)
    return jsonify({"success": True, "order": order.to_dict()})


def _save_photo(order, data_url):
    match = DATA_URL_RE.match(data_url)
    if not match:
        raise ApiError("Photo must be a base64 image data URL", 400)
    ext = "jpg" if match.group(1) == "jpeg" else match.group(1)
    try:
        raw = base64.b64decode(match.group(2), validate=True)
    except (binascii.Error, ValueError):
        raise ApiError("Photo is not valid base64", 400)

    folder = os.path.join(current_app.config["UPLOAD_FOLDER"], "proofs")
    os.makedirs(folder, exist_ok=True)
    filename = f"order_{order.id}.{ext}"
    with open(os.path.join(folder, filename), "wb") as fh:
        fh.write(raw)
    return f"proofs/{filename}"


@delivery_bp.route("/orders/<int:order_id>/proof", methods=["POST"])
@delivery_required
def delivery_proof(order_id):
    order = _my_order(order_id)
    data = get_json()
    pin = str(data.get("pin") or "").strip()
    photo = data.get("photo")

    if not pin or not photo:
        raise ApiError("PIN and photo are required", 400)
    if not isinstance(photo, str):
        raise ApiError("Photo must be a base64 image data URL", 400)

    if order.delivery_pin is None or order.delivery_pin != pin:
        log_crud("PROOF", "ORDER", current_user, False, order_id=order.id)
        raise ApiError("Invalid PIN", 400)

    order.proof_photo = _save_photo(order, photo)
    order.delivery_pin = None  # invalidate PIN
    order.set_status("delivered")
    notify_merchant(order, f"Order {order.code} delivered")
    db.session.commit()
    log_crud("PROOF", "ORDER", current_user, True, order_id=order.id)
    return jsonify({"success": True, "order": order.to_dict()})


@delivery_bp.route("/history", methods=["GET"])
@delivery_required
def delivery_history():
    today = local_today()
    yesterday = today - timedelta(days=1)

    history = Order.query.filter(
        Order.delivery_person_id == _profile().id,
        Order.status == "delivered",
    ).order_by(Order.delivered_at.desc()).all()

    totals = {day: {"count": 0, "amount": 0.0} for day in ("Today", "Yesterday", "Older")}
    items = []
    for o in history:
        delivered_day = to_local(o.delivered_at or o.updated_at).date()
        if delivered_day == today:
            day = "Today"
        elif delivered_day == yesterday:
            day = "Yesterday"
        else:
            day = "Older"
        totals[day]["count"] += 1
        totals[day]["amount"] = round(totals[day]["amount"] + o.get_final_total(), 2)
        items.append({**o.to_dict(), "day_category": day})

    return jsonify({"history": items, "totals": totals})


@delivery_bp.route("/push-subscriptions", methods=["POST"])
@delivery_required
def push_subscribe():
    row = register_subscription(_profile(), get_json())
    if row is None:
        raise ApiError("Invalid push subscription", 400)
    return jsonify({"success": True}), 201
