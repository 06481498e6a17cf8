import calendar

from flask import Blueprint, current_app, jsonify
from flask_jwt_extended import current_user

from models import db, Subscription, User
from users.auth import role_required
from utils.logger import log_success
from utils.timezone import utcnow

subscriptions_bp = Blueprint("subscriptions", __name__)


def add_month(dt):
    """Same day next month, clamped to the last day of a shorter month."""
    year = dt.year + dt.month // 12
    month = dt.month % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def _merchant_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        return None, (jsonify({"message": "User not found."}), 404)
    if current_user.role != "admin" and current_user.id != user.id:
        return None, (jsonify({"message": "You can only manage your own subscription."}), 403)
    if user.role != "commercant" or user.merchant_id is None:
        return None, (jsonify({"message": "Only merchants can subscribe."}), 403)
    return user, None


@subscriptions_bp.route("/subscriptions/<int:user_id>/pay", methods=["POST"])
@role_required("commercant", "admin")
def pay_subscription(user_id):
    user, error = _merchant_user(user_id)
    if error:
        return error

    start = utcnow()
    subscription = Subscription(
        merchant_id=user.merchant_id,
        start=start,
        end=add_month(start),
        status="active",
        price=current_app.config["SUBSCRIPTION_PRICE"],
    )
    db.session.add(subscription)
    db.session.commit()

    log_success("SUBSCRIPTION_PAID", current_user, merchant_id=user.merchant_id, price=subscription.price)
    return jsonify({
        "message": "Subscription paid.",
        "subscription": subscription.to_dict(),
    }), 201


@subscriptions_bp.route("/subscriptions/<int:user_id>", methods=["GET"])
@role_required("commercant", "admin")
def current_subscription(user_id):
    user, error = _merchant_user(user_id)
    if error:
        return error

    now = utcnow()
    subs = Subscription.query.filter_by(merchant_id=user.merchant_id).order_by(Subscription.end.desc()).all()

    expired = [s for s in subs if s.status == "active" and s.end and s.end < now]
    for s in expired:
        s.status = "inactive"
    if expired:
        db.session.commit()

    latest = subs[0] if subs else None
    return jsonify({
        "subscription": latest.to_dict() if latest else None,
        "is_premium": user.merchant.is_premium,
    })
