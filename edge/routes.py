import time

from flask import Blueprint, jsonify
from werkzeug.exceptions import HTTPException

from edge import kv_store as kv
from models import db
from utils import get_json, parse_number
from utils.errors import ApiError
from utils.logger import log_critical_error, logger
from utils.timezone import utcnow

edge_bp = Blueprint("edge", __name__)


def _now():
    return utcnow().isoformat() + "Z"


def _stamp():
    return int(time.time() * 1000)


def _not_found(what):
    return jsonify({"error": f"{what} not found"}), 404


@edge_bp.errorhandler(ApiError)
def _api_error(e):
    return jsonify({"error": e.message}), e.status


@edge_bp.errorhandler(HTTPException)
def _http_error(e):
    return jsonify({"error": e.description}), e.code


@edge_bp.errorhandler(Exception)
def _server_error(e):
    db.session.rollback()
    log_critical_error(e, area="edge")
    return jsonify({"error": "Internal server error"}), 500


@edge_bp.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


# ========================
# MERCHANT
# ========================
@edge_bp.route("/merchant/<mid>/products", methods=["GET"])
def merchant_products(mid):
    return jsonify({"products": kv.get_by_prefix(f"products:{mid}:")})


@edge_bp.route("/merchant/<mid>/products", methods=["POST"])
def save_product(mid):
    data = get_json()
    product_id = data.get("id") or f"product_{_stamp()}"

    product = {
        "id": product_id,
        "merchantId": mid,
        "name": data.get("name"),
        "description": data.get("description"),
        "price": data.get("price"),
        "category": data.get("category"),
        "stock": data.get("stock"),
        "imageUrl": data.get("imageUrl"),
        "createdAt": data.get("createdAt") or _now(),
        "updatedAt": _now(),
    }
    kv.set(f"products:{mid}:{product_id}", product)
    return jsonify({"success": True, "product": product})


@edge_bp.route("/merchant/<mid>/products/<pid>", methods=["DELETE"])
def delete_product(mid, pid):
    kv.delete(f"products:{mid}:{pid}")
    return jsonify({"success": True})


@edge_bp.route("/merchant/<mid>/settings", methods=["PUT"])
def merchant_settings(mid):
    data = get_json()
    key = f"merchants:{mid}"
    merchant = kv.get(key) or {"id": mid, "name": "Commerce Local", "logo": ""}
    merchant = {**merchant, **data, "id": mid, "updatedAt": _now()}
    kv.set(key, merchant)
    return jsonify({"success": True, "merchant": merchant})


@edge_bp.route("/merchant/<mid>/orders", methods=["GET"])
def merchant_orders(mid):
    return jsonify({"orders": kv.get_by_prefix(f"orders:{mid}:")})


@edge_bp.route("/merchant/<mid>/orders/<oid>/assign", methods=["POST"])
def assign_order(mid, oid):
    delivery_person_id = get_json().get("deliveryPersonId")
    if not delivery_person_id:
        raise ApiError("deliveryPersonId is required", 400)

    order_key = f"orders:{mid}:{oid}"
    order = kv.get(order_key)
    if not order:
        return _not_found("Order")

    order = {
        **order,
        "deliveryPersonId": delivery_person_id,
        "status": "assigned",
        "assignedAt": _now(),
    }
    kv.mset([order_key, f"delivery:{delivery_person_id}:{oid}"], [order, order])
    return jsonify({"success": True, "order": order})


@edge_bp.route("/merchant/<mid>/delivery-people", methods=["GET"])
def merchant_delivery_people(mid):
    return jsonify({"deliveryPeople": kv.get_by_prefix(f"delivery-people:{mid}:")})


@edge_bp.route("/merchant/<mid>/delivery-people", methods=["POST"])
def add_delivery_person(mid):
    data = get_json()
    delivery_id = f"delivery_{_stamp()}"
    person = {
        "id": delivery_id,
        "merchantId": mid,
        "name": data.get("name"),
        "phone": data.get("phone"),
        "email": data.get("email"),
        "status": "offline",
        "createdAt": _now(),
    }
    kv.set(f"delivery-people:{mid}:{delivery_id}", person)
    return jsonify({"success": True, "deliveryPerson": person})


# ========================
# DELIVERY
# ========================
@edge_bp.route("/delivery/<did>/orders", methods=["GET"])
def delivery_orders(did):
    return jsonify({"orders": kv.get_by_prefix(f"delivery:{did}:")})


@edge_bp.route("/delivery/<did>/status", methods=["POST"])
def delivery_status(did):
    status = get_json().get("status")
    person = next((p for p in kv.get_by_prefix("delivery-people:") if p.get("id") == did), None)
    if person:
        kv.set(f"delivery-people:{person['merchantId']}:{did}", {**person, "status": status})
    return jsonify({"success": True})


def _update_rider_order(did, oid, changes):
    """Write the rider copy and the merchant copy of an order."""
    order_key = f"delivery:{did}:{oid}"
    order = kv.get(order_key)
    if not order:
        return None

    order = {**order, **changes}
    kv.mset([order_key, f"orders:{order['merchantId']}:{oid}"], [order, order])
    return order


@edge_bp.route("/delivery/<did>/orders/<oid>/accept", methods=["POST"])
def accept_order(did, oid):
    order = _update_rider_order(did, oid, {"status": "accepted", "acceptedAt": _now()})
    if order is None:
        return _not_found("Order")
    logger.info("EDGE_ACCEPT - %s %s", did, oid)
    return jsonify({"success": True, "order": order})


@edge_bp.route("/delivery/<did>/orders/<oid>/status", methods=["POST"])
def order_status(did, oid):
    status = get_json().get("status")
    if not status:
        raise ApiError("status is required", 400)

    order = _update_rider_order(did, oid, {"status": status, f"{status}At": _now()})
    if order is None:
        return _not_found("Order")
    return jsonify({"success": True, "order": order})


@edge_bp.route("/delivery/<did>/orders/<oid>/proof", methods=["POST"])
def order_proof(did, oid):
    photo = get_json().get("photo")
    if not photo:
        raise ApiError("photo is required", 400)

    order = _update_rider_order(did, oid, {
        "status": "delivered",
        "deliveredAt": _now(),
        "proofPhoto": photo,
    })
    if order is None:
        return _not_found("Order")
    return jsonify({"success": True, "order": order})


# ========================
# CUSTOMER
# ========================
@edge_bp.route("/store/<mid>", methods=["GET"])
def store(mid):
    merchant = kv.get(f"merchants:{mid}")
    return jsonify({
        "merchant": merchant or {"id": mid, "name": "Commerce Local", "logo": ""},
        "products": kv.get_by_prefix(f"products:{mid}:"),
    })


@edge_bp.route("/store/<mid>/orders", methods=["POST"])
def place_order(mid):
    data = get_json()
    items = data.get("items") or []
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise ApiError("items must be a list of objects", 400)
    order_id = f"order_{_stamp()}"

    order = {
        "id": order_id,
        "merchantId": mid,
        "customerName": data.get("customerName"),
        "customerPhone": data.get("customerPhone"),
        "customerAddress": data.get("customerAddress"),
        "items": items,
        "total": data.get("total"),
        "status": "pending",
        "createdAt": _now(),
    }

    writes = {f"orders:{mid}:{order_id}": order}
    for item in items:
        product_key = f"products:{mid}:{item.get('productId')}"
        product = writes.get(product_key) or kv.get(product_key)
        if product:
            stock = parse_number(product.get("stock"), "stock", int) or 0
            quantity = parse_number(item.get("quantity"), "quantity", int) or 0
            writes[product_key] = {**product, "stock": max(0, stock - quantity)}
    kv.mset(list(writes), list(writes.values()))

    return jsonify({"success": True, "order": order})


@edge_bp.route("/orders/<oid>", methods=["GET"])
def get_order(oid):
    order = next((o for o in kv.get_by_prefix("orders:") if o.get("id") == oid), None)
    if not order:
        return _not_found("Order")
    return jsonify({"order": order})
