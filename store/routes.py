from flask import Blueprint, jsonify

from models import db, Category, Merchant, Order, OrderItem, Product
from services.pricing import price_cart
from utils import clean_str, generate_order_code, generate_pin, get_json, parse_number
from utils.errors import ApiError
from utils.logger import log_success

store_bp = Blueprint("store", __name__)


@store_bp.route("/<int:merchant_id>", methods=["GET"])
def storefront(merchant_id):
    merchant = db.session.get(Merchant, merchant_id)
    if merchant is None or merchant.status != "active":
        info = {"id": merchant_id, "name": "Commerce Local", "logo": ""}
        return jsonify({"merchant": info, "products": [], "categories": []})

    products = Product.query.filter_by(merchant_id=merchant_id).order_by(Product.name).all()
    categories = Category.query.filter_by(merchant_id=merchant_id).order_by(Category.name).all()
    return jsonify({
        "merchant": merchant.to_dict(),
        "products": [p.to_dict() for p in products],
        "categories": [c.to_dict() for c in categories],
    })


def _cart_lines(merchant_id, items):
    if not isinstance(items, list) or not items:
        raise ApiError("Cart is empty", 400)

    lines = []
    for item in items:
        if not isinstance(item, dict):
            raise ApiError("Invalid cart item", 400)
        quantity = parse_number(item.get("quantity", 1), "quantity", int)
        if not quantity or quantity <= 0:
            continue
        product_id = parse_number(item.get("product_id"), "product_id", int)
        product = Product.query.filter_by(id=product_id, merchant_id=merchant_id).first()
        if product is None:
            raise ApiError(f"Product {item.get('product_id')} not found", 404)
        lines.append((product, quantity))

    if not lines:
        raise ApiError("Cart is empty", 400)
    return lines


@store_bp.route("/<int:merchant_id>/orders", methods=["POST"])
def place_order(merchant_id):
    merchant = db.session.get(Merchant, merchant_id)
    if merchant is None or merchant.status != "active":
        raise ApiError("Store not found", 404)

    data = get_json()
    customer_name = clean_str(data.get("customer_name"))
    customer_phone = clean_str(data.get("customer_phone"))
    customer_address = clean_str(data.get("customer_address"))
    if not customer_name or not customer_phone or not customer_address:
        raise ApiError("Name, phone and address are required", 400)

    lines = _cart_lines(merchant_id, data.get("items"))
    totals = price_cart(merchant, lines)

    order = Order(
        merchant_id=merchant_id,
        customer_name=customer_name,
        customer_phone=customer_phone,
        customer_address=customer_address,
        items_total=totals["items_total"],
        delivery_charge=totals["delivery"],
        total=totals["final_total"],
        status="pending",
        delivery_pin=generate_pin(),
    )
    db.session.add(order)
    db.session.flush()
    order.code = generate_order_code(order.id)

    for product, quantity in lines:
        order.items.append(OrderItem(
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            price=product.price,
        ))
        product.stock = max(0, (product.stock or 0) - quantity)

    db.session.commit()
    log_success("ORDER_PLACED", None, order=order.code, merchant_id=merchant_id, total=order.total)
    return jsonify({"success": True, "order": order.to_dict(include_pin=True)}), 201


@store_bp.route("/orders/<code>", methods=["GET"])
def order_status(code):
    order = Order.query.filter_by(code=code).first()
    if not order:
        return jsonify({"success": False, "message": "Order not found"}), 404
    return jsonify({"success": True, "order": order.to_dict()})
