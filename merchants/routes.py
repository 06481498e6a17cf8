from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import current_user
from sqlalchemy import or_

from models import (
    db, Category, DeliveryPerson, Notification, Order, Product, User, ORDER_STATUSES
)
from services.catalog_import import import_products, load_rows
from services.push import notify_delivery_person
from users.auth import merchant_required
from utils import clean_str, get_json, parse_number
from utils.errors import ApiError
from utils.logger import log_crud, logger
from utils.timezone import local_today, to_local, utcnow

merchants_bp = Blueprint("merchants", __name__)


def _merchant_id():
    return current_user.merchant_id


def _owned(model, object_id, message):
    obj = model.query.filter_by(id=object_id, merchant_id=_merchant_id()).first()
    if not obj:
        raise ApiError(message, 404)
    return obj


def _category_name(data):
    name = clean_str(data.get("name"))
    if not name:
        raise ApiError("Category name is required", 400)
    return name


# ================= CATEGORIES =================
@merchants_bp.route("/categories", methods=["GET"])
@merchant_required
def list_categories():
    categories = Category.query.filter_by(merchant_id=_merchant_id()).order_by(Category.name).all()
    return jsonify({
        "message": "Categories retrieved",
        "categories": [c.to_dict() for c in categories],
        "total": len(categories),
    })


@merchants_bp.route("/categories", methods=["POST"])
@merchant_required
def create_category():
    name = _category_name(get_json())

    if Category.query.filter_by(merchant_id=_merchant_id(), name=name).first():
        return jsonify({"message": "You already have a category with this name"}), 409

    category = Category(name=name, merchant_id=_merchant_id())
    db.session.add(category)
    db.session.commit()
    log_crud("CREATE", "CATEGORY", current_user, True, category_id=category.id)
    return jsonify({"message": "Category created", "category": category.to_dict()}), 201


@merchants_bp.route("/categories/<int:category_id>", methods=["GET"])
@merchant_required
def get_category(category_id):
    category = _owned(Category, category_id, "Category not found or not accessible")
    product_count = Product.query.filter_by(
        category_id=category.id, merchant_id=_merchant_id()
    ).count()
    return jsonify({
        "message": "Category retrieved",
        "category": {**category.to_dict(), "product_count": product_count},
    })


@merchants_bp.route("/categories/<int:category_id>/products", methods=["GET"])
@merchant_required
def category_products(category_id):
    category = _owned(Category, category_id, "Category not found or not accessible")
    products = Product.query.filter_by(
        category_id=category.id, merchant_id=_merchant_id()
    ).order_by(Product.name).all()
    return jsonify({
        "message": "Category products retrieved",
        "category": category.name,
        "products": [p.to_dict() for p in products],
        "total": len(products),
    })


@merchants_bp.route("/categories/<int:category_id>", methods=["PUT"])
@merchant_required
def update_category(category_id):
    name = _category_name(get_json())
    category = _owned(Category, category_id, "Category not found or not allowed to modify it")

    duplicate = Category.query.filter(
        Category.merchant_id == _merchant_id(),
        Category.name == name,
        Category.id != category.id,
    ).first()
    if duplicate:
        return jsonify({"message": "You already have a category with this name"}), 409

    category.name = name
    db.session.commit()
    log_crud("UPDATE", "CATEGORY", current_user, True, category_id=category.id)
    return jsonify({"message": "Category updated", "category": category.to_dict()})


@merchants_bp.route("/categories/<int:category_id>", methods=["DELETE"])
@merchant_required
def delete_category(category_id):
    category = _owned(Category, category_id, "Category not found or not allowed to delete it")

    linked = Product.query.filter_by(category_id=category.id, merchant_id=_merchant_id()).count()
    if linked:
        return jsonify({
            "message": f"Cannot delete the category: it still contains {linked} product(s). "
                       "Delete or move them first."
        }), 400

    data = category.to_dict()
    db.session.delete(category)
    db.session.commit()
    log_crud("DELETE", "CATEGORY", current_user, True, category_id=category_id)
    return jsonify({"message": "Category deleted", "category": data})


# ================= PRODUCTS =================
def _validate_category(category_id):
    if category_id in (None, ""):
        return None
    category_id = parse_number(category_id, "category_id", int)
    _owned(Category, category_id, "Category not found or not accessible")
    return category_id


def _validate_non_negative(value, message):
    if value is None or value < 0:
        raise ApiError(message, 400)
    return value


@merchants_bp.route("/products", methods=["GET"])
@merchant_required
def list_products():
    query = Product.query.filter_by(merchant_id=_merchant_id())

    category_id = request.args.get("category_id", type=int)
    if category_id:
        query = query.filter(Product.category_id == category_id)

    q = request.args.get("q", "").strip()
    if q:
        query = query.filter(or_(Product.name.ilike(f"%{q}%"), Product.description.ilike(f"%{q}%")))

    products = query.order_by(Product.created_at.desc()).all()
    return jsonify({
        "message": "Products retrieved",
        "products": [p.to_dict() for p in products],
        "total": len(products),
    })


@merchants_bp.route("/products/<int:product_id>", methods=["GET"])
@merchant_required
def get_product(product_id):
    product = _owned(Product, product_id, "Product not found or not accessible")
    return jsonify({"message": "Product retrieved", "product": product.to_dict()})


@merchants_bp.route("/products", methods=["POST"])
@merchant_required
def create_product():
    data = get_json()

    name = clean_str(data.get("name"))
    if not name:
        raise ApiError("Product name is required", 400)

    price = _validate_non_negative(
        parse_number(data.get("price"), "price"),
        "Product price is required and must be positive",
    )
    stock = _validate_non_negative(
        parse_number(data.get("stock"), "stock", int),
        "Stock must be set and positive",
    )

    product = Product(
        name=name,
        price=price,
        stock=stock,
        image=clean_str(data.get("image")),
        description=clean_str(data.get("description")),
        category_id=_validate_category(data.get("category_id")),
        merchant_id=_merchant_id(),
    )
    db.session.add(product)
    db.session.commit()
    log_crud("CREATE", "PRODUCT", current_user, True, product_id=product.id)
    return jsonify({"message": "Product created", "product": product.to_dict()}), 201


@merchants_bp.route("/products/<int:product_id>", methods=["PUT"])
@merchant_required
def update_product(product_id):
    product = _owned(Product, product_id, "Product not found or not allowed to modify it")
    data = get_json()

    if "name" in data:
        name = clean_str(data.get("name"))
        if not name:
            raise ApiError("Product name cannot be empty", 400)
        product.name = name

    if "price" in data:
        product.price = _validate_non_negative(
            parse_number(data.get("price"), "price"), "Price must be positive"
        )

    if "stock" in data:
        product.stock = _validate_non_negative(
            parse_number(data.get("stock"), "stock", int), "Stock must be positive"
        )

    if "image" in data:
        product.image = clean_str(data.get("image"))
    if "description" in data:
        product.description = clean_str(data.get("description"))
    if "category_id" in data:
        product.category_id = _validate_category(data.get("category_id"))

    db.session.commit()
    log_crud("UPDATE", "PRODUCT", current_user, True, product_id=product.id)
    return jsonify({"message": "Product updated", "product": product.to_dict()})


@merchants_bp.route("/products/<int:product_id>/stock", methods=["PATCH"])
@merchant_required
def update_stock(product_id):
    stock = _validate_non_negative(
        parse_number(get_json().get("stock"), "stock", int),
        "Stock must be set and positive",
    )
    product = _owned(Product, product_id, "Product not found or not allowed to modify it")
    product.stock = stock
    db.session.commit()
    log_crud("UPDATE", "PRODUCT_STOCK", current_user, True, product_id=product.id, stock=stock)
    return jsonify({"message": "Stock updated", "product": product.to_dict()})


@merchants_bp.route("/products/<int:product_id>", methods=["DELETE"])
@merchant_required
def delete_product(product_id):
    product = _owned(Product, product_id, "Product not found or not allowed to delete it")
    data = product.to_dict()
    db.session.delete(product)
    db.session.commit()
    log_crud("DELETE", "PRODUCT", current_user, True, product_id=product_id)
    return jsonify({"message": "Product deleted", "product": data})


@merchants_bp.route("/products/import", methods=["POST"])
@merchant_required
def import_catalog():
    upload = request.files.get("file")
    source = upload.stream if upload else get_json().get("url")
    if not source:
        raise ApiError("Upload a CSV file or give its url", 400)

    try:
        rows = load_rows(source)
    except ValueError as e:
        raise ApiError(str(e), 400)
    except OSError as e:
        logger.warning("Could not load catalog CSV for merchant %s: %s", _merchant_id(), e)
        raise ApiError("Could not load the CSV file", 400)

    result = import_products(current_user.merchant, rows)
    log_crud("IMPORT", "PRODUCT", current_user, True, **result)
    return jsonify({"message": "Catalog imported", **result})


# ================= ORDERS =================
@merchants_bp.route("/orders", methods=["GET"])
@merchant_required
def list_orders():
    query = Order.query.filter_by(merchant_id=_merchant_id())
    status = request.args.get("status")
    if status:
        query = query.filter(Order.status == status)
    orders = query.order_by(Order.created_at.desc()).all()
    return jsonify({"orders": [o.to_dict() for o in orders], "total": len(orders)})


@merchants_bp.route("/orders/<int:order_id>/assign", methods=["POST"])
@merchant_required
def assign_order(order_id):
    order = _owned(Order, order_id, "Order not found")

    delivery_person_id = get_json().get("delivery_person_id")
    if not delivery_person_id:
        raise ApiError("Please select a delivery person", 400)
    dp = _owned(
        DeliveryPerson,
        parse_number(delivery_person_id, "delivery_person_id", int),
        "Delivery person not found",
    )

    order.delivery_person_id = dp.id
    order.set_status("assigned")
    db.session.commit()

    notify_delivery_person(dp, "New order", f"Order {order.code} was assigned to you")
    log_crud("ASSIGN", "ORDER", current_user, True, order_id=order.id, delivery_person_id=dp.id)
    return jsonify({"success": True, "order": order.to_dict()})


@merchants_bp.route("/orders/<int:order_id>/status", methods=["PATCH"])
@merchant_required
def update_order_status(order_id):
    order = _owned(Order, order_id, "Order not found")
    status = get_json().get("status")
    if status not in ORDER_STATUSES:
        raise ApiError(f"Unknown status: {status}", 400)

    order.set_status(status)
    db.session.commit()
    log_crud("UPDATE", "ORDER_STATUS", current_user, True, order_id=order.id, status=status)
    return jsonify({"success": True, "order": order.to_dict()})


# ================= DELIVERY PEOPLE =================
@merchants_bp.route("/delivery-people", methods=["GET"])
@merchant_required
def list_delivery_people():
    people = DeliveryPerson.query.filter_by(merchant_id=_merchant_id()).all()
    return jsonify({"delivery_people": [dp.to_dict() for dp in people]})


@merchants_bp.route("/delivery-people", methods=["POST"])
@merchant_required
def create_delivery_person():
    data = get_json()
    email = (clean_str(data.get("email")) or "").lower()
    password = data.get("password") or ""
    phone = clean_str(data.get("phone"))

    if not email or not password or not phone:
        raise ApiError("Email, phone and password are required", 400)

    if User.query.filter_by(email=email).first():
        return jsonify({"message": "This email is already in use."}), 409

    user = User(
        first_name=clean_str(data.get("first_name")),
        last_name=clean_str(data.get("last_name")),
        phone=phone,
        email=email,
        role="livreur",
        merchant_id=_merchant_id(),
    )
    user.set_password(password)
    user.delivery_profile = DeliveryPerson(merchant_id=_merchant_id())
    db.session.add(user)
    db.session.commit()

    log_crud("CREATE", "DELIVERY_PERSON", current_user, True, delivery_person_id=user.delivery_profile.id)
    return jsonify({
        "message": "Delivery person and user account created",
        "delivery_person": user.delivery_profile.to_dict(),
    }), 201


@merchants_bp.route("/delivery-people/<int:dp_id>", methods=["GET"])
@merchant_required
def get_delivery_person(dp_id):
    dp = _owned(DeliveryPerson, dp_id, "Delivery person not found")
    return jsonify({"delivery_person": dp.to_dict()})


@merchants_bp.route("/delivery-people/<int:dp_id>", methods=["PUT"])
@merchant_required
def update_delivery_person(dp_id):
    dp = _owned(DeliveryPerson, dp_id, "Delivery person not found")
    data = get_json()
    user = dp.user

    for field in ("first_name", "last_name", "phone"):
        if field in data:
            setattr(user, field, clean_str(data.get(field)))
    if data.get("password"):
        user.set_password(data["password"])

    db.session.commit()
    log_crud("UPDATE", "DELIVERY_PERSON", current_user, True, delivery_person_id=dp.id)
    return jsonify({"message": "Delivery person updated", "delivery_person": dp.to_dict()})


@merchants_bp.route("/delivery-people/<int:dp_id>", methods=["DELETE"])
@merchant_required
def delete_delivery_person(dp_id):
    dp = _owned(DeliveryPerson, dp_id, "Delivery person not found")

    # keep order history, drop only the link
    Order.query.filter_by(delivery_person_id=dp.id).update({Order.delivery_person_id: None})
    Notification.query.filter_by(delivery_person_id=dp.id).update({Notification.delivery_person_id: None})
    db.session.delete(dp.user)
    db.session.commit()
    log_crud("DELETE", "DELIVERY_PERSON", current_user, True, delivery_person_id=dp_id)
    return jsonify({"message": "Delivery person deleted"})


# ================= STORE SETTINGS =================
@merchants_bp.route("/settings", methods=["GET"])
@merchant_required
def get_settings():
    return jsonify({"settings": current_user.merchant.to_dict()})


@merchants_bp.route("/settings", methods=["PUT"])
@merchant_required
def update_settings():
    merchant = current_user.merchant
    data = get_json()

    if "shop_name" in data:
        shop_name = clean_str(data.get("shop_name"))
        if not shop_name:
            raise ApiError("Shop name cannot be empty", 400)
        merchant.shop_name = shop_name

    for field in ("description", "logo", "header_image", "address"):
        if field in data:
            setattr(merchant, field, clean_str(data.get(field)))

    if "delivery_charge" in data:
        merchant.delivery_charge = _validate_non_negative(
            parse_number(data.get("delivery_charge"), "delivery_charge") or 0,
            "Delivery charge must be positive",
        )
    if "free_delivery_limit" in data:
        merchant.free_delivery_limit = parse_number(data.get("free_delivery_limit"), "free_delivery_limit")

    db.session.commit()
    log_crud("UPDATE", "STORE_SETTINGS", current_user, True, merchant_id=merchant.id)
    return jsonify({"message": "Store settings updated", "settings": merchant.to_dict()})


# ================= DASHBOARD =================
@merchants_bp.route("/stats", methods=["GET"])
@merchant_required
def dashboard_stats():
    merchant_id = _merchant_id()
    threshold = current_app.config["LOW_STOCK_THRESHOLD"]
    today = local_today()

    orders = Order.query.filter_by(merchant_id=merchant_id).order_by(Order.created_at.desc()).all()
    products = Product.query.filter_by(merchant_id=merchant_id).all()

    today_orders = [o for o in orders if to_local(o.created_at).date() == today]
    low_stock = [p for p in products if p.stock < threshold]

    by_status = {}
    for o in orders:
        by_status[o.status] = by_status.get(o.status, 0) + 1

    stats = {
        "total_sales": round(sum(o.total or 0 for o in orders), 2),
        "total_orders": len(orders),
        "today_orders": len(today_orders),
        "today_sales": round(sum(o.total or 0 for o in today_orders), 2),
        "product_count": len(products),
        "low_stock_count": len(low_stock),
        "orders_by_status": by_status,
    }
    return jsonify({
        "stats": stats,
        "recent_orders": [o.to_dict() for o in orders[:5]],
        "low_stock_products": [p.to_dict() for p in low_stock[:5]],
    })


@merchants_bp.route("/notifications", methods=["GET"])
@merchant_required
def list_notifications():
    notes = Notification.query.filter_by(merchant_id=_merchant_id()).order_by(
        Notification.created_at.desc()
    ).limit(50).all()
    return jsonify({"notifications": [n.to_dict() for n in notes]})


@merchants_bp.route("/notifications/read", methods=["POST"])
@merchant_required
def mark_notifications_read():
    count = Notification.query.filter_by(merchant_id=_merchant_id(), is_read=False).update(
        {Notification.is_read: True}
    )
    db.session.commit()
    return jsonify({"success": True, "updated": count, "at": utcnow().isoformat()})
