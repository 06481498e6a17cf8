# models.py
from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import generate_password_hash, check_password_hash

from utils.timezone import utcnow

db = SQLAlchemy()  # Keep this here, do NOT move to app.py


ORDER_STATUSES = (
    "pending",
    "assigned",
    "accepted",
    "en_route_pickup",
    "picked_up",
    "en_route_delivery",
    "delivered",
    "cancelled",
)

# Forward step offered to the rider for each status
NEXT_STATUS = {
    "accepted": "en_route_pickup",
    "en_route_pickup": "picked_up",
    "picked_up": "en_route_delivery",
    "en_route_delivery": "delivered",
}

ACTIVE_STATUSES = ("accepted", "en_route_pickup", "picked_up", "en_route_delivery")

USER_ROLES = ("client", "commercant", "livreur", "admin")
ACCOUNT_STATUSES = ("active", "inactive", "suspended")


def _iso(dt):
    return dt.isoformat() if dt else None


# ----------------- Merchant (shop) -----------------
class Merchant(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    shop_name = db.Column(db.String(200), nullable=False)
    address = db.Column(db.String(500))
    description = db.Column(db.Text)
    logo = db.Column(db.String(500))
    header_image = db.Column(db.String(500))
    status = db.Column(db.String(20), default="active", nullable=False)

    # Delivery
    delivery_charge = db.Column(db.Float, default=0, nullable=False)
    free_delivery_limit = db.Column(db.Float, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow)

    # Relationships
    users = db.relationship("User", backref="merchant", lazy=True)
    categories = db.relationship("Category", backref="merchant", lazy=True)
    products = db.relationship("Product", backref="merchant", lazy=True)
    orders = db.relationship("Order", backref="merchant", lazy=True)
    delivery_persons = db.relationship("DeliveryPerson", backref="merchant", lazy=True)
    subscriptions = db.relationship("Subscription", backref="merchant", lazy=True)

    @property
    def active_subscription(self):
        now = utcnow()
        return next(
            (
                s for s in self.subscriptions
                if s.status == "active"
                and s.end is not None
                and s.start <= now <= s.end
            ),
            None
        )

    @property
    def is_premium(self):
        return self.active_subscription is not None

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.shop_name,
            "address": self.address,
            "description": self.description,
            "logo": self.logo or "",
            "header_image": self.header_image or "",
            "status": self.status,
            "delivery_charge": self.delivery_charge,
            "free_delivery_limit": self.free_delivery_limit,
            "is_premium": self.is_premium,
            "created_at": _iso(self.created_at),
        }


# ----------------- User account -----------------
class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100))
    last_name = db.Column(db.String(100))
    phone = db.Column(db.String(20))
    email = db.Column(db.String(200), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False)
    status = db.Column(db.String(20), default="active", nullable=False)
    merchant_id = db.Column(db.Integer, db.ForeignKey("merchant.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    delivery_profile = db.relationship(
        "DeliveryPerson", backref="user", uselist=False, cascade="all, delete-orphan"
    )

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def full_name(self):
        return " ".join(p for p in [self.first_name, self.last_name] if p)

    def to_dict(self):
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "email": self.email,
            "role": self.role,
            "status": self.status,
            "merchant_id": self.merchant_id,
            "delivery_person_id": self.delivery_profile.id if self.delivery_profile else None,
        }


# ----------------- Delivery Person -----------------
class DeliveryPerson(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, unique=True)
    merchant_id = db.Column(db.Integer, db.ForeignKey("merchant.id"), nullable=False)
    availability = db.Column(db.String(20), default="offline", nullable=False)  # online / offline
    created_at = db.Column(db.DateTime, default=utcnow)

    orders = db.relationship("Order", backref="delivery_person", lazy=True)
    push_subscriptions = db.relationship(
        "PushSubscription", backref="delivery_person", lazy=True, cascade="all, delete-orphan"
    )

    def to_dict(self):
        user = self.user
        return {
            "id": self.id,
            "user_id": self.user_id,
            "merchant_id": self.merchant_id,
            "name": user.full_name if user else "",
            "first_name": user.first_name if user else None,
            "last_name": user.last_name if user else None,
            "phone": user.phone if user else None,
            "email": user.email if user else None,
            "status": self.availability,
            "created_at": _iso(self.created_at),
        }


# ----------------- Category -----------------
class Category(db.Model):
    __tablename__ = "category"
    __table_args__ = (db.UniqueConstraint("merchant_id", "name", name="uq_category_merchant_name"),)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    merchant_id = db.Column(db.Integer, db.ForeignKey("merchant.id"), nullable=False)

    products = db.relationship("Product", backref="category", lazy=True)

    def to_dict(self):
        return {"id": self.id, "name": self.name, "merchant_id": self.merchant_id}


# ----------------- Product -----------------
class Product(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    price = db.Column(db.Float, nullable=False)
    image = db.Column(db.String(500))
    stock = db.Column(db.Integer, default=0, nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey("category.id"), nullable=True)
    merchant_id = db.Column(db.Integer, db.ForeignKey("merchant.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
            "price": self.price,
            "image": self.image or "",
            "stock": self.stock,
            "category_id": self.category_id,
            "category": self.category.name if self.category else None,
            "merchant_id": self.merchant_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Order(db.Model):
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    code = db.Column(db.String(64), unique=True, index=True)

    # ---------------- CUSTOMER DETAILS ----------------
    customer_name = db.Column(db.String(200), nullable=False)
    customer_phone = db.Column(db.String(20), nullable=False)
    customer_address = db.Column(db.String(500), nullable=False)

    # ---------------- ORDER TOTALS ----------------
    items_total = db.Column(db.Float, default=0.0)
    delivery_charge = db.Column(db.Float, default=0.0)
    total = db.Column(db.Float, default=0.0)

    # ---------------- ORDER STATUS ----------------
    status = db.Column(db.String(30), default="pending", nullable=False, index=True)
    delivery_pin = db.Column(db.String(10))
    proof_photo = db.Column(db.String(300))

    # ---------------- RELATIONSHIPS ----------------
    merchant_id = db.Column(db.Integer, db.ForeignKey("merchant.id"), nullable=False)
    delivery_person_id = db.Column(db.Integer, db.ForeignKey("delivery_person.id"), nullable=True)
    items = db.relationship("OrderItem", backref="order", lazy=True, cascade="all, delete-orphan")

    # ---------------- TIMESTAMPS ----------------
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
    assigned_at = db.Column(db.DateTime)
    accepted_at = db.Column(db.DateTime)
    en_route_pickup_at = db.Column(db.DateTime)
    picked_up_at = db.Column(db.DateTime)
    en_route_delivery_at = db.Column(db.DateTime)
    delivered_at = db.Column(db.DateTime)
    cancelled_at = db.Column(db.DateTime)

    def set_status(self, status, when=None):
        """Write the status label and stamp its `<status>_at` column."""
        self.status = status
        column = f"{status}_at"
        if hasattr(self, column):
            setattr(self, column, when or utcnow())

    @property
    def item_count(self):
        return sum(i.quantity or 1 for i in self.items)

    @property
    def eta_minutes(self):
        return 10 + min(30, self.item_count * 2)

    @property
    def best_time(self):
        return self.accepted_at or self.assigned_at or self.created_at

    def get_final_total(self):
        items_total = self.items_total or 0
        delivery = self.delivery_charge or 0
        return round(items_total + delivery, 2)

    def to_dict(self, include_pin=False):
        data = {
            "id": self.id,
            "code": self.code,
            "merchant_id": self.merchant_id,
            "merchant_name": self.merchant.shop_name if self.merchant else None,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_address": self.customer_address,
            "items": [i.to_dict() for i in self.items],
            "items_total": self.items_total,
            "delivery_charge": self.delivery_charge,
            "total": self.total,
            "status": self.status,
            "next_status": NEXT_STATUS.get(self.status),
            "delivery_person_id": self.delivery_person_id,
            "delivery_person_name": (
                self.delivery_person.user.full_name
                if self.delivery_person and self.delivery_person.user else None
            ),
            "eta_minutes": self.eta_minutes,
            "created_at": _iso(self.created_at),
        }
        for status in ORDER_STATUSES[1:]:
            data[f"{status}_at"] = _iso(getattr(self, f"{status}_at", None))
        if include_pin:
            data["delivery_pin"] = self.delivery_pin
        return data


# ----------------- Order Item -----------------
class OrderItem(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("order.id"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id", ondelete="SET NULL"), nullable=True)
    product_name = db.Column(db.String(200))
    quantity = db.Column(db.Integer)
    price = db.Column(db.Float)

    def item_total(self):
        return round((self.price or 0) * (self.quantity or 0), 2)

    def to_dict(self):
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price": self.price,
            "total": self.item_total(),
        }


class Notification(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    merchant_id = db.Column(db.Integer, db.ForeignKey("merchant.id"), nullable=False, index=True)
    delivery_person_id = db.Column(db.Integer, db.ForeignKey("delivery_person.id"), nullable=True)
    order_id = db.Column(db.Integer, db.ForeignKey("order.id"), nullable=True)
    message = db.Column(db.String(300), nullable=False)
    is_read = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "merchant_id": self.merchant_id,
            "delivery_person_id": self.delivery_person_id,
            "order_id": self.order_id,
            "message": self.message,
            "is_read": self.is_read,
            "created_at": _iso(self.created_at),
        }


class Subscription(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    merchant_id = db.Column(db.Integer, db.ForeignKey("merchant.id"), nullable=False)
    start = db.Column(db.DateTime, default=utcnow, nullable=False)
    end = db.Column(db.DateTime)
    status = db.Column(db.String(20), default="active", nullable=False)  # active / inactive
    price = db.Column(db.Float, default=5000)

    def to_dict(self):
        return {
            "id": self.id,
            "merchant_id": self.merchant_id,
            "start": _iso(self.start),
            "end": _iso(self.end),
            "status": self.status,
            "price": self.price,
        }


class PushSubscription(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    delivery_person_id = db.Column(db.Integer, db.ForeignKey("delivery_person.id"), nullable=False)
    endpoint = db.Column(db.String(500), unique=True, nullable=False)
    keys = db.Column(db.JSON, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    def subscription_info(self):
        return {"endpoint": self.endpoint, "keys": self.keys}


# ----------------- Edge key-value store -----------------
class KVEntry(db.Model):
    __tablename__ = "kv_store"

    key = db.Column(db.String(255), primary_key=True)
    value = db.Column(db.JSON, nullable=False)
