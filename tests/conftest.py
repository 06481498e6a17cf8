import pytest

from app import create_app
from models import db, Category, DeliveryPerson, Merchant, Order, OrderItem, Product, User
from services.pricing import price_cart
from users.auth import create_token
from utils import generate_order_code

PASSWORD = "secret123"


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "JWT_SECRET_KEY": "test-jwt-secret-key-that-is-long-enough",
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "LOG_TO_FILE": False,
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "VAPID_PRIVATE_KEY": "",
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_token(user)}"}
    return _headers


@pytest.fixture
def make_merchant():
    def _make(email="shop@test.sn", shop_name="Boutique Test", delivery_charge=1000,
              free_delivery_limit=None, status="active"):
        merchant = Merchant(
            shop_name=shop_name,
            delivery_charge=delivery_charge,
            free_delivery_limit=free_delivery_limit,
            status=status,
        )
        db.session.add(merchant)
        db.session.flush()
        user = User(email=email, first_name="Awa", role="commercant", merchant_id=merchant.id, status=status)
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.commit()
        return merchant, user
    return _make


@pytest.fixture
def make_rider():
    def _make(merchant, email="rider@test.sn", first_name="Moussa"):
        user = User(email=email, first_name=first_name, phone="770000000", role="livreur",
                    merchant_id=merchant.id)
        user.set_password(PASSWORD)
        user.delivery_profile = DeliveryPerson(merchant_id=merchant.id)
        db.session.add(user)
        db.session.commit()
        return user.delivery_profile
    return _make


@pytest.fixture
def make_admin():
    def _make(email="admin@paps.sn"):
        user = User(email=email, role="admin")
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def make_product():
    def _make(merchant, name="Bissap", price=1000, stock=10, category_name=None):
        category = None
        if category_name:
            category = Category.query.filter_by(merchant_id=merchant.id, name=category_name).first()
            if category is None:
                category = Category(name=category_name, merchant_id=merchant.id)
                db.session.add(category)
                db.session.flush()
        product = Product(
            name=name, price=price, stock=stock, merchant_id=merchant.id,
            category_id=category.id if category else None,
        )
        db.session.add(product)
        db.session.commit()
        return product
    return _make


@pytest.fixture
def make_order():
    def _make(merchant, lines, status="pending", rider=None, pin="1234"):
        totals = price_cart(merchant, lines)
        order = Order(
            merchant_id=merchant.id,
            customer_name="Fatou",
            customer_phone="771234567",
            customer_address="Rue 10, Dakar",
            items_total=totals["items_total"],
            delivery_charge=totals["delivery"],
            total=totals["final_total"],
            delivery_pin=pin,
            delivery_person_id=rider.id if rider else None,
        )
        db.session.add(order)
        db.session.flush()
        order.code = generate_order_code(order.id)
        for product, quantity in lines:
            order.items.append(OrderItem(
                product_id=product.id, product_name=product.name, quantity=quantity, price=product.price,
            ))
        order.set_status(status)
        db.session.commit()
        return order
    return _make


@pytest.fixture
def password():
    return PASSWORD
