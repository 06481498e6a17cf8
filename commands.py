import click
from flask.cli import with_appcontext

from models import db, Category, DeliveryPerson, Merchant, Product, User


@click.command("create-admin")
@click.argument("email")
@click.argument("password")
@with_appcontext
def create_admin(email, password):
    """Create (or promote) a back-office administrator."""
    email = email.strip().lower()
    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email, first_name="Admin")
        db.session.add(user)
    user.role = "admin"
    user.status = "active"
    user.merchant_id = None
    user.set_password(password)
    db.session.commit()
    click.echo(f"✅ Admin {email} ready")


@click.command("seed-demo")
@with_appcontext
def seed_demo():
    """Add a demo shop with a small catalog and one rider."""
    if User.query.filter_by(email="shop@paps.demo").first():
        click.echo("Demo data already present")
        return

    merchant = Merchant(
        shop_name="Boutique Demo",
        address="Dakar Plateau",
        delivery_charge=1000,
        free_delivery_limit=15000,
    )
    db.session.add(merchant)
    db.session.flush()

    owner = User(email="shop@paps.demo", first_name="Awa", role="commercant", merchant_id=merchant.id)
    owner.set_password("demo1234")

    rider = User(email="rider@paps.demo", first_name="Moussa", role="livreur", merchant_id=merchant.id)
    rider.set_password("demo1234")
    db.session.add_all([owner, rider])
    db.session.flush()
    db.session.add(DeliveryPerson(user_id=rider.id, merchant_id=merchant.id))

    drinks = Category(name="Boissons", merchant_id=merchant.id)
    grocery = Category(name="Épicerie", merchant_id=merchant.id)
    db.session.add_all([drinks, grocery])
    db.session.flush()

    db.session.add_all([
        Product(name="Bissap 1L", price=1000, stock=40, category_id=drinks.id, merchant_id=merchant.id),
        Product(name="Eau minérale 1.5L", price=500, stock=100, category_id=drinks.id, merchant_id=merchant.id),
        Product(name="Riz 5kg", price=4500, stock=12, category_id=grocery.id, merchant_id=merchant.id),
        Product(name="Huile 1L", price=1500, stock=3, category_id=grocery.id, merchant_id=merchant.id),
    ])
    db.session.commit()
    click.echo("✅ Demo shop seeded (shop@paps.demo / rider@paps.demo, password demo1234)")


def register_commands(app):
    app.cli.add_command(create_admin)
    app.cli.add_command(seed_demo)
