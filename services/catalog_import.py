import pandas as pd

from models import db, Category, Product
from utils.logger import logger

EXPECTED_COLUMNS = ("name", "price", "stock", "category", "description", "image")


def _text(value):
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def load_rows(source):
    """Read a catalog CSV from a path, URL or file object into records."""
    df = pd.read_csv(source)
    df.columns = [str(c).strip().lower() for c in df.columns]
    if "name" not in df.columns or "price" not in df.columns:
        raise ValueError("CSV must contain at least 'name' and 'price' columns")
    return df.to_dict(orient="records")


def import_products(merchant, rows):
    """Upsert products by name for this merchant. Returns counters."""
    created = updated = skipped = 0
    categories = {c.name: c for c in Category.query.filter_by(merchant_id=merchant.id).all()}

    for row in rows:
        name = _text(row.get("name"))
        if not name:
            skipped += 1
            continue

        try:
            price = float(row.get("price"))
        except (TypeError, ValueError):
            price = float("nan")
        if pd.isna(price) or price < 0:
            logger.warning("Invalid price for %s in %s. Skipping.", name, merchant.shop_name)
            skipped += 1
            continue

        stock_raw = row.get("stock")
        try:
            stock = 0 if stock_raw is None or pd.isna(stock_raw) else max(0, int(float(stock_raw)))
        except (TypeError, ValueError):
            stock = 0

        category = None
        category_name = _text(row.get("category"))
        if category_name:
            category = categories.get(category_name)
            if category is None:
                category = Category(name=category_name, merchant_id=merchant.id)
                db.session.add(category)
                db.session.flush()
                categories[category_name] = category

        item = Product.query.filter_by(name=name, merchant_id=merchant.id).first()
        if item:
            item.price = price
            item.stock = stock
            updated += 1
        else:
            item = Product(merchant_id=merchant.id, name=name, price=price, stock=stock)
            db.session.add(item)
            created += 1

        if category is not None:
            item.category_id = category.id
        description = _text(row.get("description"))
        if description is not None:
            item.description = description
        image = _text(row.get("image"))
        if image is not None:
            item.image = image

    db.session.commit()
    return {"created": created, "updated": updated, "skipped": skipped}
