import io

import pytest

from models import Category, Product
from services.catalog_import import import_products, load_rows


def test_load_rows_normalises_columns():
    rows = load_rows(io.StringIO(" NAME ,Price\nBissap,1000\n"))
    assert rows == [{"name": "Bissap", "price": 1000}]


def test_load_rows_requires_name_and_price():
    with pytest.raises(ValueError):
        load_rows(io.StringIO("title,cost\nBissap,1000\n"))


def test_import_creates_categories_once(app, make_merchant):
    merchant, _ = make_merchant()
    rows = load_rows(io.StringIO(
        "name,price,stock,category,description\n"
        "Bissap,1000,10,Boissons,Jus de bissap\n"
        "Gingembre,1000,,Boissons,\n"
        "Eau,-5,1,Boissons,\n"
    ))

    assert import_products(merchant, rows) == {"created": 2, "updated": 0, "skipped": 1}
    assert Category.query.filter_by(merchant_id=merchant.id).count() == 1

    ginger = Product.query.filter_by(name="Gingembre").one()
    assert ginger.stock == 0
    assert ginger.category.name == "Boissons"
    assert Product.query.filter_by(name="Bissap").one().description == "Jus de bissap"
