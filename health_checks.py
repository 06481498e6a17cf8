# health_checks.py
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from models import db
from services.pricing import calculate_totals


def check_database():
    """
    Runs a trivial query against the configured database
    """
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db.session.rollback()
        return {"name": "database", "status": False, "issue": str(e)}
    return {"name": "database", "status": True, "issue": None}


def check_pricing(merchant):
    """
    Checks that free delivery kicks in at the merchant's limit
    """
    issue = None
    if (merchant.delivery_charge or 0) < 0:
        issue = "Negative delivery charge"
    elif merchant.free_delivery_limit is not None:
        totals = calculate_totals(merchant, merchant.free_delivery_limit)
        if totals["delivery"] != 0:
            issue = "Free delivery not applied"
    else:
        totals = calculate_totals(merchant, 0)
        if totals["final_total"] != round(merchant.delivery_charge or 0, 2):
            issue = "Delivery charge mismatch"

    return {
        "name": f"pricing:{merchant.id}",
        "status": issue is None,
        "issue": issue,
    }
