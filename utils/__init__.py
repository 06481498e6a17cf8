# utils/__init__.py
import secrets
import string

from flask import request

from utils.errors import ApiError


def generate_pin(length=4):
    return "".join(secrets.choice(string.digits) for _ in range(length))


def generate_order_code(order_db_id):
    # call AFTER the order is flushed so order_db_id exists
    rand = "".join(secrets.choice(string.ascii_uppercase + string.digits) for _ in range(6))
    return f"ORD-{order_db_id}-{rand}"


def get_json():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ApiError("JSON object expected", 400)
    return data


def clean_str(value):
    if value is None:
        return None
    return str(value).strip()


def parse_number(value, field, cast=float):
    """Cast a request value to a number, raising a 400 with the field name."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ApiError(f"{field} must be a number", 400)
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise ApiError(f"{field} must be a number", 400)
