from users.auth import jwt, role_required, merchant_required, delivery_required, admin_required
from users.routes import users_bp

__all__ = [
    "jwt",
    "users_bp",
    "role_required",
    "merchant_required",
    "delivery_required",
    "admin_required",
]
