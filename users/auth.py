# users/auth.py
from datetime import timedelta
from functools import wraps

from flask import current_app, g, jsonify
from flask_jwt_extended import JWTManager, create_access_token, current_user, jwt_required

from models import db, User

jwt = JWTManager()

SIGNIN_ROLES = ("commercant", "livreur", "admin")


def create_token(user):
    return create_access_token(
        identity=str(user.id),
        additional_claims={"email": user.email, "role": user.role},
        expires_delta=timedelta(days=current_app.config["JWT_EXPIRES_DAYS"]),
    )


def _denied(message, status=401):
    return jsonify({"success": False, "message": message}), status


@jwt.unauthorized_loader
def missing_token(reason):
    return _denied("Access denied. No token provided.")


@jwt.invalid_token_loader
def invalid_token(reason):
    return _denied("Invalid token")


@jwt.expired_token_loader
def expired_token(jwt_header, jwt_payload):
    return _denied("Token expired")


@jwt.user_lookup_loader
def load_user(jwt_header, jwt_data):
    identity = jwt_data.get("sub")
    user = None
    if identity and str(identity).isdigit():
        user = db.session.get(User, int(identity))
    elif jwt_data.get("email"):
        user = User.query.filter_by(email=jwt_data["email"]).first()
    return user


@jwt.user_lookup_error_loader
def user_not_found(jwt_header, jwt_data):
    return _denied("User not found.")


def role_required(*roles):
    """Authenticate the bearer token, reject disabled accounts and foreign roles."""
    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            user = current_user
            g.user_email = user.email
            if user.status in ("inactive", "suspended"):
                return _denied("User account is disabled.")
            if roles and user.role not in roles:
                return _denied(f"Access restricted to: {', '.join(roles)}", 403)
            return fn(*args, **kwargs)
        return wrapper
    return decorator


merchant_required = role_required("commercant")
delivery_required = role_required("livreur")
admin_required = role_required("admin")
