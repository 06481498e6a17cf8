from flask import Blueprint, jsonify
from flask_jwt_extended import current_user, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from models import db, Merchant, User
from users.auth import SIGNIN_ROLES, create_token, role_required
from utils import clean_str, get_json
from utils.logger import log_auth

users_bp = Blueprint("users", __name__)


# ---------------- MERCHANT SIGNUP ----------------
@users_bp.route("/signup", methods=["POST"])
def signup():
    data = get_json()
    email = (clean_str(data.get("email")) or "").lower()
    password = data.get("password") or ""
    shop_name = clean_str(data.get("shop_name"))

    if not email or not password or not shop_name:
        return jsonify({"message": "Email, password and shop name are required."}), 400

    if User.query.filter_by(email=email).first():
        log_auth("SIGNUP", email, False, reason="email exists")
        return jsonify({"message": "This email is already in use."}), 409

    merchant = Merchant(shop_name=shop_name, address=clean_str(data.get("address")))
    db.session.add(merchant)
    db.session.flush()

    user = User(
        first_name=clean_str(data.get("first_name")),
        last_name=clean_str(data.get("last_name")),
        phone=clean_str(data.get("phone")),
        email=email,
        role="commercant",
        merchant_id=merchant.id,
    )
    user.set_password(password)
    db.session.add(user)
    db.session.commit()

    log_auth("SIGNUP", email, True, merchant_id=merchant.id)
    return jsonify({
        "message": "Merchant and user account created.",
        "user": user.to_dict(),
    }), 201


# ---------------- SIGNIN ----------------
@users_bp.route("/signin", methods=["POST"])
def signin():
    data = get_json()
    email = (clean_str(data.get("email")) or "").lower()
    password = data.get("password") or ""

    user = User.query.filter_by(email=email).first()
    if not user:
        log_auth("LOGIN", email, False, reason="unknown email")
        return jsonify({"message": "Incorrect email or password."}), 401

    if user.role not in SIGNIN_ROLES:
        log_auth("LOGIN", email, False, reason=f"role {user.role}")
        return jsonify({"message": "Access restricted to merchants and delivery riders."}), 403

    if not user.check_password(password):
        log_auth("LOGIN", email, False, reason="bad password")
        return jsonify({"message": "Incorrect email or password."}), 401

    if user.status in ("inactive", "suspended"):
        log_auth("LOGIN", email, False, reason=f"account {user.status}")
        return jsonify({"message": "User account is disabled."}), 401

    token = create_token(user)
    log_auth("LOGIN", email, True, role=user.role)
    return jsonify({
        "message": "Signed in.",
        "token": token,
        "user": user.to_dict(),
    })


@users_bp.route("/verify-token/<token>", methods=["GET"])
def verify_token(token):
    try:
        decoded = decode_token(token)
    except (PyJWTError, JWTExtendedException):
        log_auth("TOKEN_VERIFY", None, False)
        return jsonify({"message": "Invalid token"}), 403

    identity = decoded.get("sub")
    user = db.session.get(User, int(identity)) if str(identity).isdigit() else None
    if not user:
        return jsonify({"message": "User not found"}), 404

    return jsonify({"message": "User retrieved", "user": user.to_dict()})


@users_bp.route("/me", methods=["GET"])
@role_required()
def me():
    return jsonify({"user": current_user.to_dict()})
