import os
import time

from dotenv import load_dotenv
from flask import Flask, g, jsonify, request
from flask_cors import CORS
from flask_migrate import Migrate

from models import db

load_dotenv()

migrate = Migrate()


def _env_flag(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _database_url(instance_path):
    db_url = os.getenv("DATABASE_URL")
    if db_url:
        if db_url.startswith("postgres://"):
            db_url = db_url.replace("postgres://", "postgresql+psycopg2://", 1)
        return db_url

    os.makedirs(instance_path, exist_ok=True)
    return "sqlite:///" + os.path.join(instance_path, "paps.db")


def create_app(test_config=None):
    # ------------------ APP ------------------
    app = Flask(__name__, instance_relative_config=True)

    secret = os.getenv("SECRET_KEY", "dev-secret-key")
    app.config.from_mapping(
        SECRET_KEY=secret,
        JWT_SECRET_KEY=os.getenv("JWT_SECRET_KEY", secret),
        JWT_EXPIRES_DAYS=int(os.getenv("JWT_EXPIRES_DAYS", 7)),
        APP_ENV=os.getenv("APP_ENV", "development"),
        APP_TIMEZONE=os.getenv("APP_TIMEZONE", "Africa/Dakar"),
        CORS_ORIGINS=os.getenv("CORS_ORIGINS", "*"),
        LOG_DIR=os.getenv("LOG_DIR", "logs"),
        LOG_TO_FILE=_env_flag("LOG_TO_FILE", True),
        UPLOAD_FOLDER=os.getenv("UPLOAD_FOLDER", os.path.join(app.instance_path, "uploads")),
        VAPID_PUBLIC_KEY=os.getenv("VAPID_PUBLIC_KEY", ""),
        VAPID_PRIVATE_KEY=os.getenv("VAPID_PRIVATE_KEY", ""),
        VAPID_SUBJECT=os.getenv("VAPID_SUBJECT", "mailto:admin@paps.sn"),
        SUBSCRIPTION_PRICE=float(os.getenv("SUBSCRIPTION_PRICE", 5000)),
        LOW_STOCK_THRESHOLD=int(os.getenv("LOW_STOCK_THRESHOLD", 5)),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
    )

    if test_config is not None:
        app.config.update(test_config)

    # ------------------ DATABASE ------------------
    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        app.config["SQLALCHEMY_DATABASE_URI"] = _database_url(app.instance_path)

    # ------------------ LOGGING / ERRORS ------------------
    from utils.errors import register_error_handlers
    from utils.logger import configure_logging, http_logger, logger

    configure_logging(app)
    register_error_handlers(app, db)

    # ------------------ INIT EXTENSIONS ------------------
    from users import jwt

    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    origins = app.config["CORS_ORIGINS"]
    CORS(app, resources={r"/*": {"origins": origins if origins == "*" else origins.split(",")}})

    # ------------------ BLUEPRINTS ------------------
    from backoffice import backoffice_bp
    from delivery import delivery_bp
    from edge import edge_bp
    from merchants import merchants_bp
    from store import store_bp
    from subscriptions import subscriptions_bp
    from users import users_bp

    app.register_blueprint(users_bp, url_prefix="/api")
    app.register_blueprint(subscriptions_bp, url_prefix="/api")
    app.register_blueprint(merchants_bp, url_prefix="/api/merchant")
    app.register_blueprint(delivery_bp, url_prefix="/api/delivery")
    app.register_blueprint(store_bp, url_prefix="/api/store")
    app.register_blueprint(backoffice_bp, url_prefix="/api/backoffice")
    app.register_blueprint(edge_bp, url_prefix="/edge")

    # ------------------ REQUEST LOG ------------------
    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def log_request(response):
        started = g.get("request_started")
        elapsed = (time.perf_counter() - started) * 1000 if started else 0
        http_logger.info(
            "%s %s %s %s %.1fms",
            request.remote_addr, request.method, request.full_path.rstrip("?"),
            response.status_code, elapsed,
        )
        return response

    @app.route("/")
    def home():
        return jsonify({"message": "API is running"})

    @app.route("/api/health")
    def health():
        return jsonify({"status": "ok"})

    from commands import register_commands
    register_commands(app)

    logger.info("PAPS API started (%s)", app.config["APP_ENV"])
    return app


# ------------------ RUN ------------------
if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    create_app().run(host="0.0.0.0", port=port, debug=os.getenv("APP_ENV") != "production")
