# utils/logger.py
import json
import logging
import os
from logging.handlers import RotatingFileHandler

from flask import g, has_request_context, request

logger = logging.getLogger("paps")            # general
http_logger = logging.getLogger("paps.http")  # one line per request
bug_logger = logging.getLogger("paps.bug")    # critical errors

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def configure_logging(app):
    level = logging.DEBUG if app.debug else logging.INFO
    formatter = logging.Formatter(LOG_FORMAT)

    for lg in (logger, http_logger, bug_logger):
        lg.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)
    logger.setLevel(level)
    http_logger.setLevel(logging.INFO)
    bug_logger.setLevel(logging.ERROR)

    if not app.config.get("LOG_TO_FILE"):
        return

    log_dir = app.config["LOG_DIR"]
    os.makedirs(log_dir, exist_ok=True)

    app_file = RotatingFileHandler(
        os.path.join(log_dir, "app.log"), maxBytes=10 * 1024 * 1024, backupCount=3
    )
    app_file.setFormatter(formatter)
    logger.addHandler(app_file)

    http_file = logging.FileHandler(os.path.join(log_dir, "http.log"))
    http_file.setFormatter(formatter)
    http_logger.addHandler(http_file)
    http_logger.propagate = False

    bug_file = logging.FileHandler(os.path.join(log_dir, "bug-report.log"))
    bug_file.setFormatter(logging.Formatter("[%(asctime)s] %(message)s"))
    bug_logger.addHandler(bug_file)


def _who(user):
    if user is None:
        return "system"
    return f"{user.email} ({user.id})"


def log_success(operation, user=None, **details):
    logger.info("%s - %s %s", operation, _who(user), json.dumps(details, default=str))


def log_auth(kind, email, success, **details):
    if success:
        logger.info("AUTH_%s ok - %s %s", kind, email or "unknown", json.dumps(details, default=str))
    else:
        logger.warning("AUTH_%s_FAILED - %s %s", kind, email or "unknown", json.dumps(details, default=str))


def log_crud(operation, entity, user, success, **details):
    if success:
        logger.info("%s_%s - %s %s", operation, entity, _who(user), json.dumps(details, default=str))
    else:
        logger.warning("%s_%s_FAILED - %s %s", operation, entity, _who(user), json.dumps(details, default=str))


def log_critical_error(error, **context):
    data = {
        "error": {"message": str(error), "name": type(error).__name__},
        "context": context,
        "type": "CRITICAL_ERROR",
    }
    if has_request_context():
        data["request"] = {
            "method": request.method,
            "url": request.full_path,
            "ip": request.remote_addr,
            "user": getattr(g, "user_email", None) or "anonymous",
        }
    bug_logger.error(json.dumps(data, default=str, indent=2), exc_info=error)
    logger.error("CRITICAL ERROR: %s", error)
