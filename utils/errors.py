# utils/errors.py
from datetime import datetime, timezone

from flask import jsonify, request
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from utils.logger import log_critical_error


class ApiError(Exception):
    def __init__(self, message, status=400, details=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.details = details


def error_response(message, status, **extra):
    payload = {"success": False, "message": message, "status": status}
    payload.update(extra)
    return jsonify(payload), status


def register_error_handlers(app, db):

    @app.errorhandler(ApiError)
    def handle_api_error(e):
        extra = {"details": e.details} if e.details else {}
        return error_response(e.message, e.status, **extra)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e):
        db.session.rollback()
        return error_response("This record already exists", 409)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        if e.code == 404:
            return error_response(f"Route {request.path} not found", 404)
        return error_response(e.description, e.code)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        db.session.rollback()
        log_critical_error(e, middleware="ERROR_HANDLER")
        payload = {
            "success": False,
            "error": {
                "message": "An error occurred",
                "status": 500,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        }
        if app.config.get("APP_ENV") != "production":
            payload["error"]["message"] = str(e) or payload["error"]["message"]
            payload["debug"] = {
                "url": request.path,
                "method": request.method,
                "query": request.args.to_dict(),
            }
        return jsonify(payload), 500
