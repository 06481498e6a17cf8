from backoffice.routes import backoffice_bp  # noqa: F401
