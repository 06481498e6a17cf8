from delivery.routes import delivery_bp  # noqa: F401
