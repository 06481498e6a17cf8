from merchants.routes import merchants_bp  # noqa: F401
