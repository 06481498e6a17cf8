from store.routes import store_bp  # noqa: F401
