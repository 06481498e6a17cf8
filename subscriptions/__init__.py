from subscriptions.routes import subscriptions_bp  # noqa: F401
