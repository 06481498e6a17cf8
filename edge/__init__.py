from edge.routes import edge_bp  # noqa: F401
