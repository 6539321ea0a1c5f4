"""HTTP surface of the advisory service (FastAPI routers and error handlers)."""
