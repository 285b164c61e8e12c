"""FastAPI routers, included by server.create_app()."""
