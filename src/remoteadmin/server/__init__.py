"""HTTP boundary: FastAPI app factory, routes and request/response models."""

from remoteadmin.server.app import create_app

__all__ = ["create_app"]
