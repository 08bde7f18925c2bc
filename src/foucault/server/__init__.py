"""HTTP server for the remote notebook protocol."""

from foucault.server.http_server import create_app, serve

__all__ = ["create_app", "serve"]
