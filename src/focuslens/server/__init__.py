"""HTTP server for focuslens: analysis proxy and session collector."""

from focuslens.server.app import create_app

__all__ = ["create_app"]
