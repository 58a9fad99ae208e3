"""API module with the RPC registry, procedures and routers."""

from .app import create_api_app


__all__ = ["create_api_app"]
