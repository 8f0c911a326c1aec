from .status_api import app

__all__ = ["app"]
