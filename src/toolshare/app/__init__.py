"""Toolshare application package."""

from .main import create_app, create_app_from_env
from .settings import ShareSettings

__all__ = ["ShareSettings", "create_app", "create_app_from_env"]
