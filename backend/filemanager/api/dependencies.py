"""
FastAPI dependencies.

The storage gateway and settings are built once when the application
starts and stored on app.state; handlers receive them from here rather
than reading the environment themselves.
"""
from fastapi import Request

from filemanager.config import Settings
from filemanager.storage.r2_client import R2Client


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_storage(request: Request) -> R2Client:
    """Storage gateway built at startup."""
    return request.app.state.storage
