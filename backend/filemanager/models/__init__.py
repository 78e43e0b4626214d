"""
Domain models package.
"""
from filemanager.models.stored_object import StoredObject

__all__ = [
    "StoredObject",
]
